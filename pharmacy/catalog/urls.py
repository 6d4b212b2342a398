from django.urls import path
from .views import drug_list_create, drug_detail, drug_low_stock

urlpatterns = [
    path('drugs/', drug_list_create, name='drug-list-create'),
    path('drugs/low-stock/', drug_low_stock, name='drug-low-stock'),
    path('drugs/<int:pk>/', drug_detail, name='drug-detail'),
]
