from django.urls import path
from .views import (
    pharmacy_list_create, pharmacy_detail, pharmacy_sale_settings,
    branch_list_create, branch_detail,
)

urlpatterns = [
    path('pharmacies/', pharmacy_list_create, name='pharmacy-list-create'),
    path('pharmacies/<int:pk>/', pharmacy_detail, name='pharmacy-detail'),
    path('pharmacies/<int:pk>/sale-settings/', pharmacy_sale_settings, name='pharmacy-sale-settings'),
    path('branches/', branch_list_create, name='branch-list-create'),
    path('branches/<int:pk>/', branch_detail, name='branch-detail'),
]
