from django.urls import path, re_path
from . import views

urlpatterns = [
    path('sales/', views.sale_list_create, name='sale-list-create'),
    path('sales/finalize/', views.sale_finalize, name='sale-finalize'),
    path('sales/code/<str:code>/', views.sale_by_code, name='sale-by-code'),
    path('sales/<int:pk>/', views.sale_detail, name='sale-detail'),

    # Trailing slash optional so POSTs from clients without one are not redirected
    re_path(r'^expired-sales/expired-stats/?$', views.expired_sale_stats, name='expired-sale-stats'),
    re_path(r'^expired-sales/cleanup-expired/?$', views.expired_sale_cleanup, name='expired-sale-cleanup'),
]
