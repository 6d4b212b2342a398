from django.urls import path
from . import views

urlpatterns = [
    path('expiry/drugs/', views.expiring_drugs, name='expiry-drugs'),
    path('expiry/drugs/<int:pk>/check/', views.drug_expiry_check, name='expiry-drug-check'),
    path('expiry/stats/', views.expiry_stats, name='expiry-stats'),
    path('expiry/notifications/', views.notification_list, name='expiry-notification-list'),
    path('expiry/notifications/read-all/', views.notification_mark_all_read, name='expiry-notification-read-all'),
    path('expiry/notifications/<int:pk>/read/', views.notification_mark_read, name='expiry-notification-read'),
]
