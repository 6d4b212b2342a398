"""
URL configuration for the pharmacy backend.

Every app mounts its API under ``api/v1/``.
"""
from django.contrib import admin
from django.urls import path, include

admin.site.site_header = "Pharmacy Management Admin Panel"
admin.site.site_title = "Pharmacy Management Admin Portal"
admin.site.index_title = "Welcome to the Pharmacy Admin Portal"

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/v1/', include('pharmacy.core.urls')),
    path('api/v1/', include('pharmacy.locations.urls')),
    path('api/v1/', include('pharmacy.catalog.urls')),
    path('api/v1/', include('pharmacy.parties.urls')),
    path('api/v1/', include('pharmacy.pos.urls')),
    path('api/v1/', include('pharmacy.expiry.urls')),
    path('api/v1/', include('pharmacy.scheduler.urls')),
]
