from django.contrib import admin
from .models import Pharmacy, Branch


@admin.register(Pharmacy)
class PharmacyAdmin(admin.ModelAdmin):
    list_display = ['name', 'phone', 'email', 'require_sale_short_code', 'short_code_expiry_minutes', 'created_at']
    list_filter = ['require_sale_short_code']
    search_fields = ['name', 'registration_number', 'email']
    ordering = ['name']


@admin.register(Branch)
class BranchAdmin(admin.ModelAdmin):
    list_display = ['name', 'code', 'pharmacy', 'phone', 'is_active', 'created_at']
    list_filter = ['is_active', 'pharmacy']
    search_fields = ['name', 'code', 'email']
    ordering = ['name']
