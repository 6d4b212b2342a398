from django.contrib import admin
from .models import Drug, DrugBranch


class DrugBranchInline(admin.TabularInline):
    model = DrugBranch
    extra = 0


@admin.register(Drug)
class DrugAdmin(admin.ModelAdmin):
    list_display = ['name', 'brand', 'category', 'batch_number', 'expiry_date', 'quantity', 'price']
    list_filter = ['category', 'requires_prescription', 'expiry_date']
    search_fields = ['name', 'generic_name', 'brand', 'batch_number']
    ordering = ['name']
    inlines = [DrugBranchInline]
