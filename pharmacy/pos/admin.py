from django.contrib import admin
from .models import Sale, SaleItem, ExpiredSaleCleanupHistory


class SaleItemInline(admin.TabularInline):
    model = SaleItem
    extra = 0
    readonly_fields = ['drug', 'quantity', 'price_at_sale']


@admin.register(Sale)
class SaleAdmin(admin.ModelAdmin):
    list_display = ['id', 'sold_by', 'branch', 'payment_method', 'total_amount', 'short_code', 'finalized', 'created_at']
    list_filter = ['finalized', 'payment_method', 'branch']
    search_fields = ['short_code', 'transaction_id']
    ordering = ['-created_at']
    inlines = [SaleItemInline]


@admin.register(ExpiredSaleCleanupHistory)
class ExpiredSaleCleanupHistoryAdmin(admin.ModelAdmin):
    list_display = ['cleanup_date', 'cleaned_up_count', 'total_value', 'operation_type', 'triggered_by', 'branch']
    list_filter = ['operation_type', 'branch']
    ordering = ['-cleanup_date']
