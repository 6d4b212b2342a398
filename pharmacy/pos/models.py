from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models
from decimal import Decimal
from pharmacy.catalog.models import Drug
from pharmacy.locations.models import Branch
from pharmacy.parties.models import Customer


class Sale(models.Model):
    """Sales"""
    PAYMENT_METHOD_CHOICES = [
        ('cash', 'Cash'),
        ('card', 'Card'),
        ('mobile', 'Mobile'),
    ]

    sold_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name='sales')
    customer = models.ForeignKey(Customer, on_delete=models.SET_NULL, null=True, blank=True, related_name='sales')
    branch = models.ForeignKey(Branch, on_delete=models.SET_NULL, null=True, blank=True, related_name='sales')
    payment_method = models.CharField(max_length=20, choices=PAYMENT_METHOD_CHOICES, default='cash')
    transaction_id = models.CharField(max_length=100, blank=True)
    notes = models.TextField(blank=True)
    total_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'),
                                       validators=[MinValueValidator(Decimal('0.00'))])
    # Set only when the pharmacy requires cashier finalization
    short_code = models.CharField(max_length=6, unique=True, null=True, blank=True)
    finalized = models.BooleanField(default=True)
    finalized_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"Sale #{self.id} ({self.short_code or 'no code'})"

    class Meta:
        db_table = 'sales'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['finalized', 'created_at'], name='idx_sale_finalized_created'),
        ]


class SaleItem(models.Model):
    """Sale line items"""
    sale = models.ForeignKey(Sale, on_delete=models.CASCADE, related_name='items')
    drug = models.ForeignKey(Drug, on_delete=models.PROTECT, related_name='sale_items')
    quantity = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    price_at_sale = models.DecimalField(max_digits=10, decimal_places=2)

    @property
    def line_total(self):
        return self.price_at_sale * self.quantity

    class Meta:
        db_table = 'sale_items'


class ExpiredSaleCleanupHistory(models.Model):
    """One row per cleanup run that removed at least one expired sale"""
    OPERATION_CHOICES = [
        ('automatic', 'Automatic'),
        ('manual', 'Manual'),
    ]

    cleanup_date = models.DateTimeField(auto_now_add=True, db_index=True)
    cleaned_up_count = models.PositiveIntegerField(default=0)
    total_value = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    operation_type = models.CharField(max_length=20, choices=OPERATION_CHOICES, default='automatic')
    triggered_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True,
                                     related_name='expired_sale_cleanups')
    branch = models.ForeignKey(Branch, on_delete=models.SET_NULL, null=True, blank=True,
                               related_name='expired_sale_cleanups')

    def __str__(self):
        return f"{self.operation_type} cleanup of {self.cleaned_up_count} sales at {self.cleanup_date}"

    class Meta:
        db_table = 'expired_sale_cleanup_history'
        ordering = ['-cleanup_date']
