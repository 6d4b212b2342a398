from django.core.validators import MinValueValidator
from django.db import models
from decimal import Decimal
from pharmacy.locations.models import Branch


class Drug(models.Model):
    """Drug stock record (one batch per row)"""
    name = models.CharField(max_length=200, db_index=True)
    generic_name = models.CharField(max_length=200, blank=True)
    brand = models.CharField(max_length=200, blank=True)
    category = models.CharField(max_length=100, blank=True, db_index=True)
    dosage_form = models.CharField(max_length=100, blank=True)
    batch_number = models.CharField(max_length=100, blank=True)
    expiry_date = models.DateField(db_index=True)
    quantity = models.PositiveIntegerField(default=0)
    price = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'),
                                validators=[MinValueValidator(Decimal('0.00'))])
    cost_price = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    low_stock_threshold = models.PositiveIntegerField(default=10)
    requires_prescription = models.BooleanField(default=False)
    branches = models.ManyToManyField(Branch, through='DrugBranch', related_name='drugs', blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.name} ({self.batch_number or 'NO-BATCH'})"

    @property
    def is_low_stock(self):
        return self.quantity <= self.low_stock_threshold

    class Meta:
        db_table = 'drugs'
        ordering = ['name']
        indexes = [
            models.Index(fields=['category', 'name'], name='idx_drug_category_name'),
        ]


class DrugBranch(models.Model):
    """Join table placing a drug in a branch"""
    drug = models.ForeignKey(Drug, on_delete=models.CASCADE, related_name='branch_links')
    branch = models.ForeignKey(Branch, on_delete=models.CASCADE, related_name='drug_links')
    quantity = models.PositiveIntegerField(default=0)
    assigned_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.drug_id}@{self.branch_id}"

    class Meta:
        db_table = 'drug_branches'
        unique_together = [['drug', 'branch']]
