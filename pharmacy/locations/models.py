from django.core.validators import MinValueValidator
from django.db import models

DEFAULT_SHORT_CODE_EXPIRY_MINUTES = 15


class Pharmacy(models.Model):
    """Pharmacy profile and sale-handling settings"""
    name = models.CharField(max_length=200)
    registration_number = models.CharField(max_length=100, blank=True)
    tax_id = models.CharField(max_length=100, blank=True)
    address = models.TextField(blank=True)
    phone = models.CharField(max_length=20, blank=True)
    email = models.EmailField(blank=True)
    operating_hours = models.CharField(max_length=200, blank=True)
    require_sale_short_code = models.BooleanField(default=False)
    short_code_expiry_minutes = models.PositiveIntegerField(
        default=DEFAULT_SHORT_CODE_EXPIRY_MINUTES, validators=[MinValueValidator(1)]
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name

    @classmethod
    def current(cls):
        """The pharmacy whose settings govern sales (first configured row)"""
        return cls.objects.order_by('id').first()

    class Meta:
        db_table = 'pharmacies'
        verbose_name_plural = 'pharmacies'


class Branch(models.Model):
    """Pharmacy branches"""
    pharmacy = models.ForeignKey(Pharmacy, on_delete=models.CASCADE, related_name='branches')
    name = models.CharField(max_length=200)
    code = models.CharField(max_length=50, unique=True)
    address = models.TextField(blank=True)
    phone = models.CharField(max_length=20, blank=True)
    email = models.EmailField(blank=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name

    class Meta:
        db_table = 'branches'
        verbose_name_plural = 'branches'
