from rest_framework import serializers
from .models import Pharmacy, Branch


class PharmacySerializer(serializers.ModelSerializer):
    class Meta:
        model = Pharmacy
        fields = ['id', 'name', 'registration_number', 'tax_id', 'address', 'phone', 'email',
                  'operating_hours', 'require_sale_short_code', 'short_code_expiry_minutes',
                  'created_at', 'updated_at']


class SaleSettingsSerializer(serializers.ModelSerializer):
    short_code_expiry_minutes = serializers.IntegerField(min_value=1, required=False)

    class Meta:
        model = Pharmacy
        fields = ['require_sale_short_code', 'short_code_expiry_minutes']


class BranchSerializer(serializers.ModelSerializer):
    pharmacy_name = serializers.CharField(source='pharmacy.name', read_only=True)

    class Meta:
        model = Branch
        fields = ['id', 'pharmacy', 'pharmacy_name', 'name', 'code', 'address', 'phone', 'email',
                  'is_active', 'created_at', 'updated_at']
