from rest_framework import serializers
from pharmacy.catalog.models import Drug
from pharmacy.locations.models import Branch
from pharmacy.parties.models import Customer
from .models import Sale, SaleItem, ExpiredSaleCleanupHistory


class SaleItemSerializer(serializers.ModelSerializer):
    drug_name = serializers.CharField(source='drug.name', read_only=True)
    line_total = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)

    class Meta:
        model = SaleItem
        fields = ['id', 'drug', 'drug_name', 'quantity', 'price_at_sale', 'line_total']


class SaleSerializer(serializers.ModelSerializer):
    items = SaleItemSerializer(many=True, read_only=True)
    sold_by_username = serializers.CharField(source='sold_by.username', read_only=True)
    customer_name = serializers.CharField(source='customer.name', read_only=True, default=None)
    branch_name = serializers.CharField(source='branch.name', read_only=True, default=None)

    class Meta:
        model = Sale
        fields = ['id', 'sold_by', 'sold_by_username', 'customer', 'customer_name', 'branch', 'branch_name',
                  'payment_method', 'transaction_id', 'notes', 'total_amount', 'short_code', 'finalized',
                  'finalized_at', 'items', 'created_at', 'updated_at']
        read_only_fields = fields


class SaleItemInputSerializer(serializers.Serializer):
    drug = serializers.PrimaryKeyRelatedField(queryset=Drug.objects.all())
    quantity = serializers.IntegerField(min_value=1)


class SaleCreateSerializer(serializers.Serializer):
    items = SaleItemInputSerializer(many=True, allow_empty=False)
    payment_method = serializers.ChoiceField(choices=Sale.PAYMENT_METHOD_CHOICES, default='cash')
    transaction_id = serializers.CharField(max_length=100, required=False, allow_blank=True)
    notes = serializers.CharField(required=False, allow_blank=True)
    customer = serializers.PrimaryKeyRelatedField(queryset=Customer.objects.all(), required=False, allow_null=True)
    branch = serializers.PrimaryKeyRelatedField(queryset=Branch.objects.all(), required=False, allow_null=True)

    def validate(self, attrs):
        if attrs.get('payment_method') in ('card', 'mobile') and not attrs.get('transaction_id'):
            raise serializers.ValidationError({'transaction_id': 'Transaction ID is required for card and mobile payments'})
        return attrs


class FinalizeSaleSerializer(serializers.Serializer):
    code = serializers.CharField(max_length=6, min_length=6)


class ExpiredSaleCleanupHistorySerializer(serializers.ModelSerializer):
    triggered_by_username = serializers.CharField(source='triggered_by.username', read_only=True, default=None)

    class Meta:
        model = ExpiredSaleCleanupHistory
        fields = ['id', 'cleanup_date', 'cleaned_up_count', 'total_value', 'operation_type',
                  'triggered_by', 'triggered_by_username', 'branch']
