from rest_framework import serializers
from .models import ExpiryNotification


class ExpiryNotificationSerializer(serializers.ModelSerializer):
    drug_name = serializers.CharField(source='drug.name', read_only=True)
    drug_brand = serializers.CharField(source='drug.brand', read_only=True)
    drug_category = serializers.CharField(source='drug.category', read_only=True)

    class Meta:
        model = ExpiryNotification
        fields = ['id', 'type', 'title', 'message', 'drug', 'drug_name', 'drug_brand', 'drug_category',
                  'alert_level', 'is_read', 'user', 'created_at', 'expires_at']
        read_only_fields = fields
