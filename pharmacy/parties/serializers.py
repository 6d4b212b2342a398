from rest_framework import serializers
from .models import Customer


class CustomerSerializer(serializers.ModelSerializer):
    class Meta:
        model = Customer
        fields = ['id', 'name', 'phone', 'email', 'address', 'branch', 'is_active', 'created_at', 'updated_at']

    def validate_phone(self, value):
        # Blank phones are stored as NULL so the unique constraint ignores them
        return value or None
