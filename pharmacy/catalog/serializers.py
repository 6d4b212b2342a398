from rest_framework import serializers
from django.db import transaction
from pharmacy.locations.models import Branch
from .models import Drug, DrugBranch


class DrugBranchSerializer(serializers.ModelSerializer):
    branch_name = serializers.CharField(source='branch.name', read_only=True)

    class Meta:
        model = DrugBranch
        fields = ['branch', 'branch_name', 'quantity', 'assigned_at']


class DrugSerializer(serializers.ModelSerializer):
    branch_links = DrugBranchSerializer(many=True, read_only=True)
    branch_ids = serializers.PrimaryKeyRelatedField(
        queryset=Branch.objects.all(), many=True, write_only=True, required=False
    )
    is_low_stock = serializers.BooleanField(read_only=True)

    class Meta:
        model = Drug
        fields = ['id', 'name', 'generic_name', 'brand', 'category', 'dosage_form', 'batch_number',
                  'expiry_date', 'quantity', 'price', 'cost_price', 'low_stock_threshold',
                  'requires_prescription', 'is_low_stock', 'branch_links', 'branch_ids',
                  'created_at', 'updated_at']
        read_only_fields = ['created_at', 'updated_at']

    def validate_price(self, value):
        if value < 0:
            raise serializers.ValidationError('Price cannot be negative')
        return value

    @transaction.atomic
    def create(self, validated_data):
        branches = validated_data.pop('branch_ids', None)
        drug = Drug.objects.create(**validated_data)
        if branches:
            assign_drug_to_branches(drug, branches)
        return drug

    @transaction.atomic
    def update(self, instance, validated_data):
        branches = validated_data.pop('branch_ids', None)
        drug = super().update(instance, validated_data)
        if branches is not None:
            assign_drug_to_branches(drug, branches)
        return drug


def assign_drug_to_branches(drug, branches):
    """Replace the drug's branch links with ``branches``, keeping existing quantities"""
    branch_ids = {branch.id for branch in branches}
    DrugBranch.objects.filter(drug=drug).exclude(branch_id__in=branch_ids).delete()
    existing = set(DrugBranch.objects.filter(drug=drug).values_list('branch_id', flat=True))
    DrugBranch.objects.bulk_create([
        DrugBranch(drug=drug, branch_id=branch_id)
        for branch_id in branch_ids - existing
    ])
