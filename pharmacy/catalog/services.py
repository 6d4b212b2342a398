from django.db.models import F
from .models import Drug


def find_low_stock_drugs(branch=None):
    """Drugs at or below their low-stock threshold, emptiest first"""
    queryset = Drug.objects.filter(quantity__lte=F('low_stock_threshold'))
    if branch is not None:
        queryset = queryset.filter(branches=branch)
    return queryset.order_by('quantity', 'name')
