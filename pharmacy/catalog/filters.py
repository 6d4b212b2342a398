import django_filters
from datetime import timedelta
from django.db.models import F, Q
from django.utils import timezone
from .models import Drug


def _as_bool(value):
    if isinstance(value, str):
        return value.lower() == 'true'
    return bool(value)


class DrugFilter(django_filters.FilterSet):
    search = django_filters.CharFilter(method='filter_search', label='Search')
    category = django_filters.CharFilter(field_name='category', lookup_expr='iexact')
    brand = django_filters.CharFilter(field_name='brand', lookup_expr='icontains')
    branch = django_filters.NumberFilter(field_name='branches', lookup_expr='exact')
    low_stock = django_filters.CharFilter(method='filter_low_stock', label='Low Stock')
    in_stock = django_filters.CharFilter(method='filter_in_stock', label='In Stock')
    expiring_within = django_filters.NumberFilter(method='filter_expiring_within', label='Expiring within (days)')

    class Meta:
        model = Drug
        fields = ['search', 'category', 'brand', 'branch', 'low_stock', 'in_stock', 'expiring_within']

    def filter_search(self, queryset, name, value):
        """Match every word against name, generic name, brand or batch number"""
        if not value or not value.strip():
            return queryset
        for word in value.split():
            queryset = queryset.filter(
                Q(name__icontains=word) | Q(generic_name__icontains=word) |
                Q(brand__icontains=word) | Q(batch_number__icontains=word)
            )
        return queryset

    def filter_low_stock(self, queryset, name, value):
        if value is None or value == '':
            return queryset
        if _as_bool(value):
            return queryset.filter(quantity__lte=F('low_stock_threshold'))
        return queryset.filter(quantity__gt=F('low_stock_threshold'))

    def filter_in_stock(self, queryset, name, value):
        if value is None or value == '':
            return queryset
        if _as_bool(value):
            return queryset.filter(quantity__gt=0)
        return queryset.filter(quantity=0)

    def filter_expiring_within(self, queryset, name, value):
        if value is None:
            return queryset
        cutoff = timezone.localdate() + timedelta(days=int(value))
        return queryset.filter(expiry_date__lte=cutoff)
