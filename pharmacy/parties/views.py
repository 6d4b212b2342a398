from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.shortcuts import get_object_or_404
from django.db.models import Q
from django.core.cache import cache

from pharmacy.core.permissions import get_branch_scope
from pharmacy.core.utils import create_audit_log
from .models import Customer
from .serializers import CustomerSerializer

CUSTOMER_LIST_CACHE_TTL = 300  # 5 minutes


def _customer_list_cache_key(branch_id, search):
    return f"customer_list:{branch_id or 'all'}:{search.lower()}"


def invalidate_customer_cache():
    # Only django-redis supports pattern deletes
    if hasattr(cache, 'delete_pattern'):
        cache.delete_pattern('customer_list:*')
    else:
        cache.clear()


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def customer_list_create(request):
    """List all customers or create a new customer"""
    if request.method == 'GET':
        search = (request.query_params.get('search') or '').strip()
        branch = get_branch_scope(request.user)
        cache_key = _customer_list_cache_key(branch.id if branch else None, search)
        cached_data = cache.get(cache_key)
        if cached_data is not None:
            return Response(cached_data)

        queryset = Customer.objects.all().order_by('-created_at')
        if branch is not None:
            queryset = queryset.filter(Q(branch=branch) | Q(branch__isnull=True))
        if search:
            queryset = queryset.filter(Q(name__icontains=search) | Q(phone__icontains=search))
        data = CustomerSerializer(queryset, many=True).data
        cache.set(cache_key, data, CUSTOMER_LIST_CACHE_TTL)
        return Response(data)

    serializer = CustomerSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    customer = serializer.save()
    invalidate_customer_cache()
    create_audit_log(request=request, action='create', resource='CUSTOMER', resource_id=customer.id,
                     description=f"Created customer {customer.name}")
    return Response(serializer.data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def customer_detail(request, pk):
    """Retrieve, update or delete a customer"""
    customer = get_object_or_404(Customer, pk=pk)

    if request.method == 'GET':
        return Response(CustomerSerializer(customer).data)

    if request.method in ('PUT', 'PATCH'):
        serializer = CustomerSerializer(customer, data=request.data, partial=request.method == 'PATCH')
        serializer.is_valid(raise_exception=True)
        serializer.save()
        invalidate_customer_cache()
        create_audit_log(request=request, action='update', resource='CUSTOMER', resource_id=customer.id,
                         changes=dict(request.data))
        return Response(serializer.data)

    create_audit_log(request=request, action='delete', resource='CUSTOMER', resource_id=customer.id,
                     description=f"Deleted customer {customer.name}")
    customer.delete()
    invalidate_customer_cache()
    return Response(status=status.HTTP_204_NO_CONTENT)
