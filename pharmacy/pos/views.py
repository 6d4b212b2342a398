import logging
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import PermissionDenied
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.apps import apps
from django.shortcuts import get_object_or_404

from pharmacy.core.permissions import IsAdminRole, get_branch_scope
from pharmacy.core.utils import create_audit_log, paginate
from .expired_sales import get_expired_sale_stats
from .models import Sale
from .serializers import SaleSerializer, SaleCreateSerializer, FinalizeSaleSerializer
from .services import create_sale, finalize_sale, get_sale_by_code

logger = logging.getLogger(__name__)


def _sale_queryset(user):
    queryset = Sale.objects.select_related('sold_by', 'customer', 'branch').prefetch_related('items__drug')
    branch = get_branch_scope(user)
    if branch is not None:
        queryset = queryset.filter(branch=branch)
    return queryset


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def sale_list_create(request):
    """List sales (newest first) or record a new sale"""
    if request.method == 'GET':
        queryset = _sale_queryset(request.user)
        finalized = request.query_params.get('finalized')
        if finalized is not None:
            queryset = queryset.filter(finalized=finalized.lower() in ('true', '1'))
        date_from = request.query_params.get('date_from')
        if date_from:
            queryset = queryset.filter(created_at__date__gte=date_from)
        date_to = request.query_params.get('date_to')
        if date_to:
            queryset = queryset.filter(created_at__date__lte=date_to)
        page, pagination = paginate(request, queryset, default_limit=20)
        return Response({'data': SaleSerializer(page, many=True).data, 'pagination': pagination})

    serializer = SaleCreateSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data
    sale = create_sale(
        request.user,
        items=data['items'],
        payment_method=data['payment_method'],
        customer=data.get('customer'),
        branch=data.get('branch'),
        transaction_id=data.get('transaction_id', ''),
        notes=data.get('notes', ''),
    )
    create_audit_log(request=request, action='sale_create', resource='SALE', resource_id=sale.id,
                     description=f"Created new sale with total amount: {sale.total_amount}",
                     changes={'totalAmount': str(sale.total_amount), 'itemCount': len(data['items']),
                              'paymentMethod': sale.payment_method,
                              'customer': 'Yes' if sale.customer_id else 'Walk-in'})
    return Response({'success': True, 'message': 'Sale created', 'data': SaleSerializer(sale).data},
                    status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def sale_detail(request, pk):
    sale = get_object_or_404(_sale_queryset(request.user), pk=pk)
    return Response(SaleSerializer(sale).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def sale_by_code(request, code):
    """Look up a sale by short code (cashier)"""
    sale = get_sale_by_code(code)
    return Response({'success': True, 'data': SaleSerializer(sale).data})


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def sale_finalize(request):
    """Cashier finalizes a pending sale using its short code"""
    user = request.user
    if user.is_superuser or user.role not in (user.ROLE_CASHIER, user.ROLE_ADMIN):
        raise PermissionDenied('No permission to finalize sale')

    serializer = FinalizeSaleSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    sale, changed = finalize_sale(serializer.validated_data['code'])
    if not changed:
        return Response({'success': True, 'message': 'Sale already finalized and ready for printing',
                         'data': SaleSerializer(sale).data})

    create_audit_log(request=request, action='sale_finalize', resource='SALE', resource_id=sale.id,
                     description=f"Finalized sale with code {sale.short_code}")
    return Response({'success': True, 'message': 'Sale finalized and ready for printing',
                     'data': SaleSerializer(sale).data})


# Expired sale cleanup views
@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminRole])
def expired_sale_stats(request):
    stats = get_expired_sale_stats(branch=get_branch_scope(request.user))
    return Response({'success': True, 'message': 'Expired sale statistics retrieved successfully',
                     'data': stats.to_dict()})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAdminRole])
def expired_sale_cleanup(request):
    """Clean up expired unfinalized sales now, scoped to the admin's branch if any"""
    runner = apps.get_app_config('scheduler').runner
    result = runner.run_manual(
        'expired-sale-cleanup',
        operation_type='manual',
        triggered_by=request.user,
        branch=get_branch_scope(request.user),
    )
    create_audit_log(request=request, action='stock_restore', resource='SALE',
                     description=f"Manual cleanup removed {result['cleanedUpCount']} expired sales",
                     changes=result)
    return Response({
        'success': True,
        'message': f"Successfully cleaned up {result['cleanedUpCount']} expired sales",
        'data': result,
    })
