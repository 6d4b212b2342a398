import logging
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import PermissionDenied
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.shortcuts import get_object_or_404
from django.core.cache import cache

from pharmacy.core.utils import create_audit_log
from .models import Pharmacy, Branch
from .serializers import PharmacySerializer, SaleSettingsSerializer, BranchSerializer

logger = logging.getLogger('pharmacy.locations')

BRANCH_LIST_CACHE_KEY = 'branch_list:{scope}'
BRANCH_LIST_CACHE_TTL = 600  # 10 minutes


def invalidate_branch_cache():
    cache.delete_many([BRANCH_LIST_CACHE_KEY.format(scope=s) for s in ('all', 'active')])


def _require_admin(request, what):
    if not request.user.is_admin_role:
        logger.warning(f"User {request.user.username} attempted to {what} without admin privileges")
        raise PermissionDenied(f'Only administrators can {what}')


# Pharmacy views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def pharmacy_list_create(request):
    """List pharmacies or create one (create requires admin)"""
    if request.method == 'GET':
        pharmacies = Pharmacy.objects.all().order_by('id')
        return Response(PharmacySerializer(pharmacies, many=True).data)

    _require_admin(request, 'create pharmacies')
    serializer = PharmacySerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    pharmacy = serializer.save()
    logger.info(f"Pharmacy '{pharmacy.name}' created by {request.user.username}")
    create_audit_log(request=request, action='create', resource='PHARMACY', resource_id=pharmacy.id,
                     description=f"Created pharmacy {pharmacy.name}")
    return Response(serializer.data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def pharmacy_detail(request, pk):
    """Retrieve, update or delete a pharmacy"""
    pharmacy = get_object_or_404(Pharmacy, pk=pk)

    if request.method == 'GET':
        return Response(PharmacySerializer(pharmacy).data)

    if request.method in ('PUT', 'PATCH'):
        _require_admin(request, 'update pharmacies')
        serializer = PharmacySerializer(pharmacy, data=request.data, partial=request.method == 'PATCH')
        serializer.is_valid(raise_exception=True)
        serializer.save()
        create_audit_log(request=request, action='update', resource='PHARMACY', resource_id=pharmacy.id,
                         changes=dict(request.data))
        return Response(serializer.data)

    _require_admin(request, 'delete pharmacies')
    create_audit_log(request=request, action='delete', resource='PHARMACY', resource_id=pharmacy.id,
                     description=f"Deleted pharmacy {pharmacy.name}")
    pharmacy.delete()
    invalidate_branch_cache()
    return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['PATCH'])
@permission_classes([IsAuthenticated])
def pharmacy_sale_settings(request, pk):
    """Toggle sale short codes and set their expiry window"""
    _require_admin(request, 'change sale settings')
    pharmacy = get_object_or_404(Pharmacy, pk=pk)
    serializer = SaleSettingsSerializer(pharmacy, data=request.data, partial=True)
    serializer.is_valid(raise_exception=True)
    serializer.save()
    logger.info(
        f"Sale settings updated by {request.user.username}: "
        f"require_sale_short_code={pharmacy.require_sale_short_code}, "
        f"short_code_expiry_minutes={pharmacy.short_code_expiry_minutes}"
    )
    create_audit_log(request=request, action='update', resource='PHARMACY', resource_id=pharmacy.id,
                     description='Updated sale short code settings', changes=serializer.data)
    return Response({
        'success': True,
        'message': 'Sale settings updated',
        'data': serializer.data,
    })


# Branch views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def branch_list_create(request):
    """List branches or create a branch (create requires admin)"""
    if request.method == 'GET':
        scope = 'active' if request.query_params.get('active') == 'true' else 'all'
        cache_key = BRANCH_LIST_CACHE_KEY.format(scope=scope)
        cached_data = cache.get(cache_key)
        if cached_data is not None:
            logger.debug(f"Cache hit for branch list ({scope})")
            return Response(cached_data)

        branches = Branch.objects.select_related('pharmacy').order_by('name')
        if scope == 'active':
            branches = branches.filter(is_active=True)
        data = BranchSerializer(branches, many=True).data
        cache.set(cache_key, data, BRANCH_LIST_CACHE_TTL)
        return Response(data)

    _require_admin(request, 'create branches')
    serializer = BranchSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    branch = serializer.save()
    invalidate_branch_cache()
    logger.info(f"Branch '{branch.name}' created by {request.user.username}")
    create_audit_log(request=request, action='create', resource='BRANCH', resource_id=branch.id,
                     description=f"Created branch {branch.name}")
    return Response(serializer.data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def branch_detail(request, pk):
    """Retrieve, update or delete a branch"""
    branch = get_object_or_404(Branch, pk=pk)

    if request.method == 'GET':
        return Response(BranchSerializer(branch).data)

    if request.method in ('PUT', 'PATCH'):
        _require_admin(request, 'update branches')
        serializer = BranchSerializer(branch, data=request.data, partial=request.method == 'PATCH')
        serializer.is_valid(raise_exception=True)
        serializer.save()
        invalidate_branch_cache()
        create_audit_log(request=request, action='update', resource='BRANCH', resource_id=branch.id,
                         changes=dict(request.data))
        return Response(serializer.data)

    _require_admin(request, 'delete branches')
    create_audit_log(request=request, action='delete', resource='BRANCH', resource_id=branch.id,
                     description=f"Deleted branch {branch.name}")
    branch.delete()
    invalidate_branch_cache()
    return Response(status=status.HTTP_204_NO_CONTENT)
