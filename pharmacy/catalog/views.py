import logging
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import PermissionDenied, ValidationError
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.db.models import ProtectedError
from django.shortcuts import get_object_or_404

from pharmacy.core.permissions import get_branch_scope
from pharmacy.core.utils import create_audit_log, paginate
from .filters import DrugFilter
from .models import Drug
from .serializers import DrugSerializer
from .services import find_low_stock_drugs

logger = logging.getLogger(__name__)


def _can_manage_drugs(user):
    return user.is_admin_role or user.role == user.ROLE_PHARMACIST


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def drug_list_create(request):
    """List drugs (filterable, paginated) or create a drug"""
    if request.method == 'GET':
        queryset = Drug.objects.prefetch_related('branch_links__branch')
        branch = get_branch_scope(request.user)
        if branch is not None:
            queryset = queryset.filter(branches=branch)
        queryset = DrugFilter(request.query_params, queryset=queryset).qs
        page, pagination = paginate(request, queryset, default_limit=20, max_limit=200)
        return Response({'data': DrugSerializer(page, many=True).data, 'pagination': pagination})

    if not _can_manage_drugs(request.user):
        raise PermissionDenied('Only administrators and pharmacists can add drugs')
    serializer = DrugSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    drug = serializer.save()
    logger.info(f"Drug '{drug.name}' created by {request.user.username}")
    create_audit_log(request=request, action='create', resource='DRUG', resource_id=drug.id,
                     description=f"Created drug {drug.name}",
                     changes={'quantity': drug.quantity, 'price': str(drug.price)})
    return Response(DrugSerializer(drug).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def drug_detail(request, pk):
    """Retrieve, update or delete a drug"""
    drug = get_object_or_404(Drug, pk=pk)

    if request.method == 'GET':
        return Response(DrugSerializer(drug).data)

    if not _can_manage_drugs(request.user):
        raise PermissionDenied('Only administrators and pharmacists can change drugs')

    if request.method in ('PUT', 'PATCH'):
        before = {'quantity': drug.quantity, 'price': str(drug.price)}
        serializer = DrugSerializer(drug, data=request.data, partial=request.method == 'PATCH')
        serializer.is_valid(raise_exception=True)
        drug = serializer.save()
        create_audit_log(request=request, action='update', resource='DRUG', resource_id=drug.id,
                         changes={'before': before, 'after': {'quantity': drug.quantity, 'price': str(drug.price)}})
        return Response(DrugSerializer(drug).data)

    try:
        drug.delete()
    except ProtectedError:
        raise ValidationError('Drug has recorded sales and cannot be deleted')
    create_audit_log(request=request, action='delete', resource='DRUG', resource_id=pk,
                     description=f"Deleted drug {drug.name}")
    return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def drug_low_stock(request):
    drugs = find_low_stock_drugs(branch=get_branch_scope(request.user))
    return Response(DrugSerializer(drugs, many=True).data)
