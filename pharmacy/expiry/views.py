from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import ValidationError
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.shortcuts import get_object_or_404

from pharmacy.catalog.models import Drug
from pharmacy.core.permissions import get_branch_scope
from pharmacy.core.utils import paginate
from .models import ExpiryNotification
from .serializers import ExpiryNotificationSerializer
from .services import (
    EXPIRED, CRITICAL, WARNING, NOTICE,
    check_drug_expiry, get_expiring_drugs, get_expiry_stats,
    mark_all_notifications_read, mark_notification_read,
)

ALERT_LEVELS = (EXPIRED, CRITICAL, WARNING, NOTICE)


def _int_param(request, name, default, minimum=1):
    raw = request.query_params.get(name)
    if raw in (None, ''):
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValidationError({name: ['Must be an integer']})
    if value < minimum:
        raise ValidationError({name: [f'Must be at least {minimum}']})
    return value


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def expiring_drugs(request):
    """Drugs expiring within ``days_range`` days with their alert level"""
    alert_level = request.query_params.get('alert_level') or None
    if alert_level and alert_level not in ALERT_LEVELS:
        raise ValidationError({'alert_level': [f"Must be one of {', '.join(ALERT_LEVELS)}"]})
    result = get_expiring_drugs(
        days_range=_int_param(request, 'days_range', 90, minimum=0),
        alert_level=alert_level,
        category=request.query_params.get('category') or None,
        branch=get_branch_scope(request.user),
        page=_int_param(request, 'page', 1),
        limit=min(_int_param(request, 'limit', 20), 200),
    )
    return Response(result)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def expiry_stats(request):
    return Response(get_expiry_stats(branch=get_branch_scope(request.user)))


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def notification_list(request):
    queryset = ExpiryNotification.objects.select_related('drug')
    is_read = request.query_params.get('is_read')
    if is_read is not None:
        queryset = queryset.filter(is_read=is_read.lower() in ('true', '1'))
    alert_level = request.query_params.get('alert_level')
    if alert_level:
        queryset = queryset.filter(alert_level=alert_level)
    page, pagination = paginate(request, queryset, default_limit=20, max_limit=200)
    return Response({'data': ExpiryNotificationSerializer(page, many=True).data, 'pagination': pagination})


@api_view(['PATCH'])
@permission_classes([IsAuthenticated])
def notification_mark_read(request, pk):
    notification = mark_notification_read(get_object_or_404(ExpiryNotification, pk=pk))
    return Response({'success': True, 'message': 'Notification marked as read',
                     'data': ExpiryNotificationSerializer(notification).data})


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def notification_mark_all_read(request):
    updated = mark_all_notifications_read()
    return Response({'success': True, 'message': 'All notifications marked as read',
                     'data': {'updatedCount': updated}})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def drug_expiry_check(request, pk):
    drug = get_object_or_404(Drug, pk=pk)
    return Response({'success': True, 'data': check_drug_expiry(drug)})
