"""Expiry tiers, alerts and statistics for drugs in stock"""
import logging
from datetime import datetime, time, timedelta
from decimal import Decimal

from django.db.models import Q
from django.utils import timezone

from pharmacy.catalog.models import Drug
from .models import ExpiryNotification

logger = logging.getLogger(__name__)

EXPIRED = 'expired'
CRITICAL = 'critical'
WARNING = 'warning'
NOTICE = 'notice'

CRITICAL_DAYS = 7
WARNING_DAYS = 30
NOTIFY_LEVELS = (EXPIRED, CRITICAL, WARNING)
READ_NOTIFICATION_RETENTION_DAYS = 30


def days_until_expiry(expiry_date, today=None):
    """
    Whole days left before ``expiry_date``.

    Equal to the ceiling of the fractional day difference measured from any
    moment during ``today``.
    """
    today = today or timezone.localdate()
    return (expiry_date - today).days


def classify_alert_level(days):
    if days < 0:
        return EXPIRED
    if days <= CRITICAL_DAYS:
        return CRITICAL
    if days <= WARNING_DAYS:
        return WARNING
    return NOTICE


def _alert_level_filter(alert_level, today):
    if alert_level == EXPIRED:
        return Q(expiry_date__lt=today)
    if alert_level == CRITICAL:
        return Q(expiry_date__gte=today, expiry_date__lte=today + timedelta(days=CRITICAL_DAYS))
    if alert_level == WARNING:
        return Q(expiry_date__gt=today + timedelta(days=CRITICAL_DAYS),
                 expiry_date__lte=today + timedelta(days=WARNING_DAYS))
    if alert_level == NOTICE:
        return Q(expiry_date__gt=today + timedelta(days=WARNING_DAYS))
    raise ValueError(f"Unknown alert level: {alert_level}")


def _stocked_drugs(branch=None):
    queryset = Drug.objects.filter(quantity__gt=0)
    if branch is not None:
        queryset = queryset.filter(branches=branch)
    return queryset


def describe_expiring_drug(drug, today):
    days = days_until_expiry(drug.expiry_date, today)
    cost = drug.cost_price or Decimal('0.00')
    value_loss = drug.price * drug.quantity
    cost_loss = cost * drug.quantity
    return {
        'drugId': drug.id,
        'drugName': drug.name,
        'brand': drug.brand,
        'category': drug.category,
        'dosageForm': drug.dosage_form,
        'batchNumber': drug.batch_number,
        'expiryDate': drug.expiry_date.isoformat(),
        'daysUntilExpiry': days,
        'alertLevel': classify_alert_level(days),
        'quantity': drug.quantity,
        'price': float(drug.price),
        'costPrice': float(cost),
        'valueLoss': float(value_loss),
        'costLoss': float(cost_loss),
        'profitLoss': float(value_loss - cost_loss),
        'requiresPrescription': drug.requires_prescription,
    }


def get_expiring_drugs(days_range=90, alert_level=None, category=None, branch=None,
                       page=1, limit=20, today=None):
    """Stocked drugs expiring within ``days_range`` days (or already expired), soonest first"""
    today = today or timezone.localdate()
    queryset = _stocked_drugs(branch).filter(expiry_date__lte=today + timedelta(days=days_range))
    if category:
        queryset = queryset.filter(category__icontains=category)
    if alert_level:
        queryset = queryset.filter(_alert_level_filter(alert_level, today))
    queryset = queryset.order_by('expiry_date', 'name')

    total = queryset.count()
    offset = (page - 1) * limit
    return {
        'data': [describe_expiring_drug(drug, today) for drug in queryset[offset:offset + limit]],
        'pagination': {
            'total': total,
            'page': page,
            'limit': limit,
            'totalPages': (total + limit - 1) // limit,
        },
    }


def get_expiry_stats(branch=None, today=None):
    """Tier counts, stock value at risk and upcoming expiry buckets"""
    today = today or timezone.localdate()
    counts = {EXPIRED: 0, CRITICAL: 0, WARNING: 0, NOTICE: 0}
    values = {EXPIRED: Decimal('0.00'), CRITICAL: Decimal('0.00'), WARNING: Decimal('0.00')}
    cost_values = {EXPIRED: Decimal('0.00'), CRITICAL: Decimal('0.00'), WARNING: Decimal('0.00')}
    upcoming = {'next7Days': 0, 'next30Days': 0, 'next60Days': 0, 'next90Days': 0}
    categories = {}
    total_value = Decimal('0.00')
    total_cost_value = Decimal('0.00')

    for drug in _stocked_drugs(branch).only('category', 'expiry_date', 'quantity', 'price', 'cost_price'):
        days = days_until_expiry(drug.expiry_date, today)
        value = drug.price * drug.quantity
        cost_value = (drug.cost_price or Decimal('0.00')) * drug.quantity
        total_value += value
        total_cost_value += cost_value

        level = classify_alert_level(days)
        category = categories.setdefault(drug.category or 'Uncategorized', {
            EXPIRED: 0, CRITICAL: 0, WARNING: 0, NOTICE: 0, 'totalValue': 0.0, 'costValue': 0.0,
        })
        category['totalValue'] += float(value)
        category['costValue'] += float(cost_value)

        if level != NOTICE:
            counts[level] += 1
            values[level] += value
            cost_values[level] += cost_value
            category[level] += 1
            if level == CRITICAL:
                upcoming['next7Days'] += 1
            elif level == WARNING:
                upcoming['next30Days'] += 1
        elif days <= 60:
            counts[NOTICE] += 1
            category[NOTICE] += 1
            upcoming['next60Days'] += 1
        elif days <= 90:
            upcoming['next90Days'] += 1

    potential_loss = sum(values.values())
    cost_loss = sum(cost_values.values())
    return {
        'totalExpiredDrugs': counts[EXPIRED],
        'totalCriticalDrugs': counts[CRITICAL],
        'totalWarningDrugs': counts[WARNING],
        'totalNoticeDrugs': counts[NOTICE],
        'totalValue': float(total_value),
        'totalCostValue': float(total_cost_value),
        'expiredValue': float(values[EXPIRED]),
        'criticalValue': float(values[CRITICAL]),
        'warningValue': float(values[WARNING]),
        'totalPotentialLoss': float(potential_loss),
        'profitLoss': float(potential_loss - cost_loss),
        'upcomingExpiries': upcoming,
        'categoryBreakdown': categories,
    }


def _notification_text(drug, level, days):
    label = f"{drug.name} ({drug.brand})" if drug.brand else drug.name
    if level == EXPIRED:
        return ('batch_expired', f"Drug Expired: {drug.name}",
                f"{label} has expired {abs(days)} days ago. Remove from inventory immediately.")
    if level == CRITICAL:
        return ('expiry_alert', f"Critical Expiry Alert: {drug.name}",
                f"{label} expires in {days} days. Take immediate action.")
    return ('expiry_alert', f"Expiry Warning: {drug.name}",
            f"{label} expires in {days} days. Plan disposal or promotion.")


def create_expiry_notifications(now=None):
    """
    Raise an alert for every stocked drug that is expired or expires within
    30 days. A drug gets at most one notification per alert level per day.

    Returns the number of notifications created.
    """
    now = now or timezone.now()
    today = timezone.localdate(now)
    day_start = timezone.make_aware(datetime.combine(today, time.min))

    created = 0
    drugs = _stocked_drugs().filter(expiry_date__lte=today + timedelta(days=WARNING_DAYS))
    for drug in drugs:
        days = days_until_expiry(drug.expiry_date, today)
        level = classify_alert_level(days)
        if level not in NOTIFY_LEVELS:
            continue
        already_sent = ExpiryNotification.objects.filter(
            drug=drug, alert_level=level, created_at__gte=day_start,
        ).exists()
        if already_sent:
            continue
        notification_type, title, message = _notification_text(drug, level, days)
        ExpiryNotification.objects.create(
            type=notification_type,
            title=title,
            message=message,
            drug=drug,
            alert_level=level,
        )
        created += 1

    logger.info(f"Created {created} expiry notifications")
    return created


def cleanup_old_notifications(days=READ_NOTIFICATION_RETENTION_DAYS, now=None):
    """Delete read notifications older than ``days``; returns the number deleted"""
    cutoff = (now or timezone.now()) - timedelta(days=days)
    deleted, _ = ExpiryNotification.objects.filter(is_read=True, created_at__lt=cutoff).delete()
    logger.info(f"Deleted {deleted} read expiry notifications older than {days} days")
    return deleted


def mark_notification_read(notification):
    if not notification.is_read:
        notification.is_read = True
        notification.save(update_fields=['is_read'])
    return notification


def mark_all_notifications_read():
    return ExpiryNotification.objects.filter(is_read=False).update(is_read=True)


def check_drug_expiry(drug, today=None):
    """Whether a drug may still be sold"""
    days = days_until_expiry(drug.expiry_date, today)
    return {
        'isExpired': days < 0,
        'isExpiring': days <= CRITICAL_DAYS,
        'daysUntilExpiry': days,
        'canSell': days >= 0,
    }
