"""
Reconciliation of unfinalized sales whose short code has expired.

A sale created while the pharmacy requires short codes reserves stock
immediately and waits for a cashier to finalize it. Once its code is older
than ``Pharmacy.short_code_expiry_minutes`` it is considered abandoned:
cleanup puts every reserved unit back on the shelf and deletes the sale.
"""
import logging
from dataclasses import dataclass, field
from datetime import timedelta
from decimal import Decimal

from django.db import transaction
from django.db.models import F, Sum
from django.utils import timezone

from pharmacy.catalog.models import Drug
from pharmacy.locations.models import DEFAULT_SHORT_CODE_EXPIRY_MINUTES, Pharmacy
from pharmacy.scheduler.events import JobEventType
from .models import ExpiredSaleCleanupHistory, Sale

logger = logging.getLogger(__name__)


@dataclass
class ExpiredSaleCleanupResult:
    cleaned_up_count: int = 0
    failed_count: int = 0
    total_value: Decimal = Decimal('0.00')
    failures: list = field(default_factory=list)

    def to_dict(self):
        return {
            'cleanedUpCount': self.cleaned_up_count,
            'failedCount': self.failed_count,
            'totalValue': float(self.total_value),
            'failures': self.failures,
        }


@dataclass
class ExpiredSaleStats:
    expired_sales_count: int = 0
    total_value: Decimal = Decimal('0.00')
    total_cleaned: int = 0
    oldest_expired: object = None
    last_cleanup_time: object = None

    def to_dict(self):
        return {
            'expiredSalesCount': self.expired_sales_count,
            'totalValue': float(self.total_value),
            'totalExpiredSales': self.expired_sales_count,
            'totalSalesAffected': self.total_cleaned + self.expired_sales_count,
            'oldestExpired': self.oldest_expired.isoformat() if self.oldest_expired else None,
            'totalCleaned': self.total_cleaned,
            'lastCleanupTime': self.last_cleanup_time.isoformat() if self.last_cleanup_time else None,
        }


def _expiry_window(pharmacy=None):
    """Short code lifetime, or None when the pharmacy does not use short codes"""
    pharmacy = pharmacy or Pharmacy.current()
    if pharmacy is None or not pharmacy.require_sale_short_code:
        return None
    return timedelta(minutes=pharmacy.short_code_expiry_minutes or DEFAULT_SHORT_CODE_EXPIRY_MINUTES)


def find_expired_sales(now=None, branch=None, pharmacy=None):
    """Unfinalized sales with a short code created before ``now - expiry window``, oldest first"""
    window = _expiry_window(pharmacy)
    if window is None:
        return Sale.objects.none()
    cutoff = (now or timezone.now()) - window
    queryset = Sale.objects.filter(
        finalized=False,
        short_code__isnull=False,
        created_at__lt=cutoff,
    )
    if branch is not None:
        queryset = queryset.filter(branch=branch)
    return queryset.order_by('created_at')


def is_sale_expired(sale, now=None, pharmacy=None):
    window = _expiry_window(pharmacy)
    if window is None or sale.finalized or not sale.short_code:
        return False
    return sale.created_at < (now or timezone.now()) - window


def _restore_and_delete(sale_id):
    """
    Restore stock for and delete one expired sale; returns the deleted sale.

    The sale is re-read under a row lock. A sale that another batch already
    removed or that was finalized in the meantime returns None untouched.
    """
    with transaction.atomic():
        sale = Sale.objects.select_for_update().filter(pk=sale_id, finalized=False).first()
        if sale is None:
            return None
        items = list(sale.items.all())
        _, deleted = Sale.objects.filter(pk=sale.pk, finalized=False).delete()
        if not deleted.get(Sale._meta.label):
            return None
        for item in items:
            restored = Drug.objects.filter(pk=item.drug_id).update(quantity=F('quantity') + item.quantity)
            if not restored:
                logger.warning(f"Drug {item.drug_id} not found, could not restore {item.quantity} units")
        return sale


def cleanup_expired_sales(operation_type='automatic', triggered_by=None, branch=None,
                          publisher=None, now=None):
    """
    Restore stock for and delete every expired sale.

    Each sale is handled in its own transaction; a failure is recorded in the
    result and the batch moves on. A history row is written and a single
    ``expired-sales-cleaned`` event published when anything was removed.
    """
    result = ExpiredSaleCleanupResult()
    expired = list(find_expired_sales(now=now, branch=branch).values_list('id', flat=True))
    if not expired:
        logger.debug("No expired unfinalized sales found")
        return result

    logger.info(f"Cleaning up {len(expired)} expired unfinalized sales ({operation_type})")
    for sale_id in expired:
        try:
            sale = _restore_and_delete(sale_id)
        except Exception as e:
            logger.error(f"Error cleaning up expired sale #{sale_id}: {e}", exc_info=True)
            result.failed_count += 1
            result.failures.append({'saleId': sale_id, 'error': str(e)})
            continue
        if sale is None:
            logger.info(f"Expired sale #{sale_id} was already handled, skipping")
            continue
        result.cleaned_up_count += 1
        result.total_value += sale.total_amount

    if result.cleaned_up_count:
        ExpiredSaleCleanupHistory.objects.create(
            cleaned_up_count=result.cleaned_up_count,
            total_value=result.total_value,
            operation_type=operation_type,
            triggered_by=triggered_by,
            branch=branch,
        )
        if publisher is not None:
            publisher.publish(JobEventType.EXPIRED_SALES_CLEANED.value, {
                'count': result.cleaned_up_count,
                'timestamp': (now or timezone.now()).isoformat(),
            })

    logger.info(
        f"Expired sale cleanup finished: {result.cleaned_up_count} removed, "
        f"{result.failed_count} failed, value {result.total_value}"
    )
    return result


def get_expired_sale_stats(branch=None, now=None):
    stats = ExpiredSaleStats()
    expired = find_expired_sales(now=now, branch=branch)
    stats.expired_sales_count = expired.count()
    stats.total_value = expired.aggregate(total=Sum('total_amount'))['total'] or Decimal('0.00')
    oldest = expired.first()
    stats.oldest_expired = oldest.created_at if oldest else None

    history = ExpiredSaleCleanupHistory.objects.all()
    if branch is not None:
        history = history.filter(branch=branch)
    stats.total_cleaned = history.aggregate(total=Sum('cleaned_up_count'))['total'] or 0
    last = history.order_by('-cleanup_date').first()
    stats.last_cleanup_time = last.cleanup_date if last else None
    return stats
