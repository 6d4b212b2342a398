"""Sale creation, cashier finalization and sales summaries"""
import logging
import secrets
import string
from decimal import Decimal

from django.db import IntegrityError, transaction
from django.db.models import Count, DecimalField, F, Sum
from django.utils import timezone
from rest_framework.exceptions import ValidationError

from pharmacy.catalog.models import Drug
from pharmacy.locations.models import Pharmacy
from .expired_sales import is_sale_expired
from .models import Sale, SaleItem

logger = logging.getLogger(__name__)

SHORT_CODE_LENGTH = 6
SHORT_CODE_ALPHABET = string.ascii_uppercase + string.digits
SHORT_CODE_ATTEMPTS = 5


def generate_short_code():
    return ''.join(secrets.choice(SHORT_CODE_ALPHABET) for _ in range(SHORT_CODE_LENGTH))


def _reserve_stock(drug_id, quantity):
    """Decrement stock only if enough is on hand; returns False otherwise"""
    updated = Drug.objects.filter(pk=drug_id, quantity__gte=quantity).update(
        quantity=F('quantity') - quantity
    )
    return updated == 1


def create_sale(user, items, payment_method='cash', customer=None, branch=None,
                transaction_id='', notes='', pharmacy=None):
    """
    Create a sale and reserve stock for every line.

    ``items`` is a list of ``{'drug': Drug|id, 'quantity': int}``. When the
    pharmacy requires short codes the sale starts unfinalized with a fresh
    6-character code; a cashier finalizes it with ``finalize_sale``.
    """
    if not items:
        raise ValidationError({'items': ['A sale needs at least one item']})

    pharmacy = pharmacy or Pharmacy.current()
    requires_code = bool(pharmacy and pharmacy.require_sale_short_code)
    branch = branch or getattr(user, 'branch', None)

    for attempt in range(SHORT_CODE_ATTEMPTS):
        short_code = generate_short_code() if requires_code else None
        try:
            with transaction.atomic():
                return _create_sale_rows(user, items, payment_method, customer, branch,
                                         transaction_id, notes, short_code)
        except IntegrityError:
            # Short code collision; everything above rolled back
            if not requires_code or attempt == SHORT_CODE_ATTEMPTS - 1:
                raise
            logger.warning(f"Short code {short_code} already in use, retrying")


def _create_sale_rows(user, items, payment_method, customer, branch, transaction_id, notes, short_code):
    sale = Sale.objects.create(
        sold_by=user,
        customer=customer,
        branch=branch,
        payment_method=payment_method,
        transaction_id=transaction_id or '',
        notes=notes or '',
        short_code=short_code,
        finalized=short_code is None,
        finalized_at=timezone.now() if short_code is None else None,
    )

    total = Decimal('0.00')
    for item in items:
        drug = item['drug']
        if not isinstance(drug, Drug):
            drug = Drug.objects.filter(pk=drug).first()
            if drug is None:
                raise ValidationError({'items': [f"Drug {item['drug']} does not exist"]})
        quantity = int(item['quantity'])
        if quantity < 1:
            raise ValidationError({'items': [f"Quantity for {drug.name} must be at least 1"]})
        if not _reserve_stock(drug.id, quantity):
            drug.refresh_from_db(fields=['quantity'])
            raise ValidationError({
                'items': [f"Insufficient stock for {drug.name}: available {drug.quantity}, requested {quantity}"]
            })
        SaleItem.objects.create(sale=sale, drug=drug, quantity=quantity, price_at_sale=drug.price)
        total += drug.price * quantity

    sale.total_amount = total
    sale.save(update_fields=['total_amount'])
    logger.info(f"Sale #{sale.id} created by {user.username}: total={total}, code={short_code or '-'}")
    return sale


def get_sale_by_code(code):
    sale = Sale.objects.prefetch_related('items__drug').filter(short_code=(code or '').strip().upper()).first()
    if sale is None:
        raise ValidationError('Invalid or expired code')
    return sale


def finalize_sale(code, now=None):
    """
    Finalize an open sale by short code.

    Returns ``(sale, changed)``; an already finalized sale comes back
    unchanged so the receipt can be reprinted.
    """
    sale = get_sale_by_code(code)
    if sale.finalized:
        return sale, False
    if is_sale_expired(sale, now=now):
        raise ValidationError('Short code has expired. Please ask the pharmacist to generate a new one.')

    sale.finalized = True
    sale.finalized_at = now or timezone.now()
    sale.save(update_fields=['finalized', 'finalized_at', 'updated_at'])
    logger.info(f"Sale #{sale.id} finalized with code {sale.short_code}")
    return sale, True


def build_sales_summary(date_from, date_to, branch=None):
    """Totals and top drugs for finalized sales created in [date_from, date_to)"""
    sales = Sale.objects.filter(finalized=True, created_at__gte=date_from, created_at__lt=date_to)
    if branch is not None:
        sales = sales.filter(branch=branch)

    totals = sales.aggregate(total_revenue=Sum('total_amount'), sale_count=Count('id'))
    top_drugs = (
        SaleItem.objects.filter(sale__in=sales)
        .values('drug_id', 'drug__name')
        .annotate(units=Sum('quantity'),
                  revenue=Sum(F('quantity') * F('price_at_sale'), output_field=DecimalField()))
        .order_by('-units')[:10]
    )
    by_payment = sales.order_by().values('payment_method').annotate(count=Count('id'), total=Sum('total_amount'))

    return {
        'dateFrom': date_from.isoformat(),
        'dateTo': date_to.isoformat(),
        'totalRevenue': float(totals['total_revenue'] or 0),
        'saleCount': totals['sale_count'],
        'topDrugs': [
            {
                'drugId': row['drug_id'],
                'name': row['drug__name'],
                'units': row['units'],
                'revenue': float(row['revenue'] or 0),
            }
            for row in top_drugs
        ],
        'byPaymentMethod': {row['payment_method']: {'count': row['count'], 'total': float(row['total'] or 0)}
                            for row in by_payment},
    }
