"""
Test suite for the POS module
Tests: Sale creation, Short code finalization, Expired sale cleanup, Sales summary
"""
from datetime import timedelta
from decimal import Decimal
from unittest.mock import patch

from django.apps import apps
from django.test import TestCase
from django.utils import timezone
from rest_framework import status
from rest_framework.exceptions import ValidationError

from pharmacy.core.models import AuditLog
from pharmacy.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from pharmacy.catalog.models import Drug
from . import expired_sales
from .expired_sales import cleanup_expired_sales, find_expired_sales, get_expired_sale_stats, is_sale_expired
from .models import ExpiredSaleCleanupHistory, Sale, SaleItem
from .services import SHORT_CODE_ALPHABET, build_sales_summary, create_sale, finalize_sale


class RecordingPublisher:
    def __init__(self):
        self.events = []

    def publish(self, event_name, payload):
        self.events.append((event_name, payload))


class CreateSaleTests(TestCase):
    """Test sale creation and stock reservation"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.drug = TestDataFactory.create_drug(quantity=10, price=Decimal('4.50'))

    def test_sale_without_short_code(self):
        TestDataFactory.create_pharmacy(require_sale_short_code=False)
        sale = create_sale(self.user, [{'drug': self.drug, 'quantity': 3}])

        self.assertTrue(sale.finalized)
        self.assertIsNone(sale.short_code)
        self.assertIsNotNone(sale.finalized_at)
        self.assertEqual(sale.total_amount, Decimal('13.50'))
        self.drug.refresh_from_db()
        self.assertEqual(self.drug.quantity, 7)

    def test_sale_with_short_code(self):
        TestDataFactory.create_pharmacy(require_sale_short_code=True)
        sale = create_sale(self.user, [{'drug': self.drug.id, 'quantity': 2}])

        self.assertFalse(sale.finalized)
        self.assertEqual(len(sale.short_code), 6)
        self.assertTrue(all(ch in SHORT_CODE_ALPHABET for ch in sale.short_code))
        self.drug.refresh_from_db()
        self.assertEqual(self.drug.quantity, 8)

    def test_insufficient_stock_rolls_back(self):
        other = TestDataFactory.create_drug(quantity=50)
        with self.assertRaises(ValidationError):
            create_sale(self.user, [{'drug': other, 'quantity': 5}, {'drug': self.drug, 'quantity': 11}])

        self.assertEqual(Sale.objects.count(), 0)
        other.refresh_from_db()
        self.drug.refresh_from_db()
        self.assertEqual(other.quantity, 50)
        self.assertEqual(self.drug.quantity, 10)

    def test_empty_items_rejected(self):
        with self.assertRaises(ValidationError):
            create_sale(self.user, [])


class FinalizeSaleTests(TestCase):
    """Test short code finalization"""

    def setUp(self):
        self.pharmacy = TestDataFactory.create_pharmacy(require_sale_short_code=True, short_code_expiry_minutes=15)
        self.user = TestDataFactory.create_user()
        self.drug = TestDataFactory.create_drug(quantity=20)

    def test_finalize_pending_sale(self):
        sale = TestDataFactory.create_pending_sale(self.user, self.drug, short_code='ABC123', minutes_old=5)
        finalized, changed = finalize_sale('abc123')

        self.assertTrue(changed)
        self.assertEqual(finalized.id, sale.id)
        self.assertTrue(finalized.finalized)
        self.assertIsNotNone(finalized.finalized_at)

    def test_finalize_twice_returns_unchanged(self):
        TestDataFactory.create_pending_sale(self.user, self.drug, short_code='ABC123')
        finalize_sale('ABC123')
        _, changed = finalize_sale('ABC123')
        self.assertFalse(changed)

    def test_expired_code_rejected(self):
        TestDataFactory.create_pending_sale(self.user, self.drug, short_code='OLD999', minutes_old=20)
        with self.assertRaises(ValidationError):
            finalize_sale('OLD999')
        self.assertFalse(Sale.objects.get(short_code='OLD999').finalized)

    def test_unknown_code_rejected(self):
        with self.assertRaises(ValidationError):
            finalize_sale('NOPE00')


class ExpiredSaleCleanupTests(TestCase):
    """Test reconciliation of abandoned unfinalized sales"""

    def setUp(self):
        self.pharmacy = TestDataFactory.create_pharmacy(require_sale_short_code=True, short_code_expiry_minutes=15)
        self.user = TestDataFactory.create_user()
        self.drug = TestDataFactory.create_drug(quantity=100, price=Decimal('10.00'))
        self.publisher = RecordingPublisher()

    def test_only_sales_past_window_are_expired(self):
        recent = TestDataFactory.create_pending_sale(self.user, self.drug, minutes_old=14)
        old = TestDataFactory.create_pending_sale(self.user, self.drug, minutes_old=16)
        finalized = TestDataFactory.create_pending_sale(self.user, self.drug, minutes_old=30, finalized=True)

        self.assertEqual(list(find_expired_sales()), [old])
        self.assertFalse(is_sale_expired(recent))
        self.assertTrue(is_sale_expired(old))
        self.assertFalse(is_sale_expired(finalized))

    def test_window_follows_pharmacy_setting(self):
        self.pharmacy.short_code_expiry_minutes = 5
        self.pharmacy.save()
        sale = TestDataFactory.create_pending_sale(self.user, self.drug, minutes_old=6)
        self.assertEqual(list(find_expired_sales()), [sale])

    def test_nothing_expires_without_short_codes(self):
        self.pharmacy.require_sale_short_code = False
        self.pharmacy.save()
        TestDataFactory.create_pending_sale(self.user, self.drug, minutes_old=60)
        self.assertEqual(find_expired_sales().count(), 0)

    def test_cleanup_restores_stock_and_deletes_sale(self):
        sale = TestDataFactory.create_pending_sale(self.user, self.drug, quantity=5, minutes_old=20)
        self.drug.refresh_from_db()
        self.assertEqual(self.drug.quantity, 95)

        result = cleanup_expired_sales(publisher=self.publisher)

        self.assertEqual(result.cleaned_up_count, 1)
        self.assertEqual(result.failed_count, 0)
        self.assertEqual(result.total_value, Decimal('50.00'))
        self.drug.refresh_from_db()
        self.assertEqual(self.drug.quantity, 100)
        self.assertFalse(Sale.objects.filter(pk=sale.pk).exists())
        self.assertFalse(SaleItem.objects.filter(sale_id=sale.pk).exists())

        history = ExpiredSaleCleanupHistory.objects.get()
        self.assertEqual(history.cleaned_up_count, 1)
        self.assertEqual(history.operation_type, 'automatic')

    def test_finalized_sales_never_touched(self):
        sale = TestDataFactory.create_pending_sale(self.user, self.drug, quantity=5, minutes_old=60, finalized=True)
        result = cleanup_expired_sales(publisher=self.publisher)

        self.assertEqual(result.cleaned_up_count, 0)
        self.assertTrue(Sale.objects.filter(pk=sale.pk).exists())
        self.drug.refresh_from_db()
        self.assertEqual(self.drug.quantity, 95)

    def test_single_event_per_batch(self):
        TestDataFactory.create_pending_sale(self.user, self.drug, minutes_old=20)
        TestDataFactory.create_pending_sale(self.user, self.drug, minutes_old=25)
        TestDataFactory.create_pending_sale(self.user, self.drug, minutes_old=1)

        cleanup_expired_sales(publisher=self.publisher)

        self.assertEqual(len(self.publisher.events), 1)
        event_name, payload = self.publisher.events[0]
        self.assertEqual(event_name, 'expired-sales-cleaned')
        self.assertEqual(payload['count'], 2)
        self.assertIn('timestamp', payload)

    def test_no_event_or_history_when_nothing_expired(self):
        TestDataFactory.create_pending_sale(self.user, self.drug, minutes_old=1)
        result = cleanup_expired_sales(publisher=self.publisher)

        self.assertEqual(result.cleaned_up_count, 0)
        self.assertEqual(self.publisher.events, [])
        self.assertEqual(ExpiredSaleCleanupHistory.objects.count(), 0)

    def test_failure_recorded_and_batch_continues(self):
        first = TestDataFactory.create_pending_sale(self.user, self.drug, quantity=3, minutes_old=30)
        second = TestDataFactory.create_pending_sale(self.user, self.drug, quantity=4, minutes_old=20)
        original = expired_sales._restore_and_delete

        def fail_first(sale_id):
            if sale_id == first.pk:
                raise RuntimeError('row locked')
            return original(sale_id)

        with patch.object(expired_sales, '_restore_and_delete', side_effect=fail_first):
            result = cleanup_expired_sales(publisher=self.publisher)

        self.assertEqual(result.cleaned_up_count, 1)
        self.assertEqual(result.failed_count, 1)
        self.assertEqual(result.failures, [{'saleId': first.pk, 'error': 'row locked'}])
        self.assertEqual(result.total_value, second.total_amount)
        self.assertTrue(Sale.objects.filter(pk=first.pk).exists())
        self.assertFalse(Sale.objects.filter(pk=second.pk).exists())
        self.drug.refresh_from_db()
        self.assertEqual(self.drug.quantity, 97)
        self.assertEqual(self.publisher.events[0][1]['count'], 1)

    def test_second_run_is_noop(self):
        TestDataFactory.create_pending_sale(self.user, self.drug, minutes_old=20)
        cleanup_expired_sales(publisher=self.publisher)
        result = cleanup_expired_sales(publisher=self.publisher)

        self.assertEqual(result.cleaned_up_count, 0)
        self.assertEqual(len(self.publisher.events), 1)

    def test_overlapping_batch_with_stale_list_restores_once(self):
        sale = TestDataFactory.create_pending_sale(self.user, self.drug, quantity=5, minutes_old=20)
        stale_ids = list(find_expired_sales().values_list('id', flat=True))

        first = cleanup_expired_sales('manual', publisher=self.publisher)
        with patch.object(expired_sales, 'find_expired_sales') as find:
            find.return_value.values_list.return_value = stale_ids
            second = cleanup_expired_sales('automatic', publisher=self.publisher)

        self.assertEqual(first.cleaned_up_count, 1)
        self.assertEqual(second.cleaned_up_count, 0)
        self.assertEqual(second.failed_count, 0)
        self.drug.refresh_from_db()
        self.assertEqual(self.drug.quantity, 100)
        self.assertFalse(Sale.objects.filter(pk=sale.pk).exists())
        self.assertEqual(ExpiredSaleCleanupHistory.objects.count(), 1)
        self.assertEqual(len(self.publisher.events), 1)

    def test_sale_finalized_after_listing_is_left_alone(self):
        sale = TestDataFactory.create_pending_sale(self.user, self.drug, quantity=5, minutes_old=20)
        Sale.objects.filter(pk=sale.pk).update(finalized=True)

        self.assertIsNone(expired_sales._restore_and_delete(sale.pk))
        self.drug.refresh_from_db()
        self.assertEqual(self.drug.quantity, 95)
        self.assertTrue(Sale.objects.filter(pk=sale.pk).exists())

    def test_stats(self):
        oldest = TestDataFactory.create_pending_sale(self.user, self.drug, minutes_old=40)
        TestDataFactory.create_pending_sale(self.user, self.drug, minutes_old=20)
        TestDataFactory.create_pending_sale(self.user, self.drug, minutes_old=2)

        stats = get_expired_sale_stats().to_dict()
        self.assertEqual(stats['expiredSalesCount'], 2)
        self.assertEqual(stats['totalValue'], 40.0)
        self.assertEqual(stats['oldestExpired'], oldest.created_at.isoformat())
        self.assertEqual(stats['totalCleaned'], 0)
        self.assertIsNone(stats['lastCleanupTime'])

        cleanup_expired_sales()
        stats = get_expired_sale_stats().to_dict()
        self.assertEqual(stats['expiredSalesCount'], 0)
        self.assertEqual(stats['totalCleaned'], 2)
        self.assertIsNotNone(stats['lastCleanupTime'])


class SalesSummaryTests(TestCase):
    """Test the weekly sales summary"""

    def test_summary_counts_finalized_sales_only(self):
        TestDataFactory.create_pharmacy(require_sale_short_code=False)
        user = TestDataFactory.create_user()
        drug = TestDataFactory.create_drug(name='Ibuprofen', quantity=50, price=Decimal('2.00'))
        create_sale(user, [{'drug': drug, 'quantity': 5}])
        create_sale(user, [{'drug': drug, 'quantity': 2}], payment_method='card', transaction_id='TX1')
        TestDataFactory.create_pending_sale(user, drug, quantity=3)

        now = timezone.now()
        summary = build_sales_summary(now - timedelta(days=7), now + timedelta(minutes=1))

        self.assertEqual(summary['saleCount'], 2)
        self.assertEqual(summary['totalRevenue'], 14.0)
        self.assertEqual(summary['topDrugs'][0]['name'], 'Ibuprofen')
        self.assertEqual(summary['topDrugs'][0]['units'], 7)
        self.assertEqual(summary['byPaymentMethod']['card']['count'], 1)


class SaleApiTests(TestCase):
    """Test sale endpoints"""

    def setUp(self):
        self.pharmacy = TestDataFactory.create_pharmacy(require_sale_short_code=True)
        self.pharmacist = TestDataFactory.create_user(role='pharmacist')
        self.cashier = TestDataFactory.create_user(role='cashier')
        self.drug = TestDataFactory.create_drug(quantity=30, price=Decimal('5.00'))
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.pharmacist)

    def test_create_sale(self):
        response = self.client.post('/api/v1/sales/', {
            'items': [{'drug': self.drug.id, 'quantity': 2}],
            'payment_method': 'cash',
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(response.data['success'])
        self.assertEqual(len(response.data['data']['short_code']), 6)
        self.assertFalse(response.data['data']['finalized'])
        self.assertTrue(AuditLog.objects.filter(action='sale_create').exists())

    def test_card_payment_requires_transaction_id(self):
        response = self.client.post('/api/v1/sales/', {
            'items': [{'drug': self.drug.id, 'quantity': 1}],
            'payment_method': 'card',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(response.data['success'])

    def test_insufficient_stock(self):
        response = self.client.post('/api/v1/sales/', {
            'items': [{'drug': self.drug.id, 'quantity': 31}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('Insufficient stock', response.data['message'])

    def test_cashier_finalizes_by_code(self):
        sale = TestDataFactory.create_pending_sale(self.pharmacist, self.drug, short_code='XYZ789')
        self.client.authenticate_user(self.cashier)

        lookup = self.client.get('/api/v1/sales/code/XYZ789/')
        self.assertEqual(lookup.status_code, status.HTTP_200_OK)
        self.assertEqual(lookup.data['data']['id'], sale.id)

        response = self.client.post('/api/v1/sales/finalize/', {'code': 'XYZ789'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['data']['finalized'])

        again = self.client.post('/api/v1/sales/finalize/', {'code': 'XYZ789'}, format='json')
        self.assertEqual(again.status_code, status.HTTP_200_OK)
        self.assertIn('already finalized', again.data['message'])

    def test_pharmacist_cannot_finalize(self):
        TestDataFactory.create_pending_sale(self.pharmacist, self.drug, short_code='XYZ789')
        response = self.client.post('/api/v1/sales/finalize/', {'code': 'XYZ789'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_superuser_cannot_finalize(self):
        TestDataFactory.create_pending_sale(self.pharmacist, self.drug, short_code='XYZ789')
        self.client.authenticate_user(TestDataFactory.create_user(is_superuser=True))
        response = self.client.post('/api/v1/sales/finalize/', {'code': 'XYZ789'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_list_sales(self):
        TestDataFactory.create_pending_sale(self.pharmacist, self.drug)
        response = self.client.get('/api/v1/sales/?finalized=false')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['pagination']['total'], 1)


class ExpiredSaleApiTests(TestCase):
    """Test expired sale admin endpoints"""

    def setUp(self):
        TestDataFactory.create_pharmacy(require_sale_short_code=True, short_code_expiry_minutes=15)
        self.admin = TestDataFactory.create_admin()
        self.drug = TestDataFactory.create_drug(quantity=40, price=Decimal('3.00'))
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.admin)

    def test_stats(self):
        TestDataFactory.create_pending_sale(self.admin, self.drug, minutes_old=20)
        response = self.client.get('/api/v1/expired-sales/expired-stats')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data']['expiredSalesCount'], 1)

    def test_manual_cleanup(self):
        TestDataFactory.create_pending_sale(self.admin, self.drug, quantity=4, minutes_old=20)
        response = self.client.post('/api/v1/expired-sales/cleanup-expired')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data']['cleanedUpCount'], 1)
        self.assertEqual(response.data['message'], 'Successfully cleaned up 1 expired sales')
        self.assertEqual(Drug.objects.get(pk=self.drug.pk).quantity, 40)

        history = ExpiredSaleCleanupHistory.objects.get()
        self.assertEqual(history.operation_type, 'manual')
        self.assertEqual(history.triggered_by, self.admin)
        self.assertTrue(AuditLog.objects.filter(action='stock_restore').exists())

    def test_manual_cleanup_publishes_to_event_channel(self):
        TestDataFactory.create_pending_sale(self.admin, self.drug, minutes_old=20)
        broadcaster = apps.get_app_config('scheduler').broadcaster
        received = []
        unsubscribe = broadcaster.subscribe('expired-sales-cleaned', received.append)
        try:
            self.client.post('/api/v1/expired-sales/cleanup-expired/')
        finally:
            unsubscribe()
        self.assertEqual([p['count'] for p in received], [1])

    def test_manual_cleanup_runs_as_job(self):
        TestDataFactory.create_pending_sale(self.admin, self.drug, minutes_old=20)
        app = apps.get_app_config('scheduler')
        received = []
        unsubscribe = app.broadcaster.subscribe_all(lambda name, payload: received.append((name, payload)))
        try:
            response = self.client.post('/api/v1/expired-sales/cleanup-expired')
        finally:
            unsubscribe()

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([name for name, _ in received], [
            'cron-job-triggered', 'expired-sales-cleaned', 'cron-job-completed', 'cron-status-updated',
        ])
        completed = received[2][1]
        self.assertEqual(completed['jobName'], 'expired-sale-cleanup')
        self.assertEqual(completed['result']['cleanedUpCount'], 1)
        self.assertEqual(app.tracker.snapshot('expired-sale-cleanup')['status'], 'completed')

    def test_manual_cleanup_rejected_while_running(self):
        TestDataFactory.create_pending_sale(self.admin, self.drug, quantity=4, minutes_old=20)
        lock = apps.get_app_config('scheduler').runner._locks['expired-sale-cleanup']
        lock.acquire()
        try:
            response = self.client.post('/api/v1/expired-sales/cleanup-expired')
        finally:
            lock.release()

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertFalse(response.data['success'])
        self.assertEqual(Drug.objects.get(pk=self.drug.pk).quantity, 36)
        self.assertEqual(Sale.objects.count(), 1)

    def test_manual_cleanup_failure_returns_json_error(self):
        with patch('pharmacy.scheduler.jobs.cleanup_expired_sales', side_effect=RuntimeError('history insert failed')):
            response = self.client.post('/api/v1/expired-sales/cleanup-expired')

        self.assertEqual(response.status_code, status.HTTP_500_INTERNAL_SERVER_ERROR)
        self.assertEqual(response.data, {'success': False, 'message': 'history insert failed'})
        self.assertEqual(apps.get_app_config('scheduler').tracker.snapshot('expired-sale-cleanup')['status'], 'failed')

    def test_cashier_forbidden(self):
        self.client.authenticate_user(TestDataFactory.create_user())
        self.assertEqual(self.client.get('/api/v1/expired-sales/expired-stats/').status_code,
                         status.HTTP_403_FORBIDDEN)
        self.assertEqual(self.client.post('/api/v1/expired-sales/cleanup-expired/').status_code,
                         status.HTTP_403_FORBIDDEN)

