"""
Test suite for Expiry module
Tests: Alert tiers, Expiring drug listing, Statistics, Notifications, Notification cleanup
"""
from datetime import date, timedelta
from decimal import Decimal

from django.test import TestCase
from django.utils import timezone
from rest_framework import status

from pharmacy.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from .models import ExpiryNotification
from .services import (
    classify_alert_level, check_drug_expiry, cleanup_old_notifications, create_expiry_notifications,
    days_until_expiry, get_expiring_drugs, get_expiry_stats,
)


def make_notification(drug, is_read=False, days_old=0, alert_level='warning'):
    notification = ExpiryNotification.objects.create(
        type='expiry_alert', title='Expiry Warning', message='test', drug=drug,
        alert_level=alert_level, is_read=is_read,
    )
    if days_old:
        ExpiryNotification.objects.filter(pk=notification.pk).update(
            created_at=timezone.now() - timedelta(days=days_old)
        )
    return notification


class AlertTierTests(TestCase):
    """Test expiry tier classification"""

    def test_tiers(self):
        self.assertEqual(classify_alert_level(-1), 'expired')
        self.assertEqual(classify_alert_level(0), 'critical')
        self.assertEqual(classify_alert_level(5), 'critical')
        self.assertEqual(classify_alert_level(7), 'critical')
        self.assertEqual(classify_alert_level(8), 'warning')
        self.assertEqual(classify_alert_level(20), 'warning')
        self.assertEqual(classify_alert_level(30), 'warning')
        self.assertEqual(classify_alert_level(31), 'notice')
        self.assertEqual(classify_alert_level(45), 'notice')

    def test_days_until_expiry(self):
        today = date(2024, 3, 10)
        self.assertEqual(days_until_expiry(date(2024, 3, 15), today), 5)
        self.assertEqual(days_until_expiry(date(2024, 3, 10), today), 0)
        self.assertEqual(days_until_expiry(date(2024, 3, 9), today), -1)

    def test_check_drug_expiry(self):
        expired = TestDataFactory.create_drug(expiry_in_days=-1)
        soon = TestDataFactory.create_drug(expiry_in_days=3)
        self.assertEqual(check_drug_expiry(expired), {
            'isExpired': True, 'isExpiring': True, 'daysUntilExpiry': -1, 'canSell': False,
        })
        self.assertTrue(check_drug_expiry(soon)['canSell'])
        self.assertTrue(check_drug_expiry(soon)['isExpiring'])


class ExpiringDrugsTests(TestCase):
    """Test expiring drug listing and statistics"""

    def setUp(self):
        self.expired = TestDataFactory.create_drug(name='Expired', expiry_in_days=-1, quantity=10,
                                                   price=Decimal('2.00'), cost_price=Decimal('1.00'))
        self.critical = TestDataFactory.create_drug(name='Critical', expiry_in_days=5, quantity=10,
                                                    price=Decimal('3.00'))
        self.warning = TestDataFactory.create_drug(name='Warning', expiry_in_days=20, quantity=10)
        self.notice = TestDataFactory.create_drug(name='Notice', expiry_in_days=45, quantity=10)
        self.out_of_stock = TestDataFactory.create_drug(name='Empty', expiry_in_days=2, quantity=0)

    def test_soonest_first_and_stocked_only(self):
        result = get_expiring_drugs()
        names = [row['drugName'] for row in result['data']]
        self.assertEqual(names, ['Expired', 'Critical', 'Warning', 'Notice'])
        self.assertEqual([row['alertLevel'] for row in result['data']],
                         ['expired', 'critical', 'warning', 'notice'])
        self.assertEqual(result['pagination']['total'], 4)

    def test_alert_level_filter_before_paging(self):
        result = get_expiring_drugs(alert_level='critical', limit=1)
        self.assertEqual(result['pagination']['total'], 1)
        self.assertEqual(result['data'][0]['drugId'], self.critical.id)
        self.assertEqual(result['data'][0]['daysUntilExpiry'], 5)

    def test_days_range(self):
        result = get_expiring_drugs(days_range=10)
        self.assertEqual([row['drugName'] for row in result['data']], ['Expired', 'Critical'])

    def test_value_loss(self):
        row = get_expiring_drugs(alert_level='expired')['data'][0]
        self.assertEqual(row['valueLoss'], 20.0)
        self.assertEqual(row['costLoss'], 10.0)
        self.assertEqual(row['profitLoss'], 10.0)

    def test_stats(self):
        stats = get_expiry_stats()
        self.assertEqual(stats['totalExpiredDrugs'], 1)
        self.assertEqual(stats['totalCriticalDrugs'], 1)
        self.assertEqual(stats['totalWarningDrugs'], 1)
        self.assertEqual(stats['totalNoticeDrugs'], 1)
        self.assertEqual(stats['expiredValue'], 20.0)
        self.assertEqual(stats['criticalValue'], 30.0)
        self.assertEqual(stats['upcomingExpiries']['next7Days'], 1)
        self.assertEqual(stats['upcomingExpiries']['next30Days'], 1)
        self.assertEqual(stats['upcomingExpiries']['next60Days'], 1)


class ExpiryNotificationTests(TestCase):
    """Test notification creation and cleanup"""

    def setUp(self):
        self.expired = TestDataFactory.create_drug(name='Expired', brand='Acme', expiry_in_days=-1)
        self.critical = TestDataFactory.create_drug(name='Critical', expiry_in_days=5)
        self.warning = TestDataFactory.create_drug(name='Warning', expiry_in_days=20)
        self.notice = TestDataFactory.create_drug(name='Notice', expiry_in_days=45)
        TestDataFactory.create_drug(name='Empty', expiry_in_days=-5, quantity=0)

    def test_notifications_for_expired_critical_and_warning(self):
        created = create_expiry_notifications()

        self.assertEqual(created, 3)
        levels = dict(ExpiryNotification.objects.values_list('drug__name', 'alert_level'))
        self.assertEqual(levels, {'Expired': 'expired', 'Critical': 'critical', 'Warning': 'warning'})

        expired = ExpiryNotification.objects.get(drug=self.expired)
        self.assertEqual(expired.type, 'batch_expired')
        self.assertIn('Acme', expired.message)
        self.assertIn('1 days ago', expired.message)

    def test_notifications_deduplicated_per_day(self):
        create_expiry_notifications()
        self.assertEqual(create_expiry_notifications(), 0)
        self.assertEqual(ExpiryNotification.objects.count(), 3)

    def test_yesterdays_notification_does_not_block(self):
        make_notification(self.critical, alert_level='critical', days_old=1)
        create_expiry_notifications()
        self.assertEqual(ExpiryNotification.objects.filter(drug=self.critical).count(), 2)

    def test_cleanup_deletes_old_read_notifications(self):
        make_notification(self.warning, is_read=True, days_old=40)
        make_notification(self.warning, is_read=True, days_old=45)
        make_notification(self.warning, is_read=False, days_old=40)
        make_notification(self.warning, is_read=True, days_old=5)

        self.assertEqual(cleanup_old_notifications(), 2)
        self.assertEqual(cleanup_old_notifications(), 0)
        self.assertEqual(ExpiryNotification.objects.count(), 2)


class ExpiryApiTests(TestCase):
    """Test expiry endpoints"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.drug = TestDataFactory.create_drug(expiry_in_days=4)

    def test_expiring_drugs(self):
        response = self.client.get('/api/v1/expiry/drugs/?alert_level=critical')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['pagination']['total'], 1)

    def test_invalid_params(self):
        self.assertEqual(self.client.get('/api/v1/expiry/drugs/?alert_level=soon').status_code,
                         status.HTTP_400_BAD_REQUEST)
        self.assertEqual(self.client.get('/api/v1/expiry/drugs/?days_range=abc').status_code,
                         status.HTTP_400_BAD_REQUEST)
        self.assertEqual(self.client.get('/api/v1/expiry/drugs/?page=0').status_code,
                         status.HTTP_400_BAD_REQUEST)

    def test_stats(self):
        response = self.client.get('/api/v1/expiry/stats/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['totalCriticalDrugs'], 1)

    def test_notifications(self):
        notification = make_notification(self.drug)
        make_notification(self.drug)

        response = self.client.get('/api/v1/expiry/notifications/?is_read=false')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['pagination']['total'], 2)

        response = self.client.patch(f'/api/v1/expiry/notifications/{notification.id}/read/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['data']['is_read'])

        response = self.client.post('/api/v1/expiry/notifications/read-all/')
        self.assertEqual(response.data['data']['updatedCount'], 1)
        self.assertFalse(ExpiryNotification.objects.filter(is_read=False).exists())

    def test_drug_check(self):
        response = self.client.get(f'/api/v1/expiry/drugs/{self.drug.id}/check/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data']['daysUntilExpiry'], 4)

    def test_requires_authentication(self):
        self.client.logout()
        response = self.client.get('/api/v1/expiry/stats/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
