"""
Test suite for Core module
Tests: Authentication, Users, Audit logs, User activity, Retention jobs, Error format
"""
from io import StringIO

from django.contrib.auth import get_user_model
from django.core.management import call_command
from django.test import TestCase
from rest_framework import status

from .models import AuditLog, UserActivity
from .services import cleanup_old_activities, deactivate_expired_sessions, delete_old_audit_logs
from .test_utils import TestDataFactory, AuthenticatedAPIClient

User = get_user_model()


class AuthenticationTests(TestCase):
    """Test login, logout and current user"""

    def setUp(self):
        self.user = TestDataFactory.create_user(username='cashier1', password='testpass123')
        self.client = AuthenticatedAPIClient()

    def login(self):
        return self.client.post('/api/v1/auth/login/', {'username': 'cashier1', 'password': 'testpass123'},
                                format='json')

    def test_login(self):
        response = self.login()
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('access', response.data)
        self.assertIn('refresh', response.data)
        self.assertEqual(response.data['user']['username'], 'cashier1')

        activity = UserActivity.objects.get(user=self.user, action='LOGIN')
        self.assertTrue(activity.is_active_session)
        self.assertIsNotNone(activity.login_time)
        self.assertTrue(AuditLog.objects.filter(user=self.user, action='login').exists())

    def test_login_wrong_password(self):
        response = self.client.post('/api/v1/auth/login/', {'username': 'cashier1', 'password': 'wrong'},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertFalse(response.data['success'])

    def test_logout_closes_session(self):
        access = self.login().data['access']
        self.client.credentials(HTTP_AUTHORIZATION=f'Bearer {access}')
        self.client.get('/api/v1/auth/me/')

        response = self.client.post('/api/v1/auth/logout/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(UserActivity.objects.filter(user=self.user, is_active_session=True).exists())
        self.assertEqual(UserActivity.objects.filter(user=self.user).count(), 2)

    def test_me(self):
        self.client.authenticate_user(self.user)
        response = self.client.get('/api/v1/auth/me/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(response.data['is_admin'])
        self.assertTrue(response.data['can_finalize_sales'])


class UserApiTests(TestCase):
    """Test user management endpoints"""

    def setUp(self):
        self.admin = TestDataFactory.create_admin()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.admin)

    def test_create_user(self):
        response = self.client.post('/api/v1/users/', {
            'username': 'newpharmacist',
            'email': 'new@test.com',
            'password': 'Str0ng-pass-2024',
            'password_confirm': 'Str0ng-pass-2024',
            'role': 'pharmacist',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(User.objects.get(username='newpharmacist').role, 'pharmacist')

    def test_password_mismatch(self):
        response = self.client.post('/api/v1/users/', {
            'username': 'mismatch',
            'password': 'Str0ng-pass-2024',
            'password_confirm': 'other-pass-2024',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_non_admin_forbidden(self):
        self.client.authenticate_user(TestDataFactory.create_user())
        response = self.client.get('/api/v1/users/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data, {'success': False, 'message': 'Administrator role required.'})

    def test_not_found_format(self):
        response = self.client.get('/api/v1/users/999999/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertFalse(response.data['success'])
        self.assertIn('message', response.data)


class AuditLogTests(TestCase):
    """Test audit log listing and retention"""

    def setUp(self):
        self.admin = TestDataFactory.create_admin()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.admin)

    def test_delete_old_audit_logs_counts_exactly(self):
        TestDataFactory.create_audit_log(days_old=0)
        TestDataFactory.create_audit_log(days_old=10)
        TestDataFactory.create_audit_log(days_old=31)
        TestDataFactory.create_audit_log(days_old=90)

        self.assertEqual(delete_old_audit_logs(days_to_keep=30), 2)
        self.assertEqual(delete_old_audit_logs(days_to_keep=30), 0)
        self.assertEqual(AuditLog.objects.count(), 2)

    def test_list_filters(self):
        TestDataFactory.create_audit_log(action='create', resource='DRUG')
        TestDataFactory.create_audit_log(action='delete', resource='DRUG')
        TestDataFactory.create_audit_log(action='create', resource='CUSTOMER')

        response = self.client.get('/api/v1/audit-logs/?action=create&resource=drug')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['pagination']['total'], 1)

    def test_stats(self):
        TestDataFactory.create_audit_log(user=self.admin, action='create')
        TestDataFactory.create_audit_log(user=self.admin, action='create')
        response = self.client.get('/api/v1/audit-logs/stats/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['totalLogs'], 2)
        self.assertEqual(response.data['actionBreakdown']['create'], 2)


class UserActivityTests(TestCase):
    """Test activity retention and session expiry"""

    def setUp(self):
        self.user = TestDataFactory.create_user()

    def test_cleanup_old_activities(self):
        TestDataFactory.create_user_activity(self.user, days_old=40)
        TestDataFactory.create_user_activity(self.user, days_old=5)
        self.assertEqual(cleanup_old_activities(days_to_keep=30), 1)
        self.assertEqual(UserActivity.objects.count(), 1)

    def test_deactivate_idle_sessions(self):
        TestDataFactory.create_user_activity(self.user, session_id='idle-session', hours_idle=30)
        TestDataFactory.create_user_activity(self.user, session_id='idle-session', hours_idle=26)
        TestDataFactory.create_user_activity(self.user, session_id='busy-session', hours_idle=30)
        TestDataFactory.create_user_activity(self.user, session_id='busy-session', hours_idle=1)

        self.assertEqual(deactivate_expired_sessions(max_idle_hours=24), 1)
        self.assertFalse(UserActivity.objects.filter(session_id='idle-session', is_active_session=True).exists())
        self.assertEqual(UserActivity.objects.filter(session_id='busy-session', is_active_session=True).count(), 2)
        self.assertEqual(deactivate_expired_sessions(max_idle_hours=24), 0)

    def test_middleware_records_authenticated_requests(self):
        client = AuthenticatedAPIClient()
        client.authenticate_user(self.user)
        client.get('/api/v1/drugs/')

        activity = UserActivity.objects.get(user=self.user)
        self.assertEqual(activity.action, 'VIEW')
        self.assertEqual(activity.path, '/api/v1/drugs/')

    def test_middleware_skips_anonymous_and_failed_requests(self):
        AuthenticatedAPIClient().get('/api/v1/drugs/')
        client = AuthenticatedAPIClient()
        client.authenticate_user(self.user)
        client.get('/api/v1/drugs/999999/')
        self.assertEqual(UserActivity.objects.count(), 0)


class CreateSuperAdminCommandTests(TestCase):
    """Test the create_super_admin management command"""

    def test_creates_admin(self):
        call_command('create_super_admin', '--username', 'root', '--password', 'S3cure-pass', stdout=StringIO())
        user = User.objects.get(username='root')
        self.assertTrue(user.is_superuser)
        self.assertEqual(user.role, User.ROLE_ADMIN)
        self.assertTrue(user.check_password('S3cure-pass'))
