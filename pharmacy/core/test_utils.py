"""
Test utilities and factories for creating test data
"""
from datetime import timedelta
from decimal import Decimal
import random
import string

from django.contrib.auth import get_user_model
from django.utils import timezone
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken

from pharmacy.catalog.models import Drug, DrugBranch
from pharmacy.core.models import AuditLog, UserActivity
from pharmacy.locations.models import Pharmacy, Branch
from pharmacy.parties.models import Customer
from pharmacy.pos.models import Sale, SaleItem

User = get_user_model()


class TestDataFactory:
    """Factory class for creating test data"""

    @staticmethod
    def random_string(length=10):
        return ''.join(random.choices(string.ascii_letters + string.digits, k=length))

    @staticmethod
    def create_user(username=None, email=None, password='testpass123', role=User.ROLE_CASHIER,
                    is_superuser=False, branch=None):
        """Create a test user"""
        if not username:
            username = f'testuser_{TestDataFactory.random_string(6)}'
        if not email:
            email = f'{username}@test.com'
        return User.objects.create_user(
            username=username,
            email=email,
            password=password,
            role=role,
            is_superuser=is_superuser,
            is_staff=is_superuser,
            branch=branch,
        )

    @staticmethod
    def create_admin(**kwargs):
        return TestDataFactory.create_user(role=User.ROLE_ADMIN, **kwargs)

    @staticmethod
    def create_pharmacy(require_sale_short_code=False, short_code_expiry_minutes=15, name=None):
        return Pharmacy.objects.create(
            name=name or f'Pharmacy_{TestDataFactory.random_string(6)}',
            require_sale_short_code=require_sale_short_code,
            short_code_expiry_minutes=short_code_expiry_minutes,
        )

    @staticmethod
    def create_branch(pharmacy=None, name=None, code=None):
        """Create a test branch"""
        pharmacy = pharmacy or Pharmacy.current() or TestDataFactory.create_pharmacy()
        if not name:
            name = f'Branch_{TestDataFactory.random_string(6)}'
        return Branch.objects.create(
            pharmacy=pharmacy,
            name=name,
            code=code or f'BR_{TestDataFactory.random_string(6).upper()}',
            address=f'Test Address {name}',
            phone='1234567890',
        )

    @staticmethod
    def create_drug(name=None, quantity=100, price=Decimal('10.00'), expiry_in_days=365,
                    low_stock_threshold=10, branches=None, **kwargs):
        """Create a test drug expiring ``expiry_in_days`` days from today"""
        drug = Drug.objects.create(
            name=name or f'Drug_{TestDataFactory.random_string(6)}',
            brand=kwargs.pop('brand', 'TestBrand'),
            category=kwargs.pop('category', 'Analgesic'),
            batch_number=kwargs.pop('batch_number', f'B-{TestDataFactory.random_string(5).upper()}'),
            expiry_date=timezone.localdate() + timedelta(days=expiry_in_days),
            quantity=quantity,
            price=price,
            low_stock_threshold=low_stock_threshold,
            **kwargs
        )
        for branch in branches or []:
            DrugBranch.objects.create(drug=drug, branch=branch)
        return drug

    @staticmethod
    def create_customer(name=None, phone=None, branch=None):
        return Customer.objects.create(
            name=name or f'Customer_{TestDataFactory.random_string(6)}',
            phone=phone or f'9{random.randint(100000000, 999999999)}',
            branch=branch,
        )

    @staticmethod
    def create_pending_sale(user, drug, quantity=2, minutes_old=0, short_code=None, finalized=False, branch=None):
        """
        Create a sale row directly, reserving stock the way create_sale does,
        and back-date it by ``minutes_old`` minutes.
        """
        drug.quantity -= quantity
        drug.save(update_fields=['quantity'])
        sale = Sale.objects.create(
            sold_by=user,
            branch=branch,
            total_amount=drug.price * quantity,
            short_code=short_code or TestDataFactory.random_string(6).upper(),
            finalized=finalized,
        )
        SaleItem.objects.create(sale=sale, drug=drug, quantity=quantity, price_at_sale=drug.price)
        if minutes_old:
            Sale.objects.filter(pk=sale.pk).update(created_at=timezone.now() - timedelta(minutes=minutes_old))
            sale.refresh_from_db()
        return sale

    @staticmethod
    def create_audit_log(user=None, action='create', resource='DRUG', days_old=0):
        log = AuditLog.objects.create(user=user, action=action, resource=resource, description='test')
        if days_old:
            AuditLog.objects.filter(pk=log.pk).update(created_at=timezone.now() - timedelta(days=days_old))
            log.refresh_from_db()
        return log

    @staticmethod
    def create_user_activity(user, session_id=None, action='VIEW', days_old=0, hours_idle=0):
        activity = UserActivity.objects.create(
            user=user,
            session_id=session_id or TestDataFactory.random_string(16),
            action=action,
            path='/api/v1/drugs/',
            method='GET',
            login_time=timezone.now(),
        )
        updates = {}
        if days_old:
            updates['created_at'] = timezone.now() - timedelta(days=days_old)
        if hours_idle:
            updates['last_activity'] = timezone.now() - timedelta(hours=hours_idle)
        if updates:
            UserActivity.objects.filter(pk=activity.pk).update(**updates)
            activity.refresh_from_db()
        return activity


class AuthenticatedAPIClient(APIClient):
    """APIClient with authentication helper"""

    def authenticate_user(self, user):
        """Authenticate the client with a user"""
        refresh = RefreshToken.for_user(user)
        self.access_token = str(refresh.access_token)
        self.credentials(HTTP_AUTHORIZATION=f'Bearer {self.access_token}')
        return self

    def logout(self):
        """Remove authentication"""
        self.credentials()
