"""
Test suite for Locations module
Tests: Pharmacies, Sale settings, Branches
"""
from django.core.cache import cache
from django.test import TestCase
from rest_framework import status

from pharmacy.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from .models import Branch, Pharmacy


class PharmacyTests(TestCase):
    """Test pharmacy endpoints"""

    def setUp(self):
        self.admin = TestDataFactory.create_admin()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.admin)
        self.pharmacy = TestDataFactory.create_pharmacy(name='Main Pharmacy')

    def test_list_pharmacies(self):
        response = self.client.get('/api/v1/pharmacies/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data[0]['name'], 'Main Pharmacy')

    def test_current_is_first_configured(self):
        TestDataFactory.create_pharmacy(name='Second')
        self.assertEqual(Pharmacy.current(), self.pharmacy)

    def test_update_sale_settings(self):
        response = self.client.patch(f'/api/v1/pharmacies/{self.pharmacy.id}/sale-settings/', {
            'require_sale_short_code': True,
            'short_code_expiry_minutes': 20,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.pharmacy.refresh_from_db()
        self.assertTrue(self.pharmacy.require_sale_short_code)
        self.assertEqual(self.pharmacy.short_code_expiry_minutes, 20)

    def test_sale_settings_reject_zero_minutes(self):
        response = self.client.patch(f'/api/v1/pharmacies/{self.pharmacy.id}/sale-settings/', {
            'short_code_expiry_minutes': 0,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_sale_settings_admin_only(self):
        self.client.authenticate_user(TestDataFactory.create_user(role='pharmacist'))
        response = self.client.patch(f'/api/v1/pharmacies/{self.pharmacy.id}/sale-settings/', {
            'require_sale_short_code': True,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class BranchTests(TestCase):
    """Test branch endpoints"""

    def setUp(self):
        cache.clear()
        self.admin = TestDataFactory.create_admin()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.admin)
        self.pharmacy = TestDataFactory.create_pharmacy()

    def test_create_branch(self):
        response = self.client.post('/api/v1/branches/', {
            'pharmacy': self.pharmacy.id,
            'name': 'Downtown',
            'code': 'DT01',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(Branch.objects.filter(code='DT01').exists())

    def test_duplicate_code_rejected(self):
        TestDataFactory.create_branch(pharmacy=self.pharmacy, code='DT01')
        response = self.client.post('/api/v1/branches/', {
            'pharmacy': self.pharmacy.id,
            'name': 'Other',
            'code': 'DT01',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_list_refreshes_after_create(self):
        TestDataFactory.create_branch(pharmacy=self.pharmacy, name='Alpha')
        self.assertEqual(len(self.client.get('/api/v1/branches/').data), 1)

        self.client.post('/api/v1/branches/', {
            'pharmacy': self.pharmacy.id, 'name': 'Beta', 'code': 'BT01',
        }, format='json')
        names = [b['name'] for b in self.client.get('/api/v1/branches/').data]
        self.assertEqual(names, ['Alpha', 'Beta'])

    def test_non_admin_cannot_create(self):
        self.client.authenticate_user(TestDataFactory.create_user())
        response = self.client.post('/api/v1/branches/', {
            'pharmacy': self.pharmacy.id, 'name': 'Nope', 'code': 'NP01',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
