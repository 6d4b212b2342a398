"""
Test suite for Parties module
Tests: Customer CRUD, Search, Branch scoping
"""
from django.core.cache import cache
from django.test import TestCase
from rest_framework import status

from pharmacy.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from .models import Customer


class CustomerTests(TestCase):
    """Test customer endpoints"""

    def setUp(self):
        cache.clear()
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_create_customer(self):
        response = self.client.post('/api/v1/customers/', {'name': 'Jane Doe', 'phone': '9000000001'},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(Customer.objects.get().name, 'Jane Doe')

    def test_blank_phones_do_not_collide(self):
        for name in ('Walk-in A', 'Walk-in B'):
            response = self.client.post('/api/v1/customers/', {'name': name, 'phone': ''}, format='json')
            self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(Customer.objects.filter(phone__isnull=True).count(), 2)

    def test_duplicate_phone_rejected(self):
        TestDataFactory.create_customer(phone='9000000001')
        response = self.client.post('/api/v1/customers/', {'name': 'Copy', 'phone': '9000000001'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_search(self):
        TestDataFactory.create_customer(name='Alice Smith')
        TestDataFactory.create_customer(name='Bob Jones')
        response = self.client.get('/api/v1/customers/?search=alice')
        self.assertEqual([c['name'] for c in response.data], ['Alice Smith'])

    def test_list_refreshes_after_update(self):
        customer = TestDataFactory.create_customer(name='Old Name')
        self.client.get('/api/v1/customers/')
        self.client.patch(f'/api/v1/customers/{customer.id}/', {'name': 'New Name'}, format='json')
        response = self.client.get('/api/v1/customers/')
        self.assertEqual(response.data[0]['name'], 'New Name')

    def test_branch_scoped_listing(self):
        branch = TestDataFactory.create_branch()
        other = TestDataFactory.create_branch()
        TestDataFactory.create_customer(name='Local', branch=branch)
        TestDataFactory.create_customer(name='Elsewhere', branch=other)
        TestDataFactory.create_customer(name='Shared')

        self.client.authenticate_user(TestDataFactory.create_user(branch=branch))
        names = sorted(c['name'] for c in self.client.get('/api/v1/customers/').data)
        self.assertEqual(names, ['Local', 'Shared'])

    def test_delete_customer(self):
        customer = TestDataFactory.create_customer()
        response = self.client.delete(f'/api/v1/customers/{customer.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Customer.objects.exists())
