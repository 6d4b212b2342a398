"""
Test suite for Catalog module
Tests: Drug CRUD, Filtering, Pagination, Branch assignment, Low stock
"""
from decimal import Decimal

from django.test import TestCase
from rest_framework import status

from pharmacy.core.models import AuditLog
from pharmacy.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from .models import Drug, DrugBranch
from .services import find_low_stock_drugs


class DrugTests(TestCase):
    """Test drug endpoints"""

    def setUp(self):
        self.pharmacist = TestDataFactory.create_user(role='pharmacist')
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.pharmacist)

    def test_create_drug_with_branches(self):
        branch = TestDataFactory.create_branch()
        response = self.client.post('/api/v1/drugs/', {
            'name': 'Amoxicillin',
            'category': 'Antibiotic',
            'expiry_date': '2030-01-31',
            'quantity': 40,
            'price': '12.50',
            'branch_ids': [branch.id],
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        drug = Drug.objects.get(name='Amoxicillin')
        self.assertEqual(list(drug.branches.all()), [branch])
        self.assertEqual(response.data['branch_links'][0]['branch'], branch.id)
        self.assertTrue(AuditLog.objects.filter(action='create', resource='DRUG').exists())

    def test_negative_price_rejected(self):
        response = self.client.post('/api/v1/drugs/', {
            'name': 'Bad', 'expiry_date': '2030-01-31', 'price': '-1.00',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_cashier_cannot_create(self):
        self.client.authenticate_user(TestDataFactory.create_user(role='cashier'))
        response = self.client.post('/api/v1/drugs/', {'name': 'X', 'expiry_date': '2030-01-31'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_list_pagination_and_search(self):
        for i in range(25):
            TestDataFactory.create_drug(name=f'Paracetamol {i:02d}')
        TestDataFactory.create_drug(name='Ibuprofen')

        response = self.client.get('/api/v1/drugs/?search=paracetamol&page=2')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['pagination'], {'total': 25, 'page': 2, 'limit': 20, 'totalPages': 2})
        self.assertEqual(len(response.data['data']), 5)

    def test_filters(self):
        TestDataFactory.create_drug(name='Low', quantity=2, low_stock_threshold=5, expiry_in_days=10)
        TestDataFactory.create_drug(name='Plenty', quantity=200, expiry_in_days=400)
        TestDataFactory.create_drug(name='None Left', quantity=0)

        def names(query):
            return sorted(d['name'] for d in self.client.get(f'/api/v1/drugs/?{query}').data['data'])

        self.assertEqual(names('low_stock=true'), ['Low', 'None Left'])
        self.assertEqual(names('in_stock=false'), ['None Left'])
        self.assertEqual(names('expiring_within=30'), ['Low'])

    def test_update_replaces_branch_links(self):
        first = TestDataFactory.create_branch()
        second = TestDataFactory.create_branch()
        drug = TestDataFactory.create_drug(branches=[first])

        response = self.client.patch(f'/api/v1/drugs/{drug.id}/', {'branch_ids': [second.id]}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(list(DrugBranch.objects.filter(drug=drug).values_list('branch_id', flat=True)),
                         [second.id])

    def test_delete_drug(self):
        drug = TestDataFactory.create_drug()
        response = self.client.delete(f'/api/v1/drugs/{drug.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Drug.objects.filter(pk=drug.pk).exists())

    def test_delete_drug_with_sales_rejected(self):
        drug = TestDataFactory.create_drug()
        TestDataFactory.create_pending_sale(self.pharmacist, drug)
        response = self.client.delete(f'/api/v1/drugs/{drug.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertTrue(Drug.objects.filter(pk=drug.pk).exists())

    def test_branch_user_sees_own_branch_only(self):
        branch = TestDataFactory.create_branch()
        TestDataFactory.create_drug(name='Here', branches=[branch])
        TestDataFactory.create_drug(name='Elsewhere', branches=[TestDataFactory.create_branch()])

        self.client.authenticate_user(TestDataFactory.create_user(branch=branch))
        response = self.client.get('/api/v1/drugs/')
        self.assertEqual([d['name'] for d in response.data['data']], ['Here'])


class LowStockTests(TestCase):
    """Test low stock detection"""

    def test_at_or_below_threshold(self):
        TestDataFactory.create_drug(name='Below', quantity=3, low_stock_threshold=10)
        TestDataFactory.create_drug(name='At', quantity=10, low_stock_threshold=10)
        TestDataFactory.create_drug(name='Above', quantity=11, low_stock_threshold=10)

        self.assertEqual([d.name for d in find_low_stock_drugs()], ['Below', 'At'])

    def test_endpoint(self):
        user = TestDataFactory.create_user()
        client = AuthenticatedAPIClient()
        client.authenticate_user(user)
        TestDataFactory.create_drug(name='Scarce', quantity=1, price=Decimal('1.00'))

        response = client.get('/api/v1/drugs/low-stock/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data[0]['name'], 'Scarce')
        self.assertTrue(response.data[0]['is_low_stock'])
