import decimal

import django.core.validators
import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('locations', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='Drug',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(db_index=True, max_length=200)),
                ('generic_name', models.CharField(blank=True, max_length=200)),
                ('brand', models.CharField(blank=True, max_length=200)),
                ('category', models.CharField(blank=True, db_index=True, max_length=100)),
                ('dosage_form', models.CharField(blank=True, max_length=100)),
                ('batch_number', models.CharField(blank=True, max_length=100)),
                ('expiry_date', models.DateField(db_index=True)),
                ('quantity', models.PositiveIntegerField(default=0)),
                ('price', models.DecimalField(decimal_places=2, default=decimal.Decimal('0.00'), max_digits=10, validators=[django.core.validators.MinValueValidator(decimal.Decimal('0.00'))])),
                ('cost_price', models.DecimalField(blank=True, decimal_places=2, max_digits=10, null=True)),
                ('low_stock_threshold', models.PositiveIntegerField(default=10)),
                ('requires_prescription', models.BooleanField(default=False)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'db_table': 'drugs',
                'ordering': ['name'],
            },
        ),
        migrations.CreateModel(
            name='DrugBranch',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('quantity', models.PositiveIntegerField(default=0)),
                ('assigned_at', models.DateTimeField(auto_now_add=True)),
                ('branch', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='drug_links', to='locations.branch')),
                ('drug', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='branch_links', to='catalog.drug')),
            ],
            options={
                'db_table': 'drug_branches',
                'unique_together': {('drug', 'branch')},
            },
        ),
        migrations.AddField(
            model_name='drug',
            name='branches',
            field=models.ManyToManyField(blank=True, related_name='drugs', through='catalog.DrugBranch', to='locations.branch'),
        ),
        migrations.AddIndex(
            model_name='drug',
            index=models.Index(fields=['category', 'name'], name='idx_drug_category_name'),
        ),
    ]
