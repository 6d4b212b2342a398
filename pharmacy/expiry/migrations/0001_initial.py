import django.db.models.deletion
import pharmacy.expiry.models
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('catalog', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='ExpiryNotification',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('type', models.CharField(choices=[('expiry_alert', 'Expiry Alert'), ('batch_expired', 'Batch Expired'), ('low_stock_expiry', 'Low Stock Expiry')], max_length=20)),
                ('title', models.CharField(max_length=255)),
                ('message', models.TextField()),
                ('alert_level', models.CharField(choices=[('expired', 'Expired'), ('critical', 'Critical'), ('warning', 'Warning'), ('notice', 'Notice')], max_length=10)),
                ('is_read', models.BooleanField(default=False)),
                ('created_at', models.DateTimeField(auto_now_add=True, db_index=True)),
                ('expires_at', models.DateTimeField(default=pharmacy.expiry.models.default_expires_at)),
                ('drug', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='expiry_notifications', to='catalog.drug')),
                ('user', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='expiry_notifications', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'expiry_notifications',
                'ordering': ['-created_at'],
                'indexes': [models.Index(fields=['drug', 'alert_level', 'created_at'], name='idx_expiry_notif_drug_level'), models.Index(fields=['is_read', 'created_at'], name='idx_expiry_notif_read')],
            },
        ),
    ]
