"""
Initial migration for Partsledger models.
"""

from decimal import Decimal
import django.db.models.deletion
import django.utils.timezone
from django.db import migrations, models


class Migration(migrations.Migration):
    """Create Partsledger models: Part, StockTransaction, Reservation, LowStockAlert."""

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='Part',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('part_number', models.CharField(max_length=50, unique=True, verbose_name='Part number')),
                ('description', models.CharField(blank=True, default='', max_length=255, verbose_name='Description')),
                ('category', models.CharField(blank=True, db_index=True, default='', max_length=100, verbose_name='Category')),
                ('current_stock', models.PositiveIntegerField(default=0, verbose_name='Current stock')),
                ('min_threshold', models.PositiveIntegerField(default=0, help_text='Alerts open when stock falls to or below this value', verbose_name='Minimum threshold')),
                ('max_capacity', models.PositiveIntegerField(verbose_name='Maximum capacity')),
                ('unit_cost', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12, verbose_name='Unit cost')),
                ('supplier', models.CharField(blank=True, default='', max_length=150, verbose_name='Supplier')),
                ('location', models.CharField(blank=True, default='', max_length=100, verbose_name='Location')),
                ('is_active', models.BooleanField(default=True, verbose_name='Active')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='Last updated')),
            ],
            options={
                'verbose_name': 'Part',
                'verbose_name_plural': 'Parts',
                'ordering': ['part_number'],
                'constraints': [
                    models.CheckConstraint(
                        condition=models.Q(('current_stock__gte', 0), ('current_stock__lte', models.F('max_capacity'))),
                        name='part_stock_within_capacity',
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name='StockTransaction',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('type', models.CharField(choices=[('RESERVE', 'Reserve'), ('CONSUME', 'Consume'), ('RETURN', 'Return'), ('ADJUST', 'Adjust'), ('RESTOCK', 'Restock')], max_length=10, verbose_name='Type')),
                ('quantity', models.IntegerField(help_text='Positive = in, Negative = out', verbose_name='Quantity')),
                ('previous_stock', models.PositiveIntegerField(verbose_name='Previous stock')),
                ('new_stock', models.PositiveIntegerField(verbose_name='New stock')),
                ('job_order', models.CharField(blank=True, db_index=True, default='', max_length=50, verbose_name='Job order')),
                ('mechanic', models.CharField(blank=True, default='', max_length=100, verbose_name='Mechanic')),
                ('reason', models.CharField(blank=True, default='', max_length=255, verbose_name='Reason')),
                ('performed_by', models.CharField(max_length=100, verbose_name='Performed by')),
                ('timestamp', models.DateTimeField(db_index=True, default=django.utils.timezone.now, verbose_name='Timestamp')),
                ('part', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='transactions', to='partsledger.part', verbose_name='Part')),
            ],
            options={
                'verbose_name': 'Stock transaction',
                'verbose_name_plural': 'Stock transactions',
                'ordering': ['timestamp', 'id'],
                'indexes': [
                    models.Index(fields=['part', 'timestamp'], name='pl_tx_part_ts_idx'),
                    models.Index(fields=['type', 'timestamp'], name='pl_tx_type_ts_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Reservation',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('job_order', models.CharField(db_index=True, max_length=50, verbose_name='Job order')),
                ('quantity_reserved', models.PositiveIntegerField(verbose_name='Quantity reserved')),
                ('quantity_consumed', models.PositiveIntegerField(default=0, verbose_name='Quantity consumed')),
                ('status', models.CharField(choices=[('ACTIVE', 'Active'), ('PARTIAL', 'Partial'), ('COMPLETED', 'Completed'), ('CANCELLED', 'Cancelled')], db_index=True, default='ACTIVE', max_length=10, verbose_name='Status')),
                ('requested_by', models.CharField(max_length=100, verbose_name='Requested by')),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('resolved_at', models.DateTimeField(blank=True, help_text='Completion or cancellation time', null=True, verbose_name='Resolved at')),
                ('part', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='reservations', to='partsledger.part', verbose_name='Part')),
            ],
            options={
                'verbose_name': 'Reservation',
                'verbose_name_plural': 'Reservations',
                'indexes': [
                    models.Index(fields=['part', 'status'], name='pl_res_part_status_idx'),
                ],
                'constraints': [
                    models.CheckConstraint(
                        condition=models.Q(('quantity_consumed__lte', models.F('quantity_reserved'))),
                        name='reservation_consumed_within_reserved',
                    ),
                    models.UniqueConstraint(
                        condition=models.Q(('status__in', ['ACTIVE', 'PARTIAL'])),
                        fields=('part', 'job_order'),
                        name='unique_open_reservation_per_job',
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name='LowStockAlert',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('current_stock', models.PositiveIntegerField(verbose_name='Stock at alert')),
                ('threshold', models.PositiveIntegerField(verbose_name='Threshold at alert')),
                ('urgency', models.CharField(choices=[('LOW', 'Low'), ('MEDIUM', 'Medium'), ('HIGH', 'High'), ('CRITICAL', 'Critical')], db_index=True, max_length=10, verbose_name='Urgency')),
                ('message', models.CharField(blank=True, default='', max_length=255, verbose_name='Message')),
                ('acknowledged', models.BooleanField(db_index=True, default=False, verbose_name='Acknowledged')),
                ('acknowledged_by', models.CharField(blank=True, default='', max_length=100, verbose_name='Acknowledged by')),
                ('acknowledged_at', models.DateTimeField(blank=True, null=True, verbose_name='Acknowledged at')),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now, verbose_name='Created at')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='Updated at')),
                ('part', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='alerts', to='partsledger.part', verbose_name='Part')),
            ],
            options={
                'verbose_name': 'Low stock alert',
                'verbose_name_plural': 'Low stock alerts',
                'ordering': ['-created_at'],
                'constraints': [
                    models.UniqueConstraint(
                        condition=models.Q(('acknowledged', False)),
                        fields=('part',),
                        name='unique_open_alert_per_part',
                    ),
                ],
            },
        ),
    ]
