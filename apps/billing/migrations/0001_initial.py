# Generated manually for billing app

import uuid
from decimal import Decimal
from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import migrations, models
import django.db.models.deletion


AMOUNT_VALIDATORS = [MinValueValidator(Decimal('0.00'))]

BILL_TYPE_CHOICES = [
    ('rent', 'Rent'),
    ('electricity', 'Electricity'),
    ('water', 'Water'),
    ('internet', 'Internet'),
    ('total', 'Total'),
]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('rooms', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='BillingCycle',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('cycle_number', models.PositiveIntegerField()),
                ('status', models.CharField(choices=[('active', 'Active'), ('completed', 'Completed'), ('closed', 'Closed')], default='active', max_length=20)),
                ('start_date', models.DateField()),
                ('end_date', models.DateField()),
                ('rent', models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True, validators=AMOUNT_VALIDATORS)),
                ('electricity', models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True, validators=AMOUNT_VALIDATORS)),
                ('internet', models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True, validators=AMOUNT_VALIDATORS)),
                ('previous_meter_reading', models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True, validators=AMOUNT_VALIDATORS)),
                ('current_meter_reading', models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True, validators=AMOUNT_VALIDATORS)),
                ('water_bill_amount', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12)),
                ('total_billed_amount', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12)),
                ('members_count', models.PositiveIntegerField(default=0)),
                ('notes', models.TextField(blank=True)),
                ('completed_at', models.DateTimeField(blank=True, null=True)),
                ('closed_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('room', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='billing_cycles', to='rooms.room')),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='created_billing_cycles', to=settings.AUTH_USER_MODEL)),
                ('closed_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='closed_billing_cycles', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'billing_cycles',
                'ordering': ['-cycle_number'],
                'indexes': [
                    models.Index(fields=['room', 'status'], name='billing_cyc_room_st_1a7e4c_idx'),
                    models.Index(fields=['start_date', 'end_date'], name='billing_cyc_start_d_5b2d90_idx'),
                ],
                'constraints': [
                    models.UniqueConstraint(condition=models.Q(('status', 'active')), fields=('room',), name='one_active_cycle_per_room'),
                ],
                'unique_together': {('room', 'cycle_number')},
            },
        ),
        migrations.CreateModel(
            name='MemberCharge',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('is_payer', models.BooleanField()),
                ('presence_days', models.PositiveIntegerField(default=0)),
                ('rent_share', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12)),
                ('electricity_share', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12)),
                ('internet_share', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12)),
                ('water_bill_share', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12)),
                ('water_own', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12)),
                ('water_shared_nonpayor', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12)),
                ('total_due', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12)),
                ('computed_at', models.DateTimeField()),
                ('cycle', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='member_charges', to='billing.billingcycle')),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='billing_charges', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'billing_member_charges',
                'ordering': ['-is_payer', 'computed_at', 'id'],
                'indexes': [
                    models.Index(fields=['user', 'cycle'], name='billing_mem_user_cy_9c3f61_idx'),
                ],
                'unique_together': {('cycle', 'user')},
            },
        ),
        migrations.CreateModel(
            name='PaymentRecord',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('bill_type', models.CharField(choices=BILL_TYPE_CHOICES, max_length=20)),
                ('status', models.CharField(choices=[('unpaid', 'Unpaid'), ('pending', 'Pending'), ('completed', 'Completed')], default='unpaid', max_length=20)),
                ('status_changed_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('cycle', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='payment_records', to='billing.billingcycle')),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='billing_payment_records', to=settings.AUTH_USER_MODEL)),
                ('updated_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='updated_payment_records', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'billing_payment_records',
                'ordering': ['created_at', 'bill_type'],
                'indexes': [
                    models.Index(fields=['cycle', 'status'], name='billing_pay_cycle_s_2e8b47_idx'),
                    models.Index(fields=['user', 'status'], name='billing_pay_user_st_7d4a18_idx'),
                ],
                'unique_together': {('cycle', 'user', 'bill_type')},
            },
        ),
    ]
