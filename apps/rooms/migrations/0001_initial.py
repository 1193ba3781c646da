# Generated manually for rooms app

import uuid
from decimal import Decimal
from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import migrations, models
import django.db.models.deletion

import apps.rooms.models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Room',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('name', models.CharField(max_length=200)),
                ('code', models.CharField(db_index=True, editable=False, max_length=16, unique=True)),
                ('water_billing_mode', models.CharField(choices=[('presence_based', 'Presence based'), ('fixed_monthly', 'Fixed monthly')], default='presence_based', max_length=20)),
                ('water_fixed_amount', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12, validators=[MinValueValidator(Decimal('0.00'))])),
                ('water_rate_per_day', models.DecimalField(decimal_places=2, default=apps.rooms.models.default_water_rate, max_digits=12, validators=[MinValueValidator(Decimal('0.00'))])),
                ('electricity_rate', models.DecimalField(decimal_places=2, default=apps.rooms.models.default_electricity_rate, max_digits=12, validators=[MinValueValidator(Decimal('0.00'))])),
                ('billing_start', models.DateField(blank=True, null=True)),
                ('billing_end', models.DateField(blank=True, null=True)),
                ('billing_rent', models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True)),
                ('billing_electricity', models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True)),
                ('billing_internet', models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True)),
                ('billing_previous_reading', models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True)),
                ('billing_current_reading', models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('admin', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='administered_rooms', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'rooms',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['admin', 'created_at'], name='rooms_admin_i_6b1f2e_idx'),
                    models.Index(fields=['code'], name='rooms_code_4c9a1d_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='RoomMember',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('is_payer', models.BooleanField()),
                ('joined_at', models.DateTimeField(auto_now_add=True)),
                ('room', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='members', to='rooms.room')),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='room_memberships', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'room_members',
                'ordering': ['joined_at'],
                'indexes': [
                    models.Index(fields=['room', 'is_payer'], name='room_member_room_id_8e2c7a_idx'),
                ],
                'unique_together': {('room', 'user')},
            },
        ),
        migrations.CreateModel(
            name='PresenceDay',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('date', models.DateField()),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('member', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='presence_days', to='rooms.roommember')),
            ],
            options={
                'db_table': 'room_presence_days',
                'ordering': ['date'],
                'indexes': [
                    models.Index(fields=['member', 'date'], name='room_presen_member__3d5f9b_idx'),
                ],
                'unique_together': {('member', 'date')},
            },
        ),
    ]
