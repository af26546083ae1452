import django.core.validators
import django.db.models.deletion
from decimal import Decimal
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('sales', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='InventoryItem',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('item_code', models.CharField(max_length=50, unique=True)),
                ('name', models.CharField(max_length=200)),
                ('category', models.CharField(blank=True, max_length=50)),
                ('unit', models.CharField(choices=[('pieces', 'Pieces'), ('meters', 'Meters'), ('kg', 'Kilograms'), ('rolls', 'Rolls'), ('sets', 'Sets'), ('boxes', 'Boxes')], default='pieces', max_length=10)),
                ('quantity_in_stock', models.DecimalField(decimal_places=3, default=Decimal('0'), max_digits=12)),
                ('reorder_level', models.DecimalField(decimal_places=3, default=Decimal('0'), max_digits=12)),
                ('unit_cost', models.DecimalField(decimal_places=2, default=Decimal('0'), max_digits=12)),
                ('location', models.CharField(blank=True, max_length=100)),
                ('is_active', models.BooleanField(default=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'verbose_name': 'Inventory Item',
                'verbose_name_plural': 'Inventory Items',
                'ordering': ['item_code'],
                'constraints': [models.CheckConstraint(condition=models.Q(('quantity_in_stock__gte', 0)), name='inventory_item_non_negative_stock')],
            },
        ),
        migrations.CreateModel(
            name='InventoryMovement',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('movement_type', models.CharField(choices=[('grn_receipt', 'GRN Receipt'), ('dispatch_to_manufacturing', 'Dispatch to Manufacturing'), ('production_return', 'Production Return'), ('production_consumption', 'Production Consumption'), ('adjustment', 'Adjustment')], max_length=30)),
                ('quantity', models.DecimalField(decimal_places=3, max_digits=12)),
                ('balance_after', models.DecimalField(decimal_places=3, max_digits=12)),
                ('reference_type', models.CharField(blank=True, max_length=50)),
                ('reference_id', models.PositiveIntegerField(blank=True, null=True)),
                ('reference_number', models.CharField(blank=True, max_length=40)),
                ('notes', models.TextField(blank=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('inventory', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='movements', to='inventory.inventoryitem')),
                ('performed_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='inventory_movements', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'Inventory Movement',
                'verbose_name_plural': 'Inventory Movements',
                'ordering': ['-created_at', '-id'],
                'indexes': [
                    models.Index(fields=['inventory', 'created_at'], name='inventory_i_invento_4ccb95_idx'),
                    models.Index(fields=['reference_type', 'reference_id'], name='inventory_i_referen_0d8590_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='ProjectMaterialRequest',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('request_number', models.CharField(editable=False, help_text='Auto-generated: MRN-YYYYMMDD-XXXXX', max_length=30, unique=True)),
                ('project_name', models.CharField(max_length=200)),
                ('requesting_department', models.CharField(choices=[('sales', 'Sales'), ('procurement', 'Procurement'), ('inventory', 'Inventory'), ('manufacturing', 'Manufacturing'), ('qa', 'Quality Assurance'), ('finance', 'Finance'), ('shipment', 'Shipment'), ('admin', 'Administration')], default='manufacturing', max_length=20)),
                ('materials_requested', models.JSONField(default=list, help_text='[{inventory_id, material_name, quantity, unit}]')),
                ('priority', models.CharField(choices=[('low', 'Low'), ('medium', 'Medium'), ('high', 'High'), ('urgent', 'Urgent')], default='medium', max_length=10)),
                ('required_date', models.DateField(blank=True, null=True)),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('materials_issued', 'Materials Issued'), ('partially_issued', 'Partially Issued'), ('issued', 'Issued'), ('materials_ready', 'Materials Ready'), ('completed', 'Completed'), ('cancelled', 'Cancelled')], default='pending', max_length=20)),
                ('notes', models.TextField(blank=True)),
                ('processed_at', models.DateTimeField(blank=True, null=True)),
                ('completed_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='created_material_requests', to=settings.AUTH_USER_MODEL)),
                ('processed_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='processed_material_requests', to=settings.AUTH_USER_MODEL)),
                ('sales_order', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='material_requests', to='sales.salesorder')),
            ],
            options={
                'verbose_name': 'Project Material Request',
                'verbose_name_plural': 'Project Material Requests',
                'ordering': ['-created_at'],
                'indexes': [models.Index(fields=['status'], name='inventory_p_status_41a2a6_idx')],
            },
        ),
        migrations.CreateModel(
            name='MaterialDispatch',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('dispatch_number', models.CharField(editable=False, help_text='Auto-generated: DSP-YYYYMMDD-XXXXX', max_length=30, unique=True)),
                ('project_name', models.CharField(blank=True, max_length=200)),
                ('dispatched_materials', models.JSONField(default=list, help_text='[{inventory_id, material_name, quantity_dispatched, unit}]')),
                ('total_items', models.PositiveIntegerField(default=0)),
                ('dispatch_notes', models.TextField(blank=True)),
                ('received_status', models.CharField(choices=[('pending', 'Pending'), ('received', 'Received'), ('discrepancy', 'Discrepancy')], default='pending', max_length=20)),
                ('dispatched_at', models.DateTimeField(auto_now_add=True)),
                ('dispatched_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='material_dispatches', to=settings.AUTH_USER_MODEL)),
                ('mrn_request', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='dispatches', to='inventory.projectmaterialrequest')),
            ],
            options={
                'verbose_name': 'Material Dispatch',
                'verbose_name_plural': 'Material Dispatches',
                'ordering': ['-dispatched_at'],
                'indexes': [models.Index(fields=['mrn_request', 'received_status'], name='inventory_m_mrn_req_1ab6f5_idx')],
            },
        ),
        migrations.CreateModel(
            name='MaterialAllocation',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('material_name', models.CharField(max_length=200)),
                ('unit', models.CharField(choices=[('pieces', 'Pieces'), ('meters', 'Meters'), ('kg', 'Kilograms'), ('rolls', 'Rolls'), ('sets', 'Sets'), ('boxes', 'Boxes')], default='pieces', max_length=10)),
                ('quantity_allocated', models.DecimalField(decimal_places=3, max_digits=12, validators=[django.core.validators.MinValueValidator(Decimal('0'))])),
                ('quantity_consumed', models.DecimalField(decimal_places=3, default=Decimal('0'), max_digits=12)),
                ('quantity_remaining', models.DecimalField(decimal_places=3, default=Decimal('0'), max_digits=12)),
                ('quantity_returned', models.DecimalField(decimal_places=3, default=Decimal('0'), max_digits=12)),
                ('is_reconciled', models.BooleanField(default=False)),
                ('reconciled_at', models.DateTimeField(blank=True, null=True)),
                ('allocated_at', models.DateTimeField(auto_now_add=True)),
                ('allocated_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='material_allocations', to=settings.AUTH_USER_MODEL)),
                ('inventory', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='allocations', to='inventory.inventoryitem')),
                ('mrn_request', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='allocations', to='inventory.projectmaterialrequest')),
            ],
            options={
                'verbose_name': 'Material Allocation',
                'verbose_name_plural': 'Material Allocations',
                'ordering': ['allocated_at'],
            },
        ),
    ]
