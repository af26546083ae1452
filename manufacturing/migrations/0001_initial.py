import django.db.models.deletion
from decimal import Decimal
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('inventory', '0001_initial'),
        ('procurement', '0001_initial'),
        ('sales', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='ProductionOrder',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('production_number', models.CharField(editable=False, help_text='Auto-generated: PRD-YYYYMMDD-XXXX', max_length=30, unique=True)),
                ('product_name', models.CharField(max_length=200)),
                ('quantity', models.PositiveIntegerField()),
                ('priority', models.CharField(choices=[('low', 'Low'), ('medium', 'Medium'), ('high', 'High'), ('urgent', 'Urgent')], default='medium', max_length=10)),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('in_progress', 'In Progress'), ('on_hold', 'On Hold'), ('completed', 'Completed'), ('cancelled', 'Cancelled')], default='pending', max_length=20)),
                ('planned_start_date', models.DateTimeField()),
                ('planned_end_date', models.DateTimeField()),
                ('actual_start_date', models.DateTimeField(blank=True, null=True)),
                ('actual_end_date', models.DateTimeField(blank=True, null=True)),
                ('progress_percentage', models.PositiveSmallIntegerField(default=0)),
                ('approved_quantity', models.PositiveIntegerField(default=0)),
                ('rejected_quantity', models.PositiveIntegerField(default=0)),
                ('produced_quantity', models.PositiveIntegerField(default=0)),
                ('delay_reason', models.TextField(blank=True)),
                ('notes', models.TextField(blank=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='created_production_orders', to=settings.AUTH_USER_MODEL)),
                ('sales_order', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='production_orders', to='sales.salesorder')),
                ('supervisor', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='supervised_production_orders', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'Production Order',
                'verbose_name_plural': 'Production Orders',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['status'], name='manufacturi_status_f2c0b7_idx'),
                    models.Index(fields=['planned_end_date'], name='manufacturi_planned_e0b22c_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='ProductionStage',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('stage_name', models.CharField(max_length=50)),
                ('stage_order', models.PositiveSmallIntegerField()),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('in_progress', 'In Progress'), ('on_hold', 'On Hold'), ('paused', 'Paused'), ('completed', 'Completed'), ('skipped', 'Skipped')], default='pending', max_length=20)),
                ('planned_start_time', models.DateTimeField(blank=True, null=True)),
                ('planned_end_time', models.DateTimeField(blank=True, null=True)),
                ('actual_start_time', models.DateTimeField(blank=True, null=True)),
                ('actual_end_time', models.DateTimeField(blank=True, null=True)),
                ('actual_duration_hours', models.DecimalField(blank=True, decimal_places=2, max_digits=8, null=True)),
                ('quantity_processed', models.PositiveIntegerField(default=0)),
                ('quantity_approved', models.PositiveIntegerField(default=0)),
                ('quantity_rejected', models.PositiveIntegerField(default=0)),
                ('rework_iteration', models.PositiveSmallIntegerField(default=1)),
                ('is_late', models.BooleanField(default=False)),
                ('is_frozen', models.BooleanField(default=False)),
                ('late_reason', models.TextField(blank=True)),
                ('delay_reason', models.TextField(blank=True)),
                ('quality_approved', models.BooleanField(default=False)),
                ('approved_at', models.DateTimeField(blank=True, null=True)),
                ('rejection_reasons', models.JSONField(blank=True, default=list)),
                ('cost', models.DecimalField(decimal_places=2, default=Decimal('0'), max_digits=12)),
                ('total_material_used', models.DecimalField(decimal_places=3, default=Decimal('0'), max_digits=12)),
                ('notes', models.TextField(blank=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('approved_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='approved_production_stages', to=settings.AUTH_USER_MODEL)),
                ('assigned_to', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='assigned_production_stages', to=settings.AUTH_USER_MODEL)),
                ('production_order', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='stages', to='manufacturing.productionorder')),
            ],
            options={
                'verbose_name': 'Production Stage',
                'verbose_name_plural': 'Production Stages',
                'ordering': ['production_order', 'stage_order'],
                'indexes': [
                    models.Index(fields=['production_order', 'status'], name='manufacturi_product_e5b30a_idx'),
                    models.Index(fields=['is_frozen'], name='manufacturi_is_froz_fa04e2_idx'),
                ],
                'constraints': [
                    models.UniqueConstraint(fields=('production_order', 'stage_order'), name='unique_stage_order_per_order'),
                    models.CheckConstraint(condition=models.Q(('quantity_processed__gte', models.F('quantity_approved') + models.F('quantity_rejected'))), name='stage_approved_plus_rejected_within_processed'),
                ],
            },
        ),
        migrations.CreateModel(
            name='QualityCheckpoint',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=100)),
                ('acceptance_criteria', models.TextField(blank=True)),
                ('checkpoint_order', models.PositiveSmallIntegerField(default=1)),
                ('result', models.CharField(choices=[('pending', 'Pending'), ('passed', 'Passed'), ('failed', 'Failed')], default='pending', max_length=10)),
                ('notes', models.TextField(blank=True)),
                ('checked_at', models.DateTimeField(blank=True, null=True)),
                ('checked_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='quality_checkpoints', to=settings.AUTH_USER_MODEL)),
                ('production_order', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='quality_checkpoints', to='manufacturing.productionorder')),
                ('production_stage', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.CASCADE, related_name='quality_checkpoints', to='manufacturing.productionstage')),
            ],
            options={
                'verbose_name': 'Quality Checkpoint',
                'verbose_name_plural': 'Quality Checkpoints',
                'ordering': ['production_order', 'checkpoint_order'],
            },
        ),
        migrations.CreateModel(
            name='MaterialConsumption',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('material_name', models.CharField(blank=True, max_length=200)),
                ('quantity_used', models.DecimalField(decimal_places=3, max_digits=12)),
                ('unit', models.CharField(choices=[('pieces', 'Pieces'), ('meters', 'Meters'), ('kg', 'Kilograms'), ('rolls', 'Rolls'), ('sets', 'Sets'), ('boxes', 'Boxes')], default='pieces', max_length=10)),
                ('source', models.CharField(choices=[('allocated', 'Allocated'), ('inventory', 'Direct from Inventory')], default='allocated', max_length=10)),
                ('consumed_at', models.DateTimeField(auto_now_add=True)),
                ('notes', models.TextField(blank=True)),
                ('allocation', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='consumptions', to='inventory.materialallocation')),
                ('consumed_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='material_consumptions', to=settings.AUTH_USER_MODEL)),
                ('inventory', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='consumptions', to='inventory.inventoryitem')),
                ('production_order', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='material_consumptions', to='manufacturing.productionorder')),
                ('production_stage', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='material_consumptions', to='manufacturing.productionstage')),
            ],
            options={
                'verbose_name': 'Material Consumption',
                'verbose_name_plural': 'Material Consumptions',
                'ordering': ['-consumed_at'],
            },
        ),
        migrations.CreateModel(
            name='StageReworkHistory',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('iteration_number', models.PositiveSmallIntegerField()),
                ('failure_reason', models.TextField()),
                ('failed_quantity', models.PositiveIntegerField(default=0)),
                ('additional_cost', models.DecimalField(decimal_places=2, default=Decimal('0'), max_digits=12)),
                ('status', models.CharField(default='failed', max_length=20)),
                ('notes', models.TextField(blank=True)),
                ('failed_at', models.DateTimeField(auto_now_add=True)),
                ('failed_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='stage_rework_entries', to=settings.AUTH_USER_MODEL)),
                ('production_stage', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='rework_history', to='manufacturing.productionstage')),
            ],
            options={
                'verbose_name': 'Stage Rework History',
                'verbose_name_plural': 'Stage Rework History',
                'ordering': ['production_stage', 'iteration_number'],
                'constraints': [models.UniqueConstraint(fields=('production_stage', 'iteration_number'), name='unique_rework_iteration_per_stage')],
            },
        ),
        migrations.CreateModel(
            name='Rejection',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('stage_name', models.CharField(max_length=50)),
                ('rejection_reason', models.CharField(max_length=200)),
                ('detailed_reason', models.TextField(blank=True)),
                ('rejected_quantity', models.PositiveIntegerField()),
                ('severity', models.CharField(choices=[('minor', 'Minor'), ('major', 'Major'), ('critical', 'Critical')], default='minor', max_length=10)),
                ('action_taken', models.CharField(default='pending', max_length=20)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('production_order', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='rejections', to='manufacturing.productionorder')),
                ('production_stage', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='rejections', to='manufacturing.productionstage')),
                ('reported_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='reported_rejections', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'Rejection',
                'verbose_name_plural': 'Rejections',
                'ordering': ['-created_at'],
                'indexes': [models.Index(fields=['production_order', 'severity'], name='manufacturi_product_0d8d53_idx')],
            },
        ),
        migrations.CreateModel(
            name='MaterialReturn',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('return_number', models.CharField(editable=False, help_text='Auto-generated: MRT-YYYYMMDD-XXXXX', max_length=30, unique=True)),
                ('total_materials', models.JSONField(default=list, help_text='[{inventory_id, material_name, quantity, unit, reason}]')),
                ('status', models.CharField(choices=[('pending_approval', 'Pending Approval'), ('approved', 'Approved'), ('rejected', 'Rejected'), ('returned', 'Returned')], default='pending_approval', max_length=20)),
                ('notes', models.TextField(blank=True)),
                ('approval_notes', models.TextField(blank=True)),
                ('rejection_reason', models.TextField(blank=True)),
                ('approved_at', models.DateTimeField(blank=True, null=True)),
                ('returned_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('approved_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='approved_material_returns', to=settings.AUTH_USER_MODEL)),
                ('production_order', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='material_returns', to='manufacturing.productionorder')),
                ('requested_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='requested_material_returns', to=settings.AUTH_USER_MODEL)),
                ('returned_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='processed_material_returns', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'Material Return',
                'verbose_name_plural': 'Material Returns',
                'ordering': ['-created_at'],
                'indexes': [models.Index(fields=['production_order', 'status'], name='manufacturi_product_dcbcc1_idx')],
            },
        ),
        migrations.CreateModel(
            name='MaterialReceipt',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('receipt_number', models.CharField(editable=False, help_text='Auto-generated: MRN-RCV-YYYYMMDD-XXXXX', max_length=30, unique=True)),
                ('received_materials', models.JSONField(default=list, help_text='[{inventory_id, material_name, quantity_received, unit}]')),
                ('has_discrepancy', models.BooleanField(default=False)),
                ('discrepancy_details', models.JSONField(blank=True, default=dict)),
                ('receipt_notes', models.TextField(blank=True)),
                ('verification_status', models.CharField(choices=[('pending', 'Pending'), ('verified', 'Verified'), ('failed', 'Failed')], default='pending', max_length=20)),
                ('received_at', models.DateTimeField(auto_now_add=True)),
                ('dispatch', models.OneToOneField(on_delete=django.db.models.deletion.PROTECT, related_name='receipt', to='inventory.materialdispatch')),
                ('mrn_request', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='receipts', to='inventory.projectmaterialrequest')),
                ('received_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='material_receipts', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'Material Receipt',
                'verbose_name_plural': 'Material Receipts',
                'ordering': ['-received_at'],
            },
        ),
        migrations.CreateModel(
            name='MaterialVerification',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('verification_number', models.CharField(editable=False, help_text='Auto-generated: MRN-VRF-YYYYMMDD-XXXXX', max_length=30, unique=True)),
                ('verification_checklist', models.JSONField(blank=True, default=dict)),
                ('overall_result', models.CharField(choices=[('passed', 'Passed'), ('failed', 'Failed')], max_length=10)),
                ('issues_found', models.JSONField(blank=True, default=list)),
                ('verification_notes', models.TextField(blank=True)),
                ('approval_status', models.CharField(choices=[('pending', 'Pending'), ('approved', 'Approved'), ('rejected', 'Rejected')], default='pending', max_length=20)),
                ('verified_at', models.DateTimeField(auto_now_add=True)),
                ('mrn_request', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='verifications', to='inventory.projectmaterialrequest')),
                ('receipt', models.OneToOneField(on_delete=django.db.models.deletion.PROTECT, related_name='verification', to='manufacturing.materialreceipt')),
                ('verified_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='material_verifications', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'Material Verification',
                'verbose_name_plural': 'Material Verifications',
                'ordering': ['-verified_at'],
            },
        ),
        migrations.CreateModel(
            name='ProductionApproval',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('approval_number', models.CharField(editable=False, help_text='Auto-generated: PRD-APV-YYYYMMDD-XXXXX', max_length=30, unique=True)),
                ('approval_status', models.CharField(choices=[('approved', 'Approved'), ('rejected', 'Rejected')], max_length=10)),
                ('material_allocations', models.JSONField(blank=True, default=list)),
                ('production_start_date', models.DateField(blank=True, null=True)),
                ('approval_notes', models.TextField(blank=True)),
                ('rejection_reason', models.TextField(blank=True)),
                ('conditions', models.TextField(blank=True)),
                ('production_started', models.BooleanField(default=False)),
                ('production_started_at', models.DateTimeField(blank=True, null=True)),
                ('approved_at', models.DateTimeField(auto_now_add=True)),
                ('approved_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='production_approvals', to=settings.AUTH_USER_MODEL)),
                ('mrn_request', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='production_approvals', to='inventory.projectmaterialrequest')),
                ('production_order', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='started_from_approvals', to='manufacturing.productionorder')),
                ('verification', models.OneToOneField(on_delete=django.db.models.deletion.PROTECT, related_name='production_approval', to='manufacturing.materialverification')),
            ],
            options={
                'verbose_name': 'Production Approval',
                'verbose_name_plural': 'Production Approvals',
                'ordering': ['-approved_at'],
            },
        ),
        migrations.CreateModel(
            name='ProductionRequest',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('request_number', models.CharField(editable=False, help_text='Auto-generated: PRQ-YYYYMMDD-XXXXX (sales) or PR-YYYYMMDD-XXXXX (purchase order)', max_length=30, unique=True)),
                ('project_name', models.CharField(blank=True, max_length=200)),
                ('product_name', models.CharField(max_length=200)),
                ('product_description', models.TextField(blank=True)),
                ('product_specifications', models.JSONField(blank=True, default=dict)),
                ('quantity', models.DecimalField(decimal_places=3, max_digits=12)),
                ('unit', models.CharField(choices=[('pieces', 'Pieces'), ('meters', 'Meters'), ('kg', 'Kilograms'), ('rolls', 'Rolls'), ('sets', 'Sets'), ('boxes', 'Boxes')], default='pieces', max_length=10)),
                ('priority', models.CharField(choices=[('low', 'Low'), ('medium', 'Medium'), ('high', 'High'), ('urgent', 'Urgent')], default='medium', max_length=10)),
                ('required_date', models.DateField(blank=True, null=True)),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('reviewed', 'Reviewed'), ('in_production', 'In Production'), ('completed', 'Completed'), ('cancelled', 'Cancelled')], default='pending', max_length=20)),
                ('sales_notes', models.TextField(blank=True)),
                ('manufacturing_notes', models.TextField(blank=True)),
                ('reviewed_at', models.DateTimeField(blank=True, null=True)),
                ('completed_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('production_order', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='production_requests', to='manufacturing.productionorder')),
                ('purchase_order', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='production_requests', to='procurement.purchaseorder')),
                ('requested_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='production_requests', to=settings.AUTH_USER_MODEL)),
                ('reviewed_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='reviewed_production_requests', to=settings.AUTH_USER_MODEL)),
                ('sales_order', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='production_requests', to='sales.salesorder')),
            ],
            options={
                'verbose_name': 'Production Request',
                'verbose_name_plural': 'Production Requests',
                'ordering': ['-created_at'],
                'indexes': [models.Index(fields=['status'], name='manufacturi_status_cab7bd_idx')],
                'constraints': [models.UniqueConstraint(condition=models.Q(('status', 'cancelled'), _negated=True), fields=('sales_order',), name='one_open_production_request_per_sales_order')],
            },
        ),
        migrations.AddField(
            model_name='productionorder',
            name='production_approval',
            field=models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='production_orders', to='manufacturing.productionapproval'),
        ),
    ]
