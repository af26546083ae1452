import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='WorkflowNotification',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('notification_type', models.CharField(choices=[('production_request_created', 'Production Request Created'), ('production_request_updated', 'Production Request Updated'), ('po_approved', 'Purchase Order Approved'), ('grn_received', 'GRN Received'), ('grn_overage', 'GRN Overage Detected'), ('credit_note_created', 'Credit Note Created'), ('credit_note_approved', 'Credit Note Approved'), ('material_request_created', 'Material Request Created'), ('material_dispatched', 'Material Dispatched'), ('material_received', 'Material Received'), ('material_discrepancy', 'Material Discrepancy'), ('production_ready', 'Production Ready'), ('verification_passed', 'Verification Passed'), ('verification_failed', 'Verification Failed'), ('production_approved', 'Production Approved'), ('production_rejected', 'Production Rejected'), ('production_started', 'Production Started'), ('production_order_created', 'Production Order Created'), ('stage_started', 'Stage Started'), ('stage_completed', 'Stage Completed'), ('stage_late', 'Stage Late'), ('stage_rework', 'Stage Rework'), ('production_completed', 'Production Completed'), ('material_return_requested', 'Material Return Requested'), ('material_return_approved', 'Material Return Approved'), ('material_return_rejected', 'Material Return Rejected'), ('material_return_processed', 'Material Return Processed')], max_length=40)),
                ('title', models.CharField(max_length=200)),
                ('message', models.TextField()),
                ('priority', models.CharField(choices=[('low', 'Low'), ('normal', 'Normal'), ('medium', 'Medium'), ('high', 'High'), ('urgent', 'Urgent')], default='normal', max_length=10)),
                ('recipient_department', models.CharField(blank=True, choices=[('sales', 'Sales'), ('procurement', 'Procurement'), ('inventory', 'Inventory'), ('manufacturing', 'Manufacturing'), ('qa', 'Quality Assurance'), ('finance', 'Finance'), ('shipment', 'Shipment'), ('admin', 'Administration')], default='', help_text='Set when the notification was fanned out to a whole department', max_length=20)),
                ('related_entity_type', models.CharField(blank=True, default='', max_length=50)),
                ('related_entity_id', models.PositiveIntegerField(blank=True, null=True)),
                ('related_entity_number', models.CharField(blank=True, default='', max_length=40)),
                ('is_read', models.BooleanField(default=False)),
                ('read_at', models.DateTimeField(blank=True, null=True)),
                ('action_required', models.BooleanField(default=False)),
                ('action_taken', models.BooleanField(default=False)),
                ('action_taken_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='created_workflow_notifications', to=settings.AUTH_USER_MODEL)),
                ('recipient', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='workflow_notifications', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'Workflow Notification',
                'verbose_name_plural': 'Workflow Notifications',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['recipient', 'is_read'], name='notificatio_recipie_631e84_idx'),
                    models.Index(fields=['notification_type'], name='notificatio_notific_998818_idx'),
                    models.Index(fields=['related_entity_type', 'related_entity_id'], name='notificatio_related_895bc4_idx'),
                    models.Index(fields=['created_at'], name='notificatio_created_378a16_idx'),
                ],
            },
        ),
    ]
