# Generated migration for the links from material requests and allocations into manufacturing
import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ('inventory', '0001_initial'),
        ('manufacturing', '0001_initial'),
    ]

    operations = [
        migrations.AddField(
            model_name='projectmaterialrequest',
            name='production_request',
            field=models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='material_requests', to='manufacturing.productionrequest'),
        ),
        migrations.AddField(
            model_name='materialallocation',
            name='production_approval',
            field=models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='allocations', to='manufacturing.productionapproval'),
        ),
        migrations.AddField(
            model_name='materialallocation',
            name='production_order',
            field=models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='allocations', to='manufacturing.productionorder'),
        ),
    ]
