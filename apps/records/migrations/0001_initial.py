import django.core.serializers.json
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='StoredRecord',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('entity_type', models.CharField(db_index=True, max_length=32)),
                ('record_id', models.CharField(max_length=100)),
                ('payload', models.JSONField(encoder=django.core.serializers.json.DjangoJSONEncoder)),
                ('date', models.DateField(blank=True, db_index=True, null=True)),
                ('total_amount', models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True)),
                ('paid_amount', models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True)),
                ('due_amount', models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True)),
                ('patient_reference', models.CharField(blank=True, db_index=True, default='', max_length=100)),
                ('referring_professional_id', models.CharField(blank=True, default='', max_length=100)),
                ('consulting_professional_id', models.CharField(blank=True, default='', max_length=100)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'verbose_name': 'Stored Record',
                'verbose_name_plural': 'Stored Records',
                'db_table': 'stored_records',
                'ordering': ['created_at', 'id'],
                'constraints': [
                    models.UniqueConstraint(fields=('entity_type', 'record_id'), name='unique_record_per_type'),
                ],
            },
        ),
    ]
