import django.core.validators
import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='BloodRequisition',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('patient_name', models.CharField(max_length=100)),
                ('hospital_name', models.CharField(max_length=200)),
                ('contact_number', models.CharField(max_length=15)),
                ('alternate_number', models.CharField(blank=True, max_length=15)),
                ('required_blood_group', models.CharField(choices=[('A+', 'A+'), ('A-', 'A-'), ('B+', 'B+'), ('B-', 'B-'), ('AB+', 'AB+'), ('AB-', 'AB-'), ('O+', 'O+'), ('O-', 'O-')], db_index=True, max_length=3)),
                ('units_needed', models.PositiveSmallIntegerField(default=1, validators=[django.core.validators.MinValueValidator(1), django.core.validators.MaxValueValidator(10)])),
                ('urgency_level', models.CharField(choices=[('HIGH', 'High - Life Threatening'), ('MEDIUM', 'Medium - Within 24 Hours'), ('LOW', 'Low - Planned')], default='HIGH', max_length=6)),
                ('medical_condition', models.TextField(blank=True, help_text="Patient's medical condition")),
                ('location', models.CharField(max_length=200)),
                ('additional_notes', models.TextField(blank=True)),
                ('required_by_date', models.DateTimeField()),
                ('expires_at', models.DateTimeField(db_index=True)),
                ('allow_contact_reveal', models.BooleanField(default=True)),
                ('status', models.CharField(choices=[('ACTIVE', 'Active'), ('FULFILLED', 'Fulfilled'), ('EXPIRED', 'Expired'), ('CANCELLED', 'Cancelled')], db_index=True, default='ACTIVE', max_length=9)),
                ('status_notes', models.TextField(blank=True)),
                ('activated_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('reuse_count', models.PositiveIntegerField(default=0)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('requester', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='blood_requisitions', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'Blood Requisition',
                'verbose_name_plural': 'Blood Requisitions',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['status', 'expires_at'], name='requisition_status_0c5a1e_idx'),
                    models.Index(fields=['requester', '-created_at'], name='requisition_request_7d2b94_idx'),
                ],
            },
        ),
    ]
