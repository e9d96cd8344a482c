import django.core.validators
import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models

BLOOD_GROUP_CHOICES = [('A+', 'A+'), ('A-', 'A-'), ('B+', 'B+'), ('B-', 'B-'), ('AB+', 'AB+'), ('AB-', 'AB-'), ('O+', 'O+'), ('O-', 'O-')]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
        ('requisitions', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='DonorProfile',
            fields=[
                ('user', models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, primary_key=True, related_name='donor_profile', serialize=False, to=settings.AUTH_USER_MODEL)),
                ('blood_group', models.CharField(blank=True, choices=BLOOD_GROUP_CHOICES, db_index=True, max_length=3, null=True)),
                ('is_blood_donor', models.BooleanField(default=False)),
                ('show_phone', models.BooleanField(default=False)),
                ('city', models.CharField(blank=True, max_length=100)),
                ('state', models.CharField(blank=True, max_length=100)),
                ('last_donation_date', models.DateTimeField(blank=True, null=True)),
                ('total_donations', models.PositiveIntegerField(default=0)),
                ('total_units_donated', models.PositiveIntegerField(default=0)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'verbose_name': 'Donor Profile',
                'verbose_name_plural': 'Donor Profiles',
                'ordering': ['-created_at'],
            },
        ),
        migrations.CreateModel(
            name='DonationRecord',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('donation_date', models.DateTimeField()),
                ('location', models.CharField(blank=True, max_length=200)),
                ('units', models.PositiveSmallIntegerField(default=1, validators=[django.core.validators.MinValueValidator(1), django.core.validators.MaxValueValidator(5)])),
                ('notes', models.TextField(blank=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('donor', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='donations', to='donors.donorprofile')),
            ],
            options={
                'verbose_name': 'Donation Record',
                'verbose_name_plural': 'Donation Records',
                'ordering': ['-donation_date', '-id'],
            },
        ),
        migrations.CreateModel(
            name='DonorNotification',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('title', models.CharField(max_length=200)),
                ('message', models.TextField()),
                ('priority', models.CharField(choices=[('HIGH', 'High'), ('MEDIUM', 'Medium'), ('LOW', 'Low')], default='HIGH', max_length=6)),
                ('status', models.CharField(choices=[('PENDING', 'Pending'), ('SENT', 'Sent'), ('FAILED', 'Failed')], default='PENDING', max_length=7)),
                ('last_error', models.CharField(blank=True, max_length=255)),
                ('read_at', models.DateTimeField(blank=True, null=True)),
                ('delivered_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('donor', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='notifications', to='donors.donorprofile')),
                ('requisition', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='donor_notifications', to='requisitions.bloodrequisition')),
            ],
            options={
                'ordering': ['-created_at', '-id'],
                'indexes': [
                    models.Index(fields=['donor', '-created_at'], name='notification_donor_3e81f0_idx'),
                    models.Index(fields=['requisition', 'status'], name='notification_requis_a94c27_idx'),
                ],
                'constraints': [
                    models.UniqueConstraint(fields=('donor', 'requisition'), name='unique_notification_per_donor_requisition'),
                ],
            },
        ),
        migrations.CreateModel(
            name='DonorResponse',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('response', models.CharField(choices=[('WILLING', 'Willing to donate'), ('NOT_AVAILABLE', 'Not available'), ('NOT_SUITABLE', 'Not suitable')], max_length=13)),
                ('message', models.CharField(blank=True, max_length=300)),
                ('responded_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('contact_phone', models.CharField(blank=True, max_length=15, null=True)),
                ('is_contact_revealed', models.BooleanField(default=False)),
                ('donor', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='responses', to='donors.donorprofile')),
                ('requisition', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='responses', to='requisitions.bloodrequisition')),
            ],
            options={
                'ordering': ['-responded_at', '-id'],
                'constraints': [
                    models.UniqueConstraint(fields=('donor', 'requisition'), name='unique_response_per_donor_requisition'),
                    models.CheckConstraint(condition=models.Q(('is_contact_revealed', False), ('response', 'WILLING'), _connector='OR'), name='contact_revealed_only_when_willing'),
                ],
            },
        ),
    ]
