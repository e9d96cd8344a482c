# requisitions/models.py
from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.utils import timezone

from donors.models import BLOOD_GROUP_CHOICES


class RequisitionQuerySet(models.QuerySet):

    def effectively_active(self, now=None):
        """Persisted ACTIVE and not past expires_at"""
        now = now or timezone.now()
        return self.filter(status=BloodRequisition.ACTIVE, expires_at__gte=now)

    def stale(self, now=None):
        """Persisted ACTIVE but already past expires_at; the sweep's work list"""
        now = now or timezone.now()
        return self.filter(status=BloodRequisition.ACTIVE, expires_at__lt=now)


class BloodRequisition(models.Model):
    URGENCY_CHOICES = [
        ('HIGH', 'High - Life Threatening'),
        ('MEDIUM', 'Medium - Within 24 Hours'),
        ('LOW', 'Low - Planned'),
    ]

    ACTIVE = 'ACTIVE'
    FULFILLED = 'FULFILLED'
    EXPIRED = 'EXPIRED'
    CANCELLED = 'CANCELLED'
    STATUS_CHOICES = [
        (ACTIVE, 'Active'),
        (FULFILLED, 'Fulfilled'),
        (EXPIRED, 'Expired'),
        (CANCELLED, 'Cancelled'),
    ]

    requester = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name='blood_requisitions'
    )

    patient_name = models.CharField(max_length=100)
    hospital_name = models.CharField(max_length=200)
    contact_number = models.CharField(max_length=15)
    alternate_number = models.CharField(max_length=15, blank=True)

    required_blood_group = models.CharField(max_length=3, choices=BLOOD_GROUP_CHOICES, db_index=True)
    units_needed = models.PositiveSmallIntegerField(
        default=1,
        validators=[MinValueValidator(1), MaxValueValidator(10)]
    )
    urgency_level = models.CharField(max_length=6, choices=URGENCY_CHOICES, default='HIGH')
    medical_condition = models.TextField(blank=True, help_text="Patient's medical condition")
    location = models.CharField(max_length=200)
    additional_notes = models.TextField(blank=True)

    required_by_date = models.DateTimeField()
    expires_at = models.DateTimeField(db_index=True)
    allow_contact_reveal = models.BooleanField(default=True)

    status = models.CharField(max_length=9, choices=STATUS_CHOICES, default=ACTIVE, db_index=True)
    status_notes = models.TextField(blank=True)

    # start of the current active window; moved forward by a reuse
    activated_at = models.DateTimeField(default=timezone.now)
    reuse_count = models.PositiveIntegerField(default=0)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = RequisitionQuerySet.as_manager()

    def __str__(self):
        return f"{self.patient_name} @ {self.hospital_name} - {self.required_blood_group} ({self.urgency_level})"

    def is_expired_at(self, now=None):
        now = now or timezone.now()
        return self.expires_at < now

    @property
    def hours_waiting(self):
        """Hours since the current active window opened"""
        delta = timezone.now() - self.activated_at
        return delta.total_seconds() / 3600

    class Meta:
        ordering = ['-created_at']
        verbose_name = 'Blood Requisition'
        verbose_name_plural = 'Blood Requisitions'
        indexes = [
            models.Index(fields=['status', 'expires_at'], name='requisition_status_0c5a1e_idx'),
            models.Index(fields=['requester', '-created_at'], name='requisition_request_7d2b94_idx'),
        ]
