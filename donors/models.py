from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.utils import timezone

from algorithms.blood_compatibility import BLOOD_GROUPS
from algorithms.eligibility import check_eligibility

BLOOD_GROUP_CHOICES = [(group, group) for group in BLOOD_GROUPS]


# ---------------------------
# Donor Profile
# ---------------------------
class DonorProfile(models.Model):
    """Blood profile of a registered user; the donor id is the user id"""
    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        primary_key=True,
        related_name='donor_profile'
    )

    blood_group = models.CharField(max_length=3, choices=BLOOD_GROUP_CHOICES, null=True, blank=True, db_index=True)
    is_blood_donor = models.BooleanField(default=False)
    show_phone = models.BooleanField(default=False)

    # Coarse location
    city = models.CharField(max_length=100, blank=True)
    state = models.CharField(max_length=100, blank=True)

    # Donation tracking
    last_donation_date = models.DateTimeField(null=True, blank=True)
    total_donations = models.PositiveIntegerField(default=0)
    total_units_donated = models.PositiveIntegerField(default=0)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    @property
    def donor_id(self):
        return self.user_id

    @property
    def eligibility(self):
        return check_eligibility(self.last_donation_date)

    @property
    def can_donate(self) -> bool:
        return self.eligibility.is_eligible

    @property
    def location(self):
        return ', '.join(part for part in (self.city, self.state) if part)

    def __str__(self):
        return f"{self.user.display_name} ({self.blood_group or 'unknown'})"

    class Meta:
        verbose_name = "Donor Profile"
        verbose_name_plural = "Donor Profiles"
        ordering = ['-created_at']


class DonationRecord(models.Model):
    donor = models.ForeignKey(
        DonorProfile,
        on_delete=models.CASCADE,
        related_name='donations'
    )

    donation_date = models.DateTimeField()
    location = models.CharField(max_length=200, blank=True)
    units = models.PositiveSmallIntegerField(
        default=1,
        validators=[MinValueValidator(1), MaxValueValidator(5)]
    )
    notes = models.TextField(blank=True)

    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.donor.user.display_name} | {self.donation_date:%Y-%m-%d} | {self.units} unit(s)"

    class Meta:
        ordering = ['-donation_date', '-id']
        verbose_name = "Donation Record"
        verbose_name_plural = "Donation Records"


class DonorNotification(models.Model):
    PRIORITY_CHOICES = [
        ('HIGH', 'High'),
        ('MEDIUM', 'Medium'),
        ('LOW', 'Low'),
    ]

    STATUS_PENDING = 'PENDING'
    STATUS_SENT = 'SENT'
    STATUS_FAILED = 'FAILED'
    STATUS_CHOICES = [
        (STATUS_PENDING, 'Pending'),
        (STATUS_SENT, 'Sent'),
        (STATUS_FAILED, 'Failed'),
    ]

    donor = models.ForeignKey(
        DonorProfile,
        on_delete=models.CASCADE,
        related_name='notifications'
    )
    requisition = models.ForeignKey(
        'requisitions.BloodRequisition',
        on_delete=models.CASCADE,
        related_name='donor_notifications'
    )

    title = models.CharField(max_length=200)
    message = models.TextField()
    priority = models.CharField(max_length=6, choices=PRIORITY_CHOICES, default='HIGH')
    status = models.CharField(max_length=7, choices=STATUS_CHOICES, default=STATUS_PENDING)
    last_error = models.CharField(max_length=255, blank=True)

    read_at = models.DateTimeField(null=True, blank=True)
    delivered_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    @property
    def is_read(self):
        return self.read_at is not None

    def __str__(self):
        return f"Notification → donor #{self.donor_id} | Requisition #{self.requisition_id} ({self.status})"

    class Meta:
        ordering = ['-created_at', '-id']
        constraints = [
            models.UniqueConstraint(fields=['donor', 'requisition'], name='unique_notification_per_donor_requisition'),
        ]
        indexes = [
            models.Index(fields=['donor', '-created_at'], name='notification_donor_3e81f0_idx'),
            models.Index(fields=['requisition', 'status'], name='notification_requis_a94c27_idx'),
        ]


class DonorResponse(models.Model):
    WILLING = 'WILLING'
    NOT_AVAILABLE = 'NOT_AVAILABLE'
    NOT_SUITABLE = 'NOT_SUITABLE'
    RESPONSE_CHOICES = [
        (WILLING, 'Willing to donate'),
        (NOT_AVAILABLE, 'Not available'),
        (NOT_SUITABLE, 'Not suitable'),
    ]

    donor = models.ForeignKey(
        DonorProfile,
        on_delete=models.CASCADE,
        related_name='responses'
    )
    requisition = models.ForeignKey(
        'requisitions.BloodRequisition',
        on_delete=models.CASCADE,
        related_name='responses'
    )

    response = models.CharField(max_length=13, choices=RESPONSE_CHOICES)
    message = models.CharField(max_length=300, blank=True)
    responded_at = models.DateTimeField(default=timezone.now)

    contact_phone = models.CharField(max_length=15, null=True, blank=True)
    is_contact_revealed = models.BooleanField(default=False)

    def __str__(self):
        return f"Donor #{self.donor_id} → {self.response} (Requisition #{self.requisition_id})"

    class Meta:
        ordering = ['-responded_at', '-id']
        constraints = [
            models.UniqueConstraint(fields=['donor', 'requisition'], name='unique_response_per_donor_requisition'),
            models.CheckConstraint(
                condition=models.Q(is_contact_revealed=False) | models.Q(response='WILLING'),
                name='contact_revealed_only_when_willing',
            ),
        ]
