# api/serializers.py
"""
Request commands (validated before any domain logic runs) and response shapes
"""
from django.conf import settings
from django.core.validators import RegexValidator
from django.utils import timezone
from rest_framework import serializers

from algorithms.blood_compatibility import normalize_blood_group
from donors.models import DonationRecord, DonorNotification, DonorProfile, DonorResponse
from requisitions.models import BloodRequisition

mobile_number = RegexValidator(r'^[6-9]\d{9}$', 'Please provide a valid 10-digit mobile number')


class BloodGroupField(serializers.CharField):
    """Accepts 'O-', 'o−' or 'O_NEGATIVE'; always yields the canonical spelling"""

    def to_internal_value(self, data):
        value = super().to_internal_value(data)
        try:
            return normalize_blood_group(value)
        except ValueError as e:
            raise serializers.ValidationError(str(e))


# ========================================
# COMMANDS
# ========================================

class BloodProfileUpdateSerializer(serializers.Serializer):
    blood_group = BloodGroupField(required=False, allow_null=True)
    is_blood_donor = serializers.BooleanField(required=False)
    show_phone = serializers.BooleanField(required=False)
    city = serializers.CharField(required=False, allow_blank=True, max_length=100)
    state = serializers.CharField(required=False, allow_blank=True, max_length=100)


class DashboardQuerySerializer(serializers.Serializer):
    blood_group = BloodGroupField(required=False)
    eligible_only = serializers.BooleanField(required=False, default=False)
    city = serializers.CharField(required=False, allow_blank=True, max_length=100)
    page = serializers.IntegerField(required=False, min_value=1, default=1)
    limit = serializers.IntegerField(required=False, min_value=1, max_value=50, default=20)


class PageQuerySerializer(serializers.Serializer):
    page = serializers.IntegerField(required=False, min_value=1, default=1)
    limit = serializers.IntegerField(required=False, min_value=1, max_value=50, default=10)


class DonationCreateSerializer(serializers.Serializer):
    donation_date = serializers.DateTimeField(required=False)
    location = serializers.CharField(min_length=3, max_length=200)
    units = serializers.IntegerField(required=False, min_value=1, max_value=5, default=1)
    notes = serializers.CharField(required=False, allow_blank=True, allow_null=True, max_length=500)

    def validate_donation_date(self, value):
        if value > timezone.now():
            raise serializers.ValidationError('Donation date cannot be in the future')
        return value


class RequisitionCreateSerializer(serializers.Serializer):
    patient_name = serializers.CharField(min_length=2, max_length=100)
    hospital_name = serializers.CharField(min_length=3, max_length=200)
    contact_number = serializers.CharField(validators=[mobile_number])
    alternate_number = serializers.CharField(required=False, allow_blank=True, validators=[mobile_number])
    required_blood_group = BloodGroupField()
    units_needed = serializers.IntegerField(required=False, min_value=1, max_value=10, default=1)
    urgency_level = serializers.ChoiceField(choices=['HIGH', 'MEDIUM', 'LOW'], required=False, default='HIGH')
    medical_condition = serializers.CharField(required=False, allow_blank=True, max_length=1000)
    location = serializers.CharField(min_length=3, max_length=200)
    additional_notes = serializers.CharField(required=False, allow_blank=True, max_length=500)
    required_by_date = serializers.DateTimeField()
    allow_contact_reveal = serializers.BooleanField(required=False, default=True)

    def validate_required_by_date(self, value):
        if value <= timezone.now():
            raise serializers.ValidationError('Required by date cannot be in the past')
        return value


class RequisitionListQuerySerializer(PageQuerySerializer):
    status = serializers.ChoiceField(choices=[choice for choice, _ in BloodRequisition.STATUS_CHOICES], required=False)


class StatusUpdateSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=[choice for choice, _ in BloodRequisition.STATUS_CHOICES])
    notes = serializers.CharField(required=False, allow_blank=True, max_length=500)


class ReuseSerializer(serializers.Serializer):
    required_by_date = serializers.DateTimeField(required=False)

    def validate_required_by_date(self, value):
        if value <= timezone.now():
            raise serializers.ValidationError('Required by date cannot be in the past')
        return value


class RespondSerializer(serializers.Serializer):
    response = serializers.ChoiceField(choices=[choice for choice, _ in DonorResponse.RESPONSE_CHOICES])
    message = serializers.CharField(required=False, allow_blank=True, allow_null=True, max_length=300)


class SearchDonorsSerializer(serializers.Serializer):
    required_blood_group = BloodGroupField()
    location = serializers.CharField(required=False, allow_blank=True, max_length=100)
    limit = serializers.IntegerField(required=False, min_value=1, max_value=100, default=20)


class NotifySelectedSerializer(serializers.Serializer):
    requisition_id = serializers.IntegerField()
    donor_ids = serializers.ListField(child=serializers.IntegerField(), allow_empty=False)
    custom_message = serializers.CharField(required=False, allow_blank=True, allow_null=True, max_length=200)
    resend = serializers.BooleanField(required=False, default=False)

    def validate_donor_ids(self, value):
        cap = settings.LIFELINK_SELECTED_CAP
        if len(value) > cap:
            raise serializers.ValidationError(f'Cannot notify more than {cap} donors at once')
        return value


class NotifyAllSerializer(serializers.Serializer):
    requisition_id = serializers.IntegerField()
    custom_message = serializers.CharField(required=False, allow_blank=True, allow_null=True, max_length=200)
    resend = serializers.BooleanField(required=False, default=False)


class DiscoverQuerySerializer(serializers.Serializer):
    urgency_level = serializers.ChoiceField(choices=['HIGH', 'MEDIUM', 'LOW'], required=False)
    page = serializers.IntegerField(required=False, min_value=1, default=1)
    limit = serializers.IntegerField(required=False, min_value=1, max_value=100, default=20)


class NotificationQuerySerializer(PageQuerySerializer):
    unread_only = serializers.BooleanField(required=False, default=False)


# ========================================
# RESPONSE SHAPES
# ========================================

class EligibilitySerializer(serializers.Serializer):
    is_eligible = serializers.BooleanField()
    next_eligible_date = serializers.DateTimeField(allow_null=True)
    days_remaining = serializers.IntegerField()
    days_since_last_donation = serializers.IntegerField(allow_null=True)
    message = serializers.CharField()


class DonationRecordSerializer(serializers.ModelSerializer):
    class Meta:
        model = DonationRecord
        fields = ['id', 'donation_date', 'location', 'units', 'notes', 'created_at']


class BloodProfileSerializer(serializers.ModelSerializer):
    donor_id = serializers.IntegerField(source='pk', read_only=True)
    name = serializers.CharField(source='user.display_name', read_only=True)
    email = serializers.EmailField(source='user.email', read_only=True)
    eligibility = EligibilitySerializer(read_only=True)

    class Meta:
        model = DonorProfile
        fields = [
            'donor_id',
            'name',
            'email',
            'blood_group',
            'is_blood_donor',
            'show_phone',
            'city',
            'state',
            'last_donation_date',
            'total_donations',
            'total_units_donated',
            'eligibility',
        ]


class DonorCardSerializer(serializers.Serializer):
    donor_id = serializers.IntegerField()
    name = serializers.CharField()
    blood_group = serializers.CharField()
    total_donations = serializers.IntegerField()
    location = serializers.CharField()
    contact_available = serializers.BooleanField()
    phone = serializers.CharField(allow_null=True)
    eligibility = EligibilitySerializer()


class RequisitionSerializer(serializers.ModelSerializer):
    is_expired = serializers.SerializerMethodField()

    class Meta:
        model = BloodRequisition
        fields = [
            'id',
            'patient_name',
            'hospital_name',
            'contact_number',
            'alternate_number',
            'required_blood_group',
            'units_needed',
            'urgency_level',
            'medical_condition',
            'location',
            'additional_notes',
            'required_by_date',
            'expires_at',
            'allow_contact_reveal',
            'status',
            'status_notes',
            'activated_at',
            'reuse_count',
            'is_expired',
            'created_at',
            'updated_at',
        ]

    def get_is_expired(self, obj):
        return obj.status == BloodRequisition.EXPIRED or obj.is_expired_at()


class MyRequisitionSerializer(RequisitionSerializer):
    response_count = serializers.IntegerField(read_only=True)
    willing_count = serializers.IntegerField(read_only=True)
    notification_count = serializers.IntegerField(read_only=True)

    class Meta(RequisitionSerializer.Meta):
        fields = RequisitionSerializer.Meta.fields + ['response_count', 'willing_count', 'notification_count']


def seeker_contact(requisition):
    """The requester's contact as shown to donors; the phone only when the seeker opted in"""
    return {
        'id': requisition.requester_id,
        'name': requisition.requester.display_name,
        'phone': requisition.contact_number if requisition.allow_contact_reveal else None,
    }


class DonorResponseSerializer(serializers.ModelSerializer):
    donor_id = serializers.IntegerField(read_only=True)
    donor_name = serializers.CharField(source='donor.user.display_name', read_only=True)
    donor_blood_group = serializers.CharField(source='donor.blood_group', read_only=True)
    contact_phone = serializers.SerializerMethodField()

    class Meta:
        model = DonorResponse
        fields = [
            'id',
            'donor_id',
            'donor_name',
            'donor_blood_group',
            'response',
            'message',
            'responded_at',
            'is_contact_revealed',
            'contact_phone',
        ]

    def get_contact_phone(self, obj):
        return obj.contact_phone if obj.is_contact_revealed else None


class RecordedResponseSerializer(DonorResponseSerializer):
    """A donor's own freshly recorded response, with the seeker to reach"""
    seeker = serializers.SerializerMethodField()

    class Meta(DonorResponseSerializer.Meta):
        fields = DonorResponseSerializer.Meta.fields + ['seeker']

    def get_seeker(self, obj):
        return seeker_contact(obj.requisition)


class WillingDonorSerializer(serializers.Serializer):
    donor_id = serializers.IntegerField()
    name = serializers.CharField()
    blood_group = serializers.CharField()
    total_donations = serializers.IntegerField()
    location = serializers.CharField()
    message = serializers.CharField(allow_blank=True)
    responded_at = serializers.DateTimeField()
    is_contact_revealed = serializers.BooleanField()
    contact_phone = serializers.CharField(allow_null=True)
    eligibility = EligibilitySerializer()


class FeedItemSerializer(serializers.Serializer):
    """One discovered requisition, as seen by a compatible donor"""

    def to_representation(self, item):
        requisition = item.requisition
        data = {
            'id': requisition.pk,
            'patient_name': requisition.patient_name,
            'hospital_name': requisition.hospital_name,
            'required_blood_group': requisition.required_blood_group,
            'units_needed': requisition.units_needed,
            'urgency_level': requisition.urgency_level,
            'medical_condition': requisition.medical_condition,
            'location': requisition.location,
            'additional_notes': requisition.additional_notes,
            'required_by_date': serializers.DateTimeField().to_representation(requisition.required_by_date),
            'expires_at': serializers.DateTimeField().to_representation(requisition.expires_at),
            'created_at': serializers.DateTimeField().to_representation(requisition.created_at),
            'compatibility': {
                'is_compatible': True,
                'donor_blood_group': item.donor_blood_group,
                'can_donate': True,
            },
            'response_status': {'has_responded': item.has_responded},
            'seeker': seeker_contact(requisition),
            'statistics': {
                'total_responses': requisition.response_count,
                'total_notifications_sent': requisition.notification_count,
            },
            'time_remaining': item.time_remaining,
        }
        if item.has_responded:
            data['response_status'].update({
                'response': item.response,
                'responded_at': serializers.DateTimeField().to_representation(item.responded_at),
            })
        return data


class DonorNotificationSerializer(serializers.ModelSerializer):
    is_read = serializers.BooleanField(read_only=True)
    requisition = serializers.SerializerMethodField()

    class Meta:
        model = DonorNotification
        fields = ['id', 'title', 'message', 'priority', 'status', 'is_read', 'read_at', 'delivered_at', 'created_at', 'requisition']

    def get_requisition(self, obj):
        requisition = obj.requisition
        return {
            'id': requisition.pk,
            'patient_name': requisition.patient_name,
            'hospital_name': requisition.hospital_name,
            'required_blood_group': requisition.required_blood_group,
            'urgency_level': requisition.urgency_level,
            'location': requisition.location,
            'required_by_date': serializers.DateTimeField().to_representation(requisition.required_by_date),
            'expires_at': serializers.DateTimeField().to_representation(requisition.expires_at),
        }
