# api/views.py
"""
LifeLink REST endpoints (mounted under /api/lifelink/)

Views only translate HTTP to service calls: each request body or query is
validated by its command serializer first, then handed to the service
layer, which raises DRF exceptions the envelope handler renders.
"""
import logging

from django.core.paginator import EmptyPage, Paginator
from django.utils import timezone
from rest_framework import status
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

from accounts.decorators import ensure_requester_or_admin
from api import serializers as s
from api.throttling import ActionRateThrottle
from donors import matching, profile as donor_profile, responses
from requisitions import dispatch, lifecycle

logger = logging.getLogger(__name__)


def success(data=None, message='', status_code=status.HTTP_200_OK):
    return Response({'success': True, 'message': message, 'data': data}, status=status_code)


def pagination(page, limit, total_count, total_pages, returned):
    return {
        'current_page': page,
        'limit': limit,
        'total_count': total_count,
        'total_pages': total_pages,
        'has_next': (page - 1) * limit + returned < total_count,
        'has_prev': page > 1,
    }


def validated(serializer_class, data):
    serializer = serializer_class(data=data)
    serializer.is_valid(raise_exception=True)
    return serializer.validated_data


class LifeLinkView(APIView):
    throttle_classes = [ActionRateThrottle]
    rate_limit_action = None


# ========================================
# BLOOD PROFILE
# ========================================

class BloodProfileView(LifeLinkView):

    def get(self, request):
        profile, recent = donor_profile.get_blood_profile(request.user)
        data = s.BloodProfileSerializer(profile).data
        data['recent_donations'] = s.DonationRecordSerializer(recent, many=True).data
        return success(data, 'Blood profile retrieved successfully')

    def put(self, request):
        data = validated(s.BloodProfileUpdateSerializer, request.data)
        profile = donor_profile.update_blood_profile(request.user, data)
        return success(s.BloodProfileSerializer(profile).data, 'Blood profile updated successfully')


# ========================================
# DASHBOARD & STATS
# ========================================

class DashboardView(LifeLinkView):

    def get(self, request):
        query = validated(s.DashboardQuerySerializer, request.query_params)
        page = donor_profile.dashboard(
            blood_group=query.get('blood_group'),
            eligible_only=query['eligible_only'],
            city=query.get('city'),
            page=query['page'],
            limit=query['limit'],
        )
        data = {
            'donors': s.DonorCardSerializer(page.donors, many=True).data,
            'pagination': pagination(page.page, page.limit, page.total_count, page.total_pages, len(page.donors)),
            'stats': {
                'total_donors': page.total_count,
                'eligible_donors': page.eligible_donors,
                'blood_group_distribution': page.blood_group_distribution,
            },
            'filters': page.filters,
        }
        return success(data, 'LifeLink dashboard retrieved successfully')


class BloodGroupStatsView(LifeLinkView):
    permission_classes = [AllowAny]

    def get(self, request):
        data = {
            'stats': donor_profile.blood_group_stats(),
            'timestamp': timezone.now().isoformat(),
        }
        return success(data, 'Blood group statistics retrieved successfully')


# ========================================
# DONATIONS
# ========================================

class DonationsView(LifeLinkView):
    rate_limit_action = 'add_donation'

    def get(self, request):
        query = validated(s.PageQuerySerializer, request.query_params)
        profile, donations, paginator = donor_profile.donation_history(request.user, query['page'], query['limit'])
        data = {
            'donations': s.DonationRecordSerializer(donations, many=True).data,
            'summary': {
                'total_donations': profile.total_donations,
                'total_units': profile.total_units_donated,
                'last_donation_date': profile.last_donation_date,
                'eligibility': s.EligibilitySerializer(profile.eligibility).data,
            },
            'pagination': pagination(query['page'], paginator.per_page, paginator.count,
                                     paginator.num_pages if paginator.count else 0, len(donations)),
        }
        return success(data, 'Donation history retrieved successfully')

    def post(self, request):
        data = validated(s.DonationCreateSerializer, request.data)
        donation = donor_profile.record_donation(
            request.user,
            donation_date=data.get('donation_date'),
            location=data['location'],
            units=data['units'],
            notes=data.get('notes') or '',
        )
        return success(s.DonationRecordSerializer(donation).data, 'Donation recorded successfully', status.HTTP_201_CREATED)


class DonationStatusView(LifeLinkView):

    def get(self, request):
        profile, eligibility = donor_profile.donation_status(request.user)
        data = {
            'total_donations': profile.total_donations,
            'last_donation_date': profile.last_donation_date,
            'eligibility': s.EligibilitySerializer(eligibility).data,
        }
        return success(data, 'Donation status retrieved successfully')


# ========================================
# REQUISITIONS
# ========================================

class RequisitionsView(LifeLinkView):
    rate_limit_action = 'create_requisition'

    def get(self, request):
        query = validated(s.RequisitionListQuerySerializer, request.query_params)
        paginator = Paginator(lifecycle.requisitions_for(request.user, query.get('status')), query['limit'])
        try:
            requisitions = list(paginator.page(query['page']).object_list)
        except EmptyPage:
            requisitions = []
        data = {
            'requisitions': s.MyRequisitionSerializer(requisitions, many=True).data,
            'pagination': pagination(query['page'], query['limit'], paginator.count,
                                     paginator.num_pages if paginator.count else 0, len(requisitions)),
        }
        return success(data, 'Requisitions retrieved successfully')

    def post(self, request):
        data = validated(s.RequisitionCreateSerializer, request.data)
        requisition = lifecycle.create_requisition(request.user, data)
        return success(s.RequisitionSerializer(requisition).data, 'Blood requisition created successfully', status.HTTP_201_CREATED)


class RequisitionDetailView(LifeLinkView):

    def get(self, request, requisition_id):
        requisition = lifecycle.get_requisition(requisition_id)
        ensure_requester_or_admin(request.user, requisition, "You can only view your own requisitions")
        data = s.RequisitionSerializer(requisition).data
        data['responses'] = s.DonorResponseSerializer(
            requisition.responses.select_related('donor__user').order_by('-responded_at', '-id'), many=True
        ).data
        data['statistics'] = lifecycle.response_statistics(requisition)
        return success(data, 'Requisition retrieved successfully')


class RequisitionStatusView(LifeLinkView):

    def put(self, request, requisition_id):
        data = validated(s.StatusUpdateSerializer, request.data)
        requisition = lifecycle.update_status(request.user, requisition_id, data['status'], data.get('notes'))
        return success(s.RequisitionSerializer(requisition).data, f'Requisition marked as {requisition.status.lower()}')


class RequisitionReuseView(LifeLinkView):

    def put(self, request, requisition_id):
        data = validated(s.ReuseSerializer, request.data)
        requisition = lifecycle.reuse_requisition(request.user, requisition_id, data.get('required_by_date'))
        return success(s.RequisitionSerializer(requisition).data, 'Requisition reactivated successfully')


class RequisitionRespondView(LifeLinkView):
    rate_limit_action = 'respond'

    def post(self, request, requisition_id):
        data = validated(s.RespondSerializer, request.data)
        donor_response = responses.respond(request.user, requisition_id, data['response'], data.get('message'))
        return success(s.RecordedResponseSerializer(donor_response).data, 'Response recorded successfully', status.HTTP_201_CREATED)


class WillingDonorsView(LifeLinkView):

    def get(self, request, requisition_id):
        requisition, donors, summary = responses.get_willing_donors(request.user, requisition_id)
        data = {
            'requisition': {
                'id': requisition.pk,
                'patient_name': requisition.patient_name,
                'required_blood_group': requisition.required_blood_group,
                'status': requisition.status,
            },
            'willing_donors': s.WillingDonorSerializer(donors, many=True).data,
            'summary': summary,
        }
        return success(data, f"Found {summary['total_willing']} willing donors")


# ========================================
# MATCHING & DISPATCH
# ========================================

class SearchDonorsView(LifeLinkView):
    rate_limit_action = 'search_donors'

    def post(self, request):
        data = validated(s.SearchDonorsSerializer, request.data)
        cards = matching.find_available_donors(data['required_blood_group'], data.get('location'), data['limit'])
        result = {
            'donors': s.DonorCardSerializer(cards, many=True).data,
            'total_found': len(cards),
            'search_criteria': {
                'required_blood_group': data['required_blood_group'],
                'location': data.get('location') or None,
                'limit': data['limit'],
            },
            'summary': {
                'total_found': len(cards),
                'eligible_donors': sum(1 for card in cards if card.eligibility.is_eligible),
            },
        }
        return success(result, f'Found {len(cards)} compatible donors')


class NotifySelectedView(LifeLinkView):
    rate_limit_action = 'notify_donors'

    def post(self, request):
        data = validated(s.NotifySelectedSerializer, request.data)
        result = dispatch.notify_selected(
            request.user, data['requisition_id'], data['donor_ids'],
            custom_message=data.get('custom_message'), resend=data['resend'],
        )
        payload = {'requisition_id': data['requisition_id'], 'notification_result': result.as_dict()}
        return success(payload, f'Emergency notification sent to {result.notifications_sent} donors')


class NotifyAllView(LifeLinkView):
    rate_limit_action = 'notify_donors'

    def post(self, request):
        data = validated(s.NotifyAllSerializer, request.data)
        result = dispatch.notify_all(
            request.user, data['requisition_id'],
            custom_message=data.get('custom_message'), resend=data['resend'],
        )
        payload = {'requisition_id': data['requisition_id'], 'notification_result': result.as_dict()}
        return success(payload, f'Emergency broadcast sent to {result.notifications_sent} donors')


class DiscoverRequisitionsView(LifeLinkView):

    def get(self, request):
        query = validated(s.DiscoverQuerySerializer, request.query_params)
        feed = matching.discover_requisitions(request.user, query.get('urgency_level'), query['page'], query['limit'])
        data = {
            'requisitions': s.FeedItemSerializer(feed.items, many=True).data,
            'donor_info': {'blood_group': feed.donor_blood_group},
            'pagination': pagination(feed.page, feed.limit, feed.total_count, feed.total_pages, len(feed.items)),
        }
        return success(data, f'Found {len(feed.items)} emergency blood requests')


# ========================================
# DONOR NOTIFICATIONS
# ========================================

class NotificationsView(LifeLinkView):

    def get(self, request):
        query = validated(s.NotificationQuerySerializer, request.query_params)
        paginator = Paginator(responses.notifications_for(request.user, query['unread_only']), query['limit'])
        try:
            notifications = list(paginator.page(query['page']).object_list)
        except EmptyPage:
            notifications = []
        data = {
            'notifications': s.DonorNotificationSerializer(notifications, many=True).data,
            'pagination': pagination(query['page'], query['limit'], paginator.count,
                                     paginator.num_pages if paginator.count else 0, len(notifications)),
        }
        return success(data, 'Notifications retrieved successfully')


class NotificationReadView(LifeLinkView):

    def put(self, request, notification_id):
        notification = responses.mark_notification_read(request.user, notification_id)
        return success(s.DonorNotificationSerializer(notification).data, 'Notification marked as read')


class NotificationRespondView(LifeLinkView):
    rate_limit_action = 'respond'

    def post(self, request, notification_id):
        data = validated(s.RespondSerializer, request.data)
        donor_response = responses.respond_to_notification(request.user, notification_id, data['response'], data.get('message'))
        return success(s.RecordedResponseSerializer(donor_response).data, 'Response recorded successfully', status.HTTP_201_CREATED)
