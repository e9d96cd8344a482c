"""
Domain errors for the LifeLink engine

Validation problems use DRF's ValidationError, authorization problems use
PermissionDenied. Everything here is a state conflict: the input was fine
but the requisition, response or donor is in a state that forbids the action.
"""
from rest_framework import status
from rest_framework.exceptions import APIException


class StateConflict(APIException):
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'This action conflicts with the current state of the record.'
    default_code = 'state_conflict'

    def __init__(self, detail=None, code=None, existing=None):
        super().__init__(detail, code)
        # serialisable snapshot of the record that blocked the action
        self.existing = existing


class RequisitionInactive(StateConflict):
    default_detail = 'This requisition is no longer active or has expired.'
    default_code = 'requisition_inactive'


class AlreadyResponded(StateConflict):
    default_detail = 'You have already responded to this requisition.'
    default_code = 'already_responded'


class DonorNotEligible(StateConflict):
    default_detail = 'Donor is not currently eligible to donate.'
    default_code = 'donor_not_eligible'


class InvalidTransition(StateConflict):
    default_detail = 'This status change is not allowed.'
    default_code = 'invalid_transition'


class ConcurrentModification(StateConflict):
    default_detail = 'The requisition was modified by someone else. Reload and try again.'
    default_code = 'concurrent_modification'


class BloodGroupRequired(StateConflict):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Please set your blood group first to see requisitions you can help with.'
    default_code = 'blood_group_required'
