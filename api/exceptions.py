"""
Render every API error in the LifeLink envelope:

    {"success": false, "message": ..., "code": ..., "errors": [{"field": ..., "message": ...}]}

State conflicts also carry the record that blocked the action under "existing".
"""
import logging

from django.core.exceptions import PermissionDenied as DjangoPermissionDenied
from django.core.exceptions import ValidationError as DjangoValidationError
from django.http import Http404
from rest_framework import exceptions
from rest_framework.views import exception_handler

from lifelink.exceptions import StateConflict

logger = logging.getLogger(__name__)


def field_errors(detail, field=''):
    if isinstance(detail, dict):
        for key, value in detail.items():
            yield from field_errors(value, f'{field}.{key}' if field else str(key))
    elif isinstance(detail, list):
        for item in detail:
            yield from field_errors(item, field)
    else:
        yield {'field': field or 'non_field_errors', 'message': str(detail)}


def _normalise(exc):
    if isinstance(exc, Http404):
        return exceptions.NotFound()
    if isinstance(exc, DjangoPermissionDenied):
        return exceptions.PermissionDenied()
    if isinstance(exc, DjangoValidationError):
        detail = exc.message_dict if hasattr(exc, 'error_dict') else exc.messages
        return exceptions.ValidationError(detail)
    return exc


def lifelink_exception_handler(exc, context):
    exc = _normalise(exc)
    response = exception_handler(exc, context)
    if response is None:
        return None

    if isinstance(exc, exceptions.ValidationError):
        body = {
            'success': False,
            'message': 'Validation failed',
            'code': 'validation_error',
            'errors': list(field_errors(exc.detail)),
        }
    else:
        detail = exc.detail
        body = {
            'success': False,
            'message': str(detail),
            'code': getattr(detail, 'code', None) or exc.default_code,
        }

    if isinstance(exc, StateConflict) and exc.existing is not None:
        body['existing'] = exc.existing

    if response.status_code >= 500:
        logger.error(f"API error {response.status_code}: {body['message']}")

    response.data = body
    return response
