"""API error rendering shared by every app"""
import logging

from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


def _first_message(detail):
    if isinstance(detail, list) and detail:
        return _first_message(detail[0])
    if isinstance(detail, dict) and detail:
        key, value = next(iter(detail.items()))
        message = _first_message(value)
        return message if key in ('detail', 'non_field_errors') else f"{key}: {message}"
    return str(detail)


def api_exception_handler(exc, context):
    """
    Render DRF errors as ``{"success": false, "message": ...}``.

    Field-level validation errors are kept under ``errors``.
    """
    response = exception_handler(exc, context)
    if response is None:
        return None

    detail = response.data
    body = {'success': False, 'message': _first_message(detail)}
    if isinstance(detail, dict) and set(detail) - {'detail'}:
        body['errors'] = detail
    elif isinstance(detail, list):
        body['errors'] = detail

    if response.status_code >= 500:
        view = context.get('view')
        logger.error(f"Server error in {view.__class__.__name__ if view else 'unknown view'}: {body['message']}")
    response.data = body
    return response
