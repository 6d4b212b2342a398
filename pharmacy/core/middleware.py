import logging

from .utils import record_user_activity

logger = logging.getLogger(__name__)

METHOD_ACTIONS = {
    'GET': 'VIEW',
    'POST': 'CREATE',
    'PUT': 'UPDATE',
    'PATCH': 'UPDATE',
    'DELETE': 'DELETE',
}

# Long-lived or high-frequency endpoints that would flood the trail
SKIPPED_PATH_SUFFIXES = ('/cron/events/', '/cron/events', '/auth/refresh/', '/auth/logout/')


class UserActivityMiddleware:
    """
    Record one activity row per authenticated API request.

    DRF authenticates inside the view and copies the user and token back onto
    the Django request, so the check runs after the response is produced.
    """

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        response = self.get_response(request)
        if request.path.startswith('/api/') and not request.path.endswith(SKIPPED_PATH_SUFFIXES):
            user = getattr(request, 'user', None)
            if user is not None and user.is_authenticated and response.status_code < 400:
                action = METHOD_ACTIONS.get(request.method, request.method)
                record_user_activity(request, action)
        return response
