from rest_framework import permissions

from common.exceptions import ConfirmationRequiredError


ADMINISTRATOR_GROUP = 'Administrator'


class IsAdministrator(permissions.BasePermission):
    """Allow access only to administrators"""

    def has_permission(self, request, view):
        return bool(
            request.user and
            request.user.is_authenticated and
            (request.user.is_superuser or
             request.user.groups.filter(name=ADMINISTRATOR_GROUP).exists())
        )


def require_confirmation(request):
    """
    Ensure a destructive request carries ``confirm=true``.

    Accepts the flag in the body or the query string, so DELETE requests
    without a body can pass ``?confirm=true``.

    Raises:
        ConfirmationRequiredError: if the flag is missing or false
    """
    raw = request.data.get('confirm') if hasattr(request.data, 'get') else None
    if raw is None:
        raw = request.query_params.get('confirm')

    if isinstance(raw, str):
        confirmed = raw.strip().lower() in {'1', 'true', 'yes'}
    else:
        confirmed = bool(raw)

    if not confirmed:
        raise ConfirmationRequiredError(
            'This action is destructive; resubmit with "confirm": true'
        )
