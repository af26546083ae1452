from rest_framework.permissions import BasePermission

from .capabilities import require_capability


class HasOperationCapability(BasePermission):
    """
    Checks the view's capability_map for the current action.

    Views declare e.g. capability_map = {'create': 'dispatch.create'};
    actions without an entry only require an authenticated user. A denied
    department raises CapabilityDenied, rendered as a 403 naming the
    departments that are allowed.
    """

    def has_permission(self, request, view):
        if not request.user or not request.user.is_authenticated:
            return False

        capability_map = getattr(view, 'capability_map', {}) or {}
        operation = capability_map.get(getattr(view, 'action', None))
        if operation is None:
            return True
        require_capability(request.user, operation)
        return True
