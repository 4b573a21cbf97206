"""
Permission Classes for Pilot / Administrator Access
"""

from rest_framework import permissions
from rest_framework.request import Request
import logging

logger = logging.getLogger(__name__)


class IsAuthenticatedPilot(permissions.BasePermission):
    """Verify that the caller carries a pilot identity"""

    def has_permission(self, request: Request, view) -> bool:
        return bool(
            request.user and
            getattr(request.user, 'is_authenticated', False) and
            getattr(request.user, 'pilot_id', None)
        )


class IsPortalAdmin(IsAuthenticatedPilot):
    """Only portal administrators"""

    def has_permission(self, request: Request, view) -> bool:
        allowed = super().has_permission(request, view) and getattr(request.user, 'is_admin', False)
        if not allowed:
            logger.warning(
                "Admin permission denied",
                extra={
                    'path': request.path,
                    'pilot_id': getattr(request.user, 'pilot_id', None),
                }
            )
        return allowed
