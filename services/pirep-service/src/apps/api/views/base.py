"""
Base Views and Mixins

Common functionality for PIREP Service API views.
"""

import logging
from uuid import UUID

from rest_framework import status
from rest_framework.response import Response
from rest_framework.viewsets import ViewSet

from apps.core.services.exceptions import (
    PirepServiceError,
    ValidationError,
    NotFoundError,
    ConflictError,
    InsufficientFundsError,
    PermissionDeniedError,
)

logger = logging.getLogger(__name__)

ERROR_STATUS = (
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (ConflictError, status.HTTP_409_CONFLICT),
    (InsufficientFundsError, status.HTTP_402_PAYMENT_REQUIRED),
    (PermissionDeniedError, status.HTTP_403_FORBIDDEN),
)

# Messages shown to pilots in place of the internal ones
PILOT_MESSAGES = {
    'NOT_FOUND': 'The requested resource was not found.',
    'CONFLICT': 'The request conflicts with the current state of the resource.',
    'INSUFFICIENT_FUNDS': 'Insufficient credits.',
    'PERMISSION_DENIED': 'You do not have permission to perform this action.',
}


class PilotContextMixin:
    """
    Mixin for extracting the caller's identity.

    The identity comes from the JWT authentication class as a PilotIdentity.
    """

    def get_identity(self):
        return self.request.user

    def get_pilot_id(self) -> UUID:
        """
        Returns:
            Pilot UUID of the caller

        Raises:
            ValidationError: If the token carries no usable pilot id
        """
        pilot_id = getattr(self.request.user, 'pilot_id', None)
        try:
            return UUID(str(pilot_id))
        except ValueError:
            raise ValidationError(
                message="Invalid pilot ID format",
                field="pilot_id"
            )

    def is_admin(self) -> bool:
        return bool(getattr(self.request.user, 'is_admin', False))

    def get_target_pilot_id(self) -> UUID:
        """
        Pilot the request is about.

        Admins may act on another pilot via ``?pilot_id=``; pilots always act
        on themselves.
        """
        requested = self.request.query_params.get('pilot_id')
        if requested and self.is_admin():
            try:
                return UUID(requested)
            except ValueError:
                raise ValidationError(message="Invalid pilot ID format", field="pilot_id")
        return self.get_pilot_id()


class ServiceExceptionMixin:
    """
    Mixin for handling service layer exceptions.

    Admins get the typed error with its details. Pilots get the error code
    and a generic message; validation errors keep their message since it
    only describes the pilot's own input.
    """

    def handle_exception(self, exc):
        """Convert service exceptions to appropriate HTTP responses."""
        if not isinstance(exc, PirepServiceError):
            return super().handle_exception(exc)

        http_status = status.HTTP_400_BAD_REQUEST
        for exc_class, mapped_status in ERROR_STATUS:
            if isinstance(exc, exc_class):
                http_status = mapped_status
                break

        logger.info(
            f"Service error {exc.code}: {exc.message}",
            extra={
                'code': exc.code,
                'path': self.request.path,
                'pilot_id': getattr(self.request.user, 'pilot_id', None),
            }
        )

        if getattr(self.request.user, 'is_admin', False):
            return Response(exc.to_dict(), status=http_status)

        return Response(
            {
                'error': exc.code,
                'message': PILOT_MESSAGES.get(exc.code, exc.message),
            },
            status=http_status
        )


class BasePirepViewSet(
    PilotContextMixin,
    ServiceExceptionMixin,
    ViewSet
):
    """
    Base ViewSet for PIREP Service.

    Provides identity extraction plus exception handling.
    """

    def get_serializer_context(self):
        return {
            'request': self.request,
            'view': self,
        }


class PaginationMixin:
    """Mixin for pagination support."""

    default_page_size = 20
    max_page_size = 100

    def get_pagination_params(self):
        """Extract pagination parameters from request."""
        try:
            page = int(self.request.query_params.get('page', 1))
            page = max(1, page)
        except (TypeError, ValueError):
            page = 1

        try:
            page_size = int(self.request.query_params.get('page_size', self.default_page_size))
            page_size = min(max(1, page_size), self.max_page_size)
        except (TypeError, ValueError):
            page_size = self.default_page_size

        return page, page_size


class FilterMixin:
    """Mixin for filtering support."""

    def get_filters(self, filter_serializer_class):
        """
        Extract and validate filters from request.

        Returns:
            Dictionary of validated filters
        """
        serializer = filter_serializer_class(data=self.request.query_params)
        serializer.is_valid(raise_exception=True)
        return {k: v for k, v in serializer.validated_data.items() if v is not None}


def parse_uuid(value, field: str = 'id') -> UUID:
    try:
        return UUID(str(value))
    except ValueError:
        raise ValidationError(message=f"Invalid {field} format", field=field)
