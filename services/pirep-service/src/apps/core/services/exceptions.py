"""
PIREP Service Exceptions

Custom exceptions for flight report pipeline operations.
"""

from typing import Optional, Dict, Any


class PirepServiceError(Exception):
    """Base exception for PIREP service errors."""

    def __init__(
        self,
        message: str,
        code: str = "PIREP_SERVICE_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details,
        }


class ValidationError(PirepServiceError):
    """Raised when submitted data fails validation. Names the first failing field."""

    def __init__(
        self,
        message: str,
        field: str = None,
        details: Optional[Dict[str, Any]] = None
    ):
        error_details = details or {}
        if field:
            error_details["field"] = field
        self.field = field
        super().__init__(
            message=message,
            code="VALIDATION_ERROR",
            details=error_details
        )


class NotFoundError(PirepServiceError):
    """Raised when a report, pilot, activity or other record is missing."""

    def __init__(
        self,
        resource: str,
        resource_id: Any = None,
        message: str = None,
        details: Optional[Dict[str, Any]] = None
    ):
        msg = message or f"{resource} not found: {resource_id}"
        error_details = details or {}
        error_details.update({
            "resource": resource,
            "resource_id": str(resource_id) if resource_id is not None else None,
        })
        super().__init__(
            message=msg,
            code="NOT_FOUND",
            details=error_details
        )


class ConflictError(PirepServiceError):
    """Raised when a state transition lost a race or is not allowed from the current state."""

    def __init__(
        self,
        message: str,
        current_state: str = None,
        target_state: str = None,
        details: Optional[Dict[str, Any]] = None
    ):
        error_details = details or {}
        if current_state:
            error_details["current_state"] = current_state
        if target_state:
            error_details["target_state"] = target_state
        super().__init__(
            message=message,
            code="CONFLICT",
            details=error_details
        )


class InsufficientFundsError(PirepServiceError):
    """Raised when a debit would take a pilot's balance below zero."""

    def __init__(
        self,
        pilot_id: Any,
        amount: int,
        balance: int = None,
        message: str = None,
        details: Optional[Dict[str, Any]] = None
    ):
        msg = message or f"Insufficient credits for debit of {amount}"
        error_details = details or {}
        error_details.update({
            "pilot_id": str(pilot_id),
            "amount": amount,
        })
        if balance is not None:
            error_details["balance"] = balance
        super().__init__(
            message=msg,
            code="INSUFFICIENT_FUNDS",
            details=error_details
        )


class PermissionDeniedError(PirepServiceError):
    """Raised when the caller lacks permission for an operation."""

    def __init__(
        self,
        operation: str,
        pilot_id: Any = None,
        message: str = None,
        details: Optional[Dict[str, Any]] = None
    ):
        msg = message or f"Permission denied for operation: {operation}"
        error_details = details or {}
        error_details["operation"] = operation
        if pilot_id:
            error_details["pilot_id"] = str(pilot_id)
        super().__init__(
            message=msg,
            code="PERMISSION_DENIED",
            details=error_details
        )
