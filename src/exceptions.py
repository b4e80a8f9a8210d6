"""
Error taxonomy for the booking engine.

Every error raised by the services is a ``BookingEngineError``, which is a
``ValueError`` so routers that already translate ``ValueError`` into a 400
keep working. ``src.main`` registers a handler that renders the richer
payload (error code, retryable flag, current status) for each subclass.
"""

from typing import Any, Dict, Optional

from fastapi import HTTPException


class BookingEngineError(ValueError):
    """Base class for user-facing, recoverable booking errors"""

    code = "booking_error"
    http_status = 400
    retryable = False

    def __init__(self, message: str, **context: Any):
        super().__init__(message)
        self.message = message
        self.context = context

    def to_dict(self) -> Dict[str, Any]:
        payload = {
            "error": self.code,
            "detail": self.message,
            "retryable": self.retryable,
        }
        payload.update(self.context)
        return payload


class InvalidInputError(BookingEngineError):
    """Request is malformed; rejected before any state mutation"""

    code = "invalid_input"
    http_status = 422


class NotFoundError(BookingEngineError):
    code = "not_found"
    http_status = 404


class SailingNotFoundError(NotFoundError):
    code = "sailing_not_found"


class BookingNotFoundError(NotFoundError):
    code = "booking_not_found"


class TicketNotFoundError(NotFoundError):
    code = "ticket_not_found"


class RefundNotFoundError(NotFoundError):
    code = "refund_not_found"


class CapacityExceededError(BookingEngineError):
    """The reservation would oversell the channel. Retry on another sailing."""

    code = "capacity_exceeded"
    http_status = 409
    retryable = True

    def __init__(
        self,
        message: str,
        sailing_id: Optional[int] = None,
        channel: Optional[str] = None,
        requested: Optional[int] = None,
        available: Optional[int] = None,
    ):
        super().__init__(
            message,
            sailing_id=sailing_id,
            channel=channel,
            requested=requested,
            available=available,
        )
        self.sailing_id = sailing_id
        self.channel = channel
        self.requested = requested
        self.available = available


class NoAvailabilityError(CapacityExceededError):
    code = "no_availability"


class PolicyViolationError(BookingEngineError):
    """Cutoff missed, refund basis not allowed, amount above the limit"""

    code = "policy_violation"


class ReschedulePolicyError(PolicyViolationError):
    code = "reschedule_window_closed"


class StateConflictError(BookingEngineError):
    """Action not allowed from the record's current status"""

    code = "state_conflict"
    http_status = 409

    def __init__(self, message: str, current_status: Optional[str] = None):
        super().__init__(message, current_status=current_status)
        self.current_status = current_status


class RescheduleFailedError(BookingEngineError):
    """The release/reserve pair could not complete and was rolled back"""

    code = "reschedule_failed"
    http_status = 409
    retryable = True


def to_http_exception(error: BookingEngineError) -> HTTPException:
    """Translate a booking error into the HTTPException routers raise"""
    return HTTPException(status_code=error.http_status, detail=error.to_dict())
