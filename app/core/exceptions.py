"""Custom application exceptions.

Every error carries a stable ``kind`` that is rendered next to ``detail`` so
clients can branch on it without parsing messages.
"""

from typing import Any

from fastapi import HTTPException, status


class AppException(HTTPException):
    """Base application exception."""

    kind = "internal_error"

    def __init__(
        self,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail: str = "An unexpected error occurred",
        headers: dict[str, str] | None = None,
    ) -> None:
        super().__init__(status_code=status_code, detail=detail, headers=headers)


class ValidationError(AppException):
    """Validation error exception."""

    kind = "validation_error"

    def __init__(self, detail: str = "Validation failed", errors: list[dict[str, Any]] | None = None) -> None:
        self.errors = errors
        super().__init__(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=detail)


class DateRangeInvalid(ValidationError):
    """End date is not after start date."""

    kind = "date_range_invalid"

    def __init__(self, detail: str = "End date must be after start date") -> None:
        super().__init__(detail)


class NotFoundError(AppException):
    """Resource not found exception."""

    kind = "not_found"

    def __init__(self, resource: str = "Resource", identifier: str | None = None) -> None:
        detail = f"{resource} not found"
        if identifier:
            detail = f"{resource} with ID '{identifier}' not found"
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class AuthenticationError(AppException):
    """Authentication failed exception."""

    kind = "authentication_error"

    def __init__(self, detail: str = "Authentication failed") -> None:
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )


class AuthorizationError(AppException):
    """Authorization denied exception."""

    kind = "forbidden"

    def __init__(self, detail: str = "You don't have permission to access this resource") -> None:
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


Forbidden = AuthorizationError


class StateConflict(AppException):
    """Operation conflicts with the current state of a booking, contract or escrow."""

    kind = "state_conflict"

    def __init__(self, detail: str = "This operation conflicts with the current state") -> None:
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=detail)


class AlreadyExists(StateConflict):
    kind = "already_exists"

    def __init__(self, resource: str = "Resource", booking_id: str | None = None) -> None:
        detail = f"{resource} already exists"
        if booking_id:
            detail = f"{resource} already exists for booking '{booking_id}'"
        super().__init__(detail)


class NotAccepted(StateConflict):
    kind = "not_accepted"

    def __init__(self, detail: str = "Booking must be accepted first") -> None:
        super().__init__(detail)


class ContractMissing(StateConflict):
    kind = "contract_missing"

    def __init__(self, detail: str = "Contract must be generated before payment") -> None:
        super().__init__(detail)


class ContractNotFullySigned(StateConflict):
    kind = "contract_not_fully_signed"

    def __init__(self, detail: str = "Contract must be fully signed before payment") -> None:
        super().__init__(detail)


class ImmutableState(StateConflict):
    kind = "immutable_state"

    def __init__(self, current_status: str) -> None:
        self.current_status = current_status
        super().__init__(f"Cannot modify {current_status.lower()} booking")


class OverlapConflict(StateConflict):
    kind = "overlap_conflict"

    def __init__(self, detail: str = "Requested dates overlap with existing booking") -> None:
        super().__init__(detail)


class OutsideAvailability(StateConflict):
    kind = "outside_availability"

    def __init__(self, detail: str = "Requested dates are not within vessel availability") -> None:
        super().__init__(detail)


class InvalidTransition(StateConflict):
    kind = "invalid_transition"

    def __init__(self, entity: str, current: str, target: str) -> None:
        self.current = current
        self.target = target
        super().__init__(f"Invalid {entity} transition: {current} → {target}")


class CancellationAfterFunding(StateConflict):
    """Booking cannot be cancelled once its escrow has been funded."""

    kind = "cancellation_after_funding"

    def __init__(self, escrow_status: str) -> None:
        super().__init__(
            f"Cannot cancel booking with {escrow_status.lower()} escrow. Please contact support."
        )


class ReleaseNotDue(StateConflict):
    kind = "release_not_due"

    def __init__(self, detail: str = "Booking period has not ended. Only admins can release early.") -> None:
        super().__init__(detail)


class VesselInUse(StateConflict):
    """Vessel still has bookings that reference it."""

    kind = "vessel_in_use"

    def __init__(self, detail: str = "Cannot delete vessel with active bookings") -> None:
        super().__init__(detail)


class ConcurrencyConflict(AppException):
    """A concurrent writer changed the record first; re-read and retry."""

    kind = "concurrency_conflict"

    def __init__(self, resource: str = "Resource", identifier: str | None = None) -> None:
        detail = f"{resource} was modified concurrently, please reload and retry"
        if identifier:
            detail = f"{resource} '{identifier}' was modified concurrently, please reload and retry"
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=detail)


class RateLimitExceeded(AppException):
    """Rate limit exceeded exception."""

    kind = "rate_limited"

    def __init__(self, detail: str = "Too many requests. Please try again later.") -> None:
        super().__init__(status_code=status.HTTP_429_TOO_MANY_REQUESTS, detail=detail)


class ExternalServiceError(AppException):
    """External service error."""

    kind = "external_service_error"

    def __init__(self, service: str, detail: str | None = None) -> None:
        message = f"External service '{service}' is unavailable"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=message)
