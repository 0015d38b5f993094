"""Domain error codes for the registration engine."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any


class ErrorCode(Enum):
    """Domain error codes."""

    EVENT_NOT_FOUND = "EVENT_NOT_FOUND"
    REGISTRATION_NOT_FOUND = "REGISTRATION_NOT_FOUND"
    INVALID_ID = "INVALID_ID"
    EVENT_NOT_OPEN = "EVENT_NOT_OPEN"
    REGISTRATION_CLOSED = "REGISTRATION_CLOSED"
    NOT_ELIGIBLE = "NOT_ELIGIBLE"
    ALREADY_REGISTERED = "ALREADY_REGISTERED"
    CAPACITY_REACHED = "CAPACITY_REACHED"
    INSUFFICIENT_STOCK = "INSUFFICIENT_STOCK"
    INVALID_SELECTION = "INVALID_SELECTION"
    PURCHASE_LIMIT_EXCEEDED = "PURCHASE_LIMIT_EXCEEDED"
    INVALID_STATE = "INVALID_STATE"
    UNAUTHORIZED = "UNAUTHORIZED"
    EMPTY_REASON = "EMPTY_REASON"
    TICKET_NOT_FOUND = "TICKET_NOT_FOUND"
    TICKET_INVALID = "TICKET_INVALID"
    ALREADY_SCANNED = "ALREADY_SCANNED"


@dataclass(frozen=True)
class DomainError(Exception):
    """Base domain error with code and user-safe message."""

    code: ErrorCode
    message: str

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"

    @property
    def details(self) -> dict[str, Any]:
        """Extra fields a client needs to act on the error."""
        return {}


class EventNotFoundError(DomainError):
    """Raised when an event is not found."""

    def __init__(self, event_id: str) -> None:
        super().__init__(
            code=ErrorCode.EVENT_NOT_FOUND,
            message="Event not found",
        )
        self.event_id = event_id


class RegistrationNotFoundError(DomainError):
    """Raised when a registration is not found."""

    def __init__(self, registration_id: str) -> None:
        super().__init__(
            code=ErrorCode.REGISTRATION_NOT_FOUND,
            message="Registration not found",
        )
        self.registration_id = registration_id


class InvalidIdError(DomainError):
    """Raised when an identifier is malformed."""

    def __init__(self, kind: str = "ID") -> None:
        super().__init__(
            code=ErrorCode.INVALID_ID,
            message=f"Invalid {kind} format",
        )


# Admission errors


class EventNotOpenError(DomainError):
    def __init__(self, status: str) -> None:
        super().__init__(
            code=ErrorCode.EVENT_NOT_OPEN,
            message="Event is not open for registration",
        )
        self.status = status

    @property
    def details(self) -> dict[str, Any]:
        return {"event_status": self.status}


class RegistrationClosedError(DomainError):
    def __init__(self, deadline: datetime) -> None:
        super().__init__(
            code=ErrorCode.REGISTRATION_CLOSED,
            message="Registration deadline has passed",
        )
        self.deadline = deadline

    @property
    def details(self) -> dict[str, Any]:
        return {"registration_deadline": self.deadline.isoformat()}


class NotEligibleError(DomainError):
    def __init__(self, eligibility: str) -> None:
        audience = eligibility.replace("_ONLY", "").replace("_", "-")
        super().__init__(
            code=ErrorCode.NOT_ELIGIBLE,
            message=f"This event is only for {audience} participants",
        )
        self.eligibility = eligibility

    @property
    def details(self) -> dict[str, Any]:
        return {"eligibility": self.eligibility}


class AlreadyRegisteredError(DomainError):
    def __init__(self) -> None:
        super().__init__(
            code=ErrorCode.ALREADY_REGISTERED,
            message="Already registered for this event",
        )


class CapacityReachedError(DomainError):
    def __init__(self, capacity: int) -> None:
        super().__init__(
            code=ErrorCode.CAPACITY_REACHED,
            message="Event is full",
        )
        self.capacity = capacity

    @property
    def details(self) -> dict[str, Any]:
        return {"capacity": self.capacity}


class InvalidSelectionError(DomainError):
    """Raised when the requested selection does not fit the event."""

    def __init__(self, message: str) -> None:
        super().__init__(code=ErrorCode.INVALID_SELECTION, message=message)


class PurchaseLimitExceededError(DomainError):
    def __init__(self, limit: int) -> None:
        super().__init__(
            code=ErrorCode.PURCHASE_LIMIT_EXCEEDED,
            message=f"Maximum {limit} items per person",
        )
        self.limit = limit

    @property
    def details(self) -> dict[str, Any]:
        return {"purchase_limit": self.limit}


# Inventory errors


class InsufficientStockError(DomainError):
    """Raised when a variant cannot cover the requested quantity.

    ``available`` is the current effective stock so the client can adjust
    the quantity it asks for.
    """

    def __init__(self, variant: str, available: int, requested: int) -> None:
        if available <= 0:
            message = f"{variant} is out of stock"
        else:
            message = (
                f"Only {available} unit(s) available for {variant}. "
                f"You requested {requested}."
            )
        super().__init__(code=ErrorCode.INSUFFICIENT_STOCK, message=message)
        self.variant = variant
        self.available = available
        self.requested = requested

    @property
    def details(self) -> dict[str, Any]:
        return {
            "variant": self.variant,
            "available": self.available,
            "requested": self.requested,
        }


# Workflow errors


class InvalidStateError(DomainError):
    """Raised when a transition is not allowed from the current state.

    Carries the canonical state so a stale client can resync.
    """

    def __init__(self, action: str, status: str, payment_status: str) -> None:
        super().__init__(
            code=ErrorCode.INVALID_STATE,
            message=f"Cannot {action} in current state",
        )
        self.action = action
        self.status = status
        self.payment_status = payment_status

    @property
    def details(self) -> dict[str, Any]:
        return {"status": self.status, "payment_status": self.payment_status}


class UnauthorizedError(DomainError):
    def __init__(self, message: str = "Not allowed to perform this action") -> None:
        super().__init__(code=ErrorCode.UNAUTHORIZED, message=message)


class EmptyReasonError(DomainError):
    def __init__(self) -> None:
        super().__init__(
            code=ErrorCode.EMPTY_REASON,
            message="A rejection reason is required",
        )


# Verification errors


class TicketNotFoundError(DomainError):
    def __init__(self, ticket_id: str) -> None:
        super().__init__(
            code=ErrorCode.TICKET_NOT_FOUND,
            message="Invalid ticket - registration not found",
        )
        self.ticket_id = ticket_id


class TicketInvalidError(DomainError):
    def __init__(self, ticket_id: str, status: str, payment_status: str) -> None:
        super().__init__(
            code=ErrorCode.TICKET_INVALID,
            message=f"Cannot verify - registration status is {status}",
        )
        self.ticket_id = ticket_id
        self.status = status
        self.payment_status = payment_status

    @property
    def details(self) -> dict[str, Any]:
        return {
            "ticket_id": self.ticket_id,
            "status": self.status,
            "payment_status": self.payment_status,
        }


class AlreadyScannedError(DomainError):
    """Raised on a repeat scan.

    Not necessarily fraud: staff get the prior scan time and the participant
    so they can decide whether to override.
    """

    def __init__(
        self,
        ticket_id: str,
        scanned_at: datetime,
        participant_id: str,
        participant_name: str,
    ) -> None:
        super().__init__(
            code=ErrorCode.ALREADY_SCANNED,
            message="Ticket already scanned",
        )
        self.ticket_id = ticket_id
        self.scanned_at = scanned_at
        self.participant_id = participant_id
        self.participant_name = participant_name

    @property
    def details(self) -> dict[str, Any]:
        return {
            "ticket_id": self.ticket_id,
            "scanned_at": self.scanned_at.isoformat(),
            "participant": {
                "id": self.participant_id,
                "name": self.participant_name,
            },
        }
