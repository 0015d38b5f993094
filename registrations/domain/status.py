"""Closed status types and the transition table for registrations.

Every status change in the engine is checked against these tables. A change
that is not listed is an invalid transition, whatever the caller intended.
"""

from enum import Enum


class EventKind(Enum):
    NORMAL = "NORMAL"
    MERCHANDISE = "MERCHANDISE"


class EventStatus(Enum):
    DRAFT = "DRAFT"
    PUBLISHED = "PUBLISHED"
    ONGOING = "ONGOING"
    CLOSED = "CLOSED"


class Eligibility(Enum):
    ALL = "ALL"
    IIIT_ONLY = "IIIT_ONLY"
    NON_IIIT_ONLY = "NON_IIIT_ONLY"

    def admits(self, participant_type: "ParticipantType | None") -> bool:
        if self is Eligibility.ALL:
            return True
        if self is Eligibility.IIIT_ONLY:
            return participant_type is ParticipantType.IIIT
        return participant_type is ParticipantType.NON_IIIT


class ParticipantType(Enum):
    IIIT = "IIIT"
    NON_IIIT = "NON_IIIT"


class Role(Enum):
    PARTICIPANT = "PARTICIPANT"
    ORGANIZER = "ORGANIZER"
    ADMIN = "ADMIN"


class RegistrationKind(Enum):
    STANDARD = "STANDARD"
    MERCHANDISE = "MERCHANDISE"


class RegistrationStatus(Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"
    REJECTED = "REJECTED"

    @property
    def is_active(self) -> bool:
        """Active registrations count toward capacity and uniqueness."""
        return self is not RegistrationStatus.CANCELLED

    def can_transition_to(self, target: "RegistrationStatus") -> bool:
        return target in REGISTRATION_TRANSITIONS[self]


class PaymentStatus(Enum):
    UNPAID = "UNPAID"
    PENDING_APPROVAL = "PENDING_APPROVAL"
    PAID = "PAID"
    REJECTED = "REJECTED"

    def can_transition_to(self, target: "PaymentStatus") -> bool:
        return target in PAYMENT_TRANSITIONS[self]


class TransitionAction(Enum):
    CREATED = "CREATED"
    PROOF_SUBMITTED = "PROOF_SUBMITTED"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    CANCELLED = "CANCELLED"
    EXPIRED = "EXPIRED"
    TICKET_ISSUED = "TICKET_ISSUED"
    CHECKED_IN = "CHECKED_IN"
    CHECK_IN_OVERRIDE = "CHECK_IN_OVERRIDE"


ACTIVE_STATUSES = frozenset(s for s in RegistrationStatus if s.is_active)

REGISTRATION_TRANSITIONS: dict[RegistrationStatus, frozenset[RegistrationStatus]] = {
    # PENDING -> PENDING: proof submitted on a registration awaiting payment.
    RegistrationStatus.PENDING: frozenset(
        {
            RegistrationStatus.PENDING,
            RegistrationStatus.CONFIRMED,
            RegistrationStatus.REJECTED,
            RegistrationStatus.CANCELLED,
        }
    ),
    # Rejected registrations return to PENDING when proof is resubmitted.
    RegistrationStatus.REJECTED: frozenset(
        {RegistrationStatus.PENDING, RegistrationStatus.CANCELLED}
    ),
    RegistrationStatus.CONFIRMED: frozenset({RegistrationStatus.CANCELLED}),
    RegistrationStatus.CANCELLED: frozenset(),
}

PAYMENT_TRANSITIONS: dict[PaymentStatus, frozenset[PaymentStatus]] = {
    PaymentStatus.UNPAID: frozenset({PaymentStatus.PENDING_APPROVAL}),
    PaymentStatus.PENDING_APPROVAL: frozenset(
        {PaymentStatus.PAID, PaymentStatus.UNPAID, PaymentStatus.REJECTED}
    ),
    PaymentStatus.PAID: frozenset(),
    PaymentStatus.REJECTED: frozenset(),
}

# Event statuses that accept new registrations; ONGOING only when the event
# opts into late registration.
OPEN_EVENT_STATUSES = frozenset({EventStatus.PUBLISHED})
LATE_EVENT_STATUSES = frozenset({EventStatus.ONGOING})


def status_sources(target: RegistrationStatus) -> frozenset[RegistrationStatus]:
    """Statuses from which ``target`` may be reached."""
    return frozenset(s for s in RegistrationStatus if s.can_transition_to(target))


def payment_sources(target: PaymentStatus) -> frozenset[PaymentStatus]:
    """Payment statuses from which ``target`` may be reached."""
    return frozenset(p for p in PaymentStatus if p.can_transition_to(target))
