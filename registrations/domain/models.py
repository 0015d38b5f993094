"""Domain models representing persisted state.

These are pure domain objects with no API input rules.
Django ORM models are in registrations/models.py (persistence layer).
"""

from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any

from registrations.domain.status import (
    Eligibility,
    EventKind,
    EventStatus,
    ParticipantType,
    PaymentStatus,
    RegistrationKind,
    RegistrationStatus,
    Role,
    TransitionAction,
)
from registrations.domain.value_objects import (
    Capacity,
    EventId,
    Money,
    ParticipantId,
    RegistrationId,
    TicketId,
    VariantId,
)


@dataclass(frozen=True)
class Actor:
    """Authenticated caller as supplied by the identity collaborator."""

    id: ParticipantId
    role: Role
    participant_type: ParticipantType | None = None
    name: str = ""
    email: str = ""

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN


@dataclass(frozen=True)
class FormField:
    """One field of an event's custom registration form."""

    field_name: str
    field_type: str
    required: bool = False
    options: tuple[str, ...] = ()


@dataclass(frozen=True)
class Variant:
    """Domain representation of a merchandise Variant."""

    id: VariantId
    event_id: EventId
    name: str
    size: str
    color: str
    price: Money | None
    stock: int
    position: int = 0

    @property
    def label(self) -> str:
        return f"{self.size} - {self.color}"


@dataclass(frozen=True)
class Event:
    """Domain representation of an Event, as far as admission needs it."""

    id: EventId
    name: str
    organizer_id: ParticipantId
    kind: EventKind
    eligibility: Eligibility
    registration_deadline: datetime
    starts_at: datetime
    ends_at: datetime
    capacity: Capacity | None
    registration_fee: Money
    status: EventStatus
    allow_late_registration: bool = False
    custom_form: tuple[FormField, ...] = ()
    total_stock: int | None = None
    stock_backfilled: bool = False
    purchase_limit: int = 1
    variants: tuple[Variant, ...] = ()

    def is_organized_by(self, actor: Actor) -> bool:
        return actor.is_admin or actor.id == self.organizer_id

    def find_variant(
        self,
        variant_id: VariantId | None = None,
        size: str | None = None,
        color: str | None = None,
    ) -> Variant | None:
        """Match by id, then by size and color, then by the legacy name."""
        if variant_id is not None:
            return next((v for v in self.variants if v.id == variant_id), None)
        if size is None or color is None:
            return None
        for variant in self.variants:
            if variant.size == size and variant.color == color:
                return variant
        legacy_name = f"{size} - {color}"
        return next((v for v in self.variants if v.name == legacy_name), None)

    def unit_price(self, variant: Variant | None) -> Money:
        if variant is not None and variant.price is not None:
            return variant.price
        return self.registration_fee


@dataclass(frozen=True)
class Selection:
    """What the participant asked for when registering."""

    form_answers: dict[str, Any] = field(default_factory=dict)
    variant_id: VariantId | None = None
    size: str | None = None
    color: str | None = None
    quantity: int = 1

    @property
    def is_merchandise(self) -> bool:
        return self.variant_id is not None or (
            self.size is not None and self.color is not None
        )


@dataclass(frozen=True)
class Ticket:
    """Issued credential for a confirmed registration. Immutable once issued."""

    ticket_id: TicketId
    registration_id: RegistrationId
    event_id: EventId
    payload: str
    issued_at: datetime


@dataclass(frozen=True)
class Registration:
    """Domain representation of a Registration."""

    id: RegistrationId
    event_id: EventId
    participant_id: ParticipantId
    participant_name: str
    participant_email: str
    kind: RegistrationKind
    status: RegistrationStatus
    payment_status: PaymentStatus
    amount_due: Money
    amount_paid: Money
    created_at: datetime
    updated_at: datetime
    form_answers: dict[str, Any] = field(default_factory=dict)
    variant_id: VariantId | None = None
    quantity: int = 0
    payment_proof: str | None = None
    proof_submitted_at: datetime | None = None
    rejection_reason: str | None = None
    approved_by: ParticipantId | None = None
    approved_at: datetime | None = None
    hold_expires_at: datetime | None = None
    stock_released: bool = False
    ticket_id: TicketId | None = None
    ticket_payload: str | None = None
    ticket_issued_at: datetime | None = None
    attended: bool = False
    attended_at: datetime | None = None
    attendance_marked_by: ParticipantId | None = None

    @property
    def holds_stock(self) -> bool:
        return (
            self.kind is RegistrationKind.MERCHANDISE
            and self.variant_id is not None
            and not self.stock_released
        )

    def hold_expired(self, now: datetime) -> bool:
        return self.hold_expires_at is not None and self.hold_expires_at <= now

    @property
    def ticket(self) -> Ticket | None:
        if self.ticket_id is None:
            return None
        return Ticket(
            ticket_id=self.ticket_id,
            registration_id=self.id,
            event_id=self.event_id,
            payload=self.ticket_payload or "",
            issued_at=self.ticket_issued_at or self.updated_at,
        )

    def evolve(self, **changes: Any) -> "Registration":
        return replace(self, **changes)


@dataclass(frozen=True)
class NewRegistration:
    """A registration about to be inserted, built once admission has passed."""

    id: RegistrationId
    event_id: EventId
    participant: Actor
    kind: RegistrationKind
    status: RegistrationStatus
    payment_status: PaymentStatus
    amount_due: Money
    amount_paid: Money
    form_answers: dict[str, Any]
    variant_id: VariantId | None
    quantity: int
    hold_expires_at: datetime | None
    created_at: datetime


@dataclass(frozen=True)
class AdmissionSnapshot:
    """Consistent view of an event read under the admission lock."""

    event: Event
    has_active_registration: bool
    active_count: int


@dataclass(frozen=True)
class TransitionRecord:
    """Audit entry for one registration state change."""

    registration_id: RegistrationId
    action: TransitionAction
    from_status: RegistrationStatus | None
    to_status: RegistrationStatus
    from_payment_status: PaymentStatus | None
    to_payment_status: PaymentStatus
    actor_id: ParticipantId | None
    occurred_at: datetime
    note: str = ""


@dataclass(frozen=True)
class VerificationResult:
    """What venue staff see after a successful scan."""

    ticket_id: TicketId
    registration_id: RegistrationId
    participant_id: ParticipantId
    participant_name: str
    participant_email: str
    event_id: EventId
    event_name: str
    event_starts_at: datetime
    status: RegistrationStatus
    payment_status: PaymentStatus
    scanned_at: datetime
    overridden: bool = False
