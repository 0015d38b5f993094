"""Store interfaces (repository pattern).

Stores must be swappable and return domain models.

Every mutation of shared state (registration status, variant stock,
attendance) goes through one of the conditional primitives below. None of
them takes a value computed from an earlier read; each states the condition
under which it applies and reports whether it did.
"""

from abc import ABC, abstractmethod
from collections.abc import Mapping
from contextlib import AbstractContextManager
from datetime import datetime
from typing import Any

from registrations.domain import (
    AdmissionSnapshot,
    Event,
    EventId,
    Money,
    NewRegistration,
    ParticipantId,
    Registration,
    RegistrationId,
    Ticket,
    TicketId,
    TransitionRecord,
    VariantId,
)
from registrations.domain.status import (
    PaymentStatus,
    RegistrationKind,
    RegistrationStatus,
)


class RegistrationStore(ABC):
    """Interface for registration, stock and ticket persistence."""

    # Reads

    @abstractmethod
    def get_event(self, event_id: EventId) -> Event | None:
        """Return an event with its variants in declaration order, or None."""
        ...

    @abstractmethod
    def get_registration(self, registration_id: RegistrationId) -> Registration | None:
        """Return a registration by ID, or None if not found."""
        ...

    @abstractmethod
    def find_by_ticket(self, ticket_id: TicketId) -> Registration | None:
        """Return the registration owning a ticket, or None."""
        ...

    @abstractmethod
    def list_registrations(
        self,
        event_id: EventId,
        payment_status: PaymentStatus | None = None,
        status: RegistrationStatus | None = None,
    ) -> list[Registration]:
        """Return registrations for an event ordered by creation time."""
        ...

    @abstractmethod
    def list_participant_registrations(
        self,
        participant_id: ParticipantId,
        status: RegistrationStatus | None = None,
        kind: RegistrationKind | None = None,
    ) -> list[Registration]:
        """Return a participant's registrations across events, newest first."""
        ...

    @abstractmethod
    def list_expired_holds(self, now: datetime) -> list[Registration]:
        """Return unconfirmed registrations whose stock hold expired before ``now``."""
        ...

    @abstractmethod
    def list_legacy_stock_events(self) -> list[Event]:
        """Return merchandise events still relying on derived variant stock."""
        ...

    @abstractmethod
    def list_transitions(self, registration_id: RegistrationId) -> list[TransitionRecord]:
        """Return the audit trail of a registration, oldest first."""
        ...

    # Admission

    @abstractmethod
    def event_lock(self, event_id: EventId) -> AbstractContextManager[None]:
        """Serialize admission and cancellation for one event.

        Everything run inside the block commits or rolls back together.
        """
        ...

    @abstractmethod
    def load_admission_snapshot(
        self, event_id: EventId, participant_id: ParticipantId
    ) -> AdmissionSnapshot | None:
        """Read the event, the duplicate flag and the active count. Call under event_lock."""
        ...

    @abstractmethod
    def insert_registration(
        self, new: NewRegistration, record: TransitionRecord
    ) -> Registration:
        """Insert a registration.

        Raises:
            AlreadyRegisteredError: If the participant already holds an
                active registration for the event.
        """
        ...

    # Stock

    @abstractmethod
    def decrement_stock_if_sufficient(self, variant_id: VariantId, quantity: int) -> bool:
        """Atomically take ``quantity`` units; False if stock is short."""
        ...

    @abstractmethod
    def release_stock(self, registration_id: RegistrationId) -> bool:
        """Return a registration's reserved units to its variant exactly once.

        False if nothing was held or it was already released.
        """
        ...

    @abstractmethod
    def backfill_variant_stock(
        self, event_id: EventId, stocks: Mapping[VariantId, int]
    ) -> bool:
        """Persist explicit per-variant stock for a legacy event once."""
        ...

    # Workflow

    @abstractmethod
    def update_registration_if(
        self,
        registration_id: RegistrationId,
        expected_status: frozenset[RegistrationStatus],
        expected_payment_status: frozenset[PaymentStatus],
        changes: Mapping[str, Any],
        record: TransitionRecord,
    ) -> Registration | None:
        """Compare-and-set on (status, payment_status).

        Applies ``changes`` only while the registration is in one of the
        expected states and returns the updated registration, else None.
        """
        ...

    @abstractmethod
    def issue_ticket(
        self, registration_id: RegistrationId, ticket: Ticket, record: TransitionRecord
    ) -> tuple[Registration, bool]:
        """Attach a ticket unless one exists.

        Returns the registration and whether this call issued the ticket.
        """
        ...

    @abstractmethod
    def mark_attended(
        self,
        ticket_id: TicketId,
        actor_id: ParticipantId,
        now: datetime,
        record: TransitionRecord,
    ) -> bool:
        """Set the attendance flag if unset on a confirmed registration."""
        ...

    @abstractmethod
    def record_transition(self, record: TransitionRecord) -> None:
        """Append an audit entry."""
        ...

    # Event counters

    @abstractmethod
    def add_event_revenue(self, event_id: EventId, amount: Money) -> None:
        ...

    @abstractmethod
    def increment_event_attendance(self, event_id: EventId) -> None:
        ...
