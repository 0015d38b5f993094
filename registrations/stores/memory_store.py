"""In-process implementation of the RegistrationStore.

Backs the unit and concurrency tests. Conditional primitives run under one
store-wide lock; ``event_lock`` adds a per-event lock and undoes stock
decrements made inside a block that raises.
"""

import threading
from collections import defaultdict
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from dataclasses import replace
from datetime import datetime
from decimal import Decimal
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
from registrations.domain.errors import AlreadyRegisteredError
from registrations.domain.status import (
    EventKind,
    PaymentStatus,
    RegistrationKind,
    RegistrationStatus,
)
from registrations.stores.interfaces import RegistrationStore


class InMemoryRegistrationStore(RegistrationStore):
    """Thread-safe dictionary-backed store."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._event_locks: dict[EventId, threading.RLock] = {}
        self._events: dict[EventId, Event] = {}
        self._stock: dict[VariantId, int] = {}
        self._registrations: dict[RegistrationId, Registration] = {}
        self._tickets: dict[str, RegistrationId] = {}
        self._transitions: list[TransitionRecord] = []
        self._revenue: dict[EventId, Decimal] = defaultdict(Decimal)
        self._attendance: dict[EventId, int] = defaultdict(int)
        self._local = threading.local()

    # Seeding and inspection helpers (not part of the store interface)

    def add_event(self, event: Event) -> Event:
        with self._lock:
            self._events[event.id] = event
            for variant in event.variants:
                self._stock[variant.id] = variant.stock
        return event

    def stock_of(self, variant_id: VariantId) -> int:
        with self._lock:
            return self._stock[variant_id]

    def event_revenue(self, event_id: EventId) -> Decimal:
        return self._revenue[event_id]

    def event_attendance(self, event_id: EventId) -> int:
        return self._attendance[event_id]

    # Reads

    def get_event(self, event_id: EventId) -> Event | None:
        with self._lock:
            event = self._events.get(event_id)
            if event is None:
                return None
            return replace(
                event,
                variants=tuple(
                    replace(v, stock=self._stock[v.id]) for v in event.variants
                ),
            )

    def get_registration(self, registration_id: RegistrationId) -> Registration | None:
        with self._lock:
            return self._registrations.get(registration_id)

    def find_by_ticket(self, ticket_id: TicketId) -> Registration | None:
        with self._lock:
            registration_id = self._tickets.get(ticket_id.value)
            if registration_id is None:
                return None
            return self._registrations[registration_id]

    def list_registrations(
        self,
        event_id: EventId,
        payment_status: PaymentStatus | None = None,
        status: RegistrationStatus | None = None,
    ) -> list[Registration]:
        with self._lock:
            rows = [r for r in self._registrations.values() if r.event_id == event_id]
        if payment_status is not None:
            rows = [r for r in rows if r.payment_status is payment_status]
        if status is not None:
            rows = [r for r in rows if r.status is status]
        return sorted(rows, key=lambda r: r.created_at)

    def list_participant_registrations(
        self,
        participant_id: ParticipantId,
        status: RegistrationStatus | None = None,
        kind: RegistrationKind | None = None,
    ) -> list[Registration]:
        with self._lock:
            rows = [
                r for r in self._registrations.values() if r.participant_id == participant_id
            ]
        if status is not None:
            rows = [r for r in rows if r.status is status]
        if kind is not None:
            rows = [r for r in rows if r.kind is kind]
        return sorted(rows, key=lambda r: r.created_at, reverse=True)

    def list_expired_holds(self, now: datetime) -> list[Registration]:
        holding = {RegistrationStatus.PENDING, RegistrationStatus.REJECTED}
        unpaid = {PaymentStatus.UNPAID, PaymentStatus.PENDING_APPROVAL}
        with self._lock:
            rows = [
                r
                for r in self._registrations.values()
                if r.status in holding
                and r.payment_status in unpaid
                and r.hold_expired(now)
            ]
        return sorted(rows, key=lambda r: r.hold_expires_at)

    def list_legacy_stock_events(self) -> list[Event]:
        with self._lock:
            ids = [
                e.id
                for e in self._events.values()
                if e.kind is EventKind.MERCHANDISE
                and e.total_stock is not None
                and not e.stock_backfilled
            ]
        return [self.get_event(event_id) for event_id in ids]

    def list_transitions(self, registration_id: RegistrationId) -> list[TransitionRecord]:
        with self._lock:
            return [t for t in self._transitions if t.registration_id == registration_id]

    # Admission

    @contextmanager
    def event_lock(self, event_id: EventId) -> Iterator[None]:
        with self._event_lock_for(event_id):
            outer = getattr(self._local, "journal", None)
            self._local.journal = []
            try:
                yield
            except BaseException:
                self._undo(self._local.journal)
                raise
            finally:
                journal = self._local.journal
                self._local.journal = outer
                if outer is not None:
                    outer.extend(journal)

    def _event_lock_for(self, event_id: EventId) -> threading.RLock:
        with self._lock:
            return self._event_locks.setdefault(event_id, threading.RLock())

    def _undo(self, journal: list[tuple[VariantId, int]]) -> None:
        with self._lock:
            for variant_id, quantity in reversed(journal):
                self._stock[variant_id] += quantity
        journal.clear()

    def load_admission_snapshot(
        self, event_id: EventId, participant_id: ParticipantId
    ) -> AdmissionSnapshot | None:
        event = self.get_event(event_id)
        if event is None:
            return None
        with self._lock:
            active = [
                r
                for r in self._registrations.values()
                if r.event_id == event_id and r.status.is_active
            ]
        return AdmissionSnapshot(
            event=event,
            has_active_registration=any(
                r.participant_id == participant_id for r in active
            ),
            active_count=len(active),
        )

    def insert_registration(
        self, new: NewRegistration, record: TransitionRecord
    ) -> Registration:
        with self._lock:
            for existing in self._registrations.values():
                if (
                    existing.event_id == new.event_id
                    and existing.participant_id == new.participant.id
                    and existing.status.is_active
                ):
                    raise AlreadyRegisteredError()
            registration = Registration(
                id=new.id,
                event_id=new.event_id,
                participant_id=new.participant.id,
                participant_name=new.participant.name,
                participant_email=new.participant.email,
                kind=new.kind,
                status=new.status,
                payment_status=new.payment_status,
                amount_due=new.amount_due,
                amount_paid=new.amount_paid,
                created_at=new.created_at,
                updated_at=new.created_at,
                form_answers=dict(new.form_answers),
                variant_id=new.variant_id,
                quantity=new.quantity,
                hold_expires_at=new.hold_expires_at,
            )
            self._registrations[registration.id] = registration
            self._transitions.append(record)
            return registration

    # Stock

    def decrement_stock_if_sufficient(self, variant_id: VariantId, quantity: int) -> bool:
        with self._lock:
            if self._stock.get(variant_id, 0) < quantity:
                return False
            self._stock[variant_id] -= quantity
        journal = getattr(self._local, "journal", None)
        if journal is not None:
            journal.append((variant_id, quantity))
        return True

    def release_stock(self, registration_id: RegistrationId) -> bool:
        with self._lock:
            registration = self._registrations.get(registration_id)
            if registration is None or not registration.holds_stock:
                return False
            if registration.quantity == 0:
                return False
            self._registrations[registration_id] = registration.evolve(
                stock_released=True, hold_expires_at=None
            )
            self._stock[registration.variant_id] += registration.quantity
            return True

    def backfill_variant_stock(
        self, event_id: EventId, stocks: Mapping[VariantId, int]
    ) -> bool:
        with self._lock:
            event = self._events.get(event_id)
            if event is None or event.stock_backfilled:
                return False
            self._events[event_id] = replace(event, stock_backfilled=True)
            known = {v.id for v in event.variants}
            for variant_id, stock in stocks.items():
                if variant_id in known:
                    self._stock[variant_id] = stock
            return True

    # Workflow

    def update_registration_if(
        self,
        registration_id: RegistrationId,
        expected_status: frozenset[RegistrationStatus],
        expected_payment_status: frozenset[PaymentStatus],
        changes: Mapping[str, Any],
        record: TransitionRecord,
    ) -> Registration | None:
        with self._lock:
            current = self._registrations.get(registration_id)
            if current is None:
                return None
            if current.status not in expected_status:
                return None
            if current.payment_status not in expected_payment_status:
                return None
            updated = current.evolve(**changes, updated_at=record.occurred_at)
            self._registrations[registration_id] = updated
            self._transitions.append(record)
            return updated

    def issue_ticket(
        self, registration_id: RegistrationId, ticket: Ticket, record: TransitionRecord
    ) -> tuple[Registration, bool]:
        with self._lock:
            current = self._registrations[registration_id]
            if (
                current.ticket_id is not None
                or current.status is not RegistrationStatus.CONFIRMED
            ):
                return current, False
            if ticket.ticket_id.value in self._tickets:
                raise ValueError(f"Duplicate ticket ID {ticket.ticket_id}")
            updated = current.evolve(
                ticket_id=ticket.ticket_id,
                ticket_payload=ticket.payload,
                ticket_issued_at=ticket.issued_at,
                updated_at=ticket.issued_at,
            )
            self._registrations[registration_id] = updated
            self._tickets[ticket.ticket_id.value] = registration_id
            self._transitions.append(record)
            return updated, True

    def mark_attended(
        self,
        ticket_id: TicketId,
        actor_id: ParticipantId,
        now: datetime,
        record: TransitionRecord,
    ) -> bool:
        with self._lock:
            registration_id = self._tickets.get(ticket_id.value)
            if registration_id is None:
                return False
            current = self._registrations[registration_id]
            if current.attended or current.status is not RegistrationStatus.CONFIRMED:
                return False
            self._registrations[registration_id] = current.evolve(
                attended=True,
                attended_at=now,
                attendance_marked_by=actor_id,
                updated_at=now,
            )
            self._transitions.append(record)
            return True

    def record_transition(self, record: TransitionRecord) -> None:
        with self._lock:
            self._transitions.append(record)

    # Event counters

    def add_event_revenue(self, event_id: EventId, amount: Money) -> None:
        with self._lock:
            self._revenue[event_id] += amount.amount

    def increment_event_attendance(self, event_id: EventId) -> None:
        with self._lock:
            self._attendance[event_id] += 1
