"""Django ORM implementation of the RegistrationStore."""

from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from datetime import datetime
from decimal import Decimal
from typing import Any

from django.db import IntegrityError, transaction
from django.db.models import F
from django.db.models.functions import Now

from registrations import models
from registrations.domain import (
    AdmissionSnapshot,
    Capacity,
    Event,
    EventId,
    FormField,
    Money,
    NewRegistration,
    ParticipantId,
    Registration,
    RegistrationId,
    Ticket,
    TicketId,
    TransitionRecord,
    Variant,
    VariantId,
)
from registrations.domain.errors import AlreadyRegisteredError
from registrations.domain.status import (
    ACTIVE_STATUSES,
    Eligibility,
    EventKind,
    EventStatus,
    PaymentStatus,
    RegistrationKind,
    RegistrationStatus,
    TransitionAction,
)
from registrations.stores.interfaces import RegistrationStore

_ACTIVE_VALUES = [s.value for s in ACTIVE_STATUSES]
_HOLDING_STATUSES = [RegistrationStatus.PENDING.value, RegistrationStatus.REJECTED.value]


class DjangoRegistrationStore(RegistrationStore):
    """PostgreSQL-backed registration store using Django ORM."""

    def get_event(self, event_id: EventId) -> Event | None:
        row = models.Event.objects.filter(pk=event_id.value).first()
        if row is None:
            return None
        return _to_event(row, list(row.variants.order_by("position", "id")))

    def get_registration(self, registration_id: RegistrationId) -> Registration | None:
        row = models.Registration.objects.filter(pk=registration_id.value).first()
        return _to_registration(row) if row is not None else None

    def find_by_ticket(self, ticket_id: TicketId) -> Registration | None:
        row = models.Registration.objects.filter(ticket_id=ticket_id.value).first()
        return _to_registration(row) if row is not None else None

    def list_registrations(
        self,
        event_id: EventId,
        payment_status: PaymentStatus | None = None,
        status: RegistrationStatus | None = None,
    ) -> list[Registration]:
        rows = models.Registration.objects.filter(event_id=event_id.value)
        if payment_status is not None:
            rows = rows.filter(payment_status=payment_status.value)
        if status is not None:
            rows = rows.filter(status=status.value)
        return [_to_registration(row) for row in rows.order_by("created_at")]

    def list_participant_registrations(
        self,
        participant_id: ParticipantId,
        status: RegistrationStatus | None = None,
        kind: RegistrationKind | None = None,
    ) -> list[Registration]:
        rows = models.Registration.objects.filter(participant_id=participant_id.value)
        if status is not None:
            rows = rows.filter(status=status.value)
        if kind is not None:
            rows = rows.filter(kind=kind.value)
        return [_to_registration(row) for row in rows.order_by("-created_at")]

    def list_expired_holds(self, now: datetime) -> list[Registration]:
        rows = models.Registration.objects.filter(
            status__in=_HOLDING_STATUSES,
            payment_status__in=[
                PaymentStatus.UNPAID.value,
                PaymentStatus.PENDING_APPROVAL.value,
            ],
            hold_expires_at__lte=now,
        ).order_by("hold_expires_at")
        return [_to_registration(row) for row in rows]

    def list_legacy_stock_events(self) -> list[Event]:
        rows = models.Event.objects.filter(
            kind=EventKind.MERCHANDISE.value,
            total_stock__isnull=False,
            stock_backfilled=False,
        ).prefetch_related("variants")
        return [_to_event(row, list(row.variants.all())) for row in rows]

    def list_transitions(self, registration_id: RegistrationId) -> list[TransitionRecord]:
        rows = models.RegistrationTransition.objects.filter(
            registration_id=registration_id.value
        )
        return [_to_transition(row) for row in rows]

    @contextmanager
    def event_lock(self, event_id: EventId) -> Iterator[None]:
        with transaction.atomic():
            # Row lock on the event serializes admissions for it; the partial
            # unique constraint still backs the duplicate check.
            list(models.Event.objects.select_for_update().filter(pk=event_id.value))
            yield

    def load_admission_snapshot(
        self, event_id: EventId, participant_id: ParticipantId
    ) -> AdmissionSnapshot | None:
        event = self.get_event(event_id)
        if event is None:
            return None
        active = models.Registration.objects.filter(
            event_id=event_id.value, status__in=_ACTIVE_VALUES
        )
        return AdmissionSnapshot(
            event=event,
            has_active_registration=active.filter(
                participant_id=participant_id.value
            ).exists(),
            active_count=active.count(),
        )

    def insert_registration(
        self, new: NewRegistration, record: TransitionRecord
    ) -> Registration:
        try:
            with transaction.atomic():
                row = models.Registration.objects.create(
                    id=new.id.value,
                    event_id=new.event_id.value,
                    participant_id=new.participant.id.value,
                    participant_name=new.participant.name,
                    participant_email=new.participant.email,
                    kind=new.kind.value,
                    form_answers=new.form_answers,
                    variant_id=new.variant_id.value if new.variant_id else None,
                    quantity=new.quantity,
                    status=new.status.value,
                    payment_status=new.payment_status.value,
                    amount_due=new.amount_due.amount,
                    amount_paid=new.amount_paid.amount,
                    hold_expires_at=new.hold_expires_at,
                    created_at=new.created_at,
                )
        except IntegrityError as exc:
            raise AlreadyRegisteredError() from exc
        self.record_transition(record)
        return _to_registration(row)

    def decrement_stock_if_sufficient(self, variant_id: VariantId, quantity: int) -> bool:
        updated = models.Variant.objects.filter(
            pk=variant_id.value, stock__gte=quantity
        ).update(stock=F("stock") - quantity)
        return updated == 1

    def release_stock(self, registration_id: RegistrationId) -> bool:
        with transaction.atomic():
            row = (
                models.Registration.objects.select_for_update()
                .filter(pk=registration_id.value)
                .first()
            )
            if row is None or row.variant_id is None or row.quantity == 0:
                return False
            flipped = models.Registration.objects.filter(
                pk=row.pk, stock_released=False
            ).update(stock_released=True, hold_expires_at=None, updated_at=Now())
            if not flipped:
                return False
            models.Variant.objects.filter(pk=row.variant_id).update(
                stock=F("stock") + row.quantity
            )
            return True

    def backfill_variant_stock(
        self, event_id: EventId, stocks: Mapping[VariantId, int]
    ) -> bool:
        with transaction.atomic():
            claimed = models.Event.objects.filter(
                pk=event_id.value, stock_backfilled=False
            ).update(stock_backfilled=True)
            if not claimed:
                return False
            for variant_id, stock in stocks.items():
                models.Variant.objects.filter(
                    pk=variant_id.value, event_id=event_id.value
                ).update(stock=stock)
            return True

    def update_registration_if(
        self,
        registration_id: RegistrationId,
        expected_status: frozenset[RegistrationStatus],
        expected_payment_status: frozenset[PaymentStatus],
        changes: Mapping[str, Any],
        record: TransitionRecord,
    ) -> Registration | None:
        with transaction.atomic():
            updated = models.Registration.objects.filter(
                pk=registration_id.value,
                status__in=[s.value for s in expected_status],
                payment_status__in=[s.value for s in expected_payment_status],
            ).update(**_to_columns(changes), updated_at=Now())
            if not updated:
                return None
            self.record_transition(record)
        return self.get_registration(registration_id)

    def issue_ticket(
        self, registration_id: RegistrationId, ticket: Ticket, record: TransitionRecord
    ) -> tuple[Registration, bool]:
        with transaction.atomic():
            issued = models.Registration.objects.filter(
                pk=registration_id.value,
                status=RegistrationStatus.CONFIRMED.value,
                ticket_id__isnull=True,
            ).update(
                ticket_id=ticket.ticket_id.value,
                ticket_payload=ticket.payload,
                ticket_issued_at=ticket.issued_at,
                updated_at=Now(),
            )
            if issued:
                self.record_transition(record)
        registration = self.get_registration(registration_id)
        return registration, bool(issued)

    def mark_attended(
        self,
        ticket_id: TicketId,
        actor_id: ParticipantId,
        now: datetime,
        record: TransitionRecord,
    ) -> bool:
        with transaction.atomic():
            marked = models.Registration.objects.filter(
                ticket_id=ticket_id.value,
                status=RegistrationStatus.CONFIRMED.value,
                attended=False,
            ).update(
                attended=True,
                attended_at=now,
                attendance_marked_by=actor_id.value,
                updated_at=Now(),
            )
            if marked:
                self.record_transition(record)
        return bool(marked)

    def record_transition(self, record: TransitionRecord) -> None:
        models.RegistrationTransition.objects.create(
            registration_id=record.registration_id.value,
            action=record.action.value,
            from_status=record.from_status.value if record.from_status else None,
            to_status=record.to_status.value,
            from_payment_status=(
                record.from_payment_status.value if record.from_payment_status else None
            ),
            to_payment_status=record.to_payment_status.value,
            actor_id=record.actor_id.value if record.actor_id else None,
            note=record.note,
            occurred_at=record.occurred_at,
        )

    def add_event_revenue(self, event_id: EventId, amount: Money) -> None:
        models.Event.objects.filter(pk=event_id.value).update(
            total_revenue=F("total_revenue") + amount.amount
        )

    def increment_event_attendance(self, event_id: EventId) -> None:
        models.Event.objects.filter(pk=event_id.value).update(
            total_attendance=F("total_attendance") + 1
        )


def _to_columns(changes: Mapping[str, Any]) -> dict[str, Any]:
    """Flatten domain values (enums, value objects) into column values."""
    columns: dict[str, Any] = {}
    for name, value in changes.items():
        if isinstance(value, (RegistrationStatus, PaymentStatus)):
            value = value.value
        elif isinstance(value, Money):
            value = value.amount
        elif isinstance(value, (ParticipantId, RegistrationId, VariantId, TicketId)):
            value = value.value
        columns[name] = value
    return columns


def _to_variant(row: models.Variant) -> Variant:
    return Variant(
        id=VariantId(row.id),
        event_id=EventId(row.event_id),
        name=row.name,
        size=row.size,
        color=row.color,
        price=Money(row.price) if row.price is not None else None,
        stock=row.stock,
        position=row.position,
    )


def _to_event(row: models.Event, variants: list[models.Variant]) -> Event:
    return Event(
        id=EventId(row.id),
        name=row.name,
        organizer_id=ParticipantId(row.organizer_id),
        kind=EventKind(row.kind),
        eligibility=Eligibility(row.eligibility),
        registration_deadline=row.registration_deadline,
        starts_at=row.starts_at,
        ends_at=row.ends_at,
        capacity=Capacity(row.capacity) if row.capacity is not None else None,
        registration_fee=Money(Decimal(row.registration_fee)),
        status=EventStatus(row.status),
        allow_late_registration=row.allow_late_registration,
        custom_form=tuple(
            FormField(
                field_name=field["field_name"],
                field_type=field.get("field_type", "TEXT"),
                required=bool(field.get("required", False)),
                options=tuple(field.get("options") or ()),
            )
            for field in row.custom_form or []
        ),
        total_stock=row.total_stock,
        stock_backfilled=row.stock_backfilled,
        purchase_limit=row.purchase_limit,
        variants=tuple(_to_variant(v) for v in variants),
    )


def _to_registration(row: models.Registration) -> Registration:
    return Registration(
        id=RegistrationId(row.id),
        event_id=EventId(row.event_id),
        participant_id=ParticipantId(row.participant_id),
        participant_name=row.participant_name,
        participant_email=row.participant_email,
        kind=RegistrationKind(row.kind),
        status=RegistrationStatus(row.status),
        payment_status=PaymentStatus(row.payment_status),
        amount_due=Money(Decimal(row.amount_due)),
        amount_paid=Money(Decimal(row.amount_paid)),
        created_at=row.created_at,
        updated_at=row.updated_at,
        form_answers=row.form_answers or {},
        variant_id=VariantId(row.variant_id) if row.variant_id else None,
        quantity=row.quantity,
        payment_proof=row.payment_proof,
        proof_submitted_at=row.proof_submitted_at,
        rejection_reason=row.rejection_reason,
        approved_by=ParticipantId(row.approved_by) if row.approved_by else None,
        approved_at=row.approved_at,
        hold_expires_at=row.hold_expires_at,
        stock_released=row.stock_released,
        ticket_id=TicketId(row.ticket_id) if row.ticket_id else None,
        ticket_payload=row.ticket_payload,
        ticket_issued_at=row.ticket_issued_at,
        attended=row.attended,
        attended_at=row.attended_at,
        attendance_marked_by=(
            ParticipantId(row.attendance_marked_by) if row.attendance_marked_by else None
        ),
    )


def _to_transition(row: models.RegistrationTransition) -> TransitionRecord:
    return TransitionRecord(
        registration_id=RegistrationId(row.registration_id),
        action=TransitionAction(row.action),
        from_status=RegistrationStatus(row.from_status) if row.from_status else None,
        to_status=RegistrationStatus(row.to_status),
        from_payment_status=(
            PaymentStatus(row.from_payment_status) if row.from_payment_status else None
        ),
        to_payment_status=PaymentStatus(row.to_payment_status),
        actor_id=ParticipantId(row.actor_id) if row.actor_id else None,
        occurred_at=row.occurred_at,
        note=row.note,
    )
