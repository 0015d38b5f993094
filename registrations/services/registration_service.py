"""Registration service - the engine boundary.

Services:
- Depend only on interfaces (stores, notifier)
- Re-validate authorization on every operation
- Parse identifiers and map absence to domain errors
- Return domain models or raise domain errors

Admission runs inside the store's event lock so the checks and the insert
see the same state. Notifications are handed to the notifier after the
state change and never undo it.
"""

from collections.abc import Callable
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Self
from uuid import uuid4

import structlog
from django.conf import settings
from django.utils import timezone

from registrations.domain import (
    Actor,
    Event,
    EventId,
    Money,
    NewRegistration,
    Registration,
    RegistrationId,
    Selection,
    Ticket,
    TransitionRecord,
    Variant,
    VerificationResult,
)
from registrations.domain.errors import (
    EventNotFoundError,
    InvalidIdError,
    InvalidStateError,
    RegistrationNotFoundError,
    TicketNotFoundError,
    UnauthorizedError,
)
from registrations.domain.status import (
    EventKind,
    PaymentStatus,
    RegistrationKind,
    RegistrationStatus,
    Role,
    TransitionAction,
)
from registrations.services.admission import AdmissionController
from registrations.services.inventory import InventoryAllocator
from registrations.services.notifications import (
    NotificationKind,
    Notifier,
    SignalNotifier,
)
from registrations.services.payments import PaymentWorkflow
from registrations.services.tickets import TicketIssuer
from registrations.services.verification import TicketVerifier
from registrations.stores.interfaces import RegistrationStore

logger = structlog.get_logger(__name__)


class RegistrationService:
    """Service for the registration lifecycle, from admission to check-in."""

    def __init__(
        self,
        store: RegistrationStore,
        notifier: Notifier | None = None,
        *,
        now: Callable[[], datetime] = timezone.now,
        hold_timeout: timedelta = timedelta(hours=48),
        ticket_prefix: str = "FEL",
    ) -> None:
        self._store = store
        self._notifier = notifier
        self._now = now
        self._hold_timeout = hold_timeout
        self.inventory = InventoryAllocator(store)
        self.admission = AdmissionController(self.inventory)
        self.issuer = TicketIssuer(store, prefix=ticket_prefix, now=now)
        self.payments = PaymentWorkflow(
            store, self.inventory, self.issuer, hold_timeout, now=now
        )
        self.verifier = TicketVerifier(store, now=now)

    @classmethod
    def from_settings(cls) -> Self:
        """Build the service over the Django store with project settings."""
        from registrations.stores.django_store import DjangoRegistrationStore

        return cls(
            DjangoRegistrationStore(),
            SignalNotifier(),
            hold_timeout=settings.REGISTRATION_HOLD_TIMEOUT,
            ticket_prefix=settings.TICKET_ID_PREFIX,
        )

    # Registration

    def create_registration(
        self, event_id: str, actor: Actor, selection: Selection
    ) -> Registration:
        """Admit a participant and create their registration.

        Free standard registrations are confirmed and ticketed immediately.
        Everything else starts PENDING/UNPAID, with merchandise units
        reserved and held until the hold timeout.

        Raises:
            InvalidIdError: If the event_id is not a valid UUID.
            UnauthorizedError: If the actor is not a participant.
            EventNotFoundError: If the event does not exist.
            DomainError: Any admission or stock failure.
        """
        eid = self._parse_event_id(event_id)
        if actor.role is not Role.PARTICIPANT:
            raise UnauthorizedError("Only participants can register for events")

        ticket_created = False
        with self._store.event_lock(eid):
            snapshot = self._store.load_admission_snapshot(eid, actor.id)
            if snapshot is None:
                raise EventNotFoundError(event_id)
            event = snapshot.event
            now = self._now()
            variant = self.admission.check(snapshot, actor, selection, now)
            if variant is not None:
                self.inventory.reserve(event, variant, selection.quantity)

            new = self._build_registration(event, actor, selection, variant, now)
            registration = self._store.insert_registration(
                new,
                TransitionRecord(
                    registration_id=new.id,
                    action=TransitionAction.CREATED,
                    from_status=None,
                    to_status=new.status,
                    from_payment_status=None,
                    to_payment_status=new.payment_status,
                    actor_id=actor.id,
                    occurred_at=now,
                ),
            )
            if registration.status is RegistrationStatus.CONFIRMED:
                _, ticket_created = self.issuer.issue(registration, actor.id)
                registration = self._get_registration(registration.id)

        logger.info(
            "registration_created",
            registration_id=str(registration.id),
            event_id=str(eid),
            participant_id=str(actor.id),
            kind=registration.kind.value,
            status=registration.status.value,
        )
        if ticket_created:
            self._notify(NotificationKind.TICKET_ISSUED, registration)
        return registration

    def _build_registration(
        self,
        event: Event,
        actor: Actor,
        selection: Selection,
        variant: Variant | None,
        now: datetime,
    ) -> NewRegistration:
        if event.kind is EventKind.MERCHANDISE:
            kind = RegistrationKind.MERCHANDISE
            quantity = selection.quantity
            amount_due = event.unit_price(variant) * quantity
        else:
            kind = RegistrationKind.STANDARD
            quantity = 0
            amount_due = event.registration_fee

        if amount_due.is_zero:
            status, payment_status = RegistrationStatus.CONFIRMED, PaymentStatus.PAID
            hold_expires_at = None
        else:
            status, payment_status = RegistrationStatus.PENDING, PaymentStatus.UNPAID
            hold_expires_at = now + self._hold_timeout if variant is not None else None

        return NewRegistration(
            id=RegistrationId(uuid4()),
            event_id=event.id,
            participant=actor,
            kind=kind,
            status=status,
            payment_status=payment_status,
            amount_due=amount_due,
            amount_paid=Money(Decimal("0")),
            form_answers=dict(selection.form_answers) if variant is None else {},
            variant_id=variant.id if variant is not None else None,
            quantity=quantity,
            hold_expires_at=hold_expires_at,
            created_at=now,
        )

    def get_registration(self, registration_id: str, actor: Actor) -> Registration:
        """Return a registration visible to its owner or the event's organizer.

        Raises:
            InvalidIdError, RegistrationNotFoundError, UnauthorizedError.
        """
        registration = self._get_registration(self._parse_registration_id(registration_id))
        self._require_owner_or_organizer(registration, actor)
        return registration

    def get_ticket(self, registration_id: str, actor: Actor) -> Ticket:
        """Return the ticket of a confirmed registration.

        Raises:
            InvalidIdError, RegistrationNotFoundError, UnauthorizedError,
            TicketNotFoundError: If no ticket has been issued yet.
        """
        registration = self.get_registration(registration_id, actor)
        ticket = registration.ticket
        if ticket is None:
            raise TicketNotFoundError(registration_id)
        return ticket

    def cancel_registration(self, registration_id: str, actor: Actor) -> Registration:
        """Cancel a registration and release its reservation.

        Raises:
            InvalidIdError, RegistrationNotFoundError, UnauthorizedError,
            InvalidStateError: If already cancelled, attended, or the event
                has started.
        """
        rid = self._parse_registration_id(registration_id)
        registration = self._get_registration(rid)
        event = self._get_event(registration.event_id)
        if not (actor.id == registration.participant_id or event.is_organized_by(actor)):
            raise UnauthorizedError("Only the participant or the organizer can cancel")

        with self._store.event_lock(event.id):
            registration = self._get_registration(rid)
            if registration.attended or self._now() >= event.starts_at:
                raise InvalidStateError(
                    "cancel registration",
                    registration.status.value,
                    registration.payment_status.value,
                )
            cancelled = self.payments.cancel(registration, actor)

        self._notify(NotificationKind.REGISTRATION_CANCELLED, cancelled)
        return cancelled

    # Payments

    def submit_payment_proof(
        self, registration_id: str, actor: Actor, proof_ref: str
    ) -> Registration:
        """Attach a payment proof on behalf of the owning participant.

        Raises:
            InvalidIdError, RegistrationNotFoundError, UnauthorizedError,
            InvalidStateError: If the payment is not UNPAID.
        """
        registration = self._get_registration(self._parse_registration_id(registration_id))
        if actor.id != registration.participant_id:
            raise UnauthorizedError("Only the registered participant can submit payment proof")
        return self.payments.submit_proof(registration, actor, proof_ref)

    def approve_payment(self, registration_id: str, actor: Actor) -> Registration:
        """Approve a pending payment; idempotent once PAID.

        Raises:
            InvalidIdError, RegistrationNotFoundError, UnauthorizedError,
            InvalidStateError: If the payment is not awaiting approval.
        """
        registration = self._get_registration(self._parse_registration_id(registration_id))
        self._require_organizer(registration, actor)
        approved, ticket_created = self.payments.approve(registration, actor)
        if ticket_created:
            self._notify(NotificationKind.TICKET_ISSUED, approved)
        return approved

    def reject_payment(
        self, registration_id: str, actor: Actor, reason: str
    ) -> Registration:
        """Reject a pending payment with a reason.

        Raises:
            InvalidIdError, RegistrationNotFoundError, UnauthorizedError,
            EmptyReasonError, InvalidStateError.
        """
        registration = self._get_registration(self._parse_registration_id(registration_id))
        self._require_organizer(registration, actor)
        rejected = self.payments.reject(registration, actor, reason)
        self._notify(NotificationKind.PAYMENT_REJECTED, rejected)
        return rejected

    def list_pending_approvals(self, event_id: str, actor: Actor) -> list[Registration]:
        """Return the organizer's approval queue for an event, oldest first.

        Raises:
            InvalidIdError, EventNotFoundError, UnauthorizedError.
        """
        event = self._get_event(self._parse_event_id(event_id))
        if not event.is_organized_by(actor):
            raise UnauthorizedError("Only the organizer can review payments")
        return self._store.list_registrations(
            event.id, payment_status=PaymentStatus.PENDING_APPROVAL
        )

    # Rosters

    def list_event_registrations(
        self,
        event_id: str,
        actor: Actor,
        status: RegistrationStatus | None = None,
        search: str | None = None,
    ) -> list[Registration]:
        """Return an event's registrations, newest first.

        ``search`` matches the participant's name or email, ignoring case.

        Raises:
            InvalidIdError, EventNotFoundError, UnauthorizedError.
        """
        event = self._get_event(self._parse_event_id(event_id))
        if not event.is_organized_by(actor):
            raise UnauthorizedError("Only the organizer can view registrations")
        registrations = self._store.list_registrations(event.id, status=status)
        needle = (search or "").strip().lower()
        if needle:
            registrations = [
                r
                for r in registrations
                if needle in r.participant_name.lower()
                or needle in r.participant_email.lower()
            ]
        return registrations[::-1]

    def list_my_registrations(
        self,
        actor: Actor,
        status: RegistrationStatus | None = None,
        kind: RegistrationKind | None = None,
    ) -> list[Registration]:
        """Return the actor's own registrations across events, newest first."""
        return self._store.list_participant_registrations(actor.id, status=status, kind=kind)

    # Tickets

    def verify_ticket(
        self, credential: str, actor: Actor, override: bool = False
    ) -> VerificationResult:
        """Check a presented credential in at the venue."""
        return self.verifier.verify(credential, actor, override=override)

    # Inventory

    def stock_levels(self, event_id: str) -> list[tuple[Variant, int]]:
        """Return each variant with its current effective stock.

        Raises:
            InvalidIdError, EventNotFoundError.
        """
        event = self._get_event(self._parse_event_id(event_id))
        return self.inventory.stock_levels(event)

    def release_expired_holds(self, now: datetime | None = None) -> list[Registration]:
        """Cancel unconfirmed registrations whose hold has expired and free their stock."""
        now = now or self._now()
        released = []
        for registration in self._store.list_expired_holds(now):
            with self._store.event_lock(registration.event_id):
                current = self._get_registration(registration.id)
                expired = self.payments.expire(current, now)
            if expired is not None:
                released.append(expired)
        logger.info("expired_holds_released", count=len(released))
        return released

    def backfill_legacy_stock(self) -> int:
        """Persist derived stock for every event still using the legacy fallback."""
        count = 0
        for event in self._store.list_legacy_stock_events():
            with self._store.event_lock(event.id):
                current = self._get_event(event.id)
                if self.inventory.backfill(current):
                    count += 1
        return count

    # Helpers

    def _notify(self, kind: NotificationKind, registration: Registration) -> None:
        if self._notifier is None:
            return
        self._notifier.notify(kind, registration)

    def _require_organizer(self, registration: Registration, actor: Actor) -> None:
        event = self._get_event(registration.event_id)
        if not event.is_organized_by(actor):
            raise UnauthorizedError("Only the organizer can review payments")

    def _require_owner_or_organizer(self, registration: Registration, actor: Actor) -> None:
        if actor.id == registration.participant_id:
            return
        event = self._get_event(registration.event_id)
        if not event.is_organized_by(actor):
            raise UnauthorizedError("You cannot view this registration")

    def _get_event(self, event_id: EventId) -> Event:
        event = self._store.get_event(event_id)
        if event is None:
            raise EventNotFoundError(str(event_id))
        return event

    def _get_registration(self, registration_id: RegistrationId) -> Registration:
        registration = self._store.get_registration(registration_id)
        if registration is None:
            raise RegistrationNotFoundError(str(registration_id))
        return registration

    @staticmethod
    def _parse_event_id(event_id: str) -> EventId:
        try:
            return EventId.from_string(event_id)
        except (ValueError, TypeError, AttributeError):
            raise InvalidIdError("event ID")

    @staticmethod
    def _parse_registration_id(registration_id: str) -> RegistrationId:
        try:
            return RegistrationId.from_string(registration_id)
        except (ValueError, TypeError, AttributeError):
            raise InvalidIdError("registration ID")
