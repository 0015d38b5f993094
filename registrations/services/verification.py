"""Check-in: validate a presented ticket and mark attendance exactly once."""

import json
from collections.abc import Callable
from datetime import datetime

import structlog
from django.utils import timezone

from registrations.domain import (
    Actor,
    Event,
    Registration,
    TicketId,
    TransitionRecord,
    VerificationResult,
)
from registrations.domain.errors import (
    AlreadyScannedError,
    TicketInvalidError,
    TicketNotFoundError,
    UnauthorizedError,
)
from registrations.domain.status import RegistrationStatus, TransitionAction
from registrations.stores.interfaces import RegistrationStore

logger = structlog.get_logger(__name__)


def parse_credential(credential: str) -> TicketId:
    """Extract the ticket ID from a scanned credential.

    A JSON object yields its ``ticketId`` (or ``ticket_id``) field; any other
    payload is taken whole as the ticket ID.

    Raises:
        TicketNotFoundError: If no ticket ID can be extracted.
    """
    raw = (credential or "").strip()
    if raw.startswith("{"):
        try:
            payload = json.loads(raw)
        except json.JSONDecodeError:
            payload = None
        if isinstance(payload, dict):
            value = payload.get("ticketId") or payload.get("ticket_id")
            if not isinstance(value, str) or not value.strip():
                raise TicketNotFoundError(raw)
            return TicketId(value.strip())
    if not raw:
        raise TicketNotFoundError(raw)
    return TicketId(raw)


class TicketVerifier:
    """Validates tickets at the venue.

    The attendance flag is only ever set through the store's
    mark-if-unmarked primitive, so two scanners racing on one ticket get
    one success and one AlreadyScannedError carrying the winner's timestamp.
    """

    def __init__(
        self, store: RegistrationStore, now: Callable[[], datetime] = timezone.now
    ) -> None:
        self._store = store
        self._now = now

    def verify(
        self, credential: str, actor: Actor, override: bool = False
    ) -> VerificationResult:
        """Check a ticket in.

        ``override`` lets staff admit an already scanned ticket after
        looking at who used it. It never applies to unknown or invalid
        tickets.

        Raises:
            TicketNotFoundError: No registration owns the ticket.
            UnauthorizedError: The actor does not organize the event.
            TicketInvalidError: The registration is not confirmed.
            AlreadyScannedError: Attendance was already marked.
        """
        ticket_id = parse_credential(credential)
        registration = self._store.find_by_ticket(ticket_id)
        if registration is None:
            logger.info("ticket_not_found", ticket_id=ticket_id.value)
            raise TicketNotFoundError(ticket_id.value)

        event = self._store.get_event(registration.event_id)
        if event is None or not event.is_organized_by(actor):
            raise UnauthorizedError(
                "Unauthorized - this ticket belongs to another organizer's event"
            )
        self._require_confirmed(ticket_id, registration)

        now = self._now()
        record = TransitionRecord(
            registration_id=registration.id,
            action=TransitionAction.CHECKED_IN,
            from_status=registration.status,
            to_status=registration.status,
            from_payment_status=registration.payment_status,
            to_payment_status=registration.payment_status,
            actor_id=actor.id,
            occurred_at=now,
        )
        if self._store.mark_attended(ticket_id, actor.id, now, record):
            self._store.increment_event_attendance(event.id)
            logger.info(
                "ticket_verified",
                ticket_id=ticket_id.value,
                registration_id=str(registration.id),
                scanned_by=str(actor.id),
            )
            return self._result(registration, event, now)

        current = self._store.find_by_ticket(ticket_id)
        self._require_confirmed(ticket_id, current)

        if override:
            self._store.record_transition(
                TransitionRecord(
                    registration_id=current.id,
                    action=TransitionAction.CHECK_IN_OVERRIDE,
                    from_status=current.status,
                    to_status=current.status,
                    from_payment_status=current.payment_status,
                    to_payment_status=current.payment_status,
                    actor_id=actor.id,
                    occurred_at=now,
                    note=f"first scanned at {current.attended_at.isoformat()}",
                )
            )
            logger.warning(
                "ticket_check_in_overridden",
                ticket_id=ticket_id.value,
                registration_id=str(current.id),
                scanned_by=str(actor.id),
            )
            return self._result(current, event, current.attended_at, overridden=True)

        logger.info(
            "ticket_already_scanned",
            ticket_id=ticket_id.value,
            registration_id=str(current.id),
            scanned_at=current.attended_at.isoformat(),
        )
        raise AlreadyScannedError(
            ticket_id=ticket_id.value,
            scanned_at=current.attended_at,
            participant_id=str(current.participant_id),
            participant_name=current.participant_name,
        )

    @staticmethod
    def _require_confirmed(ticket_id: TicketId, registration: Registration) -> None:
        if registration.status is not RegistrationStatus.CONFIRMED:
            raise TicketInvalidError(
                ticket_id.value,
                registration.status.value,
                registration.payment_status.value,
            )

    @staticmethod
    def _result(
        registration: Registration,
        event: Event,
        scanned_at: datetime,
        overridden: bool = False,
    ) -> VerificationResult:
        return VerificationResult(
            ticket_id=registration.ticket_id,
            registration_id=registration.id,
            participant_id=registration.participant_id,
            participant_name=registration.participant_name,
            participant_email=registration.participant_email,
            event_id=event.id,
            event_name=event.name,
            event_starts_at=event.starts_at,
            status=registration.status,
            payment_status=registration.payment_status,
            scanned_at=scanned_at,
            overridden=overridden,
        )
