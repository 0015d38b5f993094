"""Ticket issuance and QR rendering."""

import json
from collections.abc import Callable
from datetime import datetime
from uuid import uuid4

import segno
import structlog
from django.utils import timezone

from registrations.domain import ParticipantId, Registration, Ticket, TicketId, TransitionRecord
from registrations.domain.errors import InvalidStateError
from registrations.domain.status import TransitionAction
from registrations.stores.interfaces import RegistrationStore

logger = structlog.get_logger(__name__)


def encode_credential(ticket_id: TicketId) -> str:
    """Scannable payload for a ticket. Carries the ticket ID and nothing else."""
    return json.dumps({"ticketId": ticket_id.value}, separators=(",", ":"))


def render_qr(payload: str, kind: str = "svg", scale: int = 4) -> str:
    """Render a credential payload as a QR code data URI."""
    qr = segno.make_qr(payload, error="h")
    if kind == "png":
        return qr.png_data_uri(scale=scale, border=1)
    return qr.svg_data_uri(scale=scale, border=1)


class TicketIssuer:
    """Mints exactly one ticket per confirmed registration."""

    def __init__(
        self,
        store: RegistrationStore,
        prefix: str = "FEL",
        now: Callable[[], datetime] = timezone.now,
    ) -> None:
        self._store = store
        self._prefix = prefix
        self._now = now

    def generate_ticket_id(self, issued_at: datetime) -> TicketId:
        return TicketId(f"{self._prefix}-{issued_at.year}-{uuid4().hex[:16].upper()}")

    def issue(
        self, registration: Registration, actor_id: ParticipantId | None = None
    ) -> tuple[Ticket, bool]:
        """Issue a ticket, or return the one already issued.

        Returns the ticket and whether this call created it.

        Raises:
            InvalidStateError: If the registration is not confirmed.
        """
        if registration.ticket is not None:
            return registration.ticket, False

        issued_at = self._now()
        ticket_id = self.generate_ticket_id(issued_at)
        ticket = Ticket(
            ticket_id=ticket_id,
            registration_id=registration.id,
            event_id=registration.event_id,
            payload=encode_credential(ticket_id),
            issued_at=issued_at,
        )
        record = TransitionRecord(
            registration_id=registration.id,
            action=TransitionAction.TICKET_ISSUED,
            from_status=registration.status,
            to_status=registration.status,
            from_payment_status=registration.payment_status,
            to_payment_status=registration.payment_status,
            actor_id=actor_id,
            occurred_at=issued_at,
            note=ticket_id.value,
        )
        current, created = self._store.issue_ticket(registration.id, ticket, record)
        if current.ticket is None:
            raise InvalidStateError(
                "issue a ticket", current.status.value, current.payment_status.value
            )
        if created:
            logger.info(
                "ticket_issued",
                registration_id=str(registration.id),
                ticket_id=ticket_id.value,
            )
        return current.ticket, created
