"""Payment approval workflow.

UNPAID -> PENDING_APPROVAL -> PAID, with rejection sending the payment back
to UNPAID so the participant can resubmit. Each step is a compare-and-set on
the registration's (status, payment_status) drawn from the transition table
in domain/status.py.
"""

from collections.abc import Callable
from datetime import datetime, timedelta
from typing import Any

import structlog
from django.utils import timezone

from registrations.domain import Actor, Registration, TransitionRecord
from registrations.domain.errors import (
    EmptyReasonError,
    InvalidSelectionError,
    InvalidStateError,
    RegistrationNotFoundError,
)
from registrations.domain.status import (
    PaymentStatus,
    RegistrationStatus,
    TransitionAction,
    payment_sources,
    status_sources,
)
from registrations.services.inventory import InventoryAllocator
from registrations.services.tickets import TicketIssuer
from registrations.stores.interfaces import RegistrationStore

logger = structlog.get_logger(__name__)


class PaymentWorkflow:
    """Drives a registration's payment sub-state."""

    def __init__(
        self,
        store: RegistrationStore,
        inventory: InventoryAllocator,
        issuer: TicketIssuer,
        hold_timeout: timedelta,
        now: Callable[[], datetime] = timezone.now,
    ) -> None:
        self._store = store
        self._inventory = inventory
        self._issuer = issuer
        self._hold_timeout = hold_timeout
        self._now = now

    def submit_proof(
        self, registration: Registration, actor: Actor, proof_ref: str
    ) -> Registration:
        """Attach a payment proof and queue the registration for approval.

        Raises:
            InvalidStateError: If the payment is not currently UNPAID.
        """
        if not proof_ref or not proof_ref.strip():
            raise InvalidSelectionError("A payment proof is required")
        now = self._now()
        changes: dict[str, Any] = {
            "status": RegistrationStatus.PENDING,
            "payment_status": PaymentStatus.PENDING_APPROVAL,
            "payment_proof": proof_ref.strip(),
            "proof_submitted_at": now,
            "rejection_reason": None,
        }
        if registration.holds_stock:
            changes["hold_expires_at"] = now + self._hold_timeout
        updated = self._transition(
            registration,
            "submit payment proof",
            TransitionAction.PROOF_SUBMITTED,
            actor,
            now,
            changes,
        )
        logger.info(
            "payment_proof_submitted",
            registration_id=str(registration.id),
            participant_id=str(actor.id),
        )
        return updated

    def approve(
        self, registration: Registration, actor: Actor
    ) -> tuple[Registration, bool]:
        """Mark the payment as paid, confirm the registration and issue its ticket.

        Approving an already paid registration is a successful no-op, so a
        retried request ends in the same state with the same single ticket.
        Returns the registration and whether this call issued the ticket.

        Raises:
            InvalidStateError: If the payment is not awaiting approval.
        """
        if registration.payment_status is PaymentStatus.PAID:
            return self._ensure_ticket(registration, actor)

        now = self._now()
        changes = {
            "status": RegistrationStatus.CONFIRMED,
            "payment_status": PaymentStatus.PAID,
            "amount_paid": registration.amount_due,
            "approved_by": actor.id,
            "approved_at": now,
            "hold_expires_at": None,
        }
        try:
            updated = self._transition(
                registration, "approve payment", TransitionAction.APPROVED, actor, now, changes
            )
        except InvalidStateError:
            current = self._reload(registration)
            if current.payment_status is PaymentStatus.PAID:
                return self._ensure_ticket(current, actor)
            raise

        self._store.add_event_revenue(updated.event_id, updated.amount_paid)
        logger.info(
            "payment_approved",
            registration_id=str(registration.id),
            approved_by=str(actor.id),
            amount=str(updated.amount_paid),
        )
        return self._ensure_ticket(updated, actor)

    def reject(self, registration: Registration, actor: Actor, reason: str) -> Registration:
        """Send the payment back to the participant with a reason.

        If the registration's stock hold has already expired, the units go
        back to the pool and the registration is cancelled instead of left
        open for resubmission.

        Raises:
            EmptyReasonError: If ``reason`` is blank.
            InvalidStateError: If the payment is not awaiting approval.
        """
        reason = (reason or "").strip()
        if not reason:
            raise EmptyReasonError()

        now = self._now()
        base: dict[str, Any] = {"rejection_reason": reason, "payment_proof": None}
        if registration.holds_stock and registration.hold_expired(now):
            changes = {
                **base,
                "status": RegistrationStatus.CANCELLED,
                "payment_status": PaymentStatus.REJECTED,
                "hold_expires_at": None,
            }
            updated = self._transition(
                registration,
                "reject payment",
                TransitionAction.REJECTED,
                actor,
                now,
                changes,
                note=reason,
            )
            self._inventory.release(updated)
            updated = self._reload(updated)
            logger.info(
                "payment_rejected_hold_expired",
                registration_id=str(registration.id),
                rejected_by=str(actor.id),
            )
            return updated

        changes = {
            **base,
            "status": RegistrationStatus.REJECTED,
            "payment_status": PaymentStatus.UNPAID,
        }
        updated = self._transition(
            registration,
            "reject payment",
            TransitionAction.REJECTED,
            actor,
            now,
            changes,
            note=reason,
        )
        logger.info(
            "payment_rejected",
            registration_id=str(registration.id),
            rejected_by=str(actor.id),
        )
        return updated

    def cancel(self, registration: Registration, actor: Actor) -> Registration:
        """Cancel a registration and return any reserved units.

        Raises:
            InvalidStateError: If the registration is already cancelled.
        """
        now = self._now()
        changes = {"status": RegistrationStatus.CANCELLED, "hold_expires_at": None}
        updated = self._transition(
            registration,
            "cancel registration",
            TransitionAction.CANCELLED,
            actor,
            now,
            changes,
        )
        self._inventory.release(updated)
        logger.info(
            "registration_cancelled",
            registration_id=str(registration.id),
            cancelled_by=str(actor.id),
        )
        return self._reload(updated)

    def expire(
        self, registration: Registration, now: datetime | None = None
    ) -> Registration | None:
        """Cancel a registration whose stock hold timed out.

        Only applies while the registration is still in the state it was
        read in; returns None if it moved on in the meantime.
        """
        now = now or self._now()
        if not registration.hold_expired(now):
            return None
        changes = {"status": RegistrationStatus.CANCELLED, "hold_expires_at": None}
        try:
            updated = self._transition(
                registration,
                "expire hold",
                TransitionAction.EXPIRED,
                None,
                now,
                changes,
                expected_status=frozenset({registration.status}),
                expected_payment_status=frozenset({registration.payment_status}),
            )
        except InvalidStateError:
            return None
        self._inventory.release(updated)
        logger.info(
            "hold_expired",
            registration_id=str(registration.id),
            hold_expires_at=registration.hold_expires_at.isoformat(),
        )
        return self._reload(updated)

    def _transition(
        self,
        registration: Registration,
        action_name: str,
        action: TransitionAction,
        actor: Actor | None,
        now: datetime,
        changes: dict[str, Any],
        note: str = "",
        expected_status: frozenset[RegistrationStatus] | None = None,
        expected_payment_status: frozenset[PaymentStatus] | None = None,
    ) -> Registration:
        target_status: RegistrationStatus = changes["status"]
        # Absent payment_status means the payment sub-state is left as is.
        target_payment: PaymentStatus | None = changes.get("payment_status")
        if not (
            registration.status.can_transition_to(target_status)
            and (
                target_payment is None
                or registration.payment_status.can_transition_to(target_payment)
            )
        ):
            raise InvalidStateError(
                action_name, registration.status.value, registration.payment_status.value
            )

        record = TransitionRecord(
            registration_id=registration.id,
            action=action,
            from_status=registration.status,
            to_status=target_status,
            from_payment_status=registration.payment_status,
            to_payment_status=target_payment or registration.payment_status,
            actor_id=actor.id if actor else None,
            occurred_at=now,
            note=note,
        )
        if expected_status is None:
            expected_status = status_sources(target_status)
        if expected_payment_status is None:
            expected_payment_status = (
                payment_sources(target_payment)
                if target_payment is not None
                else frozenset(PaymentStatus)
            )
        updated = self._store.update_registration_if(
            registration.id, expected_status, expected_payment_status, changes, record
        )
        if updated is None:
            # Lost a race: report the state that won.
            current = self._reload(registration)
            raise InvalidStateError(
                action_name, current.status.value, current.payment_status.value
            )
        return updated

    def _ensure_ticket(
        self, registration: Registration, actor: Actor
    ) -> tuple[Registration, bool]:
        _, created = self._issuer.issue(registration, actor.id)
        return self._reload(registration), created

    def _reload(self, registration: Registration) -> Registration:
        current = self._store.get_registration(registration.id)
        if current is None:
            raise RegistrationNotFoundError(str(registration.id))
        return current
