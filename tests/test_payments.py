"""Unit tests for the payment approval workflow.

Run with: pytest tests/test_payments.py -v
"""

from decimal import Decimal

import pytest
from factories import make_actor

from registrations.domain import Selection
from registrations.domain.errors import (
    EmptyReasonError,
    InvalidIdError,
    InvalidSelectionError,
    InvalidStateError,
    RegistrationNotFoundError,
    UnauthorizedError,
)
from registrations.domain.status import (
    PaymentStatus,
    RegistrationStatus,
    Role,
    TransitionAction,
)
from registrations.services.notifications import NotificationKind


@pytest.fixture
def pending(service, paid_event, participant):
    return service.create_registration(str(paid_event.id), participant, Selection())


@pytest.fixture
def submitted(service, pending, participant):
    return service.submit_payment_proof(str(pending.id), participant, "proofs/receipt.png")


class TestSubmitProof:
    def test_moves_to_pending_approval(self, submitted, clock):
        assert submitted.status is RegistrationStatus.PENDING
        assert submitted.payment_status is PaymentStatus.PENDING_APPROVAL
        assert submitted.payment_proof == "proofs/receipt.png"
        assert submitted.proof_submitted_at == clock()

    def test_only_owner_may_submit(self, service, pending, other_participant, organizer):
        with pytest.raises(UnauthorizedError):
            service.submit_payment_proof(str(pending.id), other_participant, "x.png")
        with pytest.raises(UnauthorizedError):
            service.submit_payment_proof(str(pending.id), organizer, "x.png")

    def test_blank_proof_rejected(self, service, pending, participant):
        with pytest.raises(InvalidSelectionError):
            service.submit_payment_proof(str(pending.id), participant, "   ")

    def test_cannot_submit_twice(self, service, submitted, participant):
        with pytest.raises(InvalidStateError) as exc_info:
            service.submit_payment_proof(str(submitted.id), participant, "again.png")
        assert exc_info.value.payment_status == "PENDING_APPROVAL"

    def test_unknown_registration(self, service, participant):
        with pytest.raises(RegistrationNotFoundError):
            service.submit_payment_proof(
                "00000000-0000-0000-0000-000000000000", participant, "x.png"
            )

    def test_malformed_registration_id(self, service, participant):
        with pytest.raises(InvalidIdError):
            service.submit_payment_proof("abc", participant, "x.png")


class TestApprove:
    def test_confirms_and_issues_ticket(self, service, store, submitted, organizer, notifier, clock):
        approved = service.approve_payment(str(submitted.id), organizer)

        assert approved.status is RegistrationStatus.CONFIRMED
        assert approved.payment_status is PaymentStatus.PAID
        assert approved.amount_paid == submitted.amount_due
        assert approved.approved_by == organizer.id
        assert approved.approved_at == clock()
        assert approved.ticket_id is not None
        assert store.event_revenue(approved.event_id) == Decimal("100.00")
        assert notifier.kinds() == [NotificationKind.TICKET_ISSUED]

    def test_approve_is_idempotent(self, service, store, submitted, organizer, notifier):
        first = service.approve_payment(str(submitted.id), organizer)
        second = service.approve_payment(str(submitted.id), organizer)

        assert second.ticket_id == first.ticket_id
        assert second.status is RegistrationStatus.CONFIRMED
        assert store.event_revenue(first.event_id) == Decimal("100.00")
        assert notifier.kinds() == [NotificationKind.TICKET_ISSUED]
        issued = [
            t for t in store.list_transitions(first.id)
            if t.action is TransitionAction.TICKET_ISSUED
        ]
        assert len(issued) == 1

    def test_admin_may_approve(self, service, submitted, admin_actor):
        approved = service.approve_payment(str(submitted.id), admin_actor)
        assert approved.payment_status is PaymentStatus.PAID

    def test_other_organizer_cannot_approve(self, service, submitted):
        with pytest.raises(UnauthorizedError):
            service.approve_payment(str(submitted.id), make_actor(Role.ORGANIZER))

    def test_cannot_approve_without_proof(self, service, pending, organizer):
        with pytest.raises(InvalidStateError) as exc_info:
            service.approve_payment(str(pending.id), organizer)
        assert exc_info.value.details == {"status": "PENDING", "payment_status": "UNPAID"}


class TestReject:
    def test_reject_returns_to_unpaid(self, service, submitted, organizer, notifier):
        rejected = service.reject_payment(str(submitted.id), organizer, "  Wrong amount ")

        assert rejected.status is RegistrationStatus.REJECTED
        assert rejected.payment_status is PaymentStatus.UNPAID
        assert rejected.rejection_reason == "Wrong amount"
        assert rejected.payment_proof is None
        assert notifier.kinds() == [NotificationKind.PAYMENT_REJECTED]

    def test_reason_required(self, service, submitted, organizer):
        with pytest.raises(EmptyReasonError):
            service.reject_payment(str(submitted.id), organizer, "   ")

    def test_admin_may_reject(self, service, submitted, admin_actor):
        rejected = service.reject_payment(str(submitted.id), admin_actor, "Duplicate payment")
        assert rejected.status is RegistrationStatus.REJECTED

    def test_participant_cannot_reject(self, service, submitted, participant):
        with pytest.raises(UnauthorizedError):
            service.reject_payment(str(submitted.id), participant, "nope")

    def test_cannot_reject_unpaid(self, service, pending, organizer):
        with pytest.raises(InvalidStateError):
            service.reject_payment(str(pending.id), organizer, "no proof")

    def test_reject_resubmit_approve(self, service, store, submitted, participant, organizer):
        service.reject_payment(str(submitted.id), organizer, "Blurry screenshot")
        resubmitted = service.submit_payment_proof(
            str(submitted.id), participant, "proofs/clear.png"
        )
        assert resubmitted.status is RegistrationStatus.PENDING
        assert resubmitted.payment_status is PaymentStatus.PENDING_APPROVAL
        assert resubmitted.rejection_reason is None

        approved = service.approve_payment(str(submitted.id), organizer)
        assert approved.status is RegistrationStatus.CONFIRMED
        assert approved.ticket_id is not None

        actions = [t.action for t in store.list_transitions(submitted.id)]
        assert actions == [
            TransitionAction.CREATED,
            TransitionAction.PROOF_SUBMITTED,
            TransitionAction.REJECTED,
            TransitionAction.PROOF_SUBMITTED,
            TransitionAction.APPROVED,
            TransitionAction.TICKET_ISSUED,
        ]

    def test_transitions_record_actor(self, service, store, submitted, organizer):
        service.reject_payment(str(submitted.id), organizer, "Blurry")
        record = store.list_transitions(submitted.id)[-1]
        assert record.actor_id == organizer.id
        assert record.note == "Blurry"
        assert record.from_payment_status is PaymentStatus.PENDING_APPROVAL
        assert record.to_payment_status is PaymentStatus.UNPAID


class TestPendingApprovals:
    def test_lists_submitted_registrations_oldest_first(
        self, service, paid_event, organizer, clock
    ):
        ids = []
        for _ in range(3):
            actor = make_actor()
            registration = service.create_registration(str(paid_event.id), actor, Selection())
            service.submit_payment_proof(str(registration.id), actor, "p.png")
            ids.append(registration.id)
            clock.advance(minutes=1)
        service.create_registration(str(paid_event.id), make_actor(), Selection())

        queue = service.list_pending_approvals(str(paid_event.id), organizer)
        assert [r.id for r in queue] == ids

    def test_admin_sees_the_queue(self, service, submitted, paid_event, admin_actor):
        queue = service.list_pending_approvals(str(paid_event.id), admin_actor)
        assert [r.id for r in queue] == [submitted.id]

    def test_queue_is_organizer_only(self, service, paid_event, participant):
        with pytest.raises(UnauthorizedError):
            service.list_pending_approvals(str(paid_event.id), participant)


class TestCancel:
    def test_owner_can_cancel(self, service, pending, participant, notifier):
        cancelled = service.cancel_registration(str(pending.id), participant)
        assert cancelled.status is RegistrationStatus.CANCELLED
        assert notifier.kinds() == [NotificationKind.REGISTRATION_CANCELLED]

    def test_organizer_can_cancel(self, service, pending, organizer):
        cancelled = service.cancel_registration(str(pending.id), organizer)
        assert cancelled.status is RegistrationStatus.CANCELLED

    def test_stranger_cannot_cancel(self, service, pending, other_participant):
        with pytest.raises(UnauthorizedError):
            service.cancel_registration(str(pending.id), other_participant)

    def test_cannot_cancel_after_event_start(self, service, pending, participant, clock):
        clock.advance(days=7)
        with pytest.raises(InvalidStateError):
            service.cancel_registration(str(pending.id), participant)

    def test_cannot_cancel_after_check_in(self, service, free_event, participant, organizer):
        registration = service.create_registration(str(free_event.id), participant, Selection())
        service.verify_ticket(registration.ticket_id.value, organizer)
        with pytest.raises(InvalidStateError):
            service.cancel_registration(str(registration.id), participant)

    def test_cancelled_registration_cannot_pay(self, service, pending, participant):
        service.cancel_registration(str(pending.id), participant)
        with pytest.raises(InvalidStateError):
            service.submit_payment_proof(str(pending.id), participant, "p.png")

    def test_late_approval_of_cancelled_registration(
        self, service, submitted, participant, organizer, clock
    ):
        service.cancel_registration(str(submitted.id), participant)
        clock.advance(minutes=5)
        with pytest.raises(InvalidStateError) as exc_info:
            service.approve_payment(str(submitted.id), organizer)
        assert exc_info.value.status == "CANCELLED"
