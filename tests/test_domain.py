"""Unit tests for domain primitives.

These test invariants that must hold at construction time, and the
transition table every status change is checked against.
Run with: pytest tests/test_domain.py -v
"""

from dataclasses import replace
from datetime import timedelta
from decimal import Decimal
from uuid import uuid4

import pytest
from factories import NOW, make_actor, make_event, make_merch_event

from registrations.domain import (
    Capacity,
    EventId,
    Money,
    ParticipantId,
    Registration,
    RegistrationId,
    TicketId,
    VariantId,
)
from registrations.domain.errors import (
    AlreadyScannedError,
    ErrorCode,
    InsufficientStockError,
    InvalidStateError,
)
from registrations.domain.status import (
    Eligibility,
    ParticipantType,
    PaymentStatus,
    RegistrationKind,
    RegistrationStatus,
    Role,
    payment_sources,
    status_sources,
)


class TestMoney:
    """Tests for Money value object."""

    def test_money_accepts_positive_amount(self):
        assert Money(Decimal("10.50")).amount == Decimal("10.50")

    def test_money_accepts_zero(self):
        assert Money(Decimal("0")).is_zero

    def test_money_rejects_negative_amount(self):
        with pytest.raises(ValueError):
            Money(Decimal("-1"))

    def test_money_str_format(self):
        """Money string representation is formatted to 2 decimal places."""
        assert str(Money(Decimal("7.5"))) == "7.50"

    def test_money_multiplies_by_quantity(self):
        assert Money(Decimal("250")) * 3 == Money(Decimal("750"))


class TestCapacity:
    """Tests for Capacity value object."""

    def test_capacity_accepts_zero(self):
        assert Capacity(0).value == 0

    def test_capacity_rejects_negative_value(self):
        with pytest.raises(ValueError):
            Capacity(-1)

    def test_admits_while_below_capacity(self):
        assert Capacity(2).admits(1)
        assert not Capacity(2).admits(2)
        assert not Capacity(0).admits(0)


class TestIdentifiers:
    def test_from_string_valid_uuid(self):
        raw = uuid4()
        assert EventId.from_string(str(raw)).value == raw
        assert str(RegistrationId.from_string(str(raw))) == str(raw)

    def test_from_string_invalid_uuid(self):
        with pytest.raises(ValueError):
            EventId.from_string("not-a-uuid")

    def test_ticket_id_rejects_blank(self):
        with pytest.raises(ValueError):
            TicketId("   ")


class TestEligibility:
    def test_all_admits_everyone(self):
        assert Eligibility.ALL.admits(ParticipantType.IIIT)
        assert Eligibility.ALL.admits(None)

    def test_restricted_audiences(self):
        assert Eligibility.IIIT_ONLY.admits(ParticipantType.IIIT)
        assert not Eligibility.IIIT_ONLY.admits(ParticipantType.NON_IIIT)
        assert Eligibility.NON_IIIT_ONLY.admits(ParticipantType.NON_IIIT)
        assert not Eligibility.NON_IIIT_ONLY.admits(None)


class TestTransitionTable:
    def test_cancelled_is_terminal(self):
        assert not any(
            RegistrationStatus.CANCELLED.can_transition_to(s) for s in RegistrationStatus
        )

    def test_paid_is_terminal(self):
        assert not any(PaymentStatus.PAID.can_transition_to(p) for p in PaymentStatus)

    def test_confirmed_only_moves_to_cancelled(self):
        assert RegistrationStatus.CONFIRMED.can_transition_to(RegistrationStatus.CANCELLED)
        assert not RegistrationStatus.CONFIRMED.can_transition_to(RegistrationStatus.PENDING)

    def test_approval_sources(self):
        assert status_sources(RegistrationStatus.CONFIRMED) == {RegistrationStatus.PENDING}
        assert payment_sources(PaymentStatus.PAID) == {PaymentStatus.PENDING_APPROVAL}

    def test_proof_can_only_be_submitted_from_unpaid(self):
        assert payment_sources(PaymentStatus.PENDING_APPROVAL) == {PaymentStatus.UNPAID}

    def test_rejected_counts_as_active(self):
        assert RegistrationStatus.REJECTED.is_active
        assert not RegistrationStatus.CANCELLED.is_active


class TestEvent:
    def test_admin_counts_as_organizer(self):
        organizer = make_actor(Role.ORGANIZER)
        event = make_event(organizer)
        assert event.is_organized_by(organizer)
        assert event.is_organized_by(make_actor(Role.ADMIN))
        assert not event.is_organized_by(make_actor(Role.ORGANIZER))

    def test_find_variant_by_size_and_color(self):
        event = make_merch_event(make_actor(Role.ORGANIZER), stocks=(1, 1))
        assert event.find_variant(size="M", color="Black") == event.variants[1]
        assert event.find_variant(size="M", color="White") is None

    def test_find_variant_falls_back_to_legacy_name(self):
        event = make_merch_event(make_actor(Role.ORGANIZER), stocks=(1,))
        legacy = event.variants[0]
        renamed = replace(legacy, name="XL - Navy", size="", color="")
        event = replace(event, variants=(renamed,))
        assert event.find_variant(size="XL", color="Navy") == renamed

    def test_unit_price_prefers_variant_price(self):
        event = make_merch_event(make_actor(Role.ORGANIZER), price="100")
        variant = event.variants[0]
        assert event.unit_price(variant) == Money(Decimal("100"))
        priced = replace(variant, price=Money(Decimal("80")))
        assert event.unit_price(priced) == Money(Decimal("80"))


class TestRegistration:
    def _registration(self, **overrides) -> Registration:
        fields = dict(
            id=RegistrationId(uuid4()),
            event_id=EventId(uuid4()),
            participant_id=ParticipantId(uuid4()),
            participant_name="Asha",
            participant_email="asha@example.com",
            kind=RegistrationKind.MERCHANDISE,
            status=RegistrationStatus.PENDING,
            payment_status=PaymentStatus.UNPAID,
            amount_due=Money(Decimal("250")),
            amount_paid=Money(Decimal("0")),
            created_at=NOW,
            updated_at=NOW,
            variant_id=VariantId(uuid4()),
            quantity=1,
            hold_expires_at=NOW + timedelta(hours=48),
        )
        fields.update(overrides)
        return Registration(**fields)

    def test_holds_stock_until_released(self):
        assert self._registration().holds_stock
        assert not self._registration(stock_released=True).holds_stock

    def test_standard_registration_holds_nothing(self):
        assert not self._registration(kind=RegistrationKind.STANDARD, variant_id=None).holds_stock

    def test_hold_expired_at_boundary(self):
        registration = self._registration()
        assert not registration.hold_expired(NOW + timedelta(hours=47))
        assert registration.hold_expired(NOW + timedelta(hours=48))

    def test_ticket_absent_until_issued(self):
        assert self._registration().ticket is None


class TestErrors:
    def test_insufficient_stock_reports_available_units(self):
        error = InsufficientStockError("M - Black", 2, 3)
        assert error.code is ErrorCode.INSUFFICIENT_STOCK
        assert error.details == {"variant": "M - Black", "available": 2, "requested": 3}
        assert "Only 2" in error.message

    def test_out_of_stock_message(self):
        assert InsufficientStockError("M - Black", 0, 1).message == "M - Black is out of stock"

    def test_invalid_state_carries_current_state(self):
        error = InvalidStateError("approve payment", "CONFIRMED", "PAID")
        assert error.details == {"status": "CONFIRMED", "payment_status": "PAID"}

    def test_already_scanned_carries_prior_scan(self):
        error = AlreadyScannedError("FEL-2025-ABC", NOW, "p-1", "Asha")
        assert error.details["scanned_at"] == NOW.isoformat()
        assert error.details["participant"] == {"id": "p-1", "name": "Asha"}
