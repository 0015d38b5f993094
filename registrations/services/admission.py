"""Admission checks for new registrations.

The controller never mutates state. The registration service evaluates it
under the event lock, immediately before the insert, so the decision and
the insert see the same snapshot.
"""

from datetime import datetime

from registrations.domain import Actor, AdmissionSnapshot, Event, Selection, Variant
from registrations.domain.errors import (
    AlreadyRegisteredError,
    CapacityReachedError,
    EventNotOpenError,
    InsufficientStockError,
    InvalidSelectionError,
    NotEligibleError,
    PurchaseLimitExceededError,
    RegistrationClosedError,
)
from registrations.domain.status import (
    LATE_EVENT_STATUSES,
    OPEN_EVENT_STATUSES,
    EventKind,
)
from registrations.services.inventory import InventoryAllocator


class AdmissionController:
    """Decides whether a participant may register for an event."""

    def __init__(self, inventory: InventoryAllocator) -> None:
        self._inventory = inventory

    def check(
        self,
        snapshot: AdmissionSnapshot,
        participant: Actor,
        selection: Selection,
        now: datetime,
    ) -> Variant | None:
        """Run the admission checks in order, stopping at the first failure.

        Returns the selected variant for merchandise events, None otherwise.

        Raises:
            EventNotOpenError, RegistrationClosedError, NotEligibleError,
            AlreadyRegisteredError, CapacityReachedError,
            InsufficientStockError, InvalidSelectionError,
            PurchaseLimitExceededError.
        """
        event = snapshot.event

        if not self.is_open(event):
            raise EventNotOpenError(event.status.value)
        if not now < event.registration_deadline:
            raise RegistrationClosedError(event.registration_deadline)
        if not event.eligibility.admits(participant.participant_type):
            raise NotEligibleError(event.eligibility.value)
        if snapshot.has_active_registration:
            raise AlreadyRegisteredError()
        if event.capacity is not None and not event.capacity.admits(snapshot.active_count):
            raise CapacityReachedError(event.capacity.value)

        if event.kind is EventKind.MERCHANDISE:
            return self._check_merchandise(event, selection)

        if selection.is_merchandise:
            raise InvalidSelectionError("This is not a merchandise event")
        self._check_form(event, selection)
        return None

    @staticmethod
    def is_open(event: Event) -> bool:
        if event.status in OPEN_EVENT_STATUSES:
            return True
        return event.allow_late_registration and event.status in LATE_EVENT_STATUSES

    def _check_merchandise(self, event: Event, selection: Selection) -> Variant:
        if not selection.is_merchandise:
            raise InvalidSelectionError("Select a variant to purchase")
        if selection.quantity < 1:
            raise InvalidSelectionError("Quantity must be at least 1")

        variant = event.find_variant(
            variant_id=selection.variant_id, size=selection.size, color=selection.color
        )
        if variant is None:
            label = (
                f"{selection.size} - {selection.color}"
                if selection.variant_id is None
                else str(selection.variant_id)
            )
            raise InsufficientStockError(label, 0, selection.quantity)

        available = self._inventory.effective_stock(event, variant)
        if available < selection.quantity:
            raise InsufficientStockError(variant.label, available, selection.quantity)

        if selection.quantity > event.purchase_limit:
            raise PurchaseLimitExceededError(event.purchase_limit)
        return variant

    @staticmethod
    def _check_form(event: Event, selection: Selection) -> None:
        for form_field in event.custom_form:
            if not form_field.required:
                continue
            answer = selection.form_answers.get(form_field.field_name)
            if isinstance(answer, str):
                answer = answer.strip()
            if answer is None or answer in ("", [], {}):
                raise InvalidSelectionError(f"{form_field.field_name} is required")
