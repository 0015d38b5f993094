"""Merchandise stock reservation and release."""

import structlog

from registrations.domain import Event, Registration, Variant, VariantId
from registrations.domain.errors import InsufficientStockError
from registrations.stores.interfaces import RegistrationStore

logger = structlog.get_logger(__name__)


class InventoryAllocator:
    """Reserves, releases and reports per-variant stock.

    Stock is reserved when a registration is created and released when it
    is cancelled or its hold expires. Payment approval does not touch stock.
    """

    def __init__(self, store: RegistrationStore) -> None:
        self._store = store

    @staticmethod
    def declaration_order(event: Event) -> list[Variant]:
        """Variants by position; ties broken by id so the order is stable."""
        return sorted(event.variants, key=lambda v: (v.position, v.id.value))

    @classmethod
    def derived_stock(cls, event: Event) -> dict[VariantId, int]:
        """Spread what is left of the declared total over the empty variants.

        Explicit per-variant stock is counted first. The rest of
        ``total_stock`` goes to the variants holding zero stock, the first
        ``rest % n`` of them in declaration order getting one extra unit, so
        explicit plus derived stock never exceeds the declared total. Only
        meaningful for events created before per-variant stock was stored
        explicitly.
        """
        variants = cls.declaration_order(event)
        empty = [v for v in variants if v.stock == 0]
        explicit = sum(v.stock for v in variants)
        rest = max((event.total_stock or 0) - explicit, 0)
        if not empty or not rest:
            return {v.id: 0 for v in empty}
        base, remainder = divmod(rest, len(empty))
        return {
            v.id: base + 1 if index < remainder else base
            for index, v in enumerate(empty)
        }

    @staticmethod
    def uses_legacy_stock(event: Event) -> bool:
        return bool(event.total_stock) and not event.stock_backfilled

    def effective_stock(self, event: Event, variant: Variant) -> int:
        if variant.stock == 0 and self.uses_legacy_stock(event):
            return self.derived_stock(event).get(variant.id, 0)
        return variant.stock

    def stock_levels(self, event: Event) -> list[tuple[Variant, int]]:
        return [(v, self.effective_stock(event, v)) for v in event.variants]

    def backfill(self, event: Event) -> bool:
        """Persist derived stock for the empty variants as explicit stock, once."""
        if not self.uses_legacy_stock(event):
            return False
        stocks = self.derived_stock(event)
        total = sum(v.stock for v in event.variants) + sum(stocks.values())
        if total > event.total_stock:
            logger.warning(
                "variant_stock_exceeds_total",
                event_id=str(event.id),
                total_stock=event.total_stock,
                variant_stock=total,
            )
        backfilled = self._store.backfill_variant_stock(event.id, stocks)
        if backfilled:
            logger.info(
                "variant_stock_backfilled",
                event_id=str(event.id),
                variants={str(k): v for k, v in stocks.items()},
            )
        return backfilled

    def reserve(self, event: Event, variant: Variant, quantity: int) -> None:
        """Take ``quantity`` units of ``variant`` for a new registration.

        Raises:
            InsufficientStockError: If the variant cannot cover the quantity.
        """
        self.backfill(event)
        if not self._store.decrement_stock_if_sufficient(variant.id, quantity):
            available = self._current_stock(event, variant)
            logger.info(
                "stock_reservation_refused",
                event_id=str(event.id),
                variant_id=str(variant.id),
                requested=quantity,
                available=available,
            )
            raise InsufficientStockError(variant.label, available, quantity)
        logger.info(
            "stock_reserved",
            event_id=str(event.id),
            variant_id=str(variant.id),
            quantity=quantity,
        )

    def release(self, registration: Registration) -> bool:
        """Give a registration's units back to the pool; no-op if already released."""
        if not registration.holds_stock:
            return False
        released = self._store.release_stock(registration.id)
        if released:
            logger.info(
                "stock_released",
                registration_id=str(registration.id),
                variant_id=str(registration.variant_id),
                quantity=registration.quantity,
            )
        return released

    def _current_stock(self, event: Event, variant: Variant) -> int:
        current = self._store.get_event(event.id)
        if current is None:
            return 0
        match = current.find_variant(variant_id=variant.id)
        return self.effective_stock(current, match) if match is not None else 0
