"""Outbound notifications (fire-and-forget).

Delivery is decoupled from the state change: nothing here can roll back a
transition that already committed.
"""

from abc import ABC, abstractmethod
from enum import Enum

import structlog
from django.db import transaction

from registrations.domain import Registration

logger = structlog.get_logger(__name__)


class NotificationKind(Enum):
    TICKET_ISSUED = "TICKET_ISSUED"
    PAYMENT_REJECTED = "PAYMENT_REJECTED"
    REGISTRATION_CANCELLED = "REGISTRATION_CANCELLED"


class Notifier(ABC):
    """Interface to the notification collaborator."""

    @abstractmethod
    def notify(self, kind: NotificationKind, registration: Registration) -> None:
        ...


class SignalNotifier(Notifier):
    """Sends a Django signal once the surrounding transaction commits."""

    def notify(self, kind: NotificationKind, registration: Registration) -> None:
        transaction.on_commit(lambda: self.dispatch(kind, registration))

    def dispatch(self, kind: NotificationKind, registration: Registration) -> None:
        from registrations.signals import NOTIFICATION_SIGNALS

        signal = NOTIFICATION_SIGNALS[kind]
        for receiver, response in signal.send_robust(
            sender=self.__class__, registration=registration
        ):
            if isinstance(response, Exception):
                logger.warning(
                    "notification_failed",
                    kind=kind.value,
                    registration_id=str(registration.id),
                    receiver=getattr(receiver, "__name__", repr(receiver)),
                    error=str(response),
                )
