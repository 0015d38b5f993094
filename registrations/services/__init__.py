from registrations.services.admission import AdmissionController
from registrations.services.inventory import InventoryAllocator
from registrations.services.notifications import (
    NotificationKind,
    Notifier,
    SignalNotifier,
)
from registrations.services.payments import PaymentWorkflow
from registrations.services.registration_service import RegistrationService
from registrations.services.tickets import TicketIssuer, encode_credential, render_qr
from registrations.services.verification import TicketVerifier, parse_credential

__all__ = [
    "AdmissionController",
    "InventoryAllocator",
    "NotificationKind",
    "Notifier",
    "PaymentWorkflow",
    "RegistrationService",
    "SignalNotifier",
    "TicketIssuer",
    "TicketVerifier",
    "encode_credential",
    "parse_credential",
    "render_qr",
]
