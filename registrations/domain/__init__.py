from registrations.domain.models import (
    Actor,
    AdmissionSnapshot,
    Event,
    FormField,
    NewRegistration,
    Registration,
    Selection,
    Ticket,
    TransitionRecord,
    Variant,
    VerificationResult,
)
from registrations.domain.value_objects import (
    Capacity,
    EventId,
    Money,
    ParticipantId,
    RegistrationId,
    TicketId,
    VariantId,
)

__all__ = [
    "Actor",
    "AdmissionSnapshot",
    "Event",
    "FormField",
    "NewRegistration",
    "Registration",
    "Selection",
    "Ticket",
    "TransitionRecord",
    "Variant",
    "VerificationResult",
    "EventId",
    "VariantId",
    "RegistrationId",
    "ParticipantId",
    "TicketId",
    "Money",
    "Capacity",
]
