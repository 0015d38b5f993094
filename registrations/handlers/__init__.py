from registrations.handlers.views import (
    ApprovePaymentView,
    CancelRegistrationView,
    EventRegistrationsView,
    MyRegistrationsView,
    PaymentProofView,
    PendingApprovalsView,
    RegistrationDetailView,
    RejectPaymentView,
    TicketView,
    VariantStockView,
    VerifyTicketView,
)

__all__ = [
    "ApprovePaymentView",
    "CancelRegistrationView",
    "EventRegistrationsView",
    "MyRegistrationsView",
    "PaymentProofView",
    "PendingApprovalsView",
    "RegistrationDetailView",
    "RejectPaymentView",
    "TicketView",
    "VariantStockView",
    "VerifyTicketView",
]
