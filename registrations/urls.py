from django.urls import path

from registrations.handlers import (
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

urlpatterns = [
    path(
        "events/<str:event_id>/registrations",
        EventRegistrationsView.as_view(),
        name="event-registrations",
    ),
    path("me/registrations", MyRegistrationsView.as_view(), name="my-registrations"),
    path(
        "events/<str:event_id>/payment-approvals",
        PendingApprovalsView.as_view(),
        name="payment-approvals",
    ),
    path("events/<str:event_id>/stock", VariantStockView.as_view(), name="variant-stock"),
    path(
        "registrations/<str:registration_id>",
        RegistrationDetailView.as_view(),
        name="registration-detail",
    ),
    path(
        "registrations/<str:registration_id>/payment-proof",
        PaymentProofView.as_view(),
        name="payment-proof",
    ),
    path(
        "registrations/<str:registration_id>/approve",
        ApprovePaymentView.as_view(),
        name="payment-approve",
    ),
    path(
        "registrations/<str:registration_id>/reject",
        RejectPaymentView.as_view(),
        name="payment-reject",
    ),
    path(
        "registrations/<str:registration_id>/cancel",
        CancelRegistrationView.as_view(),
        name="registration-cancel",
    ),
    path(
        "registrations/<str:registration_id>/ticket",
        TicketView.as_view(),
        name="registration-ticket",
    ),
    path("tickets/verify", VerifyTicketView.as_view(), name="ticket-verify"),
]
