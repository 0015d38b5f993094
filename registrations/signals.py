"""Django signals for registration notifications.

Receivers deliver email. They run after the transition has committed and
their failures are logged by the sender, never raised.
"""

from django.conf import settings
from django.core.mail import send_mail
from django.dispatch import Signal, receiver

from registrations.services.notifications import NotificationKind

ticket_issued = Signal()
payment_rejected = Signal()
registration_cancelled = Signal()

NOTIFICATION_SIGNALS = {
    NotificationKind.TICKET_ISSUED: ticket_issued,
    NotificationKind.PAYMENT_REJECTED: payment_rejected,
    NotificationKind.REGISTRATION_CANCELLED: registration_cancelled,
}


@receiver(ticket_issued)
def send_ticket_email(sender, registration, **kwargs):
    """Email the participant their ticket ID."""
    if not registration.participant_email:
        return
    send_mail(
        subject="Your ticket",
        message=(
            f"Hi {registration.participant_name or 'there'},\n\n"
            f"Your registration is confirmed. Ticket ID: {registration.ticket_id}\n"
            "Show the QR code from your registration page at the venue.\n"
        ),
        from_email=settings.NOTIFICATIONS_FROM_EMAIL,
        recipient_list=[registration.participant_email],
    )


@receiver(payment_rejected)
def send_rejection_email(sender, registration, **kwargs):
    """Tell the participant why their payment proof was rejected."""
    if not registration.participant_email:
        return
    send_mail(
        subject="Payment proof rejected",
        message=(
            f"Hi {registration.participant_name or 'there'},\n\n"
            f"Your payment proof was rejected: {registration.rejection_reason}\n"
            "You can upload a new proof from your registration page.\n"
        ),
        from_email=settings.NOTIFICATIONS_FROM_EMAIL,
        recipient_list=[registration.participant_email],
    )


@receiver(registration_cancelled)
def send_cancellation_email(sender, registration, **kwargs):
    """Confirm a cancellation to the participant."""
    if not registration.participant_email:
        return
    send_mail(
        subject="Registration cancelled",
        message=(
            f"Hi {registration.participant_name or 'there'},\n\n"
            "Your registration has been cancelled.\n"
        ),
        from_email=settings.NOTIFICATIONS_FROM_EMAIL,
        recipient_list=[registration.participant_email],
    )
