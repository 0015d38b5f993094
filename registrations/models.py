"""Django ORM models (persistence layer).

These models handle database concerns. Domain logic lives in domain/models.py.
"""

import uuid

from django.db import models
from django.db.models import Q

from registrations.domain.status import (
    Eligibility,
    EventKind,
    EventStatus,
    PaymentStatus,
    RegistrationKind,
    RegistrationStatus,
    TransitionAction,
)


def _choices(enum_cls) -> list[tuple[str, str]]:
    return [(member.value, member.value) for member in enum_cls]


class Event(models.Model):
    """Persistence model for events.

    Owned by the event-management collaborator; this app only mutates its
    counters and, through Variant, its stock.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=255)
    organizer_id = models.UUIDField()
    kind = models.CharField(max_length=20, choices=_choices(EventKind))
    eligibility = models.CharField(
        max_length=20, choices=_choices(Eligibility), default=Eligibility.ALL.value
    )
    registration_deadline = models.DateTimeField()
    starts_at = models.DateTimeField()
    ends_at = models.DateTimeField()
    capacity = models.PositiveIntegerField(null=True, blank=True)
    registration_fee = models.DecimalField(max_digits=10, decimal_places=2, default=0)
    status = models.CharField(
        max_length=20, choices=_choices(EventStatus), default=EventStatus.DRAFT.value
    )
    allow_late_registration = models.BooleanField(default=False)
    custom_form = models.JSONField(default=list, blank=True)
    total_stock = models.PositiveIntegerField(null=True, blank=True)
    stock_backfilled = models.BooleanField(default=False)
    purchase_limit = models.PositiveIntegerField(default=1)
    total_revenue = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    total_attendance = models.PositiveIntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(
                fields=["organizer_id", "status"], name="registratio_organiz_4c1d2e_idx"
            ),
            models.Index(
                fields=["registration_deadline"], name="registratio_registr_8a7f31_idx"
            ),
        ]

    def __str__(self) -> str:
        return self.name


class Variant(models.Model):
    """Persistence model for a merchandise size/color variant."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    event = models.ForeignKey(Event, on_delete=models.CASCADE, related_name="variants")
    name = models.CharField(max_length=100, blank=True)
    size = models.CharField(max_length=20)
    color = models.CharField(max_length=50)
    price = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    stock = models.PositiveIntegerField(default=0)
    position = models.PositiveIntegerField(default=0)

    class Meta:
        ordering = ["position", "id"]
        constraints = [
            models.CheckConstraint(
                condition=Q(stock__gte=0), name="variant_stock_non_negative"
            ),
        ]

    def save(self, *args, **kwargs):
        if not self.name:
            self.name = f"{self.size} - {self.color}"
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return f"{self.event.name} - {self.name}"


class Registration(models.Model):
    """Persistence model for registrations and the tickets issued from them."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    event = models.ForeignKey(
        Event, on_delete=models.PROTECT, related_name="registrations"
    )
    participant_id = models.UUIDField()
    participant_name = models.CharField(max_length=255, blank=True)
    participant_email = models.EmailField(blank=True)
    kind = models.CharField(max_length=20, choices=_choices(RegistrationKind))
    form_answers = models.JSONField(default=dict, blank=True)
    variant = models.ForeignKey(
        Variant,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="registrations",
    )
    quantity = models.PositiveIntegerField(default=0)
    status = models.CharField(max_length=20, choices=_choices(RegistrationStatus))
    payment_status = models.CharField(max_length=20, choices=_choices(PaymentStatus))
    amount_due = models.DecimalField(max_digits=10, decimal_places=2, default=0)
    amount_paid = models.DecimalField(max_digits=10, decimal_places=2, default=0)
    payment_proof = models.CharField(max_length=500, null=True, blank=True)
    proof_submitted_at = models.DateTimeField(null=True, blank=True)
    rejection_reason = models.TextField(null=True, blank=True)
    approved_by = models.UUIDField(null=True, blank=True)
    approved_at = models.DateTimeField(null=True, blank=True)
    hold_expires_at = models.DateTimeField(null=True, blank=True)
    stock_released = models.BooleanField(default=False)
    ticket_id = models.CharField(max_length=64, unique=True, null=True, blank=True)
    ticket_payload = models.TextField(null=True, blank=True)
    ticket_issued_at = models.DateTimeField(null=True, blank=True)
    attended = models.BooleanField(default=False)
    attended_at = models.DateTimeField(null=True, blank=True)
    attendance_marked_by = models.UUIDField(null=True, blank=True)
    created_at = models.DateTimeField()
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["event", "participant_id"],
                condition=~Q(status=RegistrationStatus.CANCELLED.value),
                name="one_active_registration_per_participant",
            ),
        ]
        indexes = [
            models.Index(
                fields=["event", "status"], name="registratio_event_i_5b9e0c_idx"
            ),
            models.Index(
                fields=["event", "payment_status"],
                name="registratio_event_i_d23a64_idx",
            ),
            models.Index(
                fields=["hold_expires_at"], name="registratio_hold_ex_71f0a9_idx"
            ),
            models.Index(
                fields=["participant_id", "created_at"],
                name="registratio_partici_3e92b7_idx",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.participant_name or self.participant_id} - {self.event_id}"


class RegistrationTransition(models.Model):
    """Append-only audit trail of registration state changes."""

    id = models.BigAutoField(primary_key=True)
    registration = models.ForeignKey(
        Registration, on_delete=models.CASCADE, related_name="transitions"
    )
    action = models.CharField(max_length=30, choices=_choices(TransitionAction))
    from_status = models.CharField(max_length=20, null=True, blank=True)
    to_status = models.CharField(max_length=20)
    from_payment_status = models.CharField(max_length=20, null=True, blank=True)
    to_payment_status = models.CharField(max_length=20)
    actor_id = models.UUIDField(null=True, blank=True)
    note = models.TextField(blank=True, default="")
    occurred_at = models.DateTimeField()

    class Meta:
        ordering = ["occurred_at", "id"]
        indexes = [
            models.Index(
                fields=["registration", "occurred_at"],
                name="registratio_registr_0e6c55_idx",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.registration_id} {self.action}"
