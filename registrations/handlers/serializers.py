"""Serializers for request payloads and domain model responses.

Input serializers validate format only. Output serializers read from
domain dataclasses, never from ORM rows.
"""

from rest_framework import serializers

from registrations.domain import Selection, VariantId
from registrations.domain.status import RegistrationKind, RegistrationStatus


class RegistrationRequestSerializer(serializers.Serializer):
    """Body of POST /api/events/{event_id}/registrations."""

    form_answers = serializers.DictField(required=False, default=dict)
    variant_id = serializers.UUIDField(required=False, allow_null=True, default=None)
    size = serializers.CharField(required=False, allow_null=True, default=None)
    color = serializers.CharField(required=False, allow_null=True, default=None)
    quantity = serializers.IntegerField(required=False, min_value=1, default=1)

    def to_selection(self) -> Selection:
        data = self.validated_data
        variant_id = data.get("variant_id")
        return Selection(
            form_answers=data.get("form_answers") or {},
            variant_id=VariantId(variant_id) if variant_id is not None else None,
            size=data.get("size"),
            color=data.get("color"),
            quantity=data.get("quantity", 1),
        )


class PaymentProofSerializer(serializers.Serializer):
    proof_ref = serializers.CharField(max_length=500)


class RejectPaymentSerializer(serializers.Serializer):
    reason = serializers.CharField(allow_blank=True, trim_whitespace=False)


class VerifyTicketSerializer(serializers.Serializer):
    credential = serializers.CharField(trim_whitespace=False)
    override = serializers.BooleanField(required=False, default=False)


class RegistrationFilterSerializer(serializers.Serializer):
    """Query parameters of the registration list endpoints."""

    status = serializers.ChoiceField(
        choices=[s.value for s in RegistrationStatus], required=False
    )
    kind = serializers.ChoiceField(
        choices=[k.value for k in RegistrationKind], required=False
    )
    search = serializers.CharField(required=False, allow_blank=True)

    def to_filters(self) -> dict:
        data = self.validated_data
        return {
            "status": RegistrationStatus(data["status"]) if "status" in data else None,
            "kind": RegistrationKind(data["kind"]) if "kind" in data else None,
            "search": data.get("search"),
        }


class RegistrationSerializer(serializers.Serializer):
    """Serializer for the Registration domain model."""

    id = serializers.SerializerMethodField()
    event_id = serializers.SerializerMethodField()
    participant_id = serializers.SerializerMethodField()
    participant_name = serializers.CharField()
    kind = serializers.SerializerMethodField()
    status = serializers.SerializerMethodField()
    payment_status = serializers.SerializerMethodField()
    amount_due = serializers.SerializerMethodField()
    amount_paid = serializers.SerializerMethodField()
    form_answers = serializers.DictField()
    variant_id = serializers.SerializerMethodField()
    quantity = serializers.IntegerField()
    payment_proof = serializers.CharField(allow_null=True)
    proof_submitted_at = serializers.DateTimeField(allow_null=True)
    rejection_reason = serializers.CharField(allow_null=True)
    approved_at = serializers.DateTimeField(allow_null=True)
    hold_expires_at = serializers.DateTimeField(allow_null=True)
    ticket_id = serializers.SerializerMethodField()
    attended = serializers.BooleanField()
    attended_at = serializers.DateTimeField(allow_null=True)
    created_at = serializers.DateTimeField()

    def get_id(self, obj) -> str:
        return str(obj.id)

    def get_event_id(self, obj) -> str:
        return str(obj.event_id)

    def get_participant_id(self, obj) -> str:
        return str(obj.participant_id)

    def get_kind(self, obj) -> str:
        return obj.kind.value

    def get_status(self, obj) -> str:
        return obj.status.value

    def get_payment_status(self, obj) -> str:
        return obj.payment_status.value

    def get_amount_due(self, obj) -> str:
        return str(obj.amount_due)

    def get_amount_paid(self, obj) -> str:
        return str(obj.amount_paid)

    def get_variant_id(self, obj) -> str | None:
        return str(obj.variant_id) if obj.variant_id is not None else None

    def get_ticket_id(self, obj) -> str | None:
        return obj.ticket_id.value if obj.ticket_id is not None else None


class TicketSerializer(serializers.Serializer):
    """Serializer for the Ticket domain model, with its QR code."""

    ticket_id = serializers.SerializerMethodField()
    registration_id = serializers.SerializerMethodField()
    event_id = serializers.SerializerMethodField()
    payload = serializers.CharField()
    issued_at = serializers.DateTimeField()
    qr_code = serializers.SerializerMethodField()

    def get_ticket_id(self, obj) -> str:
        return obj.ticket_id.value

    def get_registration_id(self, obj) -> str:
        return str(obj.registration_id)

    def get_event_id(self, obj) -> str:
        return str(obj.event_id)

    def get_qr_code(self, obj) -> str:
        from registrations.services.tickets import render_qr

        return render_qr(obj.payload, kind=self.context.get("qr_format", "svg"))


class VerificationResultSerializer(serializers.Serializer):
    """Serializer for a successful check-in."""

    ticket_id = serializers.SerializerMethodField()
    registration_id = serializers.SerializerMethodField()
    participant = serializers.SerializerMethodField()
    event = serializers.SerializerMethodField()
    status = serializers.SerializerMethodField()
    payment_status = serializers.SerializerMethodField()
    scanned_at = serializers.DateTimeField()
    overridden = serializers.BooleanField()

    def get_ticket_id(self, obj) -> str:
        return obj.ticket_id.value

    def get_registration_id(self, obj) -> str:
        return str(obj.registration_id)

    def get_participant(self, obj) -> dict:
        return {
            "id": str(obj.participant_id),
            "name": obj.participant_name,
            "email": obj.participant_email,
        }

    def get_event(self, obj) -> dict:
        return {
            "id": str(obj.event_id),
            "name": obj.event_name,
            "starts_at": serializers.DateTimeField().to_representation(obj.event_starts_at),
        }

    def get_status(self, obj) -> str:
        return obj.status.value

    def get_payment_status(self, obj) -> str:
        return obj.payment_status.value


class VariantStockSerializer(serializers.Serializer):
    """Serializer for a (Variant, effective stock) pair."""

    id = serializers.SerializerMethodField()
    name = serializers.SerializerMethodField()
    size = serializers.SerializerMethodField()
    color = serializers.SerializerMethodField()
    price = serializers.SerializerMethodField()
    stock = serializers.SerializerMethodField()

    def get_id(self, obj) -> str:
        return str(obj[0].id)

    def get_name(self, obj) -> str:
        return obj[0].name

    def get_size(self, obj) -> str:
        return obj[0].size

    def get_color(self, obj) -> str:
        return obj[0].color

    def get_price(self, obj) -> str | None:
        return str(obj[0].price) if obj[0].price is not None else None

    def get_stock(self, obj) -> int:
        return obj[1]
