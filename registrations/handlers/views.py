"""HTTP handlers (views) - handle HTTP concerns only.

Handlers:
- Parse requests and validate input format
- Call services for business logic
- Never contain business logic

Domain errors raised by the service are turned into responses by
handlers.errors.domain_exception_handler.
"""

from rest_framework import status
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from registrations.handlers.serializers import (
    PaymentProofSerializer,
    RegistrationFilterSerializer,
    RegistrationRequestSerializer,
    RegistrationSerializer,
    RejectPaymentSerializer,
    TicketSerializer,
    VariantStockSerializer,
    VerificationResultSerializer,
    VerifyTicketSerializer,
)
from registrations.services import RegistrationService


def get_service() -> RegistrationService:
    return RegistrationService.from_settings()


class EventRegistrationsView(APIView):
    """Handler for GET and POST /api/events/{event_id}/registrations"""

    def get(self, request: Request, event_id: str) -> Response:
        filters = RegistrationFilterSerializer(data=request.query_params)
        filters.is_valid(raise_exception=True)
        options = filters.to_filters()
        registrations = get_service().list_event_registrations(
            event_id, request.user, status=options["status"], search=options["search"]
        )
        return Response(RegistrationSerializer(registrations, many=True).data)

    def post(self, request: Request, event_id: str) -> Response:
        serializer = RegistrationRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        registration = get_service().create_registration(
            event_id, request.user, serializer.to_selection()
        )
        return Response(
            RegistrationSerializer(registration).data, status=status.HTTP_201_CREATED
        )


class MyRegistrationsView(APIView):
    """Handler for GET /api/me/registrations"""

    def get(self, request: Request) -> Response:
        filters = RegistrationFilterSerializer(data=request.query_params)
        filters.is_valid(raise_exception=True)
        options = filters.to_filters()
        registrations = get_service().list_my_registrations(
            request.user, status=options["status"], kind=options["kind"]
        )
        return Response(RegistrationSerializer(registrations, many=True).data)


class RegistrationDetailView(APIView):
    """Handler for GET /api/registrations/{registration_id}"""

    def get(self, request: Request, registration_id: str) -> Response:
        registration = get_service().get_registration(registration_id, request.user)
        return Response(RegistrationSerializer(registration).data)


class PaymentProofView(APIView):
    """Handler for POST /api/registrations/{registration_id}/payment-proof"""

    def post(self, request: Request, registration_id: str) -> Response:
        serializer = PaymentProofSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        registration = get_service().submit_payment_proof(
            registration_id, request.user, serializer.validated_data["proof_ref"]
        )
        return Response(RegistrationSerializer(registration).data)


class ApprovePaymentView(APIView):
    """Handler for POST /api/registrations/{registration_id}/approve"""

    def post(self, request: Request, registration_id: str) -> Response:
        registration = get_service().approve_payment(registration_id, request.user)
        return Response(RegistrationSerializer(registration).data)


class RejectPaymentView(APIView):
    """Handler for POST /api/registrations/{registration_id}/reject"""

    def post(self, request: Request, registration_id: str) -> Response:
        serializer = RejectPaymentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        registration = get_service().reject_payment(
            registration_id, request.user, serializer.validated_data["reason"]
        )
        return Response(RegistrationSerializer(registration).data)


class CancelRegistrationView(APIView):
    """Handler for POST /api/registrations/{registration_id}/cancel"""

    def post(self, request: Request, registration_id: str) -> Response:
        registration = get_service().cancel_registration(registration_id, request.user)
        return Response(RegistrationSerializer(registration).data)


class TicketView(APIView):
    """Handler for GET /api/registrations/{registration_id}/ticket"""

    def get(self, request: Request, registration_id: str) -> Response:
        ticket = get_service().get_ticket(registration_id, request.user)
        qr_format = "png" if request.query_params.get("qr") == "png" else "svg"
        return Response(TicketSerializer(ticket, context={"qr_format": qr_format}).data)


class VerifyTicketView(APIView):
    """Handler for POST /api/tickets/verify"""

    def post(self, request: Request) -> Response:
        serializer = VerifyTicketSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = get_service().verify_ticket(
            serializer.validated_data["credential"],
            request.user,
            override=serializer.validated_data["override"],
        )
        return Response(VerificationResultSerializer(result).data)


class PendingApprovalsView(APIView):
    """Handler for GET /api/events/{event_id}/payment-approvals"""

    def get(self, request: Request, event_id: str) -> Response:
        registrations = get_service().list_pending_approvals(event_id, request.user)
        return Response(RegistrationSerializer(registrations, many=True).data)


class VariantStockView(APIView):
    """Handler for GET /api/events/{event_id}/stock"""

    def get(self, request: Request, event_id: str) -> Response:
        levels = get_service().stock_levels(event_id)
        return Response(VariantStockSerializer(levels, many=True).data)
