"""Identity from the gateway.

Authentication happens upstream; the gateway forwards the caller's identity
in request headers. This module only turns those headers into an Actor.
"""

from rest_framework import exceptions
from rest_framework.authentication import BaseAuthentication
from rest_framework.permissions import BasePermission
from rest_framework.request import Request

from registrations.domain import Actor, ParticipantId
from registrations.domain.status import ParticipantType, Role

ACTOR_ID_HEADER = "X-Actor-Id"
ACTOR_ROLE_HEADER = "X-Actor-Role"
PARTICIPANT_TYPE_HEADER = "X-Participant-Type"
ACTOR_NAME_HEADER = "X-Actor-Name"
ACTOR_EMAIL_HEADER = "X-Actor-Email"


class GatewayIdentityAuthentication(BaseAuthentication):
    """Reads the X-Actor-* headers into ``request.user`` as an Actor."""

    def authenticate(self, request: Request) -> tuple[Actor, None] | None:
        raw_id = request.headers.get(ACTOR_ID_HEADER)
        if not raw_id:
            return None

        try:
            actor_id = ParticipantId.from_string(raw_id.strip())
        except ValueError:
            raise exceptions.AuthenticationFailed("Malformed actor ID")

        raw_role = request.headers.get(ACTOR_ROLE_HEADER, Role.PARTICIPANT.value)
        try:
            role = Role(raw_role.strip().upper())
        except ValueError:
            raise exceptions.AuthenticationFailed("Unknown actor role")

        participant_type = None
        raw_type = request.headers.get(PARTICIPANT_TYPE_HEADER)
        if raw_type:
            try:
                participant_type = ParticipantType(raw_type.strip().upper())
            except ValueError:
                raise exceptions.AuthenticationFailed("Unknown participant type")

        actor = Actor(
            id=actor_id,
            role=role,
            participant_type=participant_type,
            name=request.headers.get(ACTOR_NAME_HEADER, "").strip(),
            email=request.headers.get(ACTOR_EMAIL_HEADER, "").strip(),
        )
        return actor, None

    def authenticate_header(self, request: Request) -> str:
        return ACTOR_ID_HEADER


class HasActor(BasePermission):
    """Allows requests that carry a gateway identity."""

    def has_permission(self, request: Request, view) -> bool:
        return isinstance(request.user, Actor)
