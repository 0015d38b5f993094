"""API tests for the registration endpoints.

Run with: pytest tests/test_handlers.py -v
"""

from uuid import uuid4

import pytest
from factories import create_event, make_actor

from registrations.domain.status import EventKind, ParticipantType, Role


def identity(actor):
    """Gateway headers for ``actor`` as APIClient extra kwargs."""
    headers = {
        "HTTP_X_ACTOR_ID": str(actor.id),
        "HTTP_X_ACTOR_ROLE": actor.role.value,
        "HTTP_X_ACTOR_NAME": actor.name,
        "HTTP_X_ACTOR_EMAIL": actor.email,
    }
    if actor.participant_type is not None:
        headers["HTTP_X_PARTICIPANT_TYPE"] = actor.participant_type.value
    return headers


@pytest.fixture
def db_organizer():
    return make_actor(Role.ORGANIZER, participant_type=None, name="Organizer")


@pytest.fixture
def buyer():
    return make_actor(name="Meera")


def register(api_client, event_id, actor, payload=None):
    return api_client.post(
        f"/api/events/{event_id}/registrations",
        payload or {},
        format="json",
        **identity(actor),
    )


@pytest.mark.django_db
class TestAuthentication:
    def test_missing_identity_is_rejected(self, api_client, db_organizer):
        row = create_event(db_organizer)
        response = api_client.post(f"/api/events/{row.id}/registrations", {}, format="json")

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "NOT_AUTHENTICATED"

    def test_malformed_actor_id(self, api_client, db_organizer):
        row = create_event(db_organizer)
        response = api_client.post(
            f"/api/events/{row.id}/registrations",
            {},
            format="json",
            HTTP_X_ACTOR_ID="not-a-uuid",
        )
        assert response.status_code == 401

    def test_unknown_role(self, api_client, buyer, db_organizer):
        row = create_event(db_organizer)
        headers = identity(buyer) | {"HTTP_X_ACTOR_ROLE": "SUPERUSER"}
        response = api_client.post(
            f"/api/events/{row.id}/registrations", {}, format="json", **headers
        )
        assert response.status_code == 401


@pytest.mark.django_db
class TestCreateRegistration:
    def test_free_registration_returns_ticketed_registration(
        self, api_client, buyer, db_organizer
    ):
        row = create_event(db_organizer)
        response = register(api_client, row.id, buyer)

        assert response.status_code == 201
        body = response.json()
        assert body["status"] == "CONFIRMED"
        assert body["payment_status"] == "PAID"
        assert body["participant_id"] == str(buyer.id)
        assert body["ticket_id"].startswith("FEL-")

    def test_duplicate_is_conflict(self, api_client, buyer, db_organizer):
        row = create_event(db_organizer)
        register(api_client, row.id, buyer)

        response = register(api_client, row.id, buyer)

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "ALREADY_REGISTERED"

    def test_error_body_shape(self, api_client, buyer, db_organizer):
        row = create_event(db_organizer, kind=EventKind.MERCHANDISE, fee="300", stocks=(1,))
        response = register(
            api_client, row.id, buyer, {"size": "S", "color": "Blue", "quantity": 2}
        )

        assert response.status_code == 409
        error = response.json()["error"]
        assert set(error) == {"code", "message", "details"}
        assert error["code"] == "INSUFFICIENT_STOCK"
        assert error["details"]["available"] == 1

    def test_unknown_event(self, api_client, buyer):
        response = register(api_client, uuid4(), buyer)
        assert response.status_code == 404
        assert response.json()["error"]["code"] == "EVENT_NOT_FOUND"

    def test_malformed_event_id(self, api_client, buyer):
        response = register(api_client, "abc", buyer)
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_ID"

    def test_organizer_cannot_register(self, api_client, db_organizer):
        row = create_event(db_organizer)
        response = register(api_client, row.id, db_organizer)
        assert response.status_code == 403
        assert response.json()["error"]["code"] == "UNAUTHORIZED"

    def test_ineligible_participant(self, api_client, db_organizer):
        row = create_event(db_organizer, eligibility="IIIT_ONLY")
        outsider = make_actor(participant_type=ParticipantType.NON_IIIT, name="Ravi")

        response = register(api_client, row.id, outsider)

        assert response.status_code == 403
        assert response.json()["error"]["code"] == "NOT_ELIGIBLE"

    def test_invalid_payload(self, api_client, buyer, db_organizer):
        row = create_event(db_organizer)
        response = register(api_client, row.id, buyer, {"quantity": 0})

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == "VALIDATION_ERROR"
        assert "quantity" in error["details"]["fields"]


@pytest.mark.django_db
class TestPaymentFlow:
    def test_proof_approve_ticket_verify(self, api_client, buyer, db_organizer):
        row = create_event(db_organizer, fee="100")
        registration = register(api_client, row.id, buyer).json()
        assert registration["status"] == "PENDING"
        assert registration["amount_due"] == "100.00"
        base = f"/api/registrations/{registration['id']}"

        response = api_client.post(
            f"{base}/payment-proof",
            {"proof_ref": "proofs/upi.png"},
            format="json",
            **identity(buyer),
        )
        assert response.json()["payment_status"] == "PENDING_APPROVAL"

        queue = api_client.get(
            f"/api/events/{row.id}/payment-approvals", **identity(db_organizer)
        )
        assert [r["id"] for r in queue.json()] == [registration["id"]]

        approved = api_client.post(f"{base}/approve", **identity(db_organizer)).json()
        assert approved["status"] == "CONFIRMED"
        assert approved["ticket_id"]

        ticket = api_client.get(f"{base}/ticket", **identity(buyer)).json()
        assert ticket["ticket_id"] == approved["ticket_id"]
        assert ticket["qr_code"].startswith("data:image/svg+xml")

        verified = api_client.post(
            "/api/tickets/verify",
            {"credential": ticket["payload"]},
            format="json",
            **identity(db_organizer),
        )
        assert verified.status_code == 200
        assert verified.json()["participant"]["id"] == str(buyer.id)

        again = api_client.post(
            "/api/tickets/verify",
            {"credential": ticket["payload"]},
            format="json",
            **identity(db_organizer),
        )
        assert again.status_code == 409
        assert again.json()["error"]["code"] == "ALREADY_SCANNED"

    def test_reject_requires_reason(self, api_client, buyer, db_organizer):
        row = create_event(db_organizer, fee="100")
        registration = register(api_client, row.id, buyer).json()
        base = f"/api/registrations/{registration['id']}"
        api_client.post(
            f"{base}/payment-proof", {"proof_ref": "p.png"}, format="json", **identity(buyer)
        )

        response = api_client.post(
            f"{base}/reject", {"reason": "  "}, format="json", **identity(db_organizer)
        )
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "EMPTY_REASON"

        response = api_client.post(
            f"{base}/reject",
            {"reason": "Wrong amount"},
            format="json",
            **identity(db_organizer),
        )
        assert response.json()["status"] == "REJECTED"
        assert response.json()["rejection_reason"] == "Wrong amount"

    def test_missing_proof_ref(self, api_client, buyer, db_organizer):
        row = create_event(db_organizer, fee="100")
        registration = register(api_client, row.id, buyer).json()

        response = api_client.post(
            f"/api/registrations/{registration['id']}/payment-proof",
            {},
            format="json",
            **identity(buyer),
        )

        assert response.status_code == 400
        assert "proof_ref" in response.json()["error"]["details"]["fields"]

    def test_png_qr(self, api_client, buyer, db_organizer):
        row = create_event(db_organizer)
        registration = register(api_client, row.id, buyer).json()

        response = api_client.get(
            f"/api/registrations/{registration['id']}/ticket?qr=png", **identity(buyer)
        )
        assert response.json()["qr_code"].startswith("data:image/png;base64,")


@pytest.mark.django_db
class TestRegistrationAccess:
    def test_owner_and_organizer_can_read(self, api_client, buyer, db_organizer):
        row = create_event(db_organizer)
        registration = register(api_client, row.id, buyer).json()
        url = f"/api/registrations/{registration['id']}"

        assert api_client.get(url, **identity(buyer)).status_code == 200
        assert api_client.get(url, **identity(db_organizer)).status_code == 200
        assert api_client.get(url, **identity(make_actor())).status_code == 403

    def test_cancel(self, api_client, buyer, db_organizer):
        row = create_event(db_organizer, kind=EventKind.MERCHANDISE, fee="300", stocks=(2,))
        registration = register(
            api_client, row.id, buyer, {"size": "S", "color": "Blue"}
        ).json()

        response = api_client.post(
            f"/api/registrations/{registration['id']}/cancel", **identity(buyer)
        )

        assert response.json()["status"] == "CANCELLED"
        stock = api_client.get(f"/api/events/{row.id}/stock", **identity(buyer)).json()
        assert stock[0]["stock"] == 2
        assert stock[0]["size"] == "S"


@pytest.mark.django_db
class TestRegistrationLists:
    def test_event_roster_with_status_filter(self, api_client, buyer, db_organizer):
        row = create_event(db_organizer, fee="100")
        pending = register(api_client, row.id, buyer).json()
        leaver = make_actor(name="Ravi")
        left = register(api_client, row.id, leaver).json()
        api_client.post(f"/api/registrations/{left['id']}/cancel", **identity(leaver))

        response = api_client.get(
            f"/api/events/{row.id}/registrations?status=PENDING", **identity(db_organizer)
        )

        assert response.status_code == 200
        assert [r["id"] for r in response.json()] == [pending["id"]]

    def test_event_roster_search(self, api_client, buyer, db_organizer):
        row = create_event(db_organizer)
        register(api_client, row.id, buyer)
        register(api_client, row.id, make_actor(name="Ravi"))

        response = api_client.get(
            f"/api/events/{row.id}/registrations?search=meera", **identity(db_organizer)
        )

        assert [r["participant_name"] for r in response.json()] == ["Meera"]

    def test_event_roster_is_organizer_only(self, api_client, buyer, db_organizer):
        row = create_event(db_organizer)
        response = api_client.get(f"/api/events/{row.id}/registrations", **identity(buyer))
        assert response.status_code == 403

    def test_unknown_status_is_rejected(self, api_client, db_organizer):
        row = create_event(db_organizer)
        response = api_client.get(
            f"/api/events/{row.id}/registrations?status=LOST", **identity(db_organizer)
        )
        assert response.status_code == 400
        assert "status" in response.json()["error"]["details"]["fields"]

    def test_my_registrations(self, api_client, buyer, db_organizer):
        free = create_event(db_organizer, name="Hackathon")
        shop = create_event(
            db_organizer, kind=EventKind.MERCHANDISE, fee="300", stocks=(2,), name="Merch"
        )
        ticketed = register(api_client, free.id, buyer).json()
        order = register(api_client, shop.id, buyer, {"size": "S", "color": "Blue"}).json()
        register(api_client, free.id, make_actor(name="Ravi"))

        everything = api_client.get("/api/me/registrations", **identity(buyer)).json()
        merchandise = api_client.get(
            "/api/me/registrations?kind=MERCHANDISE", **identity(buyer)
        ).json()

        assert {r["id"] for r in everything} == {ticketed["id"], order["id"]}
        assert [r["id"] for r in merchandise] == [order["id"]]
