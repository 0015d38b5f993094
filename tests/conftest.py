"""Pytest configuration and shared fixtures."""

from datetime import timedelta
from decimal import Decimal

import pytest
from factories import (
    FakeClock,
    RecordingNotifier,
    make_actor,
    make_event,
    make_merch_event,
)
from rest_framework.test import APIClient

from registrations.domain import Actor, Event, FormField, Money
from registrations.domain.status import ParticipantType, Role
from registrations.services import RegistrationService
from registrations.stores import InMemoryRegistrationStore


@pytest.fixture
def api_client() -> APIClient:
    return APIClient()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store() -> InMemoryRegistrationStore:
    return InMemoryRegistrationStore()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def service(store, notifier, clock) -> RegistrationService:
    return RegistrationService(
        store, notifier, now=clock, hold_timeout=timedelta(hours=48)
    )


@pytest.fixture
def organizer() -> Actor:
    return make_actor(Role.ORGANIZER, participant_type=None, name="Organizer")


@pytest.fixture
def admin_actor() -> Actor:
    return make_actor(Role.ADMIN, participant_type=None, name="Admin")


@pytest.fixture
def participant() -> Actor:
    return make_actor()


@pytest.fixture
def other_participant() -> Actor:
    return make_actor(participant_type=ParticipantType.NON_IIIT, name="Ravi")


@pytest.fixture
def free_event(store, organizer) -> Event:
    return store.add_event(make_event(organizer))


@pytest.fixture
def paid_event(store, organizer) -> Event:
    return store.add_event(make_event(organizer, registration_fee=Money(Decimal("100.00"))))


@pytest.fixture
def merch_event(store, organizer) -> Event:
    return store.add_event(make_merch_event(organizer, stocks=(5, 2)))


@pytest.fixture
def form_event(store, organizer) -> Event:
    return store.add_event(
        make_event(
            organizer,
            custom_form=(
                FormField("team_name", "text", required=True),
                FormField("dietary", "text"),
            ),
        )
    )
