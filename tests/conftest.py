"""Shared fakes for mirror tests."""

from datetime import datetime, timedelta, timezone

import pytest

from incident_mirror.errors import MessageNotFound
from incident_mirror.models import Component, Incident, IncidentUpdate, Payload, RemoteMessage

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)
T1 = NOW - timedelta(hours=2)
T2 = NOW - timedelta(hours=1)


def make_incident(
    incident_id="abc123",
    status="investigating",
    updated_at=T1,
    updates=None,
    components=("API", "Voice"),
    impact="major",
    name="Elevated API errors",
):
    if updates is None:
        updates = [IncidentUpdate(status=status, body=f"We are {status}.", created_at=updated_at)]
    return Incident(
        id=incident_id,
        name=name,
        status=status,
        impact=impact,
        shortlink=f"https://stspg.io/{incident_id}",
        updated_at=updated_at,
        components=tuple(Component(name=c) for c in components),
        incident_updates=tuple(updates),
    )


class MemoryStore:
    """In-memory MappingStore that counts lookups."""

    def __init__(self, data=None):
        self.data = dict(data or {})
        self.gets = 0

    def get(self, incident_id):
        self.gets += 1
        return self.data.get(incident_id)

    def put(self, incident_id, message_id):
        self.data[incident_id] = message_id


class FakeMessaging:
    """MessagingClient that keeps posted payloads and records every call."""

    def __init__(self):
        self.messages: dict[str, RemoteMessage] = {}
        self.calls: list[tuple] = []
        self._next_id = 1000
        self.fetch_error: Exception | None = None
        self.send_error: Exception | None = None

    async def send(self, payload: Payload) -> str:
        self.calls.append(("send", payload))
        if self.send_error is not None:
            raise self.send_error
        message_id = str(self._next_id)
        self._next_id += 1
        self.messages[message_id] = RemoteMessage(message_id=message_id, embeds=(payload,))
        return message_id

    async def fetch(self, message_id: str):
        self.calls.append(("fetch", message_id))
        if self.fetch_error is not None:
            raise self.fetch_error
        if message_id not in self.messages:
            raise MessageNotFound(message_id)
        return self.messages[message_id]

    async def edit(self, message_id: str, payload: Payload) -> None:
        self.calls.append(("edit", message_id, payload))
        if message_id not in self.messages:
            raise MessageNotFound(message_id)
        self.messages[message_id] = RemoteMessage(message_id=message_id, embeds=(payload,))

    def count(self, kind):
        return sum(1 for c in self.calls if c[0] == kind)


class FakeFeed:
    def __init__(self, incidents=None, error=None):
        self.incidents = list(incidents or [])
        self.error = error

    async def fetch_incidents(self):
        if self.error is not None:
            raise self.error
        return list(self.incidents)


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def messaging():
    return FakeMessaging()
