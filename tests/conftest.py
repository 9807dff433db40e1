from typing import Any, Dict, List, Set, Tuple

import pytest
from fastapi.testclient import TestClient

from registry import RoomRegistry
from relay import SignallingRelay


class FakeTransport:
    """Records every delivery as (recipient, event, args), resolving rooms at send time."""

    def __init__(self):
        self.groups: Dict[str, Set[str]] = {}
        self.sent: List[Tuple[str, str, Tuple[Any, ...]]] = []

    def enter_room(self, connection_id, room):
        self.groups.setdefault(room, set()).add(connection_id)

    def leave_room(self, connection_id, room):
        members = self.groups.get(room, set())
        members.discard(connection_id)
        if not members:
            self.groups.pop(room, None)

    async def send_to(self, connection_id, event, *args):
        self.sent.append((connection_id, event, args))

    async def send_to_room(self, room, event, *args):
        for connection_id in sorted(self.groups.get(room, ())):
            self.sent.append((connection_id, event, args))

    def received(self, connection_id):
        return [(event, args) for target, event, args in self.sent if target == connection_id]

    def events_named(self, event):
        return [(target, args) for target, name, args in self.sent if name == event]


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def registry():
    return RoomRegistry()


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def relay(registry, transport):
    return SignallingRelay(registry, transport)


@pytest.fixture
def strict_relay(registry, transport):
    return SignallingRelay(registry, transport, verify_signal_sender=True, strict_room_scope=True)


@pytest.fixture
def client():
    from app import app

    with TestClient(app) as test_client:
        yield test_client


def assert_registry_consistent(registry, connection_ids):
    rooms = registry.rooms()
    # no empty rooms
    assert all(members for members in rooms.values())
    # member sets and recorded rooms agree, in both directions
    for room, members in rooms.items():
        for member in members:
            assert registry.room_of(member) == room
    for connection_id in connection_ids:
        room = registry.room_of(connection_id)
        appearances = [name for name, members in rooms.items() if connection_id in members]
        if room is None:
            assert appearances == []
        else:
            assert appearances == [room]
