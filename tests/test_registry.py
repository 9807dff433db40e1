import random
from concurrent.futures import ThreadPoolExecutor

import pytest

from conftest import assert_registry_consistent
from registry import RoomRegistry, normalize_room_name


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("meet1", "meet1"),
        ("  meet1\t", "meet1"),
        ("", ""),
        ("   ", ""),
        (None, ""),
        (42, "42"),
    ],
)
def test_normalize_room_name(raw, expected):
    assert normalize_room_name(raw) == expected


def test_join_creates_room_and_returns_other_members(registry):
    first = registry.join("a", "meet1")
    second = registry.join("b", "meet1")

    assert first.introduction == []
    assert second.introduction == ["a"]
    assert registry.rooms() == {"meet1": frozenset({"a", "b"})}
    assert registry.room_of("b") == "meet1"


def test_introduction_is_membership_before_join(registry):
    for conn_id in ("a", "b", "c"):
        registry.join(conn_id, "meet1")
    before = set(registry.members("meet1"))

    result = registry.join("d", "meet1")

    assert set(result.introduction) == before
    assert "d" not in result.introduction


def test_rejoin_same_room_keeps_single_membership(registry):
    registry.join("a", "meet1")
    registry.join("b", "meet1")

    result = registry.join("a", "meet1")

    assert result.already_member is True
    assert result.departure is None
    assert result.introduction == ["b"]
    assert registry.members("meet1") == frozenset({"a", "b"})


def test_join_other_room_leaves_previous_and_deletes_it_when_empty(registry):
    registry.join("a", "r1")

    result = registry.join("a", "r2")

    assert result.departure is not None
    assert result.departure.room == "r1"
    assert result.departure.room_deleted is True
    assert registry.rooms() == {"r2": frozenset({"a"})}


def test_join_other_room_keeps_previous_room_for_remaining_members(registry):
    registry.join("a", "r1")
    registry.join("b", "r1")

    result = registry.join("a", "r2")

    assert result.departure.room_deleted is False
    assert registry.members("r1") == frozenset({"b"})


def test_leave_is_idempotent(registry):
    registry.join("a", "meet1")
    registry.join("b", "meet1")

    first = registry.leave("a", "meet1")
    second = registry.leave("a", "meet1")

    assert first is not None
    assert first.room_deleted is False
    assert second is None
    assert registry.room_of("a") is None
    assert registry.members("meet1") == frozenset({"b"})


def test_leave_room_not_joined_keeps_recorded_room(registry):
    registry.join("a", "meet1")
    registry.join("b", "other")

    assert registry.leave("a", "other") is None
    assert registry.leave("a", "missing") is None
    assert registry.room_of("a") == "meet1"
    assert registry.members("other") == frozenset({"b"})


def test_last_leave_deletes_room(registry):
    registry.join("a", "meet1")

    departure = registry.leave("a", "meet1")

    assert departure.room_deleted is True
    assert registry.rooms() == {}


def test_discard_uses_recorded_room_and_forgets_connection(registry):
    registry.register("a")
    registry.join("a", "meet1")
    registry.join("b", "meet1")

    departure = registry.discard("a")

    assert departure.room == "meet1"
    assert departure.connection_id == "a"
    assert registry.connection_count() == 1
    assert registry.room_of("a") is None
    assert registry.members("meet1") == frozenset({"b"})
    assert registry.discard("a") is None


def test_discard_unjoined_connection(registry):
    registry.register("a")

    assert registry.discard("a") is None
    assert registry.connection_count() == 0


def test_random_sequences_keep_rooms_consistent():
    rng = random.Random(1234)
    registry = RoomRegistry()
    conn_ids = [f"c{i}" for i in range(6)]
    room_names = ["r1", "r2", "r3"]

    for _ in range(2000):
        conn_id = rng.choice(conn_ids)
        op = rng.choice(["join", "join", "leave", "leave_other", "discard"])
        if op == "join":
            registry.join(conn_id, rng.choice(room_names))
        elif op == "leave":
            room = registry.room_of(conn_id)
            if room is not None:
                registry.leave(conn_id, room)
        elif op == "leave_other":
            registry.leave(conn_id, rng.choice(room_names))
        else:
            registry.discard(conn_id)
        assert_registry_consistent(registry, conn_ids)


def test_concurrent_operations_keep_rooms_consistent():
    registry = RoomRegistry()
    conn_ids = [f"c{i}" for i in range(10)]
    room_names = ["r1", "r2"]

    def worker(seed):
        rng = random.Random(seed)
        for _ in range(500):
            conn_id = rng.choice(conn_ids)
            op = rng.random()
            if op < 0.5:
                registry.join(conn_id, rng.choice(room_names))
            elif op < 0.8:
                registry.leave(conn_id, rng.choice(room_names))
            else:
                registry.discard(conn_id)

    with ThreadPoolExecutor(max_workers=8) as pool:
        list(pool.map(worker, range(16)))

    assert_registry_consistent(registry, conn_ids)
    for conn_id in conn_ids:
        registry.discard(conn_id)
    assert registry.rooms() == {}
