from typing import Any, Optional

import events
from errors import AddressingFailure, InvalidInput, NotJoined, RelayError, SenderMismatch
from registry import Departure, RoomRegistry, normalize_room_name
from schemas.events import Announcement, AnnouncePayload, EventMessage, IdentityRequestPayload
from logging_config import get_logger

logger = get_logger(__name__)


class SignallingRelay:
    """Room lifecycle and message routing on top of a registry and a transport.

    The transport provides enter_room/leave_room and the coroutines send_to and
    send_to_room. Registry and transport groups are both updated before the
    first await of any handler, so notifications always describe applied state.
    """

    def __init__(self, registry: RoomRegistry, transport, verify_signal_sender=False, strict_room_scope=False):
        self.registry = registry
        self.transport = transport
        self.verify_signal_sender = verify_signal_sender
        self.strict_room_scope = strict_room_scope

    def connect(self, connection_id: str):
        self.registry.register(connection_id)
        logger.info(f"Connection {connection_id} connected")

    async def join_room(self, connection_id: str, room_raw):
        room = normalize_room_name(room_raw)
        if not room:
            raise InvalidInput(f"joinRoom called with empty room by {connection_id}")

        result = self.registry.join(connection_id, room)
        # Move transport groups before yielding; a peer joining `room` meanwhile must reach us
        if result.departure is not None:
            self.transport.leave_room(connection_id, result.departure.room)
        self.transport.enter_room(connection_id, room)

        if result.departure is not None:
            await self._announce_departure(result.departure)
        await self.transport.send_to(connection_id, events.INTRODUCTION, result.introduction)
        await self.transport.send_to_room(room, events.NEW_USER_CONNECTED, connection_id)
        logger.info(
            f"Connection {connection_id} joined room {room} "
            f"(peers: {len(result.introduction) + 1}, rejoin: {result.already_member})"
        )
        return result.introduction

    async def leave_room(self, connection_id: str, room_raw):
        room = normalize_room_name(room_raw)
        if not room:
            raise InvalidInput(f"leaveRoom called with empty room by {connection_id}")

        departure = self.registry.leave(connection_id, room)
        if departure is None:
            logger.debug(f"leaveRoom ignored: {connection_id} is not in room {room}")
            return None
        self.transport.leave_room(connection_id, room)
        await self._announce_departure(departure)
        logger.info(f"Connection {connection_id} left room {room}")
        return departure

    async def disconnect(self, connection_id: str):
        departure = self.registry.discard(connection_id)
        if departure is not None:
            self.transport.leave_room(connection_id, departure.room)
            await self._announce_departure(departure)
        logger.info(f"Connection {connection_id} disconnected")
        return departure

    async def _announce_departure(self, departure: Departure):
        if departure.room_deleted:
            return
        await self.transport.send_to_room(departure.room, events.USER_DISCONNECTED, departure.connection_id)

    async def relay_signal(self, from_connection_id: str, to_id, from_id, payload):
        room = self.registry.room_of(from_connection_id)
        if room is None:
            raise NotJoined(f"signal received from connection not in a room: {from_connection_id}")
        if not to_id or not isinstance(to_id, str):
            raise InvalidInput(f"signal from {from_connection_id} has no target")
        if self.verify_signal_sender and from_id != from_connection_id:
            raise SenderMismatch(f"signal from {from_connection_id} claims to be from {from_id}")
        if not self.registry.is_member(room, to_id):
            raise AddressingFailure(f"Signal target {to_id} not found in room {room}")

        await self.transport.send_to(to_id, events.SIGNAL, to_id, from_id, payload)
        logger.debug(f"Relayed signal {from_connection_id} -> {to_id} in room {room}")

    def _resolve_room(self, connection_id: str, room_raw) -> str:
        recorded = self.registry.room_of(connection_id)
        if room_raw is None:
            if recorded is None:
                raise NotJoined(f"No room to resolve for {connection_id}")
            room = recorded
        else:
            room = normalize_room_name(room_raw)
            if not room:
                raise InvalidInput(f"Empty room supplied by {connection_id}")
        if self.strict_room_scope and room != recorded:
            raise NotJoined(f"Connection {connection_id} is not in room {room}")
        return room

    async def announce(self, connection_id: str, room=None, name: Any = None):
        resolved = self._resolve_room(connection_id, room)
        # name is opaque, forwarded as sent
        announcement = Announcement(socketId=connection_id, name=name)
        await self.transport.send_to_room(resolved, events.ANNOUNCE, announcement.model_dump())
        logger.debug(f"Connection {connection_id} announced as {name!r} in room {resolved}")
        return resolved

    async def request_identity_for(self, connection_id: str, room=None, target_id=None):
        resolved = self._resolve_room(connection_id, room)
        if not target_id or not isinstance(target_id, str):
            raise InvalidInput(f"requestIdentityFor from {connection_id} has no target")
        if self.strict_room_scope and not self.registry.is_member(resolved, target_id):
            raise AddressingFailure(f"Identity target {target_id} not found in room {resolved}")
        await self.transport.send_to(target_id, events.ASK_TO_ANNOUNCE)
        logger.debug(f"Connection {connection_id} asked {target_id} to announce in room {resolved}")
        return target_id

    async def dispatch(self, connection_id: str, message: EventMessage):
        """Route one inbound frame. Anything the relay refuses is logged and dropped."""
        try:
            if message.event == events.JOIN_ROOM:
                await self.join_room(connection_id, message.arg(0))
            elif message.event == events.LEAVE_ROOM:
                await self.leave_room(connection_id, message.arg(0))
            elif message.event == events.SIGNAL:
                await self.relay_signal(connection_id, message.arg(0), message.arg(1), message.arg(2))
            elif message.event == events.ANNOUNCE:
                payload = AnnouncePayload.model_validate(message.object_arg(0))
                await self.announce(connection_id, payload.room, payload.name)
            elif message.event == events.REQUEST_IDENTITY_FOR:
                payload = IdentityRequestPayload.model_validate(message.object_arg(0))
                await self.request_identity_for(connection_id, payload.room, payload.socketId)
            else:
                raise InvalidInput(f"Unknown event {message.event!r} from {connection_id}")
        except RelayError as e:
            logger.warning(f"Dropped {message.event} from {connection_id}: {type(e).__name__}: {e}")
