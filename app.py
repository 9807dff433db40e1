from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.websockets import WebSocketState
from fastapi.middleware.cors import CORSMiddleware
from pydantic import ValidationError

import events
from connections import connection_manager
from constants import ALLOWED_ORIGINS, LOG_FILE, LOG_LEVEL, SIGNAL_VERIFY_SENDER, STRICT_ROOM_SCOPE
from registry import room_registry
from relay import SignallingRelay
from routers.health import health_router
from routers.rooms import rooms_router
from schemas.events import EventMessage
from logging_config import get_logger, setup_logging

# Setup logging
setup_logging(log_level=LOG_LEVEL, log_file=LOG_FILE)
logger = get_logger(__name__)

app = FastAPI()

# Allowed origins come from ORIGIN; without it any origin may connect
app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=ALLOWED_ORIGINS != ["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(rooms_router)
app.include_router(health_router)

# Room state lives in this process only; every instance is an independent relay.
relay = SignallingRelay(
    room_registry,
    connection_manager,
    verify_signal_sender=SIGNAL_VERIFY_SENDER,
    strict_room_scope=STRICT_ROOM_SCOPE,
)

logger.info(f"FastAPI application initialized (origins: {ALLOWED_ORIGINS})")


@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    """Signalling socket.

    The first frame sent to the client is `connected` carrying its connection
    id. After that every frame in both directions is {"event": ..., "args": [...]}.
    """
    connection_id = None
    try:
        connection_id = await connection_manager.connect(websocket)
        relay.connect(connection_id)
        await connection_manager.send_to(connection_id, events.CONNECTED, connection_id)

        message_count = 0
        while True:
            frame = await websocket.receive()
            if frame["type"] == "websocket.disconnect":
                raise WebSocketDisconnect(frame.get("code", 1000))
            message_count += 1

            data = frame.get("text")
            if data is None:
                logger.warning(f"Dropped binary frame #{message_count} from connection {connection_id}")
                continue

            try:
                message = EventMessage.model_validate_json(data)
            except ValidationError:
                logger.warning(f"Dropped malformed frame #{message_count} from connection {connection_id}")
                continue
            logger.debug(f"Received {message.event} (#{message_count}) from connection {connection_id}")

            try:
                await relay.dispatch(connection_id, message)
            except Exception as e:
                logger.error(f"Error handling {message.event} from connection {connection_id}: {e}", exc_info=True)

    except WebSocketDisconnect:
        logger.info(f"WebSocket disconnected for connection {connection_id}")
    except Exception as e:
        logger.error(f"WebSocket error for connection {connection_id}: {e}", exc_info=True)
    finally:
        # Cleanup on disconnect
        if connection_id:
            connection_manager.disconnect(connection_id)
            await relay.disconnect(connection_id)

        if websocket.client_state == WebSocketState.CONNECTED:
            try:
                await websocket.close()
            except Exception as e:
                logger.debug(f"Error closing WebSocket: {e}")
