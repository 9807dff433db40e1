# Inbound (client -> server)
JOIN_ROOM = "joinRoom"
LEAVE_ROOM = "leaveRoom"
SIGNAL = "signal"  # also outbound, forwarded unmodified to the target
ANNOUNCE = "announce"  # also outbound, broadcast to the room
REQUEST_IDENTITY_FOR = "requestIdentityFor"

# Outbound (server -> client)
CONNECTED = "connected"  # [connection_id], sent once right after accept
INTRODUCTION = "introduction"  # [[other member ids]] to the joiner only
NEW_USER_CONNECTED = "newUserConnected"  # [connection_id] to the whole room
USER_DISCONNECTED = "userDisconnected"  # [connection_id] to the remaining members
ASK_TO_ANNOUNCE = "askToAnnounce"  # [] to a single target

# **Frame shape**
# Every WebSocket text frame is {"event": <name>, "args": [...]} in both directions.
# - joinRoom / leaveRoom: args = [room]
# - signal: args = [to, from, data]
# - announce: args = [{"room"?: str, "name"?: str}]
# - requestIdentityFor: args = [{"room"?: str, "socketId"?: str}]
