class RelayError(Exception):
    """Base class for every reason an inbound event gets dropped.

    None of these are fatal: the dispatcher logs them and the connection
    carries on.
    """


class InvalidInput(RelayError):
    """Empty or missing room name / target id, malformed frame, unknown event."""


class AddressingFailure(RelayError):
    """Target is not a member of the room the message was resolved against."""


class NotJoined(RelayError):
    """The operation needs room context and the connection has none."""


class SenderMismatch(RelayError):
    """A signal's "from" label does not match the sending connection."""
