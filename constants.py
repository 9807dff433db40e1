import os


def _env_flag(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", 3002))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FILE = os.getenv("LOG_FILE", None)

# Comma separated list, e.g. "https://a.example,https://b.example". Empty means any origin.
ALLOWED_ORIGINS = [o.strip() for o in os.getenv("ORIGIN", "").split(",") if o.strip()] or ["*"]

# Trust policy. Both off reproduces the relay's historical behaviour: the "from"
# label of a signal and the room named in announce/requestIdentityFor are trusted.
SIGNAL_VERIFY_SENDER = _env_flag("SIGNAL_VERIFY_SENDER")
STRICT_ROOM_SCOPE = _env_flag("STRICT_ROOM_SCOPE")
