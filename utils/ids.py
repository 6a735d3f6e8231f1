import uuid
from datetime import datetime, timezone


def new_id(prefix: str) -> str:
    """Unique id like 'deck-3f2a...'. Safe under rapid creation in the same tick."""
    return f"{prefix}-{uuid.uuid4().hex}"


def utc_now_iso() -> str:
    # Same shape as older blobs: 2024-05-01T12:30:00.123Z
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec='milliseconds').replace('+00:00', 'Z')
