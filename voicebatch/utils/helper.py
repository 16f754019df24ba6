import uuid
from datetime import datetime, timezone


def utc_now() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


def new_correlation_id() -> str:
    """Opaque campaign correlation id shared by every chunk of one submission."""
    return f"cmp_{uuid.uuid4().hex}"


def chunked(items: list, size: int):
    """Order-preserving fixed-size slices; the last one may be shorter."""
    return [
        items[i:i + size]
        for i in range(0, len(items), size)
    ]
