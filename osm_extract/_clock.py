from datetime import datetime, timezone


__docformat__ = "google"
__all__ = ("utc_timestamp",)


def utc_timestamp() -> str:
    """Current UTC time in ISO 8601 format with milliseconds, f.e. ``2024-01-31T12:00:00.000Z``."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")
