from datetime import UTC, datetime


def utcnow() -> datetime:
    """Naive UTC timestamp, matching how TIMESTAMP columns are stored."""
    return datetime.now(UTC).replace(tzinfo=None)
