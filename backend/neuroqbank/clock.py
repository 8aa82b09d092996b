from datetime import datetime, timezone


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def get_now() -> datetime:
    """FastAPI dependency for the current time. Overridden in tests."""
    return utc_now()


def format_ts(value: datetime) -> str:
    """Render an aware datetime the way the store keeps timestamps."""
    return value.astimezone(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")


def parse_ts(value: str) -> datetime:
    """Parse a stored timestamp back into an aware UTC datetime."""
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
