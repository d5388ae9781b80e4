from datetime import datetime, timezone


def utc_now() -> datetime:
    """Current time as naive UTC, the form every timestamp column stores."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_utc_naive(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def format_instant(value: datetime) -> str:
    """ISO-8601 in UTC with a `Z` suffix, keeping microseconds."""
    return to_utc_naive(value).isoformat(timespec="microseconds") + "Z"


def parse_instant(value: str) -> datetime:
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    return to_utc_naive(datetime.fromisoformat(text))
