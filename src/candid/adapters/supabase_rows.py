"""Row parsing shared by the Supabase adapters."""

from datetime import datetime
from uuid import UUID


def parse_timestamp(value: object) -> datetime:
    """Parse an ISO timestamp returned by PostgREST."""
    if isinstance(value, datetime):
        return value
    if isinstance(value, str) and value:
        return datetime.fromisoformat(value)
    raise ValueError(f"Invalid timestamp: {value!r}")


def parse_optional_timestamp(value: object) -> datetime | None:
    """Parse a nullable ISO timestamp."""
    if value is None or value == "":
        return None
    return parse_timestamp(value)


def parse_uuid_list(value: object) -> list[UUID]:
    """Parse a Postgres uuid[] column."""
    if not isinstance(value, list):
        return []
    return [UUID(str(item)) for item in value]
