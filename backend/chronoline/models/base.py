"""
Shared model plumbing.

API payloads use camelCase field names while storage and Python code use
snake_case; ``ApiModel`` accepts both and serializes by alias.
"""

from datetime import date, datetime, time, timezone
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict
from pydantic.alias_generators import to_camel


def to_utc_datetime(value: Any) -> Any:
    """
    Normalize a date-like value into a timezone-aware UTC datetime.

    Accepts datetimes, dates (midnight UTC) and ISO-8601 strings, including
    date-only strings such as ``"2024-01-01"``. Anything else is returned
    untouched so pydantic can report it.
    """
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return value
        try:
            value = datetime.fromisoformat(text)
        except ValueError:
            return value
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)
    if isinstance(value, date):
        return datetime.combine(value, time.min, tzinfo=timezone.utc)
    return value


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


UtcDatetime = Annotated[datetime, BeforeValidator(to_utc_datetime)]


class ApiModel(BaseModel):
    """Base for models exchanged over the HTTP API."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_api(self, **kwargs) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, **kwargs)
