"""Shared schema configuration."""

from datetime import UTC, datetime
from typing import Annotated

from pydantic import AfterValidator, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything is stored in UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


UTCDateTime = Annotated[datetime, AfterValidator(_as_utc)]

# Largest value a 64-bit signed INTEGER column holds
MAX_ID = 2**63 - 1

UserId = Annotated[int, Field(ge=1, le=MAX_ID)]


class CamelModel(BaseModel):
    """Base model serialized with camelCase keys.

    Input accepts both the camelCase alias and the field name.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )
