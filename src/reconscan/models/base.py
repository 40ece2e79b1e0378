"""Base models shared by every scan result."""

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


def utc_now() -> datetime:
    """Current UTC time at second precision."""
    return datetime.now(timezone.utc).replace(microsecond=0)


class BaseSchema(BaseModel):
    """Base schema with common configuration."""

    model_config = ConfigDict(
        str_strip_whitespace=True,
        validate_assignment=True,
        extra="forbid",
    )


class ResultRecord(BaseSchema):
    """Immutable output record produced once per completed job."""

    model_config = ConfigDict(frozen=True)

    timestamp: datetime = Field(default_factory=utc_now)

    @property
    def success(self) -> bool:
        return True

    def to_text(self) -> str:
        """Plain-text line; records override this with their primary field."""
        fields = self.to_json_dict()
        fields.pop("timestamp", None)
        return " ".join(str(value) for value in fields.values())

    def to_json_dict(self) -> dict[str, Any]:
        """JSON-ready dict without unset optional fields."""
        return self.model_dump(mode="json", exclude_none=True)
