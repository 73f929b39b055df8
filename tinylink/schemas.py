from pydantic import BaseModel, ConfigDict, field_validator
from typing import Any, Optional
from datetime import datetime, timezone

class LinkCreate(BaseModel):
    # Untyped on purpose: the service validates both and answers 400, not 422
    target_url: Any = None
    code: Any = None

class LinkResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    code: str
    target_url: str
    total_clicks: int
    created_at: datetime
    last_clicked: Optional[datetime] = None

    @field_validator("created_at", "last_clicked")
    @classmethod
    def as_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        # SQLite hands back naive datetimes; stored values are always UTC
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)
