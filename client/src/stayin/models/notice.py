"""Non-blocking user notices (e.g. a startup task failed but the app continues)."""

from datetime import datetime, UTC
from enum import Enum
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class NoticeLevel(str, Enum):
    """Severity of a notice."""

    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class Notice(BaseModel):
    """A message shown to the user without blocking navigation."""

    id: UUID = Field(default_factory=uuid4)
    level: NoticeLevel = NoticeLevel.INFO
    source: str  # Component that raised it, e.g. "assets"
    message: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
