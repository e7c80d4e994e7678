"""Session metadata."""

from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import Field

from storyworld.memory.entities import WorldModel

SAVE_FORMAT_VERSION = "2.0"


class SessionMeta(WorldModel):
    version: str = SAVE_FORMAT_VERSION
    session_id: str = Field(default_factory=lambda: uuid.uuid4().hex[:12])
    choice_count: int = 0
    started: datetime = Field(default_factory=datetime.now)
    last_save: datetime | None = None
