from __future__ import annotations

from pydantic import BaseModel

from legtrack.core.config import settings


class RequestIdentity(BaseModel):
    email: str | None = None
    auth_source: str = "anonymous"

    @property
    def actor(self) -> str:
        return self.email or settings.CHANGE_LOG_DEFAULT_ACTOR
