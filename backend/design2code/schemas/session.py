"""Session snapshot as reported by the session endpoint and observer."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class SessionStatus(str, Enum):
    """Tri-state authentication status."""

    LOADING = "loading"
    AUTHENTICATED = "authenticated"
    UNAUTHENTICATED = "unauthenticated"


class SessionUser(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    # Raw tier string; the store maps unknown values to starter
    plan: str | None = None
    plan_expiry_date: datetime | None = Field(default=None, alias="planExpiryDate")


class SessionSnapshot(BaseModel):
    model_config = ConfigDict(frozen=True)

    status: SessionStatus
    user: SessionUser | None = None

    @classmethod
    def loading(cls) -> "SessionSnapshot":
        return cls(status=SessionStatus.LOADING)

    @classmethod
    def anonymous(cls) -> "SessionSnapshot":
        return cls(status=SessionStatus.UNAUTHENTICATED)

    @classmethod
    def signed_in(cls, user_id: str, plan: str | None = None) -> "SessionSnapshot":
        return cls(status=SessionStatus.AUTHENTICATED, user=SessionUser(id=user_id, plan=plan))
