"""Logged-in device session model."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class Session(BaseModel):
    """One logged-in device of one user, bound to one issued token."""

    model_config = ConfigDict(frozen=False)

    user_id: int
    token: str
    client_addr: str | None = None
    client_agent: str | None = None
    created_at: datetime
    last_activity: datetime
