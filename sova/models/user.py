"""User account model."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class User(BaseModel):
    """Registered user. The password hash never leaves the credential store."""

    model_config = ConfigDict(frozen=True)

    id: int
    email: str
    password_hash: str
    created_at: datetime
