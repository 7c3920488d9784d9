import uuid
from datetime import datetime

from pydantic import BaseModel


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int  # seconds


class UserOut(BaseModel):
    """The signed-in user as shown to themselves. Never carries the password hash."""

    id: uuid.UUID
    email: str
    name: str
    role: str
    is_active: bool
    hired_at: datetime | None = None
    monthly_quota: float | None = None

    model_config = {"from_attributes": True}
