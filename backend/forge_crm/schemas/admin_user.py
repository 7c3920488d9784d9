"""Pydantic schemas for admin user management."""
import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from forge_crm.models.user import ROLES


class AdminUserCreate(BaseModel):
    """Create a new user (admin only)."""
    email: EmailStr
    name: str
    password: str = Field(min_length=8)
    role: str
    hired_at: datetime | None = None
    monthly_quota: float | None = Field(default=None, ge=0)
    manager_email: EmailStr | None = None


class AdminUserUpdate(BaseModel):
    """Update user fields (admin only)."""
    name: str | None = None
    role: str | None = None
    is_active: bool | None = None
    exclude_from_reporting: bool | None = None
    hired_at: datetime | None = None
    monthly_quota: float | None = Field(default=None, ge=0)
    manager_email: EmailStr | None = None


class AdminUserOut(BaseModel):
    """User response for admin endpoints."""
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    email: str
    name: str
    role: str
    is_active: bool
    exclude_from_reporting: bool
    hired_at: datetime | None = None
    monthly_quota: float | None = None
    manager_email: str | None = None
    created_at: datetime


class AdminUserListResponse(BaseModel):
    """Paginated list of users."""
    items: list[AdminUserOut]
    total: int
    page: int
    page_size: int


def is_valid_role(role: str) -> bool:
    return role in ROLES
