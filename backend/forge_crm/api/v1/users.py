"""User management endpoints. Users are soft-deactivated, never deleted."""
import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from forge_crm.core.deps import require_admin
from forge_crm.core.security import hash_password
from forge_crm.db.session import get_session
from forge_crm.models.user import User
from forge_crm.schemas.admin_user import (
    AdminUserCreate,
    AdminUserListResponse,
    AdminUserOut,
    AdminUserUpdate,
    is_valid_role,
)

router = APIRouter()


def _check_role(role: str | None) -> None:
    if role is not None and not is_valid_role(role):
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"Unknown role '{role}'",
        )


# ─── GET /users ───


@router.get(
    "",
    response_model=AdminUserListResponse,
    summary="List users with pagination",
    dependencies=[Depends(require_admin)],
)
async def list_users(
    db: Annotated[AsyncSession, Depends(get_session)],
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=20, ge=1, le=100),
    role: str | None = Query(default=None),
    include_inactive: bool = Query(default=False),
):
    stmt = select(User)
    if role:
        stmt = stmt.where(User.role == role)
    if not include_inactive:
        stmt = stmt.where(User.is_active.is_(True))

    total = (await db.execute(select(func.count()).select_from(stmt.subquery()))).scalar_one()

    offset = (page - 1) * page_size
    stmt = stmt.order_by(User.created_at.desc()).offset(offset).limit(page_size)
    users = (await db.execute(stmt)).scalars().all()

    return AdminUserListResponse(
        items=[AdminUserOut.model_validate(user) for user in users],
        total=total,
        page=page,
        page_size=page_size,
    )


# ─── POST /users ───


@router.post(
    "",
    response_model=AdminUserOut,
    status_code=status.HTTP_201_CREATED,
    summary="Create a new user",
    dependencies=[Depends(require_admin)],
)
async def create_user(
    user_data: AdminUserCreate,
    db: Annotated[AsyncSession, Depends(get_session)],
):
    _check_role(user_data.role)
    result = await db.execute(select(User).where(User.email == user_data.email))
    if result.scalar_one_or_none():
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email already exists")

    new_user = User(
        email=user_data.email,
        name=user_data.name,
        password_hash=hash_password(user_data.password),
        role=user_data.role,
        is_active=True,
        exclude_from_reporting=False,
        hired_at=user_data.hired_at,
        monthly_quota=user_data.monthly_quota,
        manager_email=user_data.manager_email,
    )
    db.add(new_user)
    await db.commit()
    await db.refresh(new_user)
    return AdminUserOut.model_validate(new_user)


# ─── PATCH /users/{id} ───


@router.patch(
    "/{user_id}",
    response_model=AdminUserOut,
    summary="Update a user",
    dependencies=[Depends(require_admin)],
)
async def update_user(
    user_id: uuid.UUID,
    user_data: AdminUserUpdate,
    db: Annotated[AsyncSession, Depends(get_session)],
):
    _check_role(user_data.role)
    user = (await db.execute(select(User).where(User.id == user_id))).scalar_one_or_none()
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    for field_name, value in user_data.model_dump(exclude_unset=True).items():
        setattr(user, field_name, value)

    await db.commit()
    await db.refresh(user)
    return AdminUserOut.model_validate(user)
