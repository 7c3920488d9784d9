"""Alert settings: exclusion windows and alert history. Admin only."""
import logging
import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from forge_crm.core.deps import require_admin
from forge_crm.core.exceptions import ValidationError
from forge_crm.db.session import get_session
from forge_crm.models.user import User
from forge_crm.schemas.alerts import (
    AlertExclusionIn,
    AlertExclusionListResponse,
    AlertExclusionOut,
    AlertExclusionUpdate,
    AlertRecordListResponse,
    AlertRecordOut,
)
from forge_crm.services.alert_dedup import AlertDeduplicator
from forge_crm.services.alert_exclusions import ExclusionStore

logger = logging.getLogger(__name__)
router = APIRouter()


async def _get_exclusion_or_404(store: ExclusionStore, exclusion_id: uuid.UUID):
    exclusion = await store.get(exclusion_id)
    if exclusion is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Exclusion not found")
    return exclusion


# ─── GET /settings/alerts/exclusions ───

@router.get("/exclusions", response_model=AlertExclusionListResponse, summary="List alert exclusions")
async def list_exclusions(
    db: Annotated[AsyncSession, Depends(get_session)],
    user_id: uuid.UUID | None = Query(default=None),
    current_user=Depends(require_admin),
):
    items = await ExclusionStore(db).list_windows(user_id)
    return AlertExclusionListResponse(
        items=[AlertExclusionOut.model_validate(e) for e in items],
        total=len(items),
    )


# ─── POST /settings/alerts/exclusions ───

@router.post(
    "/exclusions",
    response_model=AlertExclusionOut,
    status_code=status.HTTP_201_CREATED,
    summary="Exclude a user from alerts for a date range",
)
async def create_exclusion(
    body: AlertExclusionIn,
    db: Annotated[AsyncSession, Depends(get_session)],
    current_user=Depends(require_admin),
):
    user = (await db.execute(select(User).where(User.id == body.user_id))).scalar_one_or_none()
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    try:
        exclusion = await ExclusionStore(db).create(
            user_id=body.user_id,
            start_date=body.start_date,
            end_date=body.end_date,
            reason=body.reason,
            created_by=current_user.id,
        )
    except ValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    return AlertExclusionOut.model_validate(exclusion)


# ─── PATCH /settings/alerts/exclusions/{id} ───

@router.patch("/exclusions/{exclusion_id}", response_model=AlertExclusionOut, summary="Edit an exclusion")
async def update_exclusion(
    exclusion_id: uuid.UUID,
    body: AlertExclusionUpdate,
    db: Annotated[AsyncSession, Depends(get_session)],
    current_user=Depends(require_admin),
):
    store = ExclusionStore(db)
    exclusion = await _get_exclusion_or_404(store, exclusion_id)
    try:
        exclusion = await store.update(
            exclusion,
            start_date=body.start_date,
            end_date=body.end_date,
            reason=body.reason,
        )
    except ValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    return AlertExclusionOut.model_validate(exclusion)


# ─── DELETE /settings/alerts/exclusions/{id} ───

@router.delete(
    "/exclusions/{exclusion_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Remove an exclusion",
)
async def delete_exclusion(
    exclusion_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_session)],
    current_user=Depends(require_admin),
):
    store = ExclusionStore(db)
    exclusion = await _get_exclusion_or_404(store, exclusion_id)
    await store.delete(exclusion)


# ─── GET /settings/alerts/history/{user_id} ───

@router.get("/history/{user_id}", response_model=AlertRecordListResponse, summary="Recent alerts for a user")
async def alert_history(
    user_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_session)],
    limit: int = Query(default=50, ge=1, le=200),
    current_user=Depends(require_admin),
):
    records = await AlertDeduplicator(db).list_for_user(user_id, limit=limit)
    return AlertRecordListResponse(
        items=[AlertRecordOut.model_validate(r) for r in records],
        total=len(records),
    )
