"""Cron trigger endpoints for the performance alert families.

External schedulers call GET or POST /cron/{family} with
``Authorization: Bearer <CRON_SECRET>``; the response body is the run report.
"""
import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from forge_crm.core.exceptions import UnauthorizedError, ValidationError
from forge_crm.db.session import get_session
from forge_crm.schemas.alerts import RunReportOut
from forge_crm.services import alert_jobs

logger = logging.getLogger(__name__)
router = APIRouter()


async def _trigger(family: str, authorization: str | None, db: AsyncSession) -> dict:
    try:
        report = await alert_jobs.trigger(family, authorization, db)
    except UnauthorizedError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
            headers={"WWW-Authenticate": "Bearer"},
        )
    except ValidationError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    return report.to_dict()


@router.get("/{family}", response_model=RunReportOut, summary="Run an alert family check")
async def run_check(
    family: str,
    db: Annotated[AsyncSession, Depends(get_session)],
    authorization: Annotated[str | None, Header()] = None,
):
    return await _trigger(family, authorization, db)


@router.post("/{family}", response_model=RunReportOut, summary="Run an alert family check")
async def run_check_post(
    family: str,
    db: Annotated[AsyncSession, Depends(get_session)],
    authorization: Annotated[str | None, Header()] = None,
):
    return await _trigger(family, authorization, db)
