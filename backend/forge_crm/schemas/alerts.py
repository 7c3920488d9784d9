"""Pydantic schemas for alert settings, history and run reports."""
import uuid
from datetime import datetime

from pydantic import AwareDatetime, BaseModel, ConfigDict, Field


class AlertExclusionIn(BaseModel):
    user_id: uuid.UUID
    start_date: AwareDatetime
    end_date: AwareDatetime
    reason: str = Field(min_length=1, max_length=500)


class AlertExclusionUpdate(BaseModel):
    start_date: AwareDatetime | None = None
    end_date: AwareDatetime | None = None
    reason: str | None = Field(default=None, min_length=1, max_length=500)


class AlertExclusionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    user_id: uuid.UUID
    start_date: datetime
    end_date: datetime
    reason: str
    created_by: uuid.UUID | None = None
    created_at: datetime


class AlertExclusionListResponse(BaseModel):
    items: list[AlertExclusionOut]
    total: int


class AlertRecordOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    user_id: uuid.UUID
    alert_kind: str
    period: str
    severity: str
    sent_at: datetime


class AlertRecordListResponse(BaseModel):
    items: list[AlertRecordOut]
    total: int


class RunOutcome(BaseModel):
    model_config = ConfigDict(extra="allow")

    user_id: str
    user_name: str
    status: str
    alert_kind: str | None = None
    severity: str | None = None


class RunReportOut(BaseModel):
    model_config = ConfigDict(extra="allow")

    success: bool
    family: str
    period: str
    processed: int
    summary: dict[str, int]
    results: list[RunOutcome]
    timestamp: datetime
