"""Tests for alert exclusion windows and alert history endpoints."""
import uuid
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
from httpx import AsyncClient, ASGITransport

from forge_crm.core.deps import get_current_user
from forge_crm.core.exceptions import ValidationError
from forge_crm.db.session import get_session
from forge_crm.main import app
from forge_crm.models.alert import AlertExclusion, AlertRecord
from forge_crm.services.alert_exclusions import validate_window

ADMIN_ID = uuid.UUID("f96955d0-752f-4e0c-b1dc-d26d8dd1460e")
REP_ID = uuid.UUID("0b5c6a8e-3d5f-4b39-9a57-2a2c7d1e4f10")


# ─── Fixtures ─────────────────────────────────────────────────────────────────

class FakeUser:
    def __init__(self, role: str = "ADMIN", user_id: uuid.UUID = ADMIN_ID):
        self.id = user_id
        self.email = "admin@example.com"
        self.name = "Admin User"
        self.role = role
        self.is_active = True


def _exclusion(**kwargs) -> AlertExclusion:
    defaults = dict(
        id=uuid.uuid4(),
        user_id=REP_ID,
        start_date=datetime(2026, 11, 2, tzinfo=timezone.utc),
        end_date=datetime(2026, 11, 13, tzinfo=timezone.utc),
        reason="Annual leave",
        created_by=ADMIN_ID,
        created_at=datetime(2026, 10, 20, tzinfo=timezone.utc),
    )
    defaults.update(kwargs)
    return AlertExclusion(**defaults)


def _session(scalar=None, scalars=None) -> AsyncMock:
    """Session whose every execute() returns the same canned result."""
    result = MagicMock()
    result.scalar_one_or_none.return_value = scalar
    result.scalars.return_value.all.return_value = scalars or []

    async def refresh(obj):
        if getattr(obj, "id", None) is None:
            obj.id = uuid.uuid4()
        if getattr(obj, "created_at", None) is None:
            obj.created_at = datetime.now(timezone.utc)

    db = AsyncMock()
    db.execute = AsyncMock(return_value=result)
    db.add = MagicMock()
    db.commit = AsyncMock()
    db.refresh = AsyncMock(side_effect=refresh)
    db.delete = AsyncMock()
    return db


async def _request(db, method: str, path: str, role: str = "ADMIN", **kwargs):
    async def session_override():
        yield db

    async def user_override():
        return FakeUser(role=role)

    app.dependency_overrides[get_session] = session_override
    app.dependency_overrides[get_current_user] = user_override
    try:
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            return await client.request(method, path, **kwargs)
    finally:
        app.dependency_overrides.clear()


# ─── Create ───────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_create_exclusion_returns_201():
    db = _session(scalar=FakeUser(role="SALES_REP", user_id=REP_ID))

    response = await _request(db, "POST", "/api/v1/settings/alerts/exclusions", json={
        "user_id": str(REP_ID),
        "start_date": "2026-11-02T00:00:00Z",
        "end_date": "2026-11-13T00:00:00Z",
        "reason": "Annual leave",
    })

    assert response.status_code == 201
    body = response.json()
    assert body["user_id"] == str(REP_ID)
    assert body["created_by"] == str(ADMIN_ID)
    db.add.assert_called_once()
    db.commit.assert_awaited_once()


@pytest.mark.asyncio
async def test_create_exclusion_inverted_range_returns_400():
    """end_date before start_date is rejected and nothing is written."""
    db = _session(scalar=FakeUser(role="SALES_REP", user_id=REP_ID))

    response = await _request(db, "POST", "/api/v1/settings/alerts/exclusions", json={
        "user_id": str(REP_ID),
        "start_date": "2026-11-13T00:00:00Z",
        "end_date": "2026-11-02T00:00:00Z",
        "reason": "Annual leave",
    })

    assert response.status_code == 400
    db.add.assert_not_called()


@pytest.mark.asyncio
async def test_create_exclusion_naive_date_returns_422():
    """A date without a timezone cannot be compared with stored windows and is refused up front."""
    db = _session(scalar=FakeUser(role="SALES_REP", user_id=REP_ID))

    response = await _request(db, "POST", "/api/v1/settings/alerts/exclusions", json={
        "user_id": str(REP_ID),
        "start_date": "2026-11-01T00:00:00",
        "end_date": "2026-11-05T00:00:00Z",
        "reason": "Annual leave",
    })

    assert response.status_code == 422
    db.add.assert_not_called()


def test_validate_window_rejects_naive_dates():
    with pytest.raises(ValidationError):
        validate_window(datetime(2026, 11, 1), datetime(2026, 11, 5, tzinfo=timezone.utc))


@pytest.mark.asyncio
async def test_create_exclusion_unknown_user_returns_404():
    db = _session(scalar=None)

    response = await _request(db, "POST", "/api/v1/settings/alerts/exclusions", json={
        "user_id": str(uuid.uuid4()),
        "start_date": "2026-11-02T00:00:00Z",
        "end_date": "2026-11-13T00:00:00Z",
        "reason": "Annual leave",
    })

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_create_exclusion_forbidden_for_reps():
    db = _session()
    response = await _request(db, "POST", "/api/v1/settings/alerts/exclusions", role="SALES_REP", json={
        "user_id": str(REP_ID),
        "start_date": "2026-11-02T00:00:00Z",
        "end_date": "2026-11-13T00:00:00Z",
        "reason": "Annual leave",
    })
    assert response.status_code == 403


# ─── List / update / delete ───────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_list_exclusions():
    db = _session(scalars=[_exclusion(), _exclusion(reason="Training")])

    response = await _request(db, "GET", "/api/v1/settings/alerts/exclusions", params={"user_id": str(REP_ID)})

    assert response.status_code == 200
    body = response.json()
    assert body["total"] == 2
    assert [e["reason"] for e in body["items"]] == ["Annual leave", "Training"]


@pytest.mark.asyncio
async def test_update_exclusion_rejects_end_before_existing_start():
    existing = _exclusion()
    db = _session(scalar=existing)

    response = await _request(db, "PATCH", f"/api/v1/settings/alerts/exclusions/{existing.id}",
                              json={"end_date": "2026-11-01T00:00:00Z"})

    assert response.status_code == 400
    db.commit.assert_not_awaited()


@pytest.mark.asyncio
async def test_update_exclusion_naive_end_returns_422():
    existing = _exclusion()
    db = _session(scalar=existing)

    response = await _request(db, "PATCH", f"/api/v1/settings/alerts/exclusions/{existing.id}",
                              json={"end_date": "2026-11-20T00:00:00"})

    assert response.status_code == 422
    db.commit.assert_not_awaited()


@pytest.mark.asyncio
async def test_update_exclusion_extends_window():
    existing = _exclusion()
    db = _session(scalar=existing)

    response = await _request(db, "PATCH", f"/api/v1/settings/alerts/exclusions/{existing.id}",
                              json={"end_date": "2026-11-20T00:00:00Z"})

    assert response.status_code == 200
    assert response.json()["end_date"].startswith("2026-11-20")


@pytest.mark.asyncio
async def test_delete_missing_exclusion_returns_404():
    db = _session(scalar=None)
    response = await _request(db, "DELETE", f"/api/v1/settings/alerts/exclusions/{uuid.uuid4()}")
    assert response.status_code == 404
    db.delete.assert_not_awaited()


@pytest.mark.asyncio
async def test_delete_exclusion_returns_204():
    existing = _exclusion()
    db = _session(scalar=existing)
    response = await _request(db, "DELETE", f"/api/v1/settings/alerts/exclusions/{existing.id}")
    assert response.status_code == 204
    db.delete.assert_awaited_once_with(existing)


# ─── History ──────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_alert_history_for_user():
    record = AlertRecord(
        id=uuid.uuid4(), user_id=REP_ID, alert_kind="task-red", period="2026-10-26",
        severity="RED", sent_at=datetime(2026, 10, 26, 8, 0, tzinfo=timezone.utc),
    )
    db = _session(scalars=[record])

    response = await _request(db, "GET", f"/api/v1/settings/alerts/history/{REP_ID}")

    assert response.status_code == 200
    body = response.json()
    assert body["total"] == 1
    assert body["items"][0]["alert_kind"] == "task-red"
    assert body["items"][0]["period"] == "2026-10-26"
