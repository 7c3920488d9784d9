"""Tests for alert deduplication on a real async session (SQLite via aiosqlite).

The unique constraint is the real guarantee; these tests check that losing
the insert race surfaces as a ConflictError without disturbing anything
else the run has loaded through the same session, and that a metric fetch
cancelled on timeout leaves the run able to carry on.
"""
import time
import uuid
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from sqlalchemy import event, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import create_async_engine

from forge_crm.core.exceptions import ConflictError
from forge_crm.db.base import Base
from forge_crm.db.session import create_session_factory
from forge_crm.models.activity import Task
from forge_crm.models.alert import AlertRecord, EmailLog
from forge_crm.models.user import User
from forge_crm.services.alert_dedup import AlertDeduplicator, EmailLogStore
from forge_crm.services.alert_exclusions import ExclusionStore
from forge_crm.services.alert_families import quota_family, task_family
from forge_crm.services.alert_runner import ALERT_SENT, ALREADY_SENT, FETCH_FAILED, AlertRunner
from forge_crm.services.metrics import SqlMetricSource
from forge_crm.services.recipients import RecipientPolicy

NOW = datetime(2026, 10, 26, 9, 0, tzinfo=timezone.utc)

POLICY = RecipientPolicy(
    hr_email="hr@example.com",
    leadership_email="leadership@example.com",
    manager_email="managers@example.com",
)

# email_logs uses a Postgres ARRAY column; everything else runs on SQLite.
SQLITE_TABLES = [t for t in Base.metadata.sorted_tables if t.name != "email_logs"]


# ─── Fixtures ─────────────────────────────────────────────────────────────────

def _utc_now_text() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S.%f")


def _on_connect(dbapi_connection, connection_record):
    # SQLAlchemy emits BEGIN itself so that SAVEPOINT behaves as on Postgres.
    dbapi_connection.isolation_level = None
    dbapi_connection.create_function("now", 0, _utc_now_text)
    dbapi_connection.create_function("pause", 1, time.sleep)
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def _on_begin(conn):
    conn.exec_driver_sql("BEGIN")


@pytest_asyncio.fixture
async def session_factory(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'alerts.db'}")
    event.listen(engine.sync_engine, "connect", _on_connect)
    event.listen(engine.sync_engine, "begin", _on_begin)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all, tables=SQLITE_TABLES)
    try:
        yield create_session_factory(engine)
    finally:
        await engine.dispose()


async def _add_users(session_factory, *names: str) -> list[uuid.UUID]:
    async with session_factory() as db:
        users = [
            User(
                name=name,
                email=f"{name.split()[0].lower()}@example.com",
                password_hash="not-a-real-hash",
                role="SALES_REP",
            )
            for name in names
        ]
        db.add_all(users)
        await db.commit()
        return [u.id for u in users]


async def _record_count(session_factory) -> int:
    async with session_factory() as db:
        return (await db.execute(select(func.count(AlertRecord.id)))).scalar_one()


class RecordingMailer:
    def __init__(self, on_send=None):
        self.sent: list[str] = []
        self.on_send = on_send

    async def send(self, to, cc, subject, html_body, text_body):
        self.sent.append(to)
        if self.on_send is not None:
            await self.on_send(to)
        return f"msg-{len(self.sent)}"


# ─── has_sent / record_sent ───────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_record_sent_then_has_sent(session_factory):
    (user_id,) = await _add_users(session_factory, "Casey Closer")

    async with session_factory() as db:
        dedup = AlertDeduplicator(db)
        assert await dedup.has_sent(user_id, "task-red", "2026-10-26") is False

        record = await dedup.record_sent(user_id, "task-red", "RED", "2026-10-26")

        assert record.alert_kind == "task-red"
        assert record.sent_at is not None
        assert await dedup.has_sent(user_id, "task-red", "2026-10-26") is True
        assert await dedup.has_sent(user_id, "task-red", "2026-10-27") is False

    assert await _record_count(session_factory) == 1


@pytest.mark.asyncio
async def test_duplicate_record_is_conflict_and_session_stays_usable(session_factory):
    """Losing the race rolls back only the savepoint; rows loaded earlier keep their state."""
    (user_id,) = await _add_users(session_factory, "Casey Closer")

    async with session_factory() as db:
        user = (await db.execute(select(User).where(User.id == user_id))).scalar_one()
        dedup = AlertDeduplicator(db)
        await dedup.record_sent(user_id, "quota-green", "GREEN", "2026-10")

        with pytest.raises(ConflictError) as exc_info:
            await dedup.record_sent(user_id, "quota-green", "GREEN", "2026-10")

        assert exc_info.value.period == "2026-10"
        # Read without any lazy reload: an expired row would fail here.
        assert user.name == "Casey Closer"
        assert await dedup.has_sent(user_id, "quota-green", "2026-10") is True

    assert await _record_count(session_factory) == 1


@pytest.mark.asyncio
async def test_other_integrity_error_propagates(session_factory):
    """A foreign-key failure is not a dedup conflict."""
    async with session_factory() as db:
        with pytest.raises(IntegrityError):
            await AlertDeduplicator(db).record_sent(uuid.uuid4(), "quota-green", "GREEN", "2026-10")


# ─── Runs on a real session ───────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_insert_race_reports_already_sent_and_run_continues(session_factory):
    """Another run records Avery's alert between our check and our insert.

    Avery is reported as already_sent and Blake, next in the same run,
    still gets an alert.
    """
    await _add_users(session_factory, "Avery Average", "Blake Builder")

    async with session_factory() as db:
        users = list((await db.execute(select(User).order_by(User.name))).scalars().all())
        avery = users[0]

        async def other_run_records(to):
            if to == avery.email:
                db.add(AlertRecord(
                    user_id=avery.id, alert_kind="quota-green", severity="GREEN",
                    period="2026-10", sent_at=NOW,
                ))
                await db.commit()

        mailer = RecordingMailer(on_send=other_run_records)
        runner = AlertRunner(
            family=quota_family(("SALES_REP",), default_quota=3000.0),
            source=SimpleNamespace(sum_won_revenue=AsyncMock(return_value=3200.0)),
            dedup=AlertDeduplicator(db),
            exclusions=ExclusionStore(db),
            mailer=mailer,
            recipients=POLICY,
        )

        report = await runner.run(users=users, now=NOW)

        assert [r["status"] for r in report.results] == [ALREADY_SENT, ALERT_SENT]
        assert [r["user_name"] for r in report.results] == ["Avery Average", "Blake Builder"]
        assert mailer.sent == ["avery@example.com", "blake@example.com"]

    assert await _record_count(session_factory) == 2


class StallingSource(SqlMetricSource):
    """Holds the database for a while when asked about one particular user."""

    def __init__(self, session_factory, stalled_user_id, seconds: float):
        super().__init__(session_factory)
        self.stalled_user_id = stalled_user_id
        self.seconds = seconds

    async def list_overdue_tasks(self, user_id, now):
        if user_id == self.stalled_user_id:
            async with self.session_factory() as db:
                await db.execute(select(func.pause(self.seconds)))
        return await super().list_overdue_tasks(user_id, now)


@pytest.mark.asyncio
async def test_cancelled_fetch_does_not_break_the_next_user(session_factory):
    """A fetch cancelled on timeout is fetch_failed; the next user's query and alert still go through."""
    stalled_id, rookie_id = await _add_users(session_factory, "Sam Stalled", "Riley Rookie")
    async with session_factory() as db:
        db.add_all([
            Task(user_id=rookie_id, title=f"Follow up #{i}", due_date=NOW - timedelta(days=3), completed=False)
            for i in range(4)
        ])
        await db.commit()

    source = StallingSource(session_factory, stalled_id, seconds=1.0)
    users = await source.load_candidates(("SALES_REP",))
    users.sort(key=lambda u: u.id != stalled_id)
    mailer = RecordingMailer()

    async with session_factory() as db:
        runner = AlertRunner(
            family=task_family(("SALES_REP",)),
            source=source,
            dedup=AlertDeduplicator(db),
            exclusions=ExclusionStore(db),
            mailer=mailer,
            recipients=POLICY,
            io_timeout=0.2,
        )
        report = await runner.run(users=users, now=NOW)

    by_name = {r["user_name"]: r for r in report.results}
    assert by_name["Sam Stalled"]["status"] == FETCH_FAILED
    assert by_name["Riley Rookie"]["status"] == ALERT_SENT
    assert by_name["Riley Rookie"]["overdue_count"] == 4
    assert mailer.sent == ["riley@example.com"]
    assert await _record_count(session_factory) == 1


# ─── Email log ────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_email_log_status_follows_error():
    db = AsyncMock()
    db.add = MagicMock()
    store = EmailLogStore(db)
    common = dict(
        user_id=uuid.uuid4(), alert_kind="task-red", severity="RED", period="2026-10-20",
        recipient_to="rep@example.com", recipients_cc=["hr@example.com"], subject="s",
    )

    sent = await store.record(provider_message_id="abc", **common)
    failed = await store.record(provider_message_id=None, error_message="boom", **common)

    assert isinstance(sent, EmailLog)
    assert sent.status == "sent"
    assert failed.status == "failed"
    assert failed.error_message == "boom"
    assert db.commit.await_count == 2
