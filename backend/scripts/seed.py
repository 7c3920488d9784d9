"""Seed script: creates users, pipeline, activities, tasks and marketing tasks for dev.

Idempotent for users (matched by email); pipeline rows are only added for
users created in this run.
Run: python backend/scripts/seed.py
"""
import asyncio
import sys
import os
from datetime import datetime, timezone, timedelta

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from forge_crm.core.config import settings
from forge_crm.core.security import hash_password as get_password_hash
from forge_crm.models.activity import Activity, Task
from forge_crm.models.deal import Deal, Lead
from forge_crm.models.marketing_task import MarketingTask
from forge_crm.models.user import User

NOW = datetime.now(timezone.utc)


# ─── Upsert helpers ───────────────────────────────────────────────────────────

async def _upsert_user(db: AsyncSession, email: str, name: str, role: str,
                       hired_days_ago: int | None = None,
                       monthly_quota: float | None = None) -> tuple[User, bool]:
    result = await db.execute(select(User).where(User.email == email))
    user = result.scalars().first()
    if user:
        print(f"  [skip] User {email}")
        return user, False
    user = User(
        email=email, name=name,
        password_hash=get_password_hash("changeme123"),
        role=role, is_active=True, exclude_from_reporting=False,
        hired_at=NOW - timedelta(days=hired_days_ago) if hired_days_ago is not None else None,
        monthly_quota=monthly_quota,
    )
    db.add(user)
    await db.flush()
    print(f"  [new]  User {email} ({role})")
    return user, True


def _deal(owner: User, name: str, stage: str, amount: float, idle_days: int) -> Deal:
    touched = NOW - timedelta(days=idle_days)
    return Deal(
        owner_id=owner.id, name=name, stage=stage, amount_total=amount,
        closed_at=touched if stage.startswith("CLOSED") else None,
        updated_at=touched,
    )


# ─── Main ─────────────────────────────────────────────────────────────────────

async def seed():
    engine = create_async_engine(settings.DATABASE_URL, echo=False)
    SessionLocal = async_sessionmaker(engine, expire_on_commit=False)

    async with SessionLocal() as db:
        print("\n── Users ──")
        await _upsert_user(db, "admin@example.com", "Admin User", "ADMIN")
        await _upsert_user(db, "manager@example.com", "Sales Manager", "MANAGER")
        closer, closer_new = await _upsert_user(db, "closer@example.com", "Casey Closer", "SALES_REP",
                                                hired_days_ago=400, monthly_quota=3000)
        rookie, rookie_new = await _upsert_user(db, "rookie@example.com", "Riley Rookie", "SALES_REP",
                                                hired_days_ago=5)
        marketer, marketer_new = await _upsert_user(db, "marketer@example.com", "Morgan Marketer",
                                                    "MARKETING_REP", hired_days_ago=120)
        await db.commit()

        if closer_new:
            print("\n── Pipeline (closer) ──")
            db.add_all([
                _deal(closer, "Acme renewal", "CLOSED_WON", 2000, 2),
                _deal(closer, "Globex expansion", "CLOSED_WON", 1200, 1),
                _deal(closer, "Initech pilot", "NEGOTIATION", 5000, 16),
                _deal(closer, "Umbrella upsell", "PROPOSAL", 800, 8),
            ])
            db.add(Lead(owner_id=closer.id, name="Hooli", status="CONTACTED", updated_at=NOW - timedelta(days=9)))
            for i in range(35):
                db.add(Activity(user_id=closer.id, type=("CALL", "EMAIL", "MEETING")[i % 3],
                                created_at=NOW - timedelta(hours=i)))
            await db.commit()

        if rookie_new:
            print("\n── Tasks (rookie) ──")
            for i, title in enumerate(["Call back Wayne Ent.", "Send proposal to Stark", "Book demo with Oscorp", "Update CRM notes"]):
                db.add(Task(user_id=rookie.id, title=title, due_date=NOW - timedelta(days=i + 1), completed=False))
            db.add(Activity(user_id=rookie.id, type="NOTE"))
            await db.commit()

        if marketer_new:
            print("\n── Marketing tasks (marketer) ──")
            plan = [
                ("COLD_EMAIL", "FAILED"), ("COLD_EMAIL", "FAILED"), ("COLD_EMAIL", "FAILED"),
                ("COLD_EMAIL", "SUCCESS"), ("SOCIAL_POST", "PARTIAL"), ("SOCIAL_POST", "FAILED"),
                ("WEBINAR", "FAILED"), ("WEBINAR", "PARTIAL"), ("BLOG_POST", "FAILED"),
                ("BLOG_POST", "PARTIAL"),
            ]
            for i, (task_type, outcome) in enumerate(plan):
                db.add(MarketingTask(
                    user_id=marketer.id, type=task_type, title=f"{task_type.title()} #{i + 1}",
                    status="COMPLETED", outcome=outcome, task_date=NOW - timedelta(days=i % 6),
                    lead_generated=outcome == "SUCCESS",
                ))
            for i in range(10):
                db.add(MarketingTask(
                    user_id=marketer.id, type="LINKEDIN_OUTREACH", title=f"Outreach batch {i + 1}",
                    status="COMPLETED", outcome=None, task_date=NOW - timedelta(days=i % 6),
                ))
            await db.commit()

    await engine.dispose()
    print("\n✓ Seed complete.")
    print("  admin@example.com      / changeme123  (ADMIN)")
    print("  manager@example.com    / changeme123  (MANAGER)")
    print("  closer@example.com     / changeme123  (SALES_REP, over quota)")
    print("  rookie@example.com     / changeme123  (SALES_REP, onboarding, overdue tasks)")
    print("  marketer@example.com   / changeme123  (MARKETING_REP, low success rate)")


if __name__ == "__main__":
    asyncio.run(seed())
