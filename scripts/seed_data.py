#!/usr/bin/env python3
"""
Seed the course database with a small demo catalog.

Creates an admin, a creator and a learner, one published course with three
lessons, and prints a dev access token for each account.

Reads COURSE_DATABASE_URL and JWT_* from .env.

Usage:
    cd microcourses-backend
    python -m scripts.seed_data
"""
from __future__ import annotations

import asyncio
import sys
import uuid
from pathlib import Path

# Add backend root to path so imports resolve
sys.path.insert(0, str(Path(__file__).resolve().parent.parent / "services" / "course"))
sys.path.insert(0, str(Path(__file__).resolve().parent.parent / "shared"))

from dotenv import load_dotenv

load_dotenv(Path(__file__).resolve().parent.parent / ".env")

from sqlalchemy import select

from app.accounts import service as accounts_service
from app.config import Settings
from app.lms import service as lms_service
from app.models.course import Course
from app.models.enums import CourseCategory, CourseLevel, UserRole
from app.moderation import service as moderation_service
from app.moderation.workflow import CourseAction
from shared.auth.config import AuthSettings
from shared.auth.tokens import create_access_token
from shared.constants import Role
from shared.database.postgres import get_async_session_factory

# Fixed ids so re-running the script is idempotent
ADMIN_ID = uuid.UUID("00000000-0000-4000-8000-000000000001")
CREATOR_ID = uuid.UUID("00000000-0000-4000-8000-000000000002")
LEARNER_ID = uuid.UUID("00000000-0000-4000-8000-000000000003")

ACCOUNTS = [
    (ADMIN_ID, "Ada Admin", "admin@microcourses.local", UserRole.ADMIN, [Role.ADMIN]),
    (CREATOR_ID, "Cory Creator", "creator@microcourses.local", UserRole.CREATOR, [Role.CREATOR]),
    (LEARNER_ID, "Lee Learner", "learner@microcourses.local", UserRole.LEARNER, [Role.LEARNER]),
]

DEMO_TITLE = "Python in Ten Minutes"
DEMO_LESSONS = [
    ("Installing Python", 3),
    ("Variables and Types", 4),
    ("Your First Function", 3),
]


async def main() -> None:
    settings = Settings()
    auth = AuthSettings()
    session_factory = get_async_session_factory(settings.course_database_url)

    async with session_factory() as session:
        for user_id, name, email, role, _ in ACCOUNTS:
            await accounts_service.upsert_profile(session, user_id, name=name, email=email, role=role)

        existing = await session.scalar(select(Course).where(Course.title == DEMO_TITLE))
        if existing is None:
            course = await lms_service.create_course(
                session, CREATOR_ID,
                title=DEMO_TITLE,
                description="A whirlwind tour of Python for absolute beginners.",
                category=CourseCategory.PROGRAMMING,
                level=CourseLevel.BEGINNER,
            )
            for title, minutes in DEMO_LESSONS:
                await lms_service.create_lesson(
                    session, course.course_id, CREATOR_ID, title=title, duration_mins=minutes,
                )
            # No blob store in dev; point at a placeholder image
            course.thumbnail_url = "https://placehold.co/640x360.png"
            await moderation_service.submit_course(session, course.course_id, CREATOR_ID)
            await moderation_service.review_course(
                session, course.course_id, ADMIN_ID, action=CourseAction.APPROVE,
            )
            print(f"Course created: {DEMO_TITLE} (id={course.course_id})")
        else:
            print(f"Course {DEMO_TITLE!r} already exists (id={existing.course_id}).")

        await session.commit()

    print("\nDev access tokens:")
    for user_id, name, email, _, roles in ACCOUNTS:
        token = create_access_token(
            user_id, email, roles, auth, name=name, expire_seconds=24 * 3600,
        )
        print(f"  {roles[0].value:<8} {token}")


if __name__ == "__main__":
    asyncio.run(main())
