import uuid
from collections.abc import AsyncGenerator, Awaitable, Callable, Sequence

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event, select
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from app.config import Settings
from app.database import set_session_factory
from app.dependencies import get_settings
from app.main import create_app
from app.models.course import Course
from app.models.enums import (
    AccountStatus,
    CourseCategory,
    CourseLevel,
    CourseStatus,
    UserRole,
)
from app.models.lesson import Lesson
from app.models.user import User
from shared.auth.config import AuthSettings
from shared.auth.tokens import create_access_token
from shared.constants import Role
from shared.database.postgres import Base


@pytest.fixture
def settings() -> Settings:
    return Settings(
        certificate_signing_secret="test-signing-secret",
        certificate_base_url="https://verify.example.com/certificates",
        task_queue_enabled=False,
        s3_bucket="test-bucket",
        thumbnail_max_bytes=1024,
    )


@pytest_asyncio.fixture
async def engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'course.db'}")

    # pysqlite's own transaction handling breaks SAVEPOINT; let SQLAlchemy emit BEGIN
    @event.listens_for(engine.sync_engine, "connect")
    def _disable_pysqlite_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def async_client(
    session_factory: async_sessionmaker[AsyncSession],
    settings: Settings,
) -> AsyncGenerator[AsyncClient, None]:
    set_session_factory(session_factory)
    app = create_app()
    app.dependency_overrides[get_settings] = lambda: settings
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


# ── Factories ──────────────────────────────────────────────────────────────


@pytest.fixture
def make_user(db_session: AsyncSession) -> Callable[..., Awaitable[User]]:
    async def _make(
        role: UserRole = UserRole.LEARNER,
        *,
        name: str | None = None,
        account_status: AccountStatus = AccountStatus.ACTIVE,
    ) -> User:
        user_id = uuid.uuid4()
        user = User(
            user_id=user_id,
            name=name or f"{role.value.title()} {user_id.hex[:6]}",
            email=f"{user_id.hex}@example.com",
            role=role,
            account_status=account_status,
        )
        db_session.add(user)
        await db_session.flush()
        return user

    return _make


@pytest.fixture
def make_course(db_session: AsyncSession) -> Callable[..., Awaitable[Course]]:
    async def _make(
        creator: User,
        *,
        lessons: Sequence[int] = (5, 5, 5, 5),
        status: CourseStatus = CourseStatus.PUBLISHED,
        title: str = "Intro to Unit Testing",
        with_thumbnail: bool = True,
    ) -> Course:
        course = Course(
            title=title,
            description="Write tests that catch real bugs.",
            category=CourseCategory.PROGRAMMING,
            level=CourseLevel.BEGINNER,
            creator_id=creator.user_id,
            status=status,
            thumbnail_url="https://cdn.example.com/thumb.png" if with_thumbnail else None,
            total_duration_mins=sum(lessons),
        )
        db_session.add(course)
        await db_session.flush()
        for idx, minutes in enumerate(lessons, start=1):
            db_session.add(Lesson(
                course_id=course.course_id,
                title=f"Lesson {idx}",
                duration_mins=minutes,
                order=idx,
            ))
        await db_session.flush()
        return course

    return _make


async def course_lessons(db: AsyncSession, course_id: uuid.UUID) -> list[Lesson]:
    result = await db.execute(
        select(Lesson)
        .where(Lesson.course_id == course_id)
        .order_by(Lesson.order)
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all())


@pytest.fixture
def lessons_of() -> Callable[[AsyncSession, uuid.UUID], Awaitable[list[Lesson]]]:
    return course_lessons


@pytest.fixture
def auth_headers() -> Callable[[User], dict[str, str]]:
    def _headers(user: User) -> dict[str, str]:
        token = create_access_token(
            user.user_id,
            user.email,
            [Role(user.role.value)],
            AuthSettings(),
            name=user.name,
        )
        return {"Authorization": f"Bearer {token}"}

    return _headers
