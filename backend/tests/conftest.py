"""Shared test fixtures for the Courseware backend.

Provides:
- A fresh database per test: file-backed SQLite through aiosqlite by default,
  PostgreSQL when ``TEST_DATABASE=postgresql`` (tables dropped and recreated)
- A session factory, so code under test (the purger) can open its own
  transactions the way it does in production
- FastAPI test app + HTTP client with ``get_db`` and ``get_purger`` overridden
- Factory helpers for media and content rows
"""

from __future__ import annotations

import os
import uuid
from datetime import datetime, timezone

USE_POSTGRES = os.getenv("TEST_DATABASE", "").lower() == "postgresql"

# Set test environment BEFORE any app imports so Settings() picks them up.
os.environ.setdefault("ENVIRONMENT", "development")
if not USE_POSTGRES:
    os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from courseware.database import build_engine
from courseware.models import Base

# ---------------------------------------------------------------------------
# Database engine
# ---------------------------------------------------------------------------


def _postgres_url() -> str:
    user = os.getenv("POSTGRES_USER", "courseware")
    password = os.getenv("POSTGRES_PASSWORD", "courseware")
    host = os.getenv("POSTGRES_HOST", "localhost")
    port = os.getenv("POSTGRES_PORT", "5432")
    db = os.getenv("TEST_POSTGRES_DB", "courseware_test")
    return f"postgresql+asyncpg://{user}:{password}@{host}:{port}/{db}"


@pytest.fixture
async def test_engine(tmp_path):
    """Engine bound to an empty schema for this test only.

    NullPool keeps connections from outliving the test's event loop.
    """
    if USE_POSTGRES:
        engine = create_async_engine(_postgres_url(), echo=False, poolclass=NullPool)
        try:
            async with engine.begin() as conn:
                await conn.run_sync(Base.metadata.drop_all)
                await conn.run_sync(Base.metadata.create_all)
        except Exception as exc:
            await engine.dispose()
            pytest.skip(f"Test database not available ({exc})")
    else:
        engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", poolclass=NullPool)
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    yield engine

    if USE_POSTGRES:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db(session_factory):
    """The test's own session. Commit setup data before running a sweep."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def upload_root(tmp_path):
    root = tmp_path / "uploads"
    root.mkdir()
    return root


@pytest.fixture
def purger(session_factory, upload_root):
    from courseware.services.purger import ArchivePurger

    return ArchivePurger(session_factory, upload_root=upload_root, url_prefix="/uploads")


# ---------------------------------------------------------------------------
# FastAPI test app + HTTP client
# ---------------------------------------------------------------------------


@pytest.fixture
async def app(session_factory, purger):
    """Minimal FastAPI test app; every request gets its own session."""
    from fastapi import FastAPI
    from slowapi import _rate_limit_exceeded_handler
    from slowapi.errors import RateLimitExceeded

    from courseware.api.deps import get_purger, lifecycle_error_handler
    from courseware.api.v1.router import api_router
    from courseware.config import settings
    from courseware.core.errors import LifecycleError
    from courseware.core.rate_limit import limiter
    from courseware.database import get_db

    test_app = FastAPI()
    test_app.state.limiter = limiter
    test_app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    test_app.add_exception_handler(LifecycleError, lifecycle_error_handler)
    test_app.include_router(api_router, prefix=settings.API_V1_PREFIX)

    async def _override_get_db():
        async with session_factory() as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise

    test_app.dependency_overrides[get_db] = _override_get_db
    test_app.dependency_overrides[get_purger] = lambda: purger
    yield test_app
    test_app.dependency_overrides.clear()


@pytest.fixture
async def client(app):
    """HTTP test client for the test app."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as c:
        yield c


@pytest.fixture(autouse=True)
def _disable_rate_limiter():
    """Disable slowapi rate limiting during tests to avoid 429 responses."""
    from courseware.core.rate_limit import limiter

    limiter.enabled = False
    yield
    limiter.enabled = True


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def utc(value: datetime | None) -> datetime | None:
    """SQLite hands timestamps back naive; treat them as the UTC they were."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


async def reload(db, model, pk):
    """Fetch a row fresh from the database, bypassing the identity map."""
    column = model.__mapper__.primary_key[0]
    result = await db.execute(
        select(model).where(column == pk).execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


# ---------------------------------------------------------------------------
# Factory helpers
# ---------------------------------------------------------------------------


async def create_image(db, *, image_url=None, **kwargs):
    """Insert an image row into the test database."""
    from courseware.models import Image

    image = Image(
        image_url=image_url or f"/uploads/images/{uuid.uuid4().hex[:8]}.png",
        alt_text=kwargs.pop("alt_text", "test image"),
        mime_type=kwargs.pop("mime_type", "image/png"),
        **kwargs,
    )
    db.add(image)
    await db.flush()
    return image


async def create_video(db, *, title="Test Video", video_url=None, **kwargs):
    """Insert a video row into the test database."""
    from courseware.models import Video

    video = Video(
        title=title,
        video_url=video_url or f"/uploads/videos/{uuid.uuid4().hex[:8]}.mp4",
        mime_type=kwargs.pop("mime_type", "video/mp4"),
        **kwargs,
    )
    db.add(video)
    await db.flush()
    return video


async def create_course(db, *, course_name=None, **kwargs):
    """Insert a course into the test database."""
    from courseware.models import Course

    course = Course(
        course_name=course_name or f"Course {uuid.uuid4().hex[:8]}",
        description=kwargs.pop("description", None),
        **kwargs,
    )
    db.add(course)
    await db.flush()
    return course


async def create_instructor(db, *, name="Ada Lovelace", **kwargs):
    from courseware.models import Instructor

    instructor = Instructor(name=name, **kwargs)
    db.add(instructor)
    await db.flush()
    return instructor


async def assign_instructor(db, course_id, instructor_id):
    from courseware.models import CourseInstructor

    link = CourseInstructor(course_id=course_id, instructor_id=instructor_id)
    db.add(link)
    await db.flush()
    return link


async def create_section(db, *, course_id, title="Section", **kwargs):
    from courseware.models import Section

    section = Section(course_id=course_id, title=title, **kwargs)
    db.add(section)
    await db.flush()
    return section


async def create_chapter(db, *, section_id, chapter_number=1, title="Chapter", **kwargs):
    from courseware.models import Chapter

    chapter = Chapter(
        section_id=section_id, chapter_number=chapter_number, title=title, **kwargs
    )
    db.add(chapter)
    await db.flush()
    return chapter


async def create_test(db, *, chapter_id, title="Quiz", **kwargs):
    from courseware.models import Test

    test = Test(chapter_id=chapter_id, title=title, **kwargs)
    db.add(test)
    await db.flush()
    return test


async def create_question(db, *, test_id, question_text="What is 2 + 2?", **kwargs):
    from courseware.models import Question

    question = Question(test_id=test_id, question_text=question_text, **kwargs)
    db.add(question)
    await db.flush()
    return question


async def create_option(db, *, question_id, option_text="4", is_correct=True, **kwargs):
    from courseware.models import Option

    option = Option(
        question_id=question_id, option_text=option_text, is_correct=is_correct, **kwargs
    )
    db.add(option)
    await db.flush()
    return option


async def create_entry(db, *, chapter_id, sequence_number=1, **kwargs):
    from courseware.models import Entry

    entry = Entry(chapter_id=chapter_id, sequence_number=sequence_number, **kwargs)
    db.add(entry)
    await db.flush()
    return entry


async def create_course_tree(db):
    """Course → section → chapter → test → question → option, plus an entry."""
    course = await create_course(db)
    section = await create_section(db, course_id=course.course_id)
    chapter = await create_chapter(db, section_id=section.section_id)
    test = await create_test(db, chapter_id=chapter.chapter_id)
    question = await create_question(db, test_id=test.test_id)
    option = await create_option(db, question_id=question.question_id)
    entry = await create_entry(db, chapter_id=chapter.chapter_id, test_id=test.test_id)
    return {
        "course": course,
        "section": section,
        "chapter": chapter,
        "test": test,
        "question": question,
        "option": option,
        "entry": entry,
    }
