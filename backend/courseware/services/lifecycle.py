"""Soft-delete lifecycle for archivable rows.

Every archivable table follows the same small state machine::

    Active --archive--> Archived (no deadline) --restore--> Active
    Active --delete---> Archived (deadline) --restore--> Active
    Archived (deadline) --cancel--> Archived (no deadline)
    Archived (deadline) --sweep--> purged

``archive`` parks a row indefinitely. ``delete`` parks it with a purge
deadline and cascades to media the row exclusively owns. The purger later
removes whatever is past its deadline. Operations flush; the caller commits.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from courseware.config import settings
from courseware.core.errors import HasDependents, InUse, NotFound, UnsupportedEntityType
from courseware.models import (
    Base,
    Chapter,
    Course,
    CourseInstructor,
    Entry,
    Image,
    Instructor,
    Option,
    Question,
    Section,
    Test,
    Video,
)
from courseware.services.cascade import CascadeResult, cascade_archive
from courseware.services.media_references import (
    MEDIA_REFERENCES,
    MediaKind,
    MediaSchema,
    count_references,
)

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Dependent:
    """Child rows that block a delete while any of them exist."""

    model: type[Base]
    column: str
    label: str


class LifecycleStore:
    def __init__(
        self,
        model: type[Base],
        label: str | None = None,
        dependents: Sequence[Dependent] = (),
    ) -> None:
        self.model = model
        self.table = model.__tablename__
        self.pk = model.__mapper__.primary_key[0]
        self.id_field = self.pk.key
        self.label = label or model.__name__
        self.dependents = tuple(dependents)

    def __repr__(self) -> str:
        return f"<LifecycleStore({self.table}.{self.id_field})>"

    async def get(self, db: AsyncSession, row_id: int, lock: bool = False):
        stmt = (
            select(self.model)
            .where(self.pk == row_id)
            .execution_options(populate_existing=True)
        )
        if lock:
            stmt = stmt.with_for_update()
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    async def require(self, db: AsyncSession, row_id: int, lock: bool = False):
        row = await self.get(db, row_id, lock=lock)
        if row is None:
            raise NotFound(self.label, row_id)
        return row

    async def archive(self, db: AsyncSession, row_id: int, now: datetime | None = None):
        """Archive without a deadline; the row stays until restored."""
        row = await self.require(db, row_id, lock=True)
        row.mark_archived(now or _utcnow())
        await db.flush()
        return row

    async def restore(self, db: AsyncSession, row_id: int, now: datetime | None = None):
        """Back to active. Media cascaded by an earlier delete stay archived."""
        row = await self.require(db, row_id, lock=True)
        row.mark_restored(now or _utcnow())
        await db.flush()
        return row

    async def cancel_pending_delete(
        self, db: AsyncSession, row_id: int, now: datetime | None = None
    ):
        """Drop the purge deadline; the row stays archived."""
        row = await self.require(db, row_id, lock=True)
        row.purge_after_at = None
        row.updated_at = now or _utcnow()
        await db.flush()
        return row

    async def check_dependents(self, db: AsyncSession, row_id: int) -> None:
        for dep in self.dependents:
            column = getattr(dep.model, dep.column)
            result = await db.execute(
                select(func.count()).select_from(dep.model).where(column == row_id)
            )
            count = int(result.scalar_one())
            if count:
                raise HasDependents(self.label.lower(), row_id, dep.label, count)

    async def delete(
        self,
        db: AsyncSession,
        row_id: int,
        purge_after_ms: int | None = None,
        now: datetime | None = None,
    ) -> tuple[Base, CascadeResult]:
        """Schedule the row, and media only it references, for purging."""
        ttl_ms = settings.CASCADE_PURGE_AFTER_MS if purge_after_ms is None else purge_after_ms
        row = await self.require(db, row_id, lock=True)
        await self.check_dependents(db, row_id)
        cascaded = await delete_with_cascade(
            db, row, self.model, self.id_field, row_id, MEDIA_REFERENCES, ttl_ms, now=now
        )
        logger.info(
            "Scheduled %s %s for purge in %d ms (cascaded media: %s)",
            self.table,
            row_id,
            ttl_ms,
            cascaded.to_dict(),
        )
        return row, cascaded


async def delete_with_cascade(
    db: AsyncSession,
    row: object,
    model: type[Base],
    id_field: str,
    row_id: int,
    media_schema: MediaSchema | None,
    ttl_ms: int,
    now: datetime | None = None,
) -> CascadeResult:
    """Archive ``row`` with a purge deadline, cascading to exclusive media.

    Media and row share one deadline computed here. Does not commit.
    """
    now = now or _utcnow()
    purge_after_at = now + timedelta(milliseconds=ttl_ms)
    cascaded = await cascade_archive(db, row, ttl_ms, now=now, schema=media_schema)

    result = await db.execute(
        update(model)
        .where(getattr(model, id_field) == row_id)
        .values(
            is_archived=True,
            archived_at=now,
            purge_after_at=purge_after_at,
            updated_at=now,
        )
    )
    if result.rowcount == 0:
        raise NotFound(model.__name__, row_id)
    return cascaded


# ── Per-entity stores ───────────────────────────────────────────────

ENTITY_STORES: dict[str, LifecycleStore] = {
    "courses": LifecycleStore(
        Course, "Course", [Dependent(Section, "course_id", "sections")]
    ),
    "instructors": LifecycleStore(
        Instructor,
        "Instructor",
        [Dependent(CourseInstructor, "instructor_id", "course assignments")],
    ),
    "sections": LifecycleStore(
        Section, "Section", [Dependent(Chapter, "section_id", "chapters")]
    ),
    "chapters": LifecycleStore(
        Chapter,
        "Chapter",
        [Dependent(Test, "chapter_id", "tests"), Dependent(Entry, "chapter_id", "entries")],
    ),
    "tests": LifecycleStore(
        Test,
        "Test",
        [Dependent(Question, "test_id", "questions"), Dependent(Entry, "test_id", "entries")],
    ),
    "questions": LifecycleStore(
        Question, "Question", [Dependent(Option, "question_id", "options")]
    ),
    "options": LifecycleStore(Option, "Option"),
    "entries": LifecycleStore(Entry, "Entry"),
}

MEDIA_STORES: Mapping[MediaKind, LifecycleStore] = {
    MediaKind.IMAGE: LifecycleStore(Image, "Image"),
    MediaKind.VIDEO: LifecycleStore(Video, "Video"),
}


def get_store(entity: str) -> LifecycleStore:
    try:
        return ENTITY_STORES[entity]
    except KeyError:
        raise UnsupportedEntityType(entity) from None


def _media_store(kind: MediaKind) -> LifecycleStore:
    try:
        return MEDIA_STORES[kind]
    except KeyError:
        raise UnsupportedEntityType(kind.value) from None


async def _ensure_unreferenced(
    db: AsyncSession, store: LifecycleStore, kind: MediaKind, media_id: int
) -> None:
    references = await count_references(db, media_id, kind)
    if references > 0:
        raise InUse(store.label.lower(), media_id, references)


async def archive_media(
    db: AsyncSession, kind: MediaKind, media_id: int, now: datetime | None = None
):
    """Archive a media row without a deadline. Refused while referenced."""
    store = _media_store(kind)
    row = await store.require(db, media_id, lock=True)
    await _ensure_unreferenced(db, store, kind, media_id)
    row.mark_archived(now or _utcnow())
    await db.flush()
    return row


async def delete_media(
    db: AsyncSession,
    kind: MediaKind,
    media_id: int,
    ttl_minutes: int | None = None,
    now: datetime | None = None,
) -> tuple[Base, CascadeResult]:
    """Schedule an unreferenced media row for purging.

    A video also takes its thumbnail along when nothing else uses it.
    """
    store = _media_store(kind)
    row = await store.require(db, media_id, lock=True)
    await _ensure_unreferenced(db, store, kind, media_id)

    minutes = ttl_minutes if ttl_minutes is not None else settings.DELETE_TTL_MINUTES
    now = now or _utcnow()
    ttl_ms = minutes * 60_000
    cascaded = CascadeResult()
    if kind is MediaKind.VIDEO:
        cascaded = await cascade_archive(db, row, ttl_ms, now=now)

    row.mark_archived(now, now + timedelta(milliseconds=ttl_ms))
    await db.flush()
    logger.info("Scheduled %s %s for purge in %d minute(s)", store.table, media_id, minutes)
    return row, cascaded
