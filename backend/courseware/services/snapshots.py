"""Snapshot registry: capture an entity now, restore it later.

A snapshot is a JSON copy of one root row plus the rows that hang directly
off it, stored in ``archive_snapshots``. It is independent of the live row's
soft-delete columns: capturing never touches the live row, and restoring
writes the captured values back under their original primary keys.

Each ``EntityType`` has exactly one ``SnapshotHandler``; the module refuses
to import when a kind is left without one.
"""

from __future__ import annotations

import enum
import logging
import uuid
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Any

from sqlalchemy import DateTime, delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from courseware.config import settings
from courseware.core.errors import (
    LifecycleError,
    MalformedPayload,
    NotFound,
    UnsupportedEntityType,
)
from courseware.models import (
    ArchiveSnapshot,
    Base,
    Chapter,
    Course,
    CourseInstructor,
    Entry,
    Image,
    Instructor,
    Option,
    OptionImage,
    OptionVideo,
    Question,
    QuestionImage,
    QuestionVideo,
    Section,
    SnapshotAction,
    SnapshotStatus,
    Test,
    Video,
)

logger = logging.getLogger(__name__)


class EntityType(str, enum.Enum):
    COURSE = "course"
    SECTION = "section"
    CHAPTER = "chapter"
    TEST = "test"
    QUESTION = "question"
    OPTION = "option"
    ENTRY = "entry"
    IMAGE = "image"
    VIDEO = "video"
    INSTRUCTOR = "instructor"


def parse_entity_type(value: str | EntityType) -> EntityType:
    try:
        return EntityType(value)
    except ValueError:
        raise UnsupportedEntityType(value) from None


# ── Row (de)serialisation ───────────────────────────────────────────


def _to_json(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, uuid.UUID):
        return str(value)
    return value


def serialize_row(row: Base) -> dict[str, Any]:
    mapper = row.__mapper__
    return {attr.key: _to_json(getattr(row, attr.key)) for attr in mapper.column_attrs}


def _column_values(model: type[Base], data: Any, where: str) -> dict[str, Any]:
    """Validate one captured row against ``model`` and convert it back."""
    if not isinstance(data, dict):
        raise MalformedPayload(f"{where} is not an object")

    columns = {attr.key: attr.columns[0] for attr in model.__mapper__.column_attrs}
    unknown = sorted(set(data) - set(columns))
    if unknown:
        raise MalformedPayload(f"{where} has unknown column(s): {', '.join(unknown)}")

    values: dict[str, Any] = {}
    for key, column in columns.items():
        if key not in data:
            required = column.primary_key or (
                not column.nullable and column.default is None and column.server_default is None
            )
            if required:
                raise MalformedPayload(f"{where} is missing column {key}")
            continue
        value = data[key]
        if value is not None and isinstance(column.type, DateTime) and isinstance(value, str):
            try:
                value = datetime.fromisoformat(value)
            except ValueError:
                raise MalformedPayload(f"{where}.{key} is not a timestamp") from None
        values[key] = value
    return values


# ── Handlers ────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Related:
    """Rows captured alongside the root.

    ``column`` points at the parent: the root row, or the rows captured under
    ``parent`` when set. Link tables (``replace``) are swapped for exactly the
    captured set on restore; other rows are upserted.
    """

    key: str
    model: type[Base]
    column: str
    parent: str | None = None
    replace: bool = True


@dataclass(frozen=True)
class SnapshotHandler:
    root_key: str
    model: type[Base]
    related: tuple[Related, ...] = ()

    @property
    def pk_name(self) -> str:
        return self.model.__mapper__.primary_key[0].key

    def _model_for(self, key: str | None) -> type[Base]:
        if key is None:
            return self.model
        for rel in self.related:
            if rel.key == key:
                return rel.model
        raise KeyError(key)

    def _parent_ids(self, payload: dict, rel: Related) -> list[Any]:
        if rel.parent is None:
            return [payload[self.root_key][self.pk_name]]
        parent_pk = self._model_for(rel.parent).__mapper__.primary_key[0].key
        return [row[parent_pk] for row in payload.get(rel.parent) or []]

    async def build(self, db: AsyncSession, row_id: int) -> dict[str, Any] | None:
        pk = self.model.__mapper__.primary_key[0]
        result = await db.execute(
            select(self.model).where(pk == row_id).execution_options(populate_existing=True)
        )
        root = result.scalar_one_or_none()
        if root is None:
            return None

        payload: dict[str, Any] = {self.root_key: serialize_row(root)}
        for rel in self.related:
            ids = self._parent_ids(payload, rel)
            if not ids:
                payload[rel.key] = []
                continue
            stmt = (
                select(rel.model)
                .where(getattr(rel.model, rel.column).in_(ids))
                .order_by(*rel.model.__mapper__.primary_key)
                .execution_options(populate_existing=True)
            )
            rows = (await db.execute(stmt)).scalars().all()
            payload[rel.key] = [serialize_row(r) for r in rows]
        return payload

    def validate(self, payload: Any) -> dict[str, list[dict[str, Any]]]:
        """Check the whole payload before anything is written."""
        if not isinstance(payload, dict) or self.root_key not in payload:
            raise MalformedPayload(f"missing {self.root_key}")

        root = _column_values(self.model, payload[self.root_key], self.root_key)
        checked = {self.root_key: [root]}
        for rel in self.related:
            rows = payload.get(rel.key)
            if rows is None:
                continue
            if not isinstance(rows, list):
                raise MalformedPayload(f"{rel.key} is not a list")
            checked[rel.key] = [
                _column_values(rel.model, row, f"{rel.key}[{i}]") for i, row in enumerate(rows)
            ]
        return checked

    async def restore(self, db: AsyncSession, payload: Any) -> None:
        checked = self.validate(payload)
        try:
            await db.merge(self.model(**checked[self.root_key][0]))
            await db.flush()

            for rel in self.related:
                if rel.key not in checked:
                    continue
                rows = checked[rel.key]
                if rel.replace:
                    ids = self._parent_ids(payload, rel)
                    if ids:
                        await db.execute(
                            delete(rel.model).where(getattr(rel.model, rel.column).in_(ids))
                        )
                    db.add_all(rel.model(**values) for values in rows)
                else:
                    for values in rows:
                        await db.merge(rel.model(**values))
                await db.flush()
        except IntegrityError as exc:
            raise MalformedPayload(f"rows no longer fit the schema ({exc.orig})") from exc


_OPTION_LINKS = (
    Related("option_images", OptionImage, "option_id"),
    Related("option_videos", OptionVideo, "option_id"),
)

HANDLERS: dict[EntityType, SnapshotHandler] = {
    EntityType.COURSE: SnapshotHandler(
        "course", Course, (Related("course_instructors", CourseInstructor, "course_id"),)
    ),
    EntityType.SECTION: SnapshotHandler("section", Section),
    EntityType.CHAPTER: SnapshotHandler("chapter", Chapter),
    EntityType.TEST: SnapshotHandler("test", Test),
    EntityType.QUESTION: SnapshotHandler(
        "question",
        Question,
        (
            Related("question_images", QuestionImage, "question_id"),
            Related("question_videos", QuestionVideo, "question_id"),
            Related("options", Option, "question_id", replace=False),
            Related("option_images", OptionImage, "option_id", parent="options"),
            Related("option_videos", OptionVideo, "option_id", parent="options"),
        ),
    ),
    EntityType.OPTION: SnapshotHandler("option", Option, _OPTION_LINKS),
    EntityType.ENTRY: SnapshotHandler("entry", Entry),
    EntityType.IMAGE: SnapshotHandler("image", Image),
    EntityType.VIDEO: SnapshotHandler("video", Video),
    EntityType.INSTRUCTOR: SnapshotHandler("instructor", Instructor),
}

_unhandled = [kind.value for kind in EntityType if kind not in HANDLERS]
if _unhandled:
    raise RuntimeError(f"No snapshot handler for entity type(s): {', '.join(_unhandled)}")


def get_handler(entity_type: str | EntityType) -> SnapshotHandler:
    return HANDLERS[parse_entity_type(entity_type)]


# ── Registry operations ─────────────────────────────────────────────


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


async def get_snapshot(
    db: AsyncSession, archive_id: uuid.UUID, lock: bool = False
) -> ArchiveSnapshot:
    stmt = select(ArchiveSnapshot).where(ArchiveSnapshot.archive_id == archive_id)
    if lock:
        stmt = stmt.with_for_update()
    result = await db.execute(stmt.execution_options(populate_existing=True))
    snapshot = result.scalar_one_or_none()
    if snapshot is None:
        raise NotFound("Archive item", archive_id)
    return snapshot


async def list_snapshots(
    db: AsyncSession,
    status: str | None = None,
    entity_type: str | None = None,
) -> list[ArchiveSnapshot]:
    stmt = select(ArchiveSnapshot)
    if status and status != "all":
        stmt = stmt.where(ArchiveSnapshot.status == status)
    if entity_type:
        stmt = stmt.where(ArchiveSnapshot.entity_type == entity_type)
    stmt = stmt.order_by(ArchiveSnapshot.created_at, ArchiveSnapshot.archive_id)
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def capture_snapshot(
    db: AsyncSession,
    entity_type: str | EntityType,
    row_id: int,
    action: str | SnapshotAction = SnapshotAction.ARCHIVE,
    ttl_minutes: int | None = None,
    now: datetime | None = None,
) -> ArchiveSnapshot:
    """Copy an entity and its dependents into a new snapshot row.

    ``delete`` snapshots expire after ``ttl_minutes`` (``DELETE_TTL_MINUTES``
    when unset or not positive); ``archive`` snapshots never expire.
    """
    kind = parse_entity_type(entity_type)
    try:
        action = SnapshotAction(action)
    except ValueError:
        raise LifecycleError(f"Unsupported archive action: {action}") from None

    payload = await HANDLERS[kind].build(db, row_id)
    if payload is None:
        raise NotFound(kind.value.capitalize(), row_id)

    now = now or _utcnow()
    delete_after = None
    status = SnapshotStatus.ARCHIVED
    if action is SnapshotAction.DELETE:
        minutes = ttl_minutes if ttl_minutes and ttl_minutes > 0 else settings.DELETE_TTL_MINUTES
        delete_after = now + timedelta(minutes=minutes)
        status = SnapshotStatus.PENDING_DELETE

    snapshot = ArchiveSnapshot(
        entity_type=kind.value,
        entity_id=row_id,
        action=action.value,
        status=status.value,
        payload=payload,
        delete_after=delete_after,
    )
    db.add(snapshot)
    await db.flush()
    logger.info(
        "Captured %s snapshot %s of %s %s", action.value, snapshot.archive_id, kind.value, row_id
    )
    return snapshot


async def restore_snapshot(
    db: AsyncSession, archive_id: uuid.UUID, now: datetime | None = None
) -> ArchiveSnapshot:
    """Write a snapshot back and drop it.

    The snapshot row is consumed, so restoring it a second time raises
    ``NotFound``. Any error leaves the caller's transaction to roll back.
    """
    snapshot = await get_snapshot(db, archive_id, lock=True)
    handler = get_handler(snapshot.entity_type)
    await handler.restore(db, snapshot.payload)

    snapshot.status = SnapshotStatus.RESTORED.value
    snapshot.restored_at = now or _utcnow()
    snapshot.delete_after = None
    await db.flush()
    await db.delete(snapshot)
    await db.flush()
    logger.info(
        "Restored %s %s from snapshot %s", snapshot.entity_type, snapshot.entity_id, archive_id
    )
    return snapshot


async def cancel_pending_delete(db: AsyncSession, archive_id: uuid.UUID) -> ArchiveSnapshot:
    """Keep the snapshot indefinitely."""
    snapshot = await get_snapshot(db, archive_id, lock=True)
    snapshot.action = SnapshotAction.ARCHIVE.value
    snapshot.status = SnapshotStatus.ARCHIVED.value
    snapshot.delete_after = None
    await db.flush()
    return snapshot


async def purge_now(db: AsyncSession, archive_id: uuid.UUID) -> None:
    result = await db.execute(
        delete(ArchiveSnapshot).where(ArchiveSnapshot.archive_id == archive_id)
    )
    if result.rowcount == 0:
        raise NotFound("Archive item", archive_id)


async def reap_expired_snapshots(db: AsyncSession, now: datetime) -> int:
    """Delete snapshots whose ``delete_after`` has passed; returns the count."""
    result = await db.execute(
        delete(ArchiveSnapshot)
        .where(
            ArchiveSnapshot.delete_after.is_not(None),
            ArchiveSnapshot.delete_after <= now,
            ArchiveSnapshot.status != SnapshotStatus.RESTORED.value,
        )
        .execution_options(synchronize_session=False)
    )
    return result.rowcount or 0
