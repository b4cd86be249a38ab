"""Archive exclusively-owned media together with their last referencer."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from courseware.core.metrics import media_cascade_total
from courseware.services.media_references import (
    MEDIA_FIELDS,
    MEDIA_MODELS,
    MediaKind,
    MediaSchema,
    count_references,
)

logger = logging.getLogger(__name__)

_CASCADE_ORDER = (MediaKind.IMAGE, MediaKind.VIDEO, MediaKind.THUMBNAIL_IMAGE)


@dataclass
class CascadeResult:
    image: bool = False
    video: bool = False
    thumbnail_image: bool = False

    def to_dict(self) -> dict[str, bool]:
        return {
            "image": self.image,
            "video": self.video,
            "thumbnailImage": self.thumbnail_image,
        }


async def _archive_if_exclusive(
    db: AsyncSession,
    kind: MediaKind,
    media_id: int,
    now: datetime,
    purge_after_at: datetime,
    schema: MediaSchema | None,
) -> bool:
    model = MEDIA_MODELS[kind]
    pk = model.__mapper__.primary_key[0]

    # Lock before counting so a concurrent attach waits on this transaction.
    result = await db.execute(
        select(model)
        .where(pk == media_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    media = result.scalar_one_or_none()
    if media is None:
        return False

    references = await count_references(db, media_id, kind, schema)
    if references != 1:
        logger.debug(
            "Keeping %s %s: %d reference(s)", kind.value, media_id, references
        )
        return False

    media.mark_archived(now, purge_after_at)
    media_cascade_total.labels(kind=kind.value).inc()
    logger.info(
        "Cascade-archived %s %s, purge after %s", kind.value, media_id, purge_after_at.isoformat()
    )
    return True


async def cascade_archive(
    db: AsyncSession,
    entity: object,
    purge_after_ms: int,
    now: datetime | None = None,
    schema: MediaSchema | None = None,
) -> CascadeResult:
    """Archive each media row that ``entity`` is the only referencer of.

    ``image_id``, ``video_id`` and ``thumbnail_image_id`` are checked
    independently; a field the entity lacks, or that is null, is skipped.
    Media shared with any other row is left untouched. Works on the caller's
    transaction and only flushes.
    """
    now = now or datetime.now(timezone.utc)
    purge_after_at = now + timedelta(milliseconds=purge_after_ms)
    outcome = CascadeResult()

    for kind in _CASCADE_ORDER:
        media_id = getattr(entity, MEDIA_FIELDS[kind], None)
        if media_id is None:
            continue
        archived = await _archive_if_exclusive(db, kind, media_id, now, purge_after_at, schema)
        setattr(outcome, kind.value, archived)

    await db.flush()
    return outcome
