"""Reference counting for shared media.

An image or video may be attached to any number of parent rows. Ownership is
counted rather than owned: a media row is exclusive to a parent only when
exactly one row references it. The referencing (table, column) pairs are an
explicit, closed list per media kind; they are never discovered from the
schema, so an unrelated column that happens to be called ``image_id`` can
never take part in a cascade.
"""

from __future__ import annotations

import enum
from collections.abc import Mapping
from dataclasses import dataclass

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from courseware.models import (
    Base,
    Chapter,
    Course,
    Entry,
    Image,
    Instructor,
    Option,
    OptionImage,
    OptionVideo,
    QuestionImage,
    QuestionVideo,
    Section,
    Test,
    Video,
)


class MediaKind(str, enum.Enum):
    IMAGE = "image"
    VIDEO = "video"
    THUMBNAIL_IMAGE = "thumbnail_image"


@dataclass(frozen=True)
class MediaReference:
    model: type[Base]
    column: str

    @property
    def label(self) -> str:
        return f"{self.model.__tablename__}.{self.column}"


IMAGE_REFERENCES: tuple[MediaReference, ...] = (
    MediaReference(Course, "image_id"),
    MediaReference(Instructor, "image_id"),
    MediaReference(Section, "image_id"),
    MediaReference(Chapter, "image_id"),
    MediaReference(Test, "image_id"),
    MediaReference(Video, "thumbnail_image_id"),
    MediaReference(OptionImage, "image_id"),
    MediaReference(QuestionImage, "image_id"),
)

VIDEO_REFERENCES: tuple[MediaReference, ...] = (
    MediaReference(Course, "video_id"),
    MediaReference(Section, "video_id"),
    MediaReference(Test, "video_id"),
    MediaReference(Option, "video_id"),
    MediaReference(Entry, "video_id"),
    MediaReference(OptionVideo, "video_id"),
    MediaReference(QuestionVideo, "video_id"),
)

MediaSchema = Mapping[MediaKind, tuple[MediaReference, ...]]

# A thumbnail is an ordinary image row, so it is shared with every other
# image reference.
MEDIA_REFERENCES: MediaSchema = {
    MediaKind.IMAGE: IMAGE_REFERENCES,
    MediaKind.VIDEO: VIDEO_REFERENCES,
    MediaKind.THUMBNAIL_IMAGE: IMAGE_REFERENCES,
}

MEDIA_MODELS: dict[MediaKind, type[Base]] = {
    MediaKind.IMAGE: Image,
    MediaKind.VIDEO: Video,
    MediaKind.THUMBNAIL_IMAGE: Image,
}

# Attribute on a parent row holding each kind of media id
MEDIA_FIELDS: dict[MediaKind, str] = {
    MediaKind.IMAGE: "image_id",
    MediaKind.VIDEO: "video_id",
    MediaKind.THUMBNAIL_IMAGE: "thumbnail_image_id",
}

# Media tables, their kind, and the column holding the storage locator
MEDIA_TABLE_KINDS: dict[str, MediaKind] = {
    "images": MediaKind.IMAGE,
    "videos": MediaKind.VIDEO,
}
MEDIA_LOCATORS: dict[str, str] = {
    "images": "image_url",
    "videos": "video_url",
}


async def reference_breakdown(
    db: AsyncSession,
    media_id: int,
    kind: MediaKind,
    schema: MediaSchema | None = None,
) -> dict[str, int]:
    """Count referencing rows per ``table.column`` pair.

    Archived referencers are counted too: they still exist and may be
    restored. Runs on the caller's session, inside its transaction.
    """
    pairs = (schema or MEDIA_REFERENCES).get(kind, ())
    counts: dict[str, int] = {}
    for ref in pairs:
        column = getattr(ref.model, ref.column)
        result = await db.execute(
            select(func.count()).select_from(ref.model).where(column == media_id)
        )
        counts[ref.label] = int(result.scalar_one())
    return counts


async def count_references(
    db: AsyncSession,
    media_id: int,
    kind: MediaKind,
    schema: MediaSchema | None = None,
) -> int:
    """Total number of rows referencing ``media_id``; 0 when none."""
    counts = await reference_breakdown(db, media_id, kind, schema)
    return sum(counts.values())
