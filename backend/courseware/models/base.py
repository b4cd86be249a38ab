from __future__ import annotations

from datetime import datetime

from sqlalchemy import JSON, Boolean, DateTime, false, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

# Column names every soft-deletable table must expose; the purger discovers
# tables by this contract.
ARCHIVE_COLUMNS = ("is_archived", "archived_at", "purge_after_at", "updated_at")


class Base(DeclarativeBase):
    type_annotation_map = {dict: JSON().with_variant(JSONB(), "postgresql")}


class TimestampMixin:
    # Server-side defaults are read back on flush so rows stay usable without
    # an implicit refresh under asyncio.
    __mapper_args__ = {"eager_defaults": True}

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )


class ArchivableMixin(TimestampMixin):
    """Soft-delete contract.

    ``purge_after_at`` set means the row is archived with a deadline and will
    be purged once it elapses; archived without a deadline means it stays
    until restored. An active row has neither timestamp.
    """

    is_archived: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false(), index=True
    )
    archived_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    purge_after_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), index=True)

    def mark_archived(self, now: datetime, purge_after_at: datetime | None = None) -> None:
        self.is_archived = True
        self.archived_at = now
        self.purge_after_at = purge_after_at
        self.updated_at = now

    def mark_restored(self, now: datetime) -> None:
        self.is_archived = False
        self.archived_at = None
        self.purge_after_at = None
        self.updated_at = now
