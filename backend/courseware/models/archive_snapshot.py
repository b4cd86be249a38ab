from __future__ import annotations

import enum
import uuid
from datetime import datetime

from sqlalchemy import DateTime, Index, Integer, String, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from courseware.models.base import Base


class SnapshotAction(str, enum.Enum):
    ARCHIVE = "archive"
    DELETE = "delete"


class SnapshotStatus(str, enum.Enum):
    ARCHIVED = "archived"
    PENDING_DELETE = "pending_delete"
    RESTORED = "restored"


class ArchiveSnapshot(Base):
    __tablename__ = "archive_snapshots"

    archive_id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    entity_type: Mapped[str] = mapped_column(String(50), nullable=False)
    entity_id: Mapped[int] = mapped_column(Integer, nullable=False)
    action: Mapped[str] = mapped_column(String(20), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False)

    # Root row plus direct dependents, as captured
    payload: Mapped[dict] = mapped_column(nullable=False)

    delete_after: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    restored_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    __mapper_args__ = {"eager_defaults": True}

    __table_args__ = (
        Index("ix_archive_snapshots_entity", "entity_type", "entity_id"),
        Index("ix_archive_snapshots_delete_after", "delete_after"),
    )

    def __repr__(self) -> str:
        return (
            f"<ArchiveSnapshot(id={self.archive_id}, entity={self.entity_type}:"
            f"{self.entity_id}, status={self.status})>"
        )
