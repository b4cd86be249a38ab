from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class SnapshotCaptureRequest(BaseModel):
    action: Literal["archive", "delete"] = "archive"
    ttl_minutes: int | None = Field(None, gt=0)


class SnapshotResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    archive_id: uuid.UUID
    entity_type: str
    entity_id: int
    action: str
    status: str
    delete_after: datetime | None = None
    created_at: datetime | None = None
    restored_at: datetime | None = None


class SnapshotDetailResponse(SnapshotResponse):
    payload: dict[str, Any]


class TableStatsResponse(BaseModel):
    archived_count: int
    pending_delete_count: int
    next_purge_at: datetime | None = None
