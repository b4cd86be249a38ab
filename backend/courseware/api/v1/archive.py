"""Snapshot archive endpoints plus purge statistics and manual sweeps."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from courseware.api.deps import get_purger
from courseware.database import get_db
from courseware.schemas.archive import (
    SnapshotCaptureRequest,
    SnapshotDetailResponse,
    SnapshotResponse,
    TableStatsResponse,
)
from courseware.services import snapshots
from courseware.services.purger import ArchivePurger, archive_stats

router = APIRouter()


@router.get("", response_model=list[SnapshotResponse])
async def list_archive(
    status: str | None = None,
    entity_type: str | None = None,
    db: AsyncSession = Depends(get_db),
):
    return await snapshots.list_snapshots(db, status=status, entity_type=entity_type)


@router.get("/stats", response_model=dict[str, TableStatsResponse])
async def get_stats(db: AsyncSession = Depends(get_db)):
    return await archive_stats(db)


@router.post("/sweep")
async def sweep_now(purger: ArchivePurger = Depends(get_purger)):
    result = await purger.sweep()
    return result.to_dict()


@router.get("/{archive_id}", response_model=SnapshotDetailResponse)
async def get_archive_item(archive_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    return await snapshots.get_snapshot(db, archive_id)


@router.post("/{archive_id}/restore")
async def restore_archive_item(archive_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    snapshot = await snapshots.restore_snapshot(db, archive_id)
    await db.commit()
    return {
        "message": "Item restored successfully",
        "entity_type": snapshot.entity_type,
        "entity_id": snapshot.entity_id,
    }


@router.post("/{archive_id}/cancel")
async def cancel_archive_timer(archive_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    snapshot = await snapshots.cancel_pending_delete(db, archive_id)
    await db.commit()
    return {
        "message": "Deletion timer cancelled; item retained in archive.",
        "data": SnapshotResponse.model_validate(snapshot).model_dump(mode="json"),
    }


@router.delete("/{archive_id}")
async def purge_archive_item(archive_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    await snapshots.purge_now(db, archive_id)
    await db.commit()
    return {"message": "Archive item purged"}


@router.post("/{entity_type}/{row_id}", status_code=201)
async def move_to_archive(
    entity_type: str,
    row_id: int,
    body: SnapshotCaptureRequest | None = None,
    db: AsyncSession = Depends(get_db),
):
    body = body or SnapshotCaptureRequest()
    snapshot = await snapshots.capture_snapshot(
        db, entity_type, row_id, body.action, body.ttl_minutes
    )
    await db.commit()
    if snapshot.delete_after is not None:
        message = (
            f"Item moved to archive. Will purge after {snapshot.delete_after.isoformat()} "
            "unless restored."
        )
    else:
        message = "Item archived (no auto-delete)."
    return {
        "message": message,
        "data": SnapshotResponse.model_validate(snapshot).model_dump(mode="json"),
    }
