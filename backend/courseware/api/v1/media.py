from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from courseware.api.deps import row_response
from courseware.database import get_db
from courseware.services.lifecycle import MEDIA_STORES, archive_media, delete_media
from courseware.services.media_references import MediaKind, reference_breakdown


def build_media_router(kind: MediaKind) -> APIRouter:
    store = MEDIA_STORES[kind]
    router = APIRouter()

    @router.get("/{media_id}/usage")
    async def usage(media_id: int, db: AsyncSession = Depends(get_db)):
        await store.require(db, media_id)
        breakdown = await reference_breakdown(db, media_id, kind)
        total = sum(breakdown.values())
        return {
            "id": media_id,
            "total": total,
            "in_use": total > 0,
            "references": {label: n for label, n in breakdown.items() if n},
        }

    @router.post("/{media_id}/archive")
    async def archive(media_id: int, db: AsyncSession = Depends(get_db)):
        row = await archive_media(db, kind, media_id)
        await db.commit()
        return row_response(row)

    @router.post("/{media_id}/restore")
    async def restore(media_id: int, db: AsyncSession = Depends(get_db)):
        row = await store.restore(db, media_id)
        await db.commit()
        return row_response(row)

    @router.post("/{media_id}/cancel-delete")
    async def cancel_delete(media_id: int, db: AsyncSession = Depends(get_db)):
        row = await store.cancel_pending_delete(db, media_id)
        await db.commit()
        return row_response(row)

    @router.delete("/{media_id}")
    async def delete(
        media_id: int,
        ttl_minutes: int | None = Query(None, gt=0),
        db: AsyncSession = Depends(get_db),
    ):
        row, cascaded = await delete_media(db, kind, media_id, ttl_minutes)
        await db.commit()
        return {
            "message": f"{store.label} scheduled for deletion",
            "id": media_id,
            "purge_after_at": row.purge_after_at,
            "cascaded_media": cascaded.to_dict(),
        }

    return router


images_router = build_media_router(MediaKind.IMAGE)
videos_router = build_media_router(MediaKind.VIDEO)
