"""Archive / restore / delete endpoints shared by every archivable entity.

``/courses``, ``/sections`` and the other content routers are all built by
``build_router`` from their ``LifecycleStore``; only the store differs.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from courseware.api.deps import row_response
from courseware.database import get_db
from courseware.services.lifecycle import ENTITY_STORES, LifecycleStore


def build_router(store: LifecycleStore) -> APIRouter:
    router = APIRouter()

    @router.post("/{row_id}/archive")
    async def archive(row_id: int, db: AsyncSession = Depends(get_db)):
        row = await store.archive(db, row_id)
        await db.commit()
        return row_response(row)

    @router.post("/{row_id}/restore")
    async def restore(row_id: int, db: AsyncSession = Depends(get_db)):
        row = await store.restore(db, row_id)
        await db.commit()
        return row_response(row)

    @router.post("/{row_id}/cancel-delete")
    async def cancel_delete(row_id: int, db: AsyncSession = Depends(get_db)):
        row = await store.cancel_pending_delete(db, row_id)
        await db.commit()
        return row_response(row)

    @router.delete("/{row_id}")
    async def delete(
        row_id: int,
        purge_after_ms: int | None = Query(None, ge=0),
        db: AsyncSession = Depends(get_db),
    ):
        row, cascaded = await store.delete(db, row_id, purge_after_ms)
        await db.commit()
        return {
            "message": f"{store.label} scheduled for deletion",
            "id": row_id,
            "purge_after_at": row.purge_after_at,
            "cascaded_media": cascaded.to_dict(),
        }

    return router


routers: dict[str, APIRouter] = {path: build_router(store) for path, store in ENTITY_STORES.items()}
