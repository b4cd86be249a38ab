from __future__ import annotations

from typing import Any

from fastapi import Request
from fastapi.responses import JSONResponse

from courseware.core.errors import LifecycleError
from courseware.services.purger import ArchivePurger
from courseware.services.snapshots import serialize_row


def get_purger(request: Request) -> ArchivePurger:
    """The process-wide purger, shared with the background scheduler."""
    purger = getattr(request.app.state, "purger", None)
    if purger is None:
        purger = ArchivePurger()
        request.app.state.purger = purger
    return purger


def row_response(row: Any, **extra: Any) -> dict[str, Any]:
    data = serialize_row(row)
    data.update(extra)
    return data


async def lifecycle_error_handler(request: Request, exc: LifecycleError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})
