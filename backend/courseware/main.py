from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Response
from fastapi.middleware.cors import CORSMiddleware
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from courseware.api.deps import lifecycle_error_handler
from courseware.api.v1.router import api_router
from courseware.config import APP_VERSION, settings
from courseware.core.errors import LifecycleError
from courseware.core.logging_config import configure_logging
from courseware.core.metrics import app_info
from courseware.core.rate_limit import limiter
from courseware.database import async_session, engine
from courseware.middleware.prometheus import PrometheusMiddleware
from courseware.models import Base
from courseware.services.purger import ArchivePurger
from courseware.services.scheduler import PurgeScheduler

logger = logging.getLogger(__name__)

ALEMBIC_INI = Path(__file__).resolve().parents[1] / "alembic.ini"


def _run_alembic_stamp(alembic_cfg, revision):
    """Run alembic stamp in a thread-safe way."""
    from alembic import command
    command.stamp(alembic_cfg, revision)


def _run_alembic_upgrade(alembic_cfg, revision):
    """Run alembic upgrade in a thread-safe way."""
    from alembic import command
    command.upgrade(alembic_cfg, revision)


async def _prepare_database() -> None:
    from alembic.config import Config
    from sqlalchemy import inspect as sa_inspect
    from sqlalchemy import text

    alembic_cfg = Config(str(ALEMBIC_INI))
    alembic_cfg.attributes["configure_logger"] = False

    if settings.RESET_DB:
        # Full reset: drop everything and recreate
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
            await conn.run_sync(Base.metadata.create_all)
        # Stamp so future non-reset runs just upgrade
        await asyncio.to_thread(_run_alembic_stamp, alembic_cfg, "head")
        return

    # Determine DB state before touching anything
    async with engine.connect() as conn:
        has_alembic = await conn.run_sync(
            lambda sync_conn: sa_inspect(sync_conn).has_table("alembic_version")
        )
        alembic_version = None
        if has_alembic:
            row = await conn.execute(text("SELECT version_num FROM alembic_version LIMIT 1"))
            first = row.first()
            alembic_version = first[0] if first else None

    if not has_alembic or alembic_version is None:
        # Fresh DB: create tables from models, then stamp
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        await asyncio.to_thread(_run_alembic_stamp, alembic_cfg, "head")
    else:
        try:
            await asyncio.to_thread(_run_alembic_upgrade, alembic_cfg, "head")
        except Exception:
            logger.exception("Alembic migration failed")
            raise


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging(settings.ENVIRONMENT, settings.LOG_LEVEL)
    await _prepare_database()

    scheduler = PurgeScheduler(app.state.purger, settings.ARCHIVE_PURGE_INTERVAL_MS)
    app.state.scheduler = scheduler
    scheduler.start()

    yield

    # Let an in-flight sweep finish before the pool goes away
    await scheduler.stop(timeout=settings.PURGE_SHUTDOWN_TIMEOUT_SECONDS)
    await engine.dispose()


app = FastAPI(
    title=settings.PROJECT_NAME,
    version=APP_VERSION,
    lifespan=lifespan,
    docs_url="/api/docs" if settings.ENVIRONMENT == "development" else None,
    redoc_url=None,
    openapi_url="/api/openapi.json" if settings.ENVIRONMENT == "development" else None,
)

app_info.info({"version": APP_VERSION, "environment": settings.ENVIRONMENT})
app.state.purger = ArchivePurger(async_session)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_exception_handler(LifecycleError, lifecycle_error_handler)

app.add_middleware(SlowAPIMiddleware)
app.add_middleware(PrometheusMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type"],
)

app.include_router(api_router, prefix=settings.API_V1_PREFIX)


@app.get("/api/health")
@limiter.exempt
async def health():
    return {"status": "ok", "version": APP_VERSION}


@app.get("/metrics", include_in_schema=False)
@limiter.exempt
async def metrics():
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)
