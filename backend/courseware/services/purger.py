"""Permanent removal of soft-deleted rows whose purge deadline has passed.

The purger holds no table list. Each sweep asks the database which tables
carry the archive column contract, reflects them, and walks them with
referencing tables first so foreign keys never block a delete. Every table
is purged in its own short transaction; media files are unlinked only after
that transaction has committed.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from sqlalchemy import Table, delete, func, select, true, tuple_, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from courseware.core.introspection import list_tables_with_columns, reflect_tables
from courseware.core.metrics import archive_purged_rows_total, archive_sweep_duration_seconds
from courseware.models import ARCHIVE_COLUMNS
from courseware.services.media_files import remove_media_file
from courseware.services.media_references import (
    MEDIA_LOCATORS,
    MEDIA_TABLE_KINDS,
    count_references,
)
from courseware.services.snapshots import reap_expired_snapshots

logger = logging.getLogger(__name__)


@dataclass
class SweepResult:
    deleted: dict[str, int] = field(default_factory=dict)
    kept_in_use: dict[str, list[Any]] = field(default_factory=dict)
    files: dict[str, int] = field(default_factory=dict)
    failed: list[str] = field(default_factory=list)
    snapshots_reaped: int = 0
    skipped: bool = False

    @property
    def total(self) -> int:
        return sum(self.deleted.values())

    def to_dict(self) -> dict[str, Any]:
        return {
            "skipped": self.skipped,
            "total": self.total,
            "deleted": dict(self.deleted),
            "kept_in_use": {k: list(v) for k, v in self.kept_in_use.items()},
            "files": dict(self.files),
            "failed": list(self.failed),
            "snapshots_reaped": self.snapshots_reaped,
        }


def _expired(table: Table, now: datetime):
    return (
        table.c.is_archived == true(),
        table.c.purge_after_at.is_not(None),
        table.c.purge_after_at <= now,
    )


async def discover_archivable_tables(conn) -> list[Table]:
    """Archivable tables in purge order (referencing tables first)."""
    names = await list_tables_with_columns(conn, ARCHIVE_COLUMNS)
    return await reflect_tables(conn, names)


class ArchivePurger:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
        upload_root: str | Path | None = None,
        url_prefix: str | None = None,
    ) -> None:
        if session_factory is None:
            from courseware.database import async_session

            session_factory = async_session
        self._session_factory = session_factory
        self._upload_root = upload_root
        self._url_prefix = url_prefix
        self._lock = asyncio.Lock()

    @property
    def busy(self) -> bool:
        return self._lock.locked()

    async def sweep(self, now: datetime | None = None) -> SweepResult:
        """Run one sweep; returns at once with ``skipped`` if one is in flight."""
        if self._lock.locked():
            logger.debug("[purger] Sweep already running, skipping")
            return SweepResult(skipped=True)

        async with self._lock:
            started = time.perf_counter()
            try:
                return await self._sweep(now or datetime.now(timezone.utc))
            finally:
                archive_sweep_duration_seconds.observe(time.perf_counter() - started)

    async def _sweep(self, now: datetime) -> SweepResult:
        result = SweepResult()
        try:
            async with self._session_factory() as db:
                tables = await discover_archivable_tables(await db.connection())
        except Exception:
            logger.exception("[purger] Could not discover archivable tables")
            result.failed.append("<discovery>")
            return result

        for table in tables:
            try:
                deleted, locators, kept = await self._purge_table(table, now)
            except Exception:
                logger.exception("[purger] Error purging %s", table.name)
                result.failed.append(table.name)
                continue

            if kept:
                result.kept_in_use[table.name] = kept
            if not deleted:
                continue
            result.deleted[table.name] = deleted
            archive_purged_rows_total.labels(table=table.name).inc(deleted)
            await self._remove_files(locators, result)

        try:
            async with self._session_factory() as db, db.begin():
                result.snapshots_reaped = await reap_expired_snapshots(db, now)
        except Exception:
            logger.exception("[purger] Error reaping expired snapshots")
            result.failed.append("archive_snapshots")

        self._log_summary(result)
        return result

    async def _purge_table(
        self, table: Table, now: datetime
    ) -> tuple[int, list[str], list[Any]]:
        pk_cols = list(table.primary_key.columns)
        kind = MEDIA_TABLE_KINDS.get(table.name)
        locator_name = MEDIA_LOCATORS.get(table.name)
        columns = pk_cols + ([table.c[locator_name]] if locator_name else [])

        stmt = select(*columns).where(*_expired(table, now)).with_for_update(skip_locked=True)

        async with self._session_factory() as db, db.begin():
            rows = (await db.execute(stmt)).all()
            if not rows:
                return 0, [], []

            doomed = []
            kept = []
            for row in rows:
                key = tuple(row[: len(pk_cols)])
                if kind is not None:
                    references = await count_references(db, key[0], kind)
                    if references:
                        logger.warning(
                            "[purger] Keeping %s %s: still referenced by %d row(s)",
                            table.name,
                            key[0],
                            references,
                        )
                        kept.append(key[0])
                        continue
                doomed.append(row)

            if kept:
                # Parked without a deadline until restored or deleted again
                await db.execute(
                    update(table)
                    .where(pk_cols[0].in_(kept))
                    .values(purge_after_at=None, updated_at=now)
                )

            if not doomed:
                return 0, [], kept

            if len(pk_cols) == 1:
                condition = pk_cols[0].in_([row[0] for row in doomed])
            else:
                condition = tuple_(*pk_cols).in_([tuple(row[: len(pk_cols)]) for row in doomed])
            outcome = await db.execute(delete(table).where(condition, *_expired(table, now)))
            deleted = outcome.rowcount

        locators = [row[-1] for row in doomed if locator_name and row[-1]]
        return deleted, locators, kept

    async def _remove_files(self, locators: list[str], result: SweepResult) -> None:
        outcomes = Counter(result.files)
        for locator in locators:
            outcome = await asyncio.to_thread(
                remove_media_file, locator, self._upload_root, self._url_prefix
            )
            outcomes[outcome] += 1
        result.files = dict(outcomes)

    def _log_summary(self, result: SweepResult) -> None:
        if result.total == 0:
            logger.debug("[purger] Nothing to purge")
            return
        details = ", ".join(f"{count} {name}" for name, count in result.deleted.items())
        logger.info(
            "[purger] Deleted %d archived item(s): %s",
            result.total,
            details,
            extra={"sweep": result.to_dict()},
        )


async def archive_stats(db: AsyncSession) -> dict[str, dict[str, Any]]:
    """Per archivable table: parked rows, rows awaiting purge, next deadline."""
    tables = await discover_archivable_tables(await db.connection())
    stats: dict[str, dict[str, Any]] = {}
    for table in tables:
        archived = table.c.is_archived == true()
        pending = table.c.purge_after_at.is_not(None)
        row = (
            await db.execute(
                select(
                    func.count().filter(archived, table.c.purge_after_at.is_(None)),
                    func.count().filter(archived, pending),
                    func.min(table.c.purge_after_at).filter(archived, pending),
                ).select_from(table)
            )
        ).one()
        stats[table.name] = {
            "archived_count": int(row[0] or 0),
            "pending_delete_count": int(row[1] or 0),
            "next_purge_at": row[2],
        }
    return dict(sorted(stats.items()))
