"""On-disk storage for uploaded media.

Media rows store a locator such as ``/uploads/images/cat.png``. Only locators
under ``UPLOAD_URL_PREFIX`` map to files this service owns; anything else
(external URLs, paths escaping the upload root) is left alone.
"""

from __future__ import annotations

import logging
from pathlib import Path
from urllib.parse import unquote, urlparse

from courseware.config import settings
from courseware.core.metrics import archive_purged_files_total

logger = logging.getLogger(__name__)

REMOVED = "removed"
MISSING = "missing"
SKIPPED = "skipped"
ERROR = "error"


def resolve_upload_path(
    locator: str | None,
    upload_root: str | Path | None = None,
    url_prefix: str | None = None,
) -> Path | None:
    """Map a stored locator to a file under the upload root, or ``None``."""
    if not locator:
        return None
    parsed = urlparse(locator)
    if parsed.scheme or parsed.netloc:
        return None

    prefix = (url_prefix if url_prefix is not None else settings.UPLOAD_URL_PREFIX).rstrip("/")
    path = unquote(parsed.path)
    if not path.startswith(prefix + "/"):
        return None

    root = Path(upload_root if upload_root is not None else settings.UPLOAD_ROOT).resolve()
    relative = path[len(prefix) + 1 :].lstrip("/")
    if not relative:
        return None
    candidate = (root / relative).resolve()
    if not candidate.is_relative_to(root):
        return None
    return candidate


def remove_media_file(
    locator: str | None,
    upload_root: str | Path | None = None,
    url_prefix: str | None = None,
) -> str:
    """Best-effort unlink of the file behind ``locator``.

    Returns the outcome: ``removed``, ``missing`` (already gone), ``skipped``
    (not an upload we own) or ``error``. Never raises ``OSError``.
    """
    path = resolve_upload_path(locator, upload_root, url_prefix)
    if path is None:
        return SKIPPED

    try:
        path.unlink()
        outcome = REMOVED
    except FileNotFoundError:
        outcome = MISSING
    except OSError:
        logger.exception("Failed to remove media file %s", path)
        outcome = ERROR

    archive_purged_files_total.labels(outcome=outcome).inc()
    return outcome
