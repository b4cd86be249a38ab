from __future__ import annotations

from slowapi import Limiter
from slowapi.util import get_remote_address

# 100 requests per 15 minutes per client address, applied app-wide
limiter = Limiter(key_func=get_remote_address, default_limits=["100/15minutes"])
