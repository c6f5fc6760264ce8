# File: app/core/ratelimit.py

from slowapi import Limiter
from slowapi.util import get_remote_address

from app.core.config import settings

SUBMIT_LIMIT = "10/minute"
TRACKING_LIMIT = "30/minute"

limiter = Limiter(key_func=get_remote_address, enabled=settings.rate_limit_enabled)
