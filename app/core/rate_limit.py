"""Rate limiting for the report trigger endpoints (slowapi)."""

from slowapi import Limiter
from slowapi.util import get_remote_address

from app.core.config import settings

# Keyed by client address; storage shared with Celery's redis outside development
limiter = Limiter(
    key_func=get_remote_address,
    storage_uri=settings.redis_url if settings.app_env == "production" else "memory://",
)
