"""Rate limiting configuration for the CRM API."""

import logging
import os

from slowapi import Limiter
from slowapi.util import get_remote_address

from crm.core.config import settings

logger = logging.getLogger(__name__)

# Shared storage (e.g. redis://...) for multi-worker deployments; memory otherwise
RATE_LIMIT_STORAGE_URI = os.getenv("RATE_LIMIT_STORAGE_URI", "memory://")
IS_TESTING = os.getenv("TESTING", "").lower() in ("1", "true", "yes")

limiter = Limiter(
    key_func=get_remote_address,
    storage_uri="memory://" if IS_TESTING else RATE_LIMIT_STORAGE_URI,
    enabled=not IS_TESTING,
)


def auth_limit() -> str:
    """Limit string for login attempts; a very high limit when disabled."""
    if settings.RATE_LIMIT_AUTH <= 0:
        return "100000/minute"
    return f"{settings.RATE_LIMIT_AUTH}/minute"
