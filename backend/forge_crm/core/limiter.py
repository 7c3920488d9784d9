"""Shared slowapi limiter, keyed on client address.

Storage defaults to in-process memory; point RATE_LIMIT_STORAGE_URI at
Redis when running more than one gunicorn worker.
"""
from slowapi import Limiter
from slowapi.util import get_remote_address

from forge_crm.core.config import settings

limiter = Limiter(key_func=get_remote_address, storage_uri=settings.RATE_LIMIT_STORAGE_URI)
