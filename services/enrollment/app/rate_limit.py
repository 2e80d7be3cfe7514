"""
Global slowapi rate limiter.

Storage: Redis when REDIS_URL is set, in-memory otherwise (local dev
without Redis). Disabled entirely when ENV_NAME=development.
"""
import os

from slowapi import Limiter
from slowapi.util import get_remote_address

limiter = Limiter(
    key_func=get_remote_address,
    storage_uri=os.getenv("REDIS_URL", "memory://"),
    enabled=os.getenv("ENV_NAME", "development") != "development",
)
