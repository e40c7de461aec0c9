"""
Core module - Configuration, database, security, and utilities.
"""

from mosque_directory.core.config import get_settings, settings
from mosque_directory.core.database import Base, close_db, init_db
from mosque_directory.core.redis import close_redis, init_redis
from mosque_directory.core.security import create_access_token, decode_token

__all__ = [
    # Config
    "settings",
    "get_settings",
    # Database
    "Base",
    "init_db",
    "close_db",
    # Redis
    "init_redis",
    "close_redis",
    # Security
    "create_access_token",
    "decode_token",
]
