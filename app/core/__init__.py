"""Core package initialization."""
from app.core.config import Settings, get_settings
from app.core.database import Base, get_db, init_db
from app.core.redis import create_redis, close_redis

__all__ = ["Settings", "get_settings", "Base", "get_db", "init_db", "create_redis", "close_redis"]
