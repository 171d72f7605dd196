"""API routes package initialization."""
from app.api.routes import admin, health, home, login, subscriptions

__all__ = ["admin", "health", "home", "login", "subscriptions"]
