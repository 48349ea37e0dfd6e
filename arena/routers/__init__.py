"""API routers."""
from arena.routers import admin, health, matches, wallet

__all__ = [
    "admin",
    "health",
    "matches",
    "wallet",
]
