"""API v1 module."""

from minerr.api.v1.health import router as health_router
from minerr.api.v1.me import router as me_router
from minerr.api.v1.servers import router as servers_router

__all__ = [
    "health_router",
    "me_router",
    "servers_router",
]
