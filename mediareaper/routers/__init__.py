from mediareaper.routers.api import router as api_router
from mediareaper.routers.connections import router as connections_router

__all__ = ["api_router", "connections_router"]
