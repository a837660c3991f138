"""API routes package."""

from ingestor.routes.file_routes import router as file_router
from ingestor.routes.config_routes import router as config_router

__all__ = ["file_router", "config_router"]
