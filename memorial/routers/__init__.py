"""API routers for Memorial Console."""

from memorial.routers import backup, export, import_router

__all__ = ["backup", "export", "import_router"]
