"""FastAPI routers acting as controllers in the MVC architecture."""

from . import jobs

__all__ = ["jobs"]
