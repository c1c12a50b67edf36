"""
API route modules.

Each module defines routes for one domain area.
"""

from routes.line_items import router as line_items_router

__all__ = [
    "line_items_router",
]
