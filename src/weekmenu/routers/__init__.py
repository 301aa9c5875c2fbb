"""API routers for the weekmenu application."""

from weekmenu.routers.shopping_list import router as shopping_list_router
from weekmenu.routers.shopping_list import shares_router

__all__ = [
    "shares_router",
    "shopping_list_router",
]
