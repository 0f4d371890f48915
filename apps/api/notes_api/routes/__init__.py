"""Route modules."""

from .notes import router as notes_router
from .users import router as users_router

__all__ = ["notes_router", "users_router"]
