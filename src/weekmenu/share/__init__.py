"""Collaborators that publish shopping list snapshots."""

from weekmenu.share.base import (
    ShareCollaborator,
    ShareError,
    ShareUnavailableError,
    UnavailableShareCollaborator,
)
from weekmenu.share.http import HttpShareClient
from weekmenu.share.memory import InMemoryShareCollaborator

__all__ = [
    "HttpShareClient",
    "InMemoryShareCollaborator",
    "ShareCollaborator",
    "ShareError",
    "ShareUnavailableError",
    "UnavailableShareCollaborator",
]
