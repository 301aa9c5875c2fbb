"""Share collaborator interface for publishing shopping list snapshots."""

from abc import ABC, abstractmethod
from typing import Any

from weekmenu.schemas import ShareSnapshotInput, ShareSnapshotResult


class ShareError(Exception):
    """Base exception for share collaborator failures."""

    def __init__(self, message: str, status_code: int | None = None, response: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.response = response


class ShareUnavailableError(ShareError):
    """Raised when sharing is not possible in the current operating mode."""


class ShareCollaborator(ABC):
    """Abstract base class for services that publish snapshots."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Return collaborator name for logging and identification."""

    @property
    def available(self) -> bool:
        """Whether publish can be attempted at all."""
        return True

    @abstractmethod
    async def publish(
        self,
        household_id: str,
        user_id: str,
        payload: ShareSnapshotInput,
    ) -> ShareSnapshotResult:
        """
        Publish a snapshot.

        Args:
            household_id: Household that owns the snapshot.
            user_id: User who triggered the export.
            payload: Title, items and week metadata.

        Returns:
            Token, public URL and expiry of the published snapshot.

        Raises:
            ShareError: If the snapshot could not be published.
        """


class UnavailableShareCollaborator(ShareCollaborator):
    """Stand-in for local-only mode, where nothing can be shared."""

    @property
    def name(self) -> str:
        return "unavailable"

    @property
    def available(self) -> bool:
        return False

    async def publish(
        self,
        household_id: str,
        user_id: str,
        payload: ShareSnapshotInput,
    ) -> ShareSnapshotResult:
        raise ShareUnavailableError("Sharing is not available in local-only mode")
