"""In-process share collaborator."""

import uuid
from datetime import datetime, timedelta, timezone

from weekmenu.logging_config import get_logger
from weekmenu.schemas import ShareSnapshot, ShareSnapshotInput, ShareSnapshotResult
from weekmenu.share.base import ShareCollaborator

logger = get_logger(__name__)

DEFAULT_TTL = timedelta(hours=24)


def share_url(base_url: str, token: str) -> str:
    return f"{base_url.rstrip('/')}/share/{token}"


class InMemoryShareCollaborator(ShareCollaborator):
    """
    Keeps published snapshots in a dict.

    Snapshots expire a fixed time after creation. Expiry is checked when a
    snapshot is read; nothing is ever deleted.
    """

    def __init__(self, base_url: str, ttl: timedelta = DEFAULT_TTL):
        self.base_url = base_url
        self.ttl = ttl
        self._snapshots: dict[str, ShareSnapshot] = {}

    @property
    def name(self) -> str:
        return "memory"

    async def publish(
        self,
        household_id: str,
        user_id: str,
        payload: ShareSnapshotInput,
    ) -> ShareSnapshotResult:
        token = uuid.uuid4().hex
        created_at = datetime.now(timezone.utc)
        snapshot = ShareSnapshot(
            token=token,
            household_id=household_id,
            created_by=user_id,
            created_at=created_at,
            expires_at=created_at + self.ttl,
            title=payload.title,
            items=payload.items,
            servings=payload.servings,
            source_week_start=payload.source_week_start,
        )
        self._snapshots[token] = snapshot
        logger.info(f"Published snapshot {token} with {len(payload.items)} items")

        return ShareSnapshotResult(
            token=token,
            url=share_url(self.base_url, token),
            expires_at=snapshot.expires_at,
            title=payload.title,
        )

    def get(self, token: str, now: datetime | None = None) -> ShareSnapshot | None:
        """Return the snapshot, or None when unknown or expired."""
        snapshot = self._snapshots.get(token)
        if snapshot is None or snapshot.is_expired(now):
            return None
        return snapshot
