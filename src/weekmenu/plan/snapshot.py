"""Turn the included rows of a week into an exportable snapshot."""

from collections.abc import Iterable
from datetime import date
from urllib.parse import quote

from babel.dates import format_date

from weekmenu.logging_config import get_logger
from weekmenu.normalize.units import DEFAULT_LOCALE, resolve_locale
from weekmenu.plan.inclusion import InclusionState, is_excluded
from weekmenu.plan.shopping_list import MealGroup, ShoppingItem, build_shopping_list
from weekmenu.plan.week import week_key
from weekmenu.schemas import ShareItem, ShareSnapshotInput, ShareSnapshotResult
from weekmenu.share.base import ShareCollaborator, ShareUnavailableError

logger = get_logger(__name__)

BRING_DEEPLINK_URL = "https://api.getbring.com/rest/bringrecipes/deeplink"

# Characters encodeURIComponent leaves alone
_URI_COMPONENT_SAFE = "-_.!~*'()"


class EmptySnapshotError(Exception):
    """Raised when there is nothing left to export for the week."""

    def __init__(self, message: str = "There are no selected groceries to export."):
        super().__init__(message)


def snapshot_title(week_start: date, locale: str = DEFAULT_LOCALE) -> str:
    day = format_date(week_start, format="d-M-y", locale=resolve_locale(locale))
    return f"Boodschappen {day}"


def build_bring_deeplink(share_url: str, deeplink_url: str = BRING_DEEPLINK_URL) -> str:
    """Deep link that makes the grocery app import the published snapshot."""
    encoded = quote(share_url, safe=_URI_COMPONENT_SAFE)
    return f"{deeplink_url}?url={encoded}&source=web&baseQuantity=1&requestedQuantity=1"


def export_text(items: Iterable[ShoppingItem]) -> str:
    """Plain-text list, one "<amount> <unit> <name>" line per item."""
    return "\n".join(item.display for item in items)


class SnapshotBuilder:
    """Shapes the export payload and hands it to a share collaborator."""

    def __init__(self, collaborator: ShareCollaborator, locale: str = DEFAULT_LOCALE):
        self.collaborator = collaborator
        self.locale = locale

    def included_items(
        self,
        groups: Iterable[MealGroup],
        state: InclusionState,
    ) -> list[ShoppingItem]:
        return build_shopping_list(
            groups,
            is_excluded=lambda group, ingredient: is_excluded(state, group, ingredient),
            locale=self.locale,
        )

    def build_payload(
        self,
        groups: Iterable[MealGroup],
        state: InclusionState,
        week_start: date,
    ) -> ShareSnapshotInput:
        """
        Merge included rows across all meals and round each total.

        Raises:
            EmptySnapshotError: If every row is excluded or the week is empty.
        """
        items = self.included_items(groups, state)
        if not items:
            raise EmptySnapshotError()

        return ShareSnapshotInput(
            title=snapshot_title(week_start, self.locale),
            items=[
                ShareItem(
                    name=item.name,
                    amount=item.quantity.rounded_amount,
                    unit=item.unit,
                )
                for item in items
            ],
            servings=1,
            source_week_start=week_key(week_start),
        )

    async def publish(
        self,
        household_id: str,
        user_id: str,
        groups: Iterable[MealGroup],
        state: InclusionState,
        week_start: date,
    ) -> ShareSnapshotResult:
        """
        Build the payload and publish it.

        Availability and emptiness are checked before the collaborator is
        called. Collaborator failures propagate as ShareError.
        """
        if not self.collaborator.available:
            raise ShareUnavailableError("Sharing is not available in local-only mode")

        payload = self.build_payload(groups, state, week_start)
        logger.info(
            f"Publishing {len(payload.items)} items for week {payload.source_week_start} "
            f"via {self.collaborator.name}"
        )
        return await self.collaborator.publish(household_id, user_id, payload)
