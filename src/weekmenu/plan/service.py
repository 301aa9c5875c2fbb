"""Week shopping list operations used by the API."""

import asyncio
from dataclasses import dataclass
from datetime import date

from weekmenu.config import Settings, get_settings
from weekmenu.logging_config import LoggingContext, get_logger
from weekmenu.plan.inclusion import (
    InclusionState,
    InclusionStateManager,
    InclusionSummary,
    summarize,
)
from weekmenu.plan.shopping_list import MealGroup, ShoppingItem, build_meal_groups
from weekmenu.plan.snapshot import SnapshotBuilder, build_bring_deeplink, export_text
from weekmenu.plan.week import week_interval, week_key
from weekmenu.providers import MealPlanProvider, RecipeCatalog
from weekmenu.schemas import ShareSnapshotResult
from weekmenu.share.base import ShareCollaborator, ShareUnavailableError
from weekmenu.storage import KeyValueStore

logger = get_logger(__name__)


class MealGroupNotFoundError(LookupError):
    """Raised when a meal or ingredient id is not part of the week."""


class ExportInProgressError(Exception):
    """Raised when an export for the same week is already running."""


@dataclass
class WeekShoppingList:
    """Everything needed to render one week."""

    week_start: date
    week_end: date
    groups: list[MealGroup]
    state: InclusionState
    summary: InclusionSummary
    items: list[ShoppingItem]


@dataclass
class ExportResult:
    share: ShareSnapshotResult
    deeplink_url: str


class ShoppingListService:
    """
    Ties the meal plan, inclusion state and share collaborator together.

    Operations on the same household week run one at a time, so a change is
    never computed from state that another request is about to overwrite.
    """

    def __init__(
        self,
        catalog: RecipeCatalog,
        meal_plan: MealPlanProvider,
        store: KeyValueStore,
        share: ShareCollaborator,
        settings: Settings | None = None,
    ):
        self.catalog = catalog
        self.meal_plan = meal_plan
        self.store = store
        self.settings = settings or get_settings()
        self.snapshots = SnapshotBuilder(share, locale=self.settings.locale)
        self._exports_in_flight: set[tuple[str, str]] = set()
        self._week_locks: dict[tuple[str, str], asyncio.Lock] = {}

    def _week_lock(self, household_id: str, week_start: date) -> asyncio.Lock:
        key = (household_id, week_key(week_start))
        lock = self._week_locks.get(key)
        if lock is None:
            lock = self._week_locks[key] = asyncio.Lock()
        return lock

    async def _load_groups(self, household_id: str, week_start: date) -> list[MealGroup]:
        start, end = week_interval(week_start)
        recipes = await self.catalog.list_recipes(household_id)
        entries = await self.meal_plan.list_entries(household_id)
        return build_meal_groups(entries, recipes, start, end)

    async def _open_week(
        self,
        household_id: str,
        week_start: date,
    ) -> tuple[list[MealGroup], InclusionStateManager]:
        groups = await self._load_groups(household_id, week_start)
        manager = InclusionStateManager(self.store, self.settings.inclusion_storage_prefix)
        await manager.load(household_id, week_start)
        await manager.reconcile(groups)
        return groups, manager

    def _view(
        self,
        week_start: date,
        groups: list[MealGroup],
        state: InclusionState,
    ) -> WeekShoppingList:
        start, end = week_interval(week_start)
        return WeekShoppingList(
            week_start=start,
            week_end=end,
            groups=groups,
            state=state,
            summary=summarize(groups, state),
            items=self.snapshots.included_items(groups, state),
        )

    @staticmethod
    def _find_group(groups: list[MealGroup], group_id: str) -> MealGroup:
        for group in groups:
            if group.id == group_id:
                return group
        raise MealGroupNotFoundError(f"Meal {group_id} is not planned this week")

    async def get_week(self, household_id: str, week_start: date) -> WeekShoppingList:
        with LoggingContext(household_id=household_id, week_start=week_key(week_start)):
            async with self._week_lock(household_id, week_start):
                groups, manager = await self._open_week(household_id, week_start)
                return self._view(week_start, groups, manager.state)

    async def toggle_meal(
        self,
        household_id: str,
        week_start: date,
        group_id: str,
    ) -> WeekShoppingList:
        with LoggingContext(household_id=household_id, week_start=week_key(week_start)):
            async with self._week_lock(household_id, week_start):
                groups, manager = await self._open_week(household_id, week_start)
                group = self._find_group(groups, group_id)
                state = await manager.toggle_meal(group)
                logger.debug(f"Toggled meal {group_id}")
                return self._view(week_start, groups, state)

    async def toggle_ingredient(
        self,
        household_id: str,
        week_start: date,
        group_id: str,
        ingredient_id: str,
    ) -> WeekShoppingList:
        with LoggingContext(household_id=household_id, week_start=week_key(week_start)):
            async with self._week_lock(household_id, week_start):
                groups, manager = await self._open_week(household_id, week_start)
                group = self._find_group(groups, group_id)
                if group.find_ingredient(ingredient_id) is None:
                    raise MealGroupNotFoundError(
                        f"Ingredient {ingredient_id} is not part of {group_id}"
                    )
                state = await manager.toggle_ingredient(group, ingredient_id)
                logger.debug(f"Toggled ingredient {ingredient_id}")
                return self._view(week_start, groups, state)

    async def reset_week(self, household_id: str, week_start: date) -> WeekShoppingList:
        with LoggingContext(household_id=household_id, week_start=week_key(week_start)):
            async with self._week_lock(household_id, week_start):
                groups, manager = await self._open_week(household_id, week_start)
                state = await manager.reset_week()
                logger.info("Reset inclusion state")
                return self._view(week_start, groups, state)

    async def export_text(self, household_id: str, week_start: date) -> str:
        week = await self.get_week(household_id, week_start)
        return export_text(week.items)

    async def export_week(
        self,
        household_id: str,
        user_id: str,
        week_start: date,
    ) -> ExportResult:
        """
        Publish the included rows and then mark the whole week as exported.

        Toggles for the same week wait until the export has finished, so a
        row changed during the export is not lost when the week is marked.

        Raises:
            ExportInProgressError: If this week is already being exported.
            ShareUnavailableError: In local-only mode.
            EmptySnapshotError: If nothing is selected.
            ShareError: If the collaborator fails.
        """
        if self.settings.is_local_only:
            raise ShareUnavailableError("Sharing is not available in local-only mode")

        export_key = (household_id, week_key(week_start))
        if export_key in self._exports_in_flight:
            raise ExportInProgressError("An export for this week is already running")

        self._exports_in_flight.add(export_key)
        try:
            with LoggingContext(household_id=household_id, week_start=week_key(week_start)):
                async with self._week_lock(household_id, week_start):
                    groups, manager = await self._open_week(household_id, week_start)
                    share = await self.snapshots.publish(
                        household_id, user_id, groups, manager.state, week_start
                    )
                    await manager.mark_groups_excluded(groups)
                    logger.info(f"Exported week as snapshot {share.token}")
        finally:
            self._exports_in_flight.discard(export_key)

        return ExportResult(
            share=share,
            deeplink_url=build_bring_deeplink(share.url, self.settings.bring_deeplink_url),
        )
