"""Per-week record of which meals and ingredients are left out of the export.

The state is two id sets. A row is excluded when its meal or the row itself
is excluded, and a meal counts as excluded exactly when all of its rows are.
Every change goes through `reduce`, which keeps both sets consistent.
"""

import json
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date
from typing import Any

from pydantic import AliasChoices, BaseModel, Field, ValidationError, field_validator

from weekmenu.logging_config import get_logger
from weekmenu.plan.shopping_list import MealGroup, MealIngredient
from weekmenu.plan.week import week_key
from weekmenu.storage import KeyValueStore

logger = get_logger(__name__)

DEFAULT_STORAGE_PREFIX = "shopping:discarded:v2"


class InclusionStateNotLoadedError(Exception):
    """Raised when a week is changed before its stored state has loaded."""


@dataclass(frozen=True)
class InclusionState:
    """Excluded meal group ids and excluded meal ingredient ids."""

    excluded_meal_ids: frozenset[str] = frozenset()
    excluded_ingredient_ids: frozenset[str] = frozenset()

    @property
    def is_empty(self) -> bool:
        return not self.excluded_meal_ids and not self.excluded_ingredient_ids


EMPTY_STATE = InclusionState()


# =============================================================================
# Queries
# =============================================================================


def is_excluded(state: InclusionState, group: MealGroup, ingredient: MealIngredient) -> bool:
    """A row is excluded through its meal or on its own."""
    return group.id in state.excluded_meal_ids or ingredient.id in state.excluded_ingredient_ids


def is_meal_fully_excluded(state: InclusionState, group: MealGroup) -> bool:
    """True when every row of the meal is excluded (or, without rows, the meal itself)."""
    if not group.ingredients:
        return group.id in state.excluded_meal_ids
    return all(is_excluded(state, group, ingredient) for ingredient in group.ingredients)


@dataclass(frozen=True)
class MealStats:
    active: int
    excluded: int
    all_excluded: bool


@dataclass(frozen=True)
class InclusionSummary:
    """Counters shown above the per-meal list."""

    total_rows: int
    active_rows: int
    excluded_rows: int
    fully_excluded_meals: int
    meals: dict[str, MealStats] = field(default_factory=dict)


def summarize(groups: Iterable[MealGroup], state: InclusionState) -> InclusionSummary:
    meals: dict[str, MealStats] = {}
    total = active = 0

    for group in groups:
        group_active = sum(
            1 for ingredient in group.ingredients if not is_excluded(state, group, ingredient)
        )
        group_total = len(group.ingredients)
        meals[group.id] = MealStats(
            active=group_active,
            excluded=group_total - group_active,
            all_excluded=group_total > 0 and group_active == 0,
        )
        total += group_total
        active += group_active

    return InclusionSummary(
        total_rows=total,
        active_rows=active,
        excluded_rows=total - active,
        fully_excluded_meals=sum(1 for stats in meals.values() if stats.all_excluded),
        meals=meals,
    )


# =============================================================================
# Actions and Reducer
# =============================================================================


@dataclass(frozen=True)
class ToggleMeal:
    group: MealGroup


@dataclass(frozen=True)
class ToggleIngredient:
    group: MealGroup
    ingredient_id: str


@dataclass(frozen=True)
class MarkGroupsExcluded:
    groups: tuple[MealGroup, ...]


@dataclass(frozen=True)
class ResetWeek:
    pass


@dataclass(frozen=True)
class Reconcile:
    groups: tuple[MealGroup, ...]


InclusionAction = ToggleMeal | ToggleIngredient | MarkGroupsExcluded | ResetWeek | Reconcile


def _toggle_meal(state: InclusionState, group: MealGroup) -> InclusionState:
    meal_ids = set(state.excluded_meal_ids)
    ingredient_ids = set(state.excluded_ingredient_ids)

    if is_meal_fully_excluded(state, group):
        meal_ids.discard(group.id)
        ingredient_ids.difference_update(group.ingredient_ids)
    else:
        meal_ids.add(group.id)
        ingredient_ids.update(group.ingredient_ids)

    return InclusionState(frozenset(meal_ids), frozenset(ingredient_ids))


def _toggle_ingredient(
    state: InclusionState,
    group: MealGroup,
    ingredient_id: str,
) -> InclusionState:
    ingredient_ids = set(state.excluded_ingredient_ids)
    if ingredient_id in ingredient_ids:
        ingredient_ids.remove(ingredient_id)
    else:
        ingredient_ids.add(ingredient_id)

    meal_ids = set(state.excluded_meal_ids)
    if group.ingredients and all(item in ingredient_ids for item in group.ingredient_ids):
        meal_ids.add(group.id)
    else:
        meal_ids.discard(group.id)

    return InclusionState(frozenset(meal_ids), frozenset(ingredient_ids))


def _mark_groups_excluded(
    state: InclusionState,
    groups: Iterable[MealGroup],
) -> InclusionState:
    meal_ids = set(state.excluded_meal_ids)
    ingredient_ids = set(state.excluded_ingredient_ids)
    for group in groups:
        meal_ids.add(group.id)
        ingredient_ids.update(group.ingredient_ids)
    return InclusionState(frozenset(meal_ids), frozenset(ingredient_ids))


def _reconcile(state: InclusionState, groups: Iterable[MealGroup]) -> InclusionState:
    # The meal flag follows the row flags; a stored meal flag is not trusted
    meal_ids = set(state.excluded_meal_ids)
    for group in groups:
        if not group.ingredients:
            continue
        if all(item in state.excluded_ingredient_ids for item in group.ingredient_ids):
            meal_ids.add(group.id)
        else:
            meal_ids.discard(group.id)
    return InclusionState(frozenset(meal_ids), state.excluded_ingredient_ids)


def reduce(state: InclusionState, action: InclusionAction) -> InclusionState:
    """Apply one action and return the new state. Pure."""
    if isinstance(action, ToggleMeal):
        return _toggle_meal(state, action.group)
    if isinstance(action, ToggleIngredient):
        return _toggle_ingredient(state, action.group, action.ingredient_id)
    if isinstance(action, MarkGroupsExcluded):
        return _mark_groups_excluded(state, action.groups)
    if isinstance(action, ResetWeek):
        return EMPTY_STATE
    if isinstance(action, Reconcile):
        return _reconcile(state, action.groups)
    raise TypeError(f"Unknown inclusion action: {action!r}")


# =============================================================================
# Persistence Boundary
# =============================================================================


def storage_key(prefix: str, household_id: str, week_start: date) -> str:
    """``prefix:householdId:yyyy-MM-dd``"""
    return f"{prefix}:{household_id}:{week_key(week_start)}"


class InclusionPayload(BaseModel):
    """Stored shape. Older records used the "discarded" key names."""

    excluded_meal_ids: list[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("excludedMealIds", "discardedMealIds"),
    )
    excluded_ingredient_ids: list[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("excludedIngredientIds", "discardedIngredientIds"),
    )

    @field_validator("excluded_meal_ids", "excluded_ingredient_ids", mode="before")
    @classmethod
    def _string_members_only(cls, value: Any) -> list[str]:
        if not isinstance(value, list):
            return []
        return [item for item in value if isinstance(item, str)]


@dataclass(frozen=True)
class DecodedState:
    state: InclusionState


@dataclass(frozen=True)
class FallbackState:
    reason: str
    state: InclusionState = EMPTY_STATE


DecodeResult = DecodedState | FallbackState


def decode_state(raw: Any) -> DecodeResult:
    """
    Validate a stored record.

    Accepts a dict or its JSON text. Missing or wrong-typed arrays decode as
    empty; anything that is not an object at all falls back to empty state.
    """
    if raw is None:
        return FallbackState(reason="missing")

    if isinstance(raw, (str, bytes)):
        try:
            raw = json.loads(raw)
        except ValueError:
            return FallbackState(reason="invalid json")

    try:
        payload = InclusionPayload.model_validate(raw)
    except ValidationError as e:
        return FallbackState(reason=f"invalid shape: {e.error_count()} errors")

    return DecodedState(
        InclusionState(
            excluded_meal_ids=frozenset(payload.excluded_meal_ids),
            excluded_ingredient_ids=frozenset(payload.excluded_ingredient_ids),
        )
    )


def encode_state(state: InclusionState) -> dict[str, list[str]]:
    return {
        "excludedMealIds": sorted(state.excluded_meal_ids),
        "excludedIngredientIds": sorted(state.excluded_ingredient_ids),
    }


# =============================================================================
# Manager
# =============================================================================


class InclusionStateManager:
    """
    Holds the inclusion state of the active household week.

    `load` must finish before any change is accepted. Switching weeks while
    a load is in flight discards the older load's result. Every change is
    written through to the store right away.
    """

    def __init__(self, store: KeyValueStore, prefix: str = DEFAULT_STORAGE_PREFIX):
        self._store = store
        self._prefix = prefix
        self._state: InclusionState = EMPTY_STATE
        self._active_key: str | None = None
        self._loaded = False

    @property
    def state(self) -> InclusionState:
        return self._state

    @property
    def active_key(self) -> str | None:
        return self._active_key

    @property
    def loaded(self) -> bool:
        return self._loaded

    async def load(self, household_id: str, week_start: date) -> InclusionState:
        """Load (or reload) the state for one household week."""
        key = storage_key(self._prefix, household_id, week_start)
        self._active_key = key
        self._loaded = False
        self._state = EMPTY_STATE

        raw = await self._store.get(key)
        result = decode_state(raw)

        if self._active_key != key:
            logger.debug(f"Discarding stale inclusion state load for {key}")
            return result.state

        if isinstance(result, FallbackState) and raw is not None:
            logger.warning(f"Ignoring unreadable inclusion state for {key}: {result.reason}")

        self._state = result.state
        self._loaded = True
        return self._state

    def is_excluded(self, group: MealGroup, ingredient: MealIngredient) -> bool:
        return is_excluded(self._state, group, ingredient)

    async def toggle_meal(self, group: MealGroup) -> InclusionState:
        return await self.dispatch(ToggleMeal(group))

    async def toggle_ingredient(
        self,
        group: MealGroup,
        ingredient: MealIngredient | str,
    ) -> InclusionState:
        ingredient_id = ingredient if isinstance(ingredient, str) else ingredient.id
        return await self.dispatch(ToggleIngredient(group, ingredient_id))

    async def mark_groups_excluded(self, groups: Iterable[MealGroup]) -> InclusionState:
        return await self.dispatch(MarkGroupsExcluded(tuple(groups)))

    async def reset_week(self) -> InclusionState:
        return await self.dispatch(ResetWeek())

    async def reconcile(self, groups: Iterable[MealGroup]) -> InclusionState:
        """Re-derive meal flags from row flags; writes only if something changed."""
        self._require_loaded()
        new_state = reduce(self._state, Reconcile(tuple(groups)))
        if new_state != self._state:
            logger.info(f"Repaired inconsistent meal flags for {self._active_key}")
            return await self._commit(new_state)
        return self._state

    async def dispatch(self, action: InclusionAction) -> InclusionState:
        self._require_loaded()
        new_state = reduce(self._state, action)
        if isinstance(action, ResetWeek):
            self._state = new_state
            await self._store.remove(self._active_key)
            return self._state
        return await self._commit(new_state)

    async def _commit(self, new_state: InclusionState) -> InclusionState:
        self._state = new_state
        await self._store.set(self._active_key, encode_state(new_state))
        return self._state

    def _require_loaded(self) -> None:
        if self._active_key is None or not self._loaded:
            raise InclusionStateNotLoadedError(
                "Inclusion state for this week has not finished loading"
            )
