"""Shopping list aggregation, inclusion state and export."""

from weekmenu.plan.inclusion import (
    EMPTY_STATE,
    InclusionState,
    InclusionStateManager,
    InclusionStateNotLoadedError,
)
from weekmenu.plan.service import (
    ExportInProgressError,
    MealGroupNotFoundError,
    ShoppingListService,
)
from weekmenu.plan.shopping_list import (
    MealGroup,
    MealIngredient,
    ShoppingItem,
    build_meal_groups,
    build_shopping_list,
)
from weekmenu.plan.snapshot import EmptySnapshotError, SnapshotBuilder

__all__ = [
    "EMPTY_STATE",
    "EmptySnapshotError",
    "ExportInProgressError",
    "InclusionState",
    "InclusionStateManager",
    "InclusionStateNotLoadedError",
    "MealGroup",
    "MealGroupNotFoundError",
    "MealIngredient",
    "ShoppingItem",
    "ShoppingListService",
    "SnapshotBuilder",
    "build_meal_groups",
    "build_shopping_list",
]
