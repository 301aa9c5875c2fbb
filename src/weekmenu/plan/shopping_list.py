"""Shopping list generation from a week of planned meals."""

import math
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import date

from weekmenu.logging_config import get_logger
from weekmenu.normalize.units import (
    DEFAULT_LOCALE,
    HumanQuantity,
    collation_key,
    normalized_ingredient_key,
    to_human_quantity,
)
from weekmenu.schemas import MealPlanEntry, MealType, Recipe

logger = get_logger(__name__)

MEAL_TYPE_ORDER: dict[MealType, int] = {
    "lunch": 0,
    "dinner": 1,
    "other": 2,
}

MEAL_TYPE_LABEL: dict[MealType, str] = {
    "lunch": "Lunch",
    "dinner": "Diner",
    "other": "Anders",
}


def meal_group_id(day: date, meal_type: str, recipe_id: str) -> str:
    """Identity of one recipe in one meal slot: ``date::mealType::recipeId``."""
    return f"{day.isoformat()}::{meal_type}::{recipe_id}"


def meal_ingredient_id(group_id: str, normalized_key: str) -> str:
    """Identity of one merged ingredient line within a meal group."""
    return f"{group_id}::{normalized_key}"


def resolve_ingredient_amount(amount: float) -> float:
    """Amounts that are zero, negative or not finite count as one unit."""
    if isinstance(amount, (int, float)) and math.isfinite(amount) and amount > 0:
        return float(amount)
    return 1.0


@dataclass
class MealIngredient:
    """One ingredient line within a meal, after merging duplicates."""

    id: str
    normalized_key: str
    name: str
    unit: str
    amount: float

    def human_quantity(self, locale: str = DEFAULT_LOCALE) -> HumanQuantity:
        return to_human_quantity(self.amount, self.unit, locale)


@dataclass
class MealGroup:
    """One recipe planned for one meal slot on one day."""

    id: str
    date: date
    meal_type: MealType
    recipe_id: str
    title: str
    servings: float
    ingredients: list[MealIngredient] = field(default_factory=list)

    @property
    def ingredient_ids(self) -> list[str]:
        return [ingredient.id for ingredient in self.ingredients]

    @property
    def label(self) -> str:
        return MEAL_TYPE_LABEL[self.meal_type]

    def find_ingredient(self, ingredient_id: str) -> MealIngredient | None:
        for ingredient in self.ingredients:
            if ingredient.id == ingredient_id:
                return ingredient
        return None


@dataclass
class ShoppingItem:
    """A single line of the flat shopping list."""

    name: str
    unit: str
    normalized_key: str
    amount: float
    quantity: HumanQuantity
    sources: list[str] = field(default_factory=list)  # meal group ids

    @property
    def display(self) -> str:
        return f"{self.quantity.display_with_unit} {self.name}".strip()


# =============================================================================
# Aggregation
# =============================================================================


def _scaling_factor(entry: MealPlanEntry, recipe: Recipe) -> float:
    base_servings = recipe.base_servings if recipe.base_servings > 0 else 1
    return entry.servings / base_servings


def _add_scaled_ingredients(
    group: MealGroup,
    ingredients_by_key: dict[str, MealIngredient],
    recipe: Recipe,
    scaling: float,
) -> None:
    for ingredient in recipe.ingredients:
        key = normalized_ingredient_key(ingredient.name, ingredient.unit)
        scaled_amount = resolve_ingredient_amount(ingredient.amount) * scaling

        existing = ingredients_by_key.get(key)
        if existing:
            existing.amount += scaled_amount
            continue

        ingredients_by_key[key] = MealIngredient(
            id=meal_ingredient_id(group.id, key),
            normalized_key=key,
            name=ingredient.name,
            unit=ingredient.unit,
            amount=scaled_amount,
        )


def _group_sort_key(group: MealGroup) -> tuple:
    return (group.date, MEAL_TYPE_ORDER[group.meal_type], collation_key(group.title))


def build_meal_groups(
    meal_plan: Iterable[MealPlanEntry],
    recipes: Iterable[Recipe],
    start: date,
    end: date,
) -> list[MealGroup]:
    """
    Turn the meal plan for [start, end] into per-meal ingredient groups.

    Each entry's recipe is scaled by planned servings over base servings,
    and ingredients sharing a name+unit key within one meal are summed.
    Entries whose recipe no longer exists are skipped. Entries that share
    the same date, meal type and recipe fold into a single group.

    The result is recomputed from scratch on every call and is ordered by
    date, then meal type (lunch, dinner, other), then recipe title.
    """
    recipes_by_id = {recipe.id: recipe for recipe in recipes}
    groups: dict[str, MealGroup] = {}
    ingredient_maps: dict[str, dict[str, MealIngredient]] = {}

    for entry in meal_plan:
        if not start <= entry.date <= end:
            continue

        recipe = recipes_by_id.get(entry.recipe_id)
        if recipe is None:
            logger.debug(f"Skipping meal plan entry {entry.id}: recipe {entry.recipe_id} not found")
            continue

        group_id = meal_group_id(entry.date, entry.meal_type, entry.recipe_id)
        group = groups.get(group_id)
        if group is None:
            group = MealGroup(
                id=group_id,
                date=entry.date,
                meal_type=entry.meal_type,
                recipe_id=entry.recipe_id,
                title=recipe.title,
                servings=entry.servings,
            )
            groups[group_id] = group
            ingredient_maps[group_id] = {}
        else:
            group.servings += entry.servings

        _add_scaled_ingredients(
            group, ingredient_maps[group_id], recipe, _scaling_factor(entry, recipe)
        )

    for group_id, group in groups.items():
        group.ingredients = sorted(
            ingredient_maps[group_id].values(),
            key=lambda item: collation_key(item.name),
        )

    return sorted(groups.values(), key=_group_sort_key)


def build_shopping_list(
    groups: Iterable[MealGroup],
    is_excluded: Callable[[MealGroup, MealIngredient], bool] | None = None,
    locale: str = DEFAULT_LOCALE,
) -> list[ShoppingItem]:
    """
    Merge ingredients across all meals into one flat, sorted list.

    Rows for which `is_excluded` returns True are left out. The first
    spelling seen for a name+unit key is the one displayed.
    """
    merged: dict[str, MealIngredient] = {}
    sources: dict[str, list[str]] = {}

    for group in groups:
        for ingredient in group.ingredients:
            if is_excluded is not None and is_excluded(group, ingredient):
                continue

            key = ingredient.normalized_key
            existing = merged.get(key)
            if existing:
                existing.amount += ingredient.amount
                if group.id not in sources[key]:
                    sources[key].append(group.id)
                continue

            merged[key] = MealIngredient(
                id=key,
                normalized_key=key,
                name=ingredient.name,
                unit=ingredient.unit,
                amount=ingredient.amount,
            )
            sources[key] = [group.id]

    items = [
        ShoppingItem(
            name=line.name,
            unit=line.unit,
            normalized_key=key,
            amount=line.amount,
            quantity=line.human_quantity(locale),
            sources=sources[key],
        )
        for key, line in merged.items()
    ]
    return sorted(items, key=lambda item: collation_key(item.name))
