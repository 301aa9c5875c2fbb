"""Pytest configuration and shared fixtures."""

from datetime import date

import pytest

from weekmenu.config import Settings
from weekmenu.plan.shopping_list import MealGroup, MealIngredient, meal_group_id, meal_ingredient_id
from weekmenu.providers import InMemoryHouseholdData
from weekmenu.schemas import Ingredient, MealPlanEntry, Recipe
from weekmenu.storage import InMemoryKeyValueStore

HOUSEHOLD_ID = "household-1"
WEEK_START = date(2025, 10, 6)  # a Monday

# =============================================================================
# Builders
# =============================================================================


def make_recipe(recipe_id, title, ingredients, base_servings=2, household_id=HOUSEHOLD_ID):
    """Recipe from (name, amount, unit) tuples."""
    return Recipe(
        id=recipe_id,
        household_id=household_id,
        title=title,
        base_servings=base_servings,
        ingredients=[
            Ingredient(name=name, amount=amount, unit=unit) for name, amount, unit in ingredients
        ],
    )


def make_entry(recipe_id, day, meal_type="dinner", servings=2, household_id=HOUSEHOLD_ID):
    return MealPlanEntry(
        id=f"entry-{recipe_id}-{day.isoformat()}-{meal_type}",
        household_id=household_id,
        date=day,
        meal_type=meal_type,
        recipe_id=recipe_id,
        servings=servings,
    )


def make_group(name_count=2, recipe_id="r1", day=WEEK_START, meal_type="dinner"):
    """Meal group with `name_count` ingredient rows, built by hand."""
    group_id = meal_group_id(day, meal_type, recipe_id)
    ingredients = []
    for index in range(name_count):
        key = f"ingredient {index}::g"
        ingredients.append(
            MealIngredient(
                id=meal_ingredient_id(group_id, key),
                normalized_key=key,
                name=f"Ingredient {index}",
                unit="g",
                amount=100.0,
            )
        )
    return MealGroup(
        id=group_id,
        date=day,
        meal_type=meal_type,
        recipe_id=recipe_id,
        title=f"Recipe {recipe_id}",
        servings=2,
        ingredients=ingredients,
    )


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def week_start():
    return WEEK_START


@pytest.fixture
def rice_recipe():
    """R1: serves 2, 200 g rice and one onion."""
    return make_recipe("r1", "Nasi", [("Rijst", 200, "g"), ("Ui", 1, "stuk")])


@pytest.fixture
def soup_recipe():
    """R2: serves 1, 75 g rice and a little stock."""
    return make_recipe(
        "r2",
        "Groentesoep",
        [("rijst", 75, "G"), ("Bouillon", 0.5, "l"), ("Zout", 0, "snufje")],
        base_servings=1,
    )


@pytest.fixture
def household_data(rice_recipe, soup_recipe):
    data = InMemoryHouseholdData()
    data.add_recipe(rice_recipe)
    data.add_recipe(soup_recipe)
    data.add_entry(make_entry("r1", date(2025, 10, 8), "dinner", servings=4))
    data.add_entry(make_entry("r2", date(2025, 10, 9), "lunch", servings=2))
    return data


@pytest.fixture
def kv_store():
    return InMemoryKeyValueStore()


@pytest.fixture
def settings():
    return Settings(
        storage_mode="remote",
        share_api_url="",
        share_base_url="https://weekmenu.example",
        locale="nl-NL",
    )
