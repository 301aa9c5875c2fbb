"""Read-only access to a household's recipes and meal plan."""

from typing import Any, Protocol

from weekmenu.schemas import (
    MealPlanEntry,
    Recipe,
    meal_plan_entry_from_document,
    new_id,
    recipe_from_document,
)

LOCAL_USER_ID = "local-user"


class RecipeCatalog(Protocol):
    """Exposes the current recipes of a household."""

    async def list_recipes(self, household_id: str) -> list[Recipe]: ...


class MealPlanProvider(Protocol):
    """Exposes the current meal plan entries of a household."""

    async def list_entries(self, household_id: str) -> list[MealPlanEntry]: ...


class InMemoryHouseholdData:
    """
    Recipe catalog and meal plan kept in process, keyed by household.

    Recipes and entries are kept as stored documents and decoded on every
    read, so records written by older clients (missing fields, wrong types)
    come back with defaults instead of failing the whole week.
    """

    def __init__(self, user_id: str = LOCAL_USER_ID) -> None:
        self.user_id = user_id
        self._recipes: dict[str, dict[str, dict[str, Any]]] = {}
        self._entries: dict[str, list[Any]] = {}

    def add_recipe(self, recipe: Recipe) -> Recipe:
        self.add_recipe_document(recipe.household_id, recipe.to_wire())
        return recipe

    def add_recipe_document(self, household_id: str, document: Any) -> str:
        """Store a raw recipe document and return its id (assigned when missing)."""
        document = dict(document) if isinstance(document, dict) else {}
        if not isinstance(document.get("id"), str):
            document["id"] = new_id()
        self._recipes.setdefault(household_id, {})[document["id"]] = document
        return document["id"]

    def remove_recipe(self, household_id: str, recipe_id: str) -> None:
        """Delete a recipe. Meal plan entries that point at it are left alone."""
        self._recipes.get(household_id, {}).pop(recipe_id, None)

    def add_entry(self, entry: MealPlanEntry) -> MealPlanEntry:
        self.add_entry_document(entry.household_id, entry.to_wire())
        return entry

    def add_entry_document(self, household_id: str, document: Any) -> None:
        self._entries.setdefault(household_id, []).append(document)

    async def list_recipes(self, household_id: str) -> list[Recipe]:
        return [
            recipe_from_document(document, household_id, self.user_id)
            for document in self._recipes.get(household_id, {}).values()
        ]

    async def list_entries(self, household_id: str) -> list[MealPlanEntry]:
        return [
            meal_plan_entry_from_document(document, household_id, self.user_id)
            for document in self._entries.get(household_id, [])
        ]
