"""Common data schemas: recipes, meal plan entries and share snapshots."""

import uuid
from datetime import date, datetime, timezone
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

MealType = Literal["lunch", "dinner", "other"]

UNKNOWN_RECIPE_TITLE = "Onbekend recept"

# Alias so the `date` field below does not shadow the type
CalendarDay = date


def new_id() -> str:
    """Generate a fresh entity id."""
    return str(uuid.uuid4())


class CamelModel(BaseModel):
    """Base model that reads and writes camelCase keys on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict[str, Any]:
        """Dump as a JSON-compatible dict with camelCase keys."""
        return self.model_dump(mode="json", by_alias=True)


# =============================================================================
# Recipes and Meal Plan
# =============================================================================


class Ingredient(CamelModel):
    """One ingredient line on a recipe. Amount 0 means "to taste"."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    name: str = ""
    amount: float = 0.0
    unit: str = ""

    @field_validator("name", "unit", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> str:
        return value if isinstance(value, str) else ""

    @field_validator("amount", mode="before")
    @classmethod
    def _coerce_amount(cls, value: Any) -> float:
        if isinstance(value, bool):
            return 0.0
        if isinstance(value, (int, float)):
            return value
        if isinstance(value, str):
            try:
                return float(value.strip().replace(",", "."))
            except ValueError:
                return 0.0
        return 0.0


class Recipe(CamelModel):
    """A household recipe."""

    id: str
    household_id: str = ""
    created_by: str = ""
    title: str = UNKNOWN_RECIPE_TITLE
    description: str = ""
    ingredients: list[Ingredient] = Field(default_factory=list)
    base_servings: float = 2
    steps: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    prep_time_minutes: int | None = None


class MealPlanEntry(CamelModel):
    """One recipe scheduled in a meal slot on a calendar day."""

    id: str
    household_id: str = ""
    created_by: str = ""
    date: CalendarDay
    meal_type: MealType = "dinner"
    recipe_id: str
    servings: float = 2


# =============================================================================
# Share Snapshots
# =============================================================================


class ShareItem(CamelModel):
    """One line of an exported shopping list."""

    name: str
    amount: float
    unit: str


class ShareSnapshotInput(CamelModel):
    """Payload handed to the share collaborator."""

    title: str
    items: list[ShareItem]
    servings: int = 1
    source_week_start: str


class ShareSnapshotResult(CamelModel):
    """What the share collaborator returns after publishing."""

    token: str
    url: str
    expires_at: datetime
    title: str = ""


class ShareSnapshot(CamelModel):
    """A published, read-only snapshot with a fixed expiry."""

    token: str
    household_id: str
    created_by: str
    created_at: datetime
    expires_at: datetime
    title: str
    items: list[ShareItem]
    servings: int = 1
    source_week_start: str

    def is_expired(self, now: datetime | None = None) -> bool:
        """Expiry is checked on read; expired snapshots are never deleted."""
        now = now or datetime.now(timezone.utc)
        return now >= self.expires_at


# =============================================================================
# Tolerant decoding of stored documents
# =============================================================================


def _as_record(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _positive_number(value: Any, default: float) -> float:
    if isinstance(value, (int, float)) and not isinstance(value, bool) and value > 0:
        return value
    return default


def _string_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, str)]


def recipe_from_document(value: Any, household_id: str, user_id: str) -> Recipe:
    """
    Build a Recipe from a stored document, defaulting malformed fields.

    Documents written by older clients may miss fields or carry the wrong
    types; none of that is an error here.
    """
    data = _as_record(value)
    raw_ingredients = data.get("ingredients")
    ingredients = (
        [Ingredient.model_validate(item) for item in raw_ingredients if isinstance(item, dict)]
        if isinstance(raw_ingredients, list)
        else []
    )
    prep_time = data.get("prepTimeMinutes")

    return Recipe(
        id=data["id"] if isinstance(data.get("id"), str) else new_id(),
        household_id=household_id,
        created_by=data["createdBy"] if isinstance(data.get("createdBy"), str) else user_id,
        title=data["title"] if isinstance(data.get("title"), str) else UNKNOWN_RECIPE_TITLE,
        description=data["description"] if isinstance(data.get("description"), str) else "",
        ingredients=ingredients,
        base_servings=_positive_number(data.get("baseServings"), 2),
        steps=_string_list(data.get("steps")),
        tags=_string_list(data.get("tags")),
        prep_time_minutes=prep_time if isinstance(prep_time, int) else None,
    )


def meal_plan_entry_from_document(
    value: Any,
    household_id: str,
    user_id: str,
) -> MealPlanEntry:
    """Build a MealPlanEntry from a stored document, defaulting malformed fields."""
    data = _as_record(value)
    meal_type = data.get("mealType")

    entry_date = date.today()
    if isinstance(data.get("date"), str):
        try:
            entry_date = date.fromisoformat(data["date"][:10])
        except ValueError:
            pass

    return MealPlanEntry(
        id=data["id"] if isinstance(data.get("id"), str) else new_id(),
        household_id=household_id,
        created_by=data["createdBy"] if isinstance(data.get("createdBy"), str) else user_id,
        date=entry_date,
        meal_type=meal_type if meal_type in ("lunch", "other") else "dinner",
        recipe_id=data["recipeId"] if isinstance(data.get("recipeId"), str) else "",
        servings=_positive_number(data.get("servings"), 2),
    )
