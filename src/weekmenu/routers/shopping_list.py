"""API routes for the weekly shopping list and its export."""

from datetime import date, datetime

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel, Field

from weekmenu.logging_config import get_logger
from weekmenu.normalize.units import HumanQuantity
from weekmenu.plan.inclusion import is_excluded
from weekmenu.plan.service import (
    ExportInProgressError,
    MealGroupNotFoundError,
    ShoppingListService,
    WeekShoppingList,
)
from weekmenu.plan.snapshot import EmptySnapshotError
from weekmenu.plan.week import parse_week_start, shift_week
from weekmenu.schemas import ShareSnapshot
from weekmenu.share.base import ShareError, ShareUnavailableError
from weekmenu.share.memory import InMemoryShareCollaborator

logger = get_logger(__name__)

router = APIRouter(
    prefix="/api/v1/households/{household_id}/weeks/{week_start}",
    tags=["shopping-list"],
)
shares_router = APIRouter(prefix="/api/v1/shares", tags=["shares"])


# =============================================================================
# Request/Response Schemas
# =============================================================================


class QuantitySchema(BaseModel):
    """Rounded quantity as shown to the user."""

    rounded_amount: float
    unit: str
    category: str
    is_approximate: bool
    display: str


class MealIngredientSchema(BaseModel):
    id: str
    name: str
    unit: str
    amount: float
    excluded: bool
    quantity: QuantitySchema


class MealGroupSchema(BaseModel):
    id: str
    date: date
    meal_type: str
    label: str
    recipe_id: str
    title: str
    servings: float
    active_count: int
    excluded_count: int
    all_excluded: bool
    ingredients: list[MealIngredientSchema]


class ShoppingListItemSchema(BaseModel):
    name: str
    unit: str
    amount: float
    display: str
    quantity: QuantitySchema
    sources: list[str] = Field(default_factory=list)


class WeekShoppingListResponse(BaseModel):
    """Per-meal groups plus the merged list of what will be exported."""

    week_start: date
    week_end: date
    previous_week: date
    next_week: date
    total_rows: int
    active_rows: int
    excluded_rows: int
    fully_excluded_meals: int
    groups: list[MealGroupSchema]
    items: list[ShoppingListItemSchema]


class IngredientToggleRequest(BaseModel):
    group_id: str
    ingredient_id: str


class ExportRequest(BaseModel):
    user_id: str = Field(default="anonymous")


class ExportResponse(BaseModel):
    token: str
    url: str
    expires_at: datetime
    title: str
    deeplink_url: str


# =============================================================================
# Helper Functions
# =============================================================================


def get_shopping_service(request: Request) -> ShoppingListService:
    """Service instance wired up in the application lifespan."""
    return request.app.state.shopping_service


def resolve_week_start(week_start: str) -> date:
    """Week start from the path; unparseable text means the current week."""
    return parse_week_start(week_start)


def _quantity(quantity: HumanQuantity) -> QuantitySchema:
    return QuantitySchema(
        rounded_amount=quantity.rounded_amount,
        unit=quantity.unit,
        category=quantity.category,
        is_approximate=quantity.is_approximate,
        display=quantity.display_with_unit,
    )


def to_response(week: WeekShoppingList, locale: str) -> WeekShoppingListResponse:
    groups = []
    for group in week.groups:
        stats = week.summary.meals[group.id]
        groups.append(
            MealGroupSchema(
                id=group.id,
                date=group.date,
                meal_type=group.meal_type,
                label=group.label,
                recipe_id=group.recipe_id,
                title=group.title,
                servings=group.servings,
                active_count=stats.active,
                excluded_count=stats.excluded,
                all_excluded=stats.all_excluded,
                ingredients=[
                    MealIngredientSchema(
                        id=ingredient.id,
                        name=ingredient.name,
                        unit=ingredient.unit,
                        amount=ingredient.amount,
                        excluded=is_excluded(week.state, group, ingredient),
                        quantity=_quantity(ingredient.human_quantity(locale)),
                    )
                    for ingredient in group.ingredients
                ],
            )
        )

    return WeekShoppingListResponse(
        week_start=week.week_start,
        week_end=week.week_end,
        previous_week=shift_week(week.week_start, -1),
        next_week=shift_week(week.week_start, 1),
        total_rows=week.summary.total_rows,
        active_rows=week.summary.active_rows,
        excluded_rows=week.summary.excluded_rows,
        fully_excluded_meals=week.summary.fully_excluded_meals,
        groups=groups,
        items=[
            ShoppingListItemSchema(
                name=item.name,
                unit=item.unit,
                amount=item.amount,
                display=item.display,
                quantity=_quantity(item.quantity),
                sources=item.sources,
            )
            for item in week.items
        ],
    )


# =============================================================================
# Endpoints
# =============================================================================


@router.get("/shopping-list", response_model=WeekShoppingListResponse)
async def get_shopping_list(
    household_id: str,
    week_start: date = Depends(resolve_week_start),
    service: ShoppingListService = Depends(get_shopping_service),
) -> WeekShoppingListResponse:
    """Per-meal ingredient groups and the merged list for one week."""
    week = await service.get_week(household_id, week_start)
    return to_response(week, service.settings.locale)


@router.post("/meals/{group_id}/toggle", response_model=WeekShoppingListResponse)
async def toggle_meal(
    household_id: str,
    group_id: str,
    week_start: date = Depends(resolve_week_start),
    service: ShoppingListService = Depends(get_shopping_service),
) -> WeekShoppingListResponse:
    """Exclude a whole meal, or include it again if it was fully excluded."""
    try:
        week = await service.toggle_meal(household_id, week_start, group_id)
    except MealGroupNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
    return to_response(week, service.settings.locale)


@router.post("/ingredients/toggle", response_model=WeekShoppingListResponse)
async def toggle_ingredient(
    household_id: str,
    request: IngredientToggleRequest,
    week_start: date = Depends(resolve_week_start),
    service: ShoppingListService = Depends(get_shopping_service),
) -> WeekShoppingListResponse:
    """Flip a single ingredient row."""
    try:
        week = await service.toggle_ingredient(
            household_id, week_start, request.group_id, request.ingredient_id
        )
    except MealGroupNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
    return to_response(week, service.settings.locale)


@router.post("/reset", response_model=WeekShoppingListResponse)
async def reset_week(
    household_id: str,
    week_start: date = Depends(resolve_week_start),
    service: ShoppingListService = Depends(get_shopping_service),
) -> WeekShoppingListResponse:
    """Include everything again and forget the stored state for this week."""
    week = await service.reset_week(household_id, week_start)
    return to_response(week, service.settings.locale)


@router.post("/export", response_model=ExportResponse, status_code=status.HTTP_201_CREATED)
async def export_week(
    household_id: str,
    request: ExportRequest | None = None,
    week_start: date = Depends(resolve_week_start),
    service: ShoppingListService = Depends(get_shopping_service),
) -> ExportResponse:
    """Publish the selected groceries and mark the week as exported."""
    user_id = request.user_id if request else "anonymous"
    try:
        result = await service.export_week(household_id, user_id, week_start)
    except ShareUnavailableError as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e)) from e
    except EmptySnapshotError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e
    except ExportInProgressError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e)) from e
    except ShareError as e:
        logger.error(f"Export failed: {e}")
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e)) from e

    return ExportResponse(
        token=result.share.token,
        url=result.share.url,
        expires_at=result.share.expires_at,
        title=result.share.title,
        deeplink_url=result.deeplink_url,
    )


@router.get("/export.txt", response_class=PlainTextResponse)
async def export_text(
    household_id: str,
    week_start: date = Depends(resolve_week_start),
    service: ShoppingListService = Depends(get_shopping_service),
) -> str:
    """The selected groceries as plain text, one per line."""
    return await service.export_text(household_id, week_start)


@shares_router.get("/{token}", response_model=ShareSnapshot)
async def get_share(
    token: str,
    service: ShoppingListService = Depends(get_shopping_service),
) -> ShareSnapshot:
    """Read a snapshot published by the in-process collaborator."""
    collaborator = service.snapshots.collaborator
    snapshot = None
    if isinstance(collaborator, InMemoryShareCollaborator):
        snapshot = collaborator.get(token)
    if snapshot is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Snapshot not found or expired",
        )
    return snapshot
