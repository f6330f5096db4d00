"""
Tavara.care Coordination Service - Meal Planning Routes

Shared recipes, per care plan meal plans and grocery lists.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from tavara.api.dependencies import get_current_profile, require_plan_access
from tavara.api.schemas import (
    RecipeCreate,
    RecipeResponse,
    MealPlanCreate,
    MealPlanItemCreate,
    MealPlanItemResponse,
    MealPlanResponse,
    GroceryListCreate,
    GroceryListGenerate,
    GroceryItemCreate,
    GroceryItemPurchase,
    GroceryItemResponse,
    GroceryListResponse
)
from tavara.core.errors import NotFoundError
from tavara.db.base import get_db
from tavara.db.models import Profile, MealPlanItem, GroceryList, GroceryListItem
from tavara.services.meal_plan_service import MealPlanService

router = APIRouter(prefix="/meals", tags=["Meals"])
meal_plan_service = MealPlanService()


def _grocery_list(db: Session, grocery_list_id: str) -> GroceryList:
    grocery_list = db.get(GroceryList, grocery_list_id)
    if grocery_list is None:
        raise NotFoundError("GroceryList", grocery_list_id)
    return grocery_list


# Recipes

@router.post("/recipes", response_model=RecipeResponse, status_code=status.HTTP_201_CREATED, summary="Add a recipe")
def create_recipe(
    body: RecipeCreate,
    db: Session = Depends(get_db),
    current: Profile = Depends(get_current_profile)
):
    return meal_plan_service.create_recipe(
        db,
        body.title,
        ingredients=[i.model_dump(exclude_none=True) for i in body.ingredients],
        instructions=body.instructions,
        description=body.description,
        category=body.category,
        preparation_time=body.preparation_time,
        servings=body.servings
    )


@router.get("/recipes", response_model=List[RecipeResponse], summary="Recipe library")
def list_recipes(
    category: Optional[str] = Query(default=None),
    db: Session = Depends(get_db),
    current: Profile = Depends(get_current_profile)
):
    return meal_plan_service.list_recipes(db, category=category)


# Meal plans

@router.post(
    "/care-plans/{care_plan_id}/meal-plans",
    response_model=MealPlanResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a meal plan"
)
def create_meal_plan(
    care_plan_id: str,
    body: MealPlanCreate,
    db: Session = Depends(get_db),
    current: Profile = Depends(get_current_profile)
):
    require_plan_access(db, care_plan_id, current)
    return meal_plan_service.create_meal_plan(db, care_plan_id, body.title, body.start_date, body.end_date)


@router.get("/care-plans/{care_plan_id}/meal-plans", response_model=List[MealPlanResponse], summary="Meal plans")
def list_meal_plans(
    care_plan_id: str,
    db: Session = Depends(get_db),
    current: Profile = Depends(get_current_profile)
):
    require_plan_access(db, care_plan_id, current)
    return meal_plan_service.list_meal_plans(db, care_plan_id)


@router.get("/meal-plans/{meal_plan_id}", response_model=MealPlanResponse, summary="A meal plan with its meals")
def get_meal_plan(
    meal_plan_id: str,
    db: Session = Depends(get_db),
    current: Profile = Depends(get_current_profile)
):
    meal_plan = meal_plan_service.get_meal_plan(db, meal_plan_id)
    require_plan_access(db, meal_plan.care_plan_id, current)
    return meal_plan


@router.post(
    "/meal-plans/{meal_plan_id}/items",
    response_model=MealPlanItemResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Schedule a recipe"
)
def add_meal(
    meal_plan_id: str,
    body: MealPlanItemCreate,
    db: Session = Depends(get_db),
    current: Profile = Depends(get_current_profile)
):
    meal_plan = meal_plan_service.get_meal_plan(db, meal_plan_id)
    require_plan_access(db, meal_plan.care_plan_id, current)
    return meal_plan_service.add_meal(db, meal_plan.id, body.recipe_id, body.meal_type, body.scheduled_for)


@router.delete("/items/{item_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Remove a scheduled meal")
def remove_meal(
    item_id: str,
    db: Session = Depends(get_db),
    current: Profile = Depends(get_current_profile)
):
    item = db.get(MealPlanItem, item_id)
    if item is None:
        raise NotFoundError("MealPlanItem", item_id)
    require_plan_access(db, item.meal_plan.care_plan_id, current)
    meal_plan_service.remove_meal(db, item.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/meal-plans/{meal_plan_id}/grocery-list",
    response_model=GroceryListResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Generate a grocery list from a meal plan",
    description="Ingredients with the same name are merged into one item"
)
def generate_grocery_list(
    meal_plan_id: str,
    body: GroceryListGenerate,
    db: Session = Depends(get_db),
    current: Profile = Depends(get_current_profile)
):
    meal_plan = meal_plan_service.get_meal_plan(db, meal_plan_id)
    require_plan_access(db, meal_plan.care_plan_id, current)
    return meal_plan_service.generate_grocery_list(db, meal_plan.id, created_by=current.id, title=body.title)


# Grocery lists

@router.post(
    "/care-plans/{care_plan_id}/grocery-lists",
    response_model=GroceryListResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a grocery list"
)
def create_grocery_list(
    care_plan_id: str,
    body: GroceryListCreate,
    db: Session = Depends(get_db),
    current: Profile = Depends(get_current_profile)
):
    require_plan_access(db, care_plan_id, current)
    return meal_plan_service.create_grocery_list(db, care_plan_id, body.title, created_by=current.id)


@router.get("/care-plans/{care_plan_id}/grocery-lists", response_model=List[GroceryListResponse], summary="Grocery lists")
def list_grocery_lists(
    care_plan_id: str,
    db: Session = Depends(get_db),
    current: Profile = Depends(get_current_profile)
):
    require_plan_access(db, care_plan_id, current)
    return meal_plan_service.list_grocery_lists(db, care_plan_id)


@router.post(
    "/grocery-lists/{grocery_list_id}/items",
    response_model=GroceryItemResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add a grocery item"
)
def add_grocery_item(
    grocery_list_id: str,
    body: GroceryItemCreate,
    db: Session = Depends(get_db),
    current: Profile = Depends(get_current_profile)
):
    grocery_list = _grocery_list(db, grocery_list_id)
    require_plan_access(db, grocery_list.care_plan_id, current)
    return meal_plan_service.add_grocery_item(
        db, grocery_list.id, body.item_name, quantity=body.quantity, category=body.category, notes=body.notes
    )


@router.put("/grocery-items/{item_id}/purchased", response_model=GroceryItemResponse, summary="Mark purchased")
def mark_purchased(
    item_id: str,
    body: GroceryItemPurchase,
    db: Session = Depends(get_db),
    current: Profile = Depends(get_current_profile)
):
    item = db.get(GroceryListItem, item_id)
    if item is None:
        raise NotFoundError("GroceryListItem", item_id)
    require_plan_access(db, item.grocery_list.care_plan_id, current)
    return meal_plan_service.mark_item_purchased(db, item.id, body.purchased, user_id=current.id)
