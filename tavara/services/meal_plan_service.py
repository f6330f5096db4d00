"""
Tavara.care Coordination Service - Meal Plan Service

Recipes, meal plans and grocery lists for care plans.
"""

from datetime import date, datetime
from typing import List, Dict, Optional

from sqlalchemy.orm import Session

from tavara.config import MEAL_TYPES
from tavara.core.errors import NotFoundError
from tavara.core.logging import logger
from tavara.db.models import (
    CarePlan,
    Recipe,
    MealPlan,
    MealPlanItem,
    GroceryList,
    GroceryListItem
)


def _ingredient(entry) -> Dict:
    if isinstance(entry, str):
        return {"name": entry, "quantity": None, "category": None}
    return {
        "name": entry.get("name") or entry.get("item_name") or "",
        "quantity": entry.get("quantity"),
        "category": entry.get("category")
    }


def merge_ingredients(recipes: List[Recipe]) -> List[Dict]:
    """
    Combine recipe ingredients into one shopping list.

    Ingredients merge case-insensitively by name, in first-seen order.
    Distinct quantities are joined with " + ".
    """
    merged: Dict[str, Dict] = {}
    for recipe in recipes:
        for entry in recipe.ingredients or []:
            ingredient = _ingredient(entry)
            name = ingredient["name"].strip()
            if not name:
                continue
            key = name.lower()
            if key not in merged:
                merged[key] = {
                    "name": name,
                    "quantities": [],
                    "category": ingredient["category"]
                }
            if ingredient["quantity"]:
                merged[key]["quantities"].append(str(ingredient["quantity"]))
            if not merged[key]["category"]:
                merged[key]["category"] = ingredient["category"]

    return [
        {
            "name": item["name"],
            "quantity": " + ".join(item["quantities"]) or None,
            "category": item["category"]
        }
        for item in merged.values()
    ]


class MealPlanService:

    def __init__(self):
        logger.info("MealPlanService initialized")

    def _require_plan(self, db: Session, care_plan_id: str):
        if db.get(CarePlan, care_plan_id) is None:
            raise NotFoundError("CarePlan", care_plan_id)

    # Recipes

    def create_recipe(
        self,
        db: Session,
        title: str,
        ingredients: Optional[List] = None,
        instructions: Optional[List[str]] = None,
        description: Optional[str] = None,
        category: Optional[str] = None,
        preparation_time: Optional[int] = None,
        servings: Optional[int] = None
    ) -> Recipe:
        if not title or not title.strip():
            raise ValueError("Recipe title is required")
        recipe = Recipe(
            title=title.strip(),
            description=description,
            category=category,
            preparation_time=preparation_time,
            servings=servings,
            ingredients=ingredients or [],
            instructions=instructions or []
        )
        db.add(recipe)
        db.commit()
        return recipe

    def list_recipes(self, db: Session, category: Optional[str] = None) -> List[Recipe]:
        query = db.query(Recipe)
        if category:
            query = query.filter(Recipe.category == category)
        return query.order_by(Recipe.title.asc()).all()

    # Meal plans

    def create_meal_plan(self, db: Session, care_plan_id: str, title: str, start_date: date, end_date: date) -> MealPlan:
        self._require_plan(db, care_plan_id)
        if end_date < start_date:
            raise ValueError("Meal plan end date must not be before its start date")

        meal_plan = MealPlan(care_plan_id=care_plan_id, title=title, start_date=start_date, end_date=end_date)
        db.add(meal_plan)
        db.commit()
        return meal_plan

    def get_meal_plan(self, db: Session, meal_plan_id: str) -> MealPlan:
        meal_plan = db.get(MealPlan, meal_plan_id)
        if meal_plan is None:
            raise NotFoundError("MealPlan", meal_plan_id)
        return meal_plan

    def list_meal_plans(self, db: Session, care_plan_id: str) -> List[MealPlan]:
        return (
            db.query(MealPlan)
            .filter(MealPlan.care_plan_id == care_plan_id)
            .order_by(MealPlan.start_date.desc())
            .all()
        )

    def add_meal(self, db: Session, meal_plan_id: str, recipe_id: str, meal_type: str, scheduled_for: date) -> MealPlanItem:
        meal_plan = self.get_meal_plan(db, meal_plan_id)
        if db.get(Recipe, recipe_id) is None:
            raise NotFoundError("Recipe", recipe_id)
        if meal_type not in MEAL_TYPES:
            raise ValueError(f"Unknown meal type: {meal_type}")
        if not meal_plan.start_date <= scheduled_for <= meal_plan.end_date:
            raise ValueError("Meal date falls outside the meal plan")

        item = MealPlanItem(
            meal_plan_id=meal_plan.id,
            recipe_id=recipe_id,
            meal_type=meal_type,
            scheduled_for=scheduled_for
        )
        db.add(item)
        db.commit()
        return item

    def remove_meal(self, db: Session, item_id: str):
        item = db.get(MealPlanItem, item_id)
        if item is None:
            raise NotFoundError("MealPlanItem", item_id)
        db.delete(item)
        db.commit()

    # Grocery lists

    def create_grocery_list(self, db: Session, care_plan_id: str, title: str, created_by: Optional[str] = None) -> GroceryList:
        self._require_plan(db, care_plan_id)
        grocery_list = GroceryList(care_plan_id=care_plan_id, title=title, created_by=created_by)
        db.add(grocery_list)
        db.commit()
        return grocery_list

    def list_grocery_lists(self, db: Session, care_plan_id: str) -> List[GroceryList]:
        return (
            db.query(GroceryList)
            .filter(GroceryList.care_plan_id == care_plan_id)
            .order_by(GroceryList.created_at.desc())
            .all()
        )

    def add_grocery_item(
        self,
        db: Session,
        grocery_list_id: str,
        item_name: str,
        quantity: Optional[str] = None,
        category: Optional[str] = None,
        notes: Optional[str] = None
    ) -> GroceryListItem:
        if db.get(GroceryList, grocery_list_id) is None:
            raise NotFoundError("GroceryList", grocery_list_id)
        if not item_name or not item_name.strip():
            raise ValueError("Item name is required")

        item = GroceryListItem(
            grocery_list_id=grocery_list_id,
            item_name=item_name.strip(),
            quantity=quantity,
            category=category,
            notes=notes
        )
        db.add(item)
        db.commit()
        return item

    def mark_item_purchased(self, db: Session, item_id: str, purchased: bool, user_id: Optional[str] = None) -> GroceryListItem:
        """Toggle purchased; records who and when, and clears both when unset."""
        item = db.get(GroceryListItem, item_id)
        if item is None:
            raise NotFoundError("GroceryListItem", item_id)

        item.purchased = purchased
        item.purchased_by = user_id if purchased else None
        item.purchased_at = datetime.utcnow() if purchased else None
        db.commit()
        return item

    def generate_grocery_list(
        self,
        db: Session,
        meal_plan_id: str,
        created_by: Optional[str] = None,
        title: Optional[str] = None
    ) -> GroceryList:
        """Create a grocery list holding the merged ingredients of a meal plan."""
        meal_plan = self.get_meal_plan(db, meal_plan_id)
        recipes = [item.recipe for item in sorted(meal_plan.items, key=lambda i: i.scheduled_for)]

        grocery_list = GroceryList(
            care_plan_id=meal_plan.care_plan_id,
            title=title or f"Groceries for {meal_plan.title}",
            created_by=created_by
        )
        db.add(grocery_list)
        for ingredient in merge_ingredients(recipes):
            grocery_list.items.append(GroceryListItem(
                item_name=ingredient["name"],
                quantity=ingredient["quantity"],
                category=ingredient["category"]
            ))
        db.commit()

        logger.info(
            f"Grocery list {grocery_list.id} generated with {len(grocery_list.items)} items",
            extra={"meal_plan_id": meal_plan.id}
        )
        return grocery_list
