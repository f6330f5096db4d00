"""
Tavara.care Coordination Service - Meal Planning Tests
"""

from datetime import date

import pytest

from tavara.core.errors import NotFoundError
from tavara.db.models import Recipe
from tavara.services.meal_plan_service import MealPlanService, merge_ingredients


@pytest.fixture
def meal_service():
    return MealPlanService()


@pytest.fixture
def week(db, meal_service, care_plan):
    return meal_service.create_meal_plan(db, care_plan.id, "Week 1", date(2024, 6, 3), date(2024, 6, 9))


class TestMergeIngredients:

    def test_merges_by_name(self):
        """Test quantities of the same ingredient are joined."""
        recipes = [
            Recipe(title="Porridge", ingredients=[
                {"name": "Oats", "quantity": "1 cup", "category": "Grains"},
                "Honey",
            ]),
            Recipe(title="Oat cookies", ingredients=[
                {"name": "oats", "quantity": "2 cups"},
                {"item_name": "Butter", "quantity": "100g", "category": "Dairy"},
            ]),
        ]

        merged = merge_ingredients(recipes)

        assert merged == [
            {"name": "Oats", "quantity": "1 cup + 2 cups", "category": "Grains"},
            {"name": "Honey", "quantity": None, "category": None},
            {"name": "Butter", "quantity": "100g", "category": "Dairy"},
        ]

    def test_blank_names_skipped(self):
        assert merge_ingredients([Recipe(title="Empty", ingredients=[{"name": " "}, ""])]) == []


class TestMealPlans:

    def test_dates_validated(self, db, meal_service, care_plan):
        with pytest.raises(ValueError):
            meal_service.create_meal_plan(db, care_plan.id, "Backwards", date(2024, 6, 9), date(2024, 6, 3))

    def test_add_meal_within_plan(self, db, meal_service, week):
        recipe = meal_service.create_recipe(db, "Callaloo", ingredients=["Dasheen bush"])

        item = meal_service.add_meal(db, week.id, recipe.id, "lunch", date(2024, 6, 4))

        assert item.meal_plan_id == week.id
        with pytest.raises(ValueError):
            meal_service.add_meal(db, week.id, recipe.id, "lunch", date(2024, 6, 12))
        with pytest.raises(ValueError):
            meal_service.add_meal(db, week.id, recipe.id, "brunch", date(2024, 6, 4))

    def test_remove_meal(self, db, meal_service, week):
        recipe = meal_service.create_recipe(db, "Bake and saltfish")
        item = meal_service.add_meal(db, week.id, recipe.id, "breakfast", date(2024, 6, 3))

        meal_service.remove_meal(db, item.id)

        with pytest.raises(NotFoundError):
            meal_service.remove_meal(db, item.id)

    def test_recipes_by_category(self, db, meal_service):
        meal_service.create_recipe(db, "Pelau", category="dinner")
        meal_service.create_recipe(db, "Sada roti", category="breakfast")

        assert [r.title for r in meal_service.list_recipes(db, category="dinner")] == ["Pelau"]
        with pytest.raises(ValueError):
            meal_service.create_recipe(db, "")


class TestGroceryLists:

    def test_generate_from_meal_plan(self, db, meal_service, week, family):
        pelau = meal_service.create_recipe(db, "Pelau", ingredients=[
            {"name": "Rice", "quantity": "2 cups"}, {"name": "Pigeon peas", "quantity": "1 tin"}
        ])
        rice = meal_service.create_recipe(db, "Rice and peas", ingredients=[{"name": "rice", "quantity": "1 cup"}])
        meal_service.add_meal(db, week.id, rice.id, "lunch", date(2024, 6, 5))
        meal_service.add_meal(db, week.id, pelau.id, "dinner", date(2024, 6, 3))

        grocery_list = meal_service.generate_grocery_list(db, week.id, created_by=family.id)

        assert grocery_list.title == "Groceries for Week 1"
        items = {item.item_name: item.quantity for item in grocery_list.items}
        assert items == {"Rice": "2 cups + 1 cup", "Pigeon peas": "1 tin"}

    def test_purchase_toggle(self, db, meal_service, care_plan, family):
        grocery_list = meal_service.create_grocery_list(db, care_plan.id, "Market run")
        item = meal_service.add_grocery_item(db, grocery_list.id, " Plantain ", quantity="4")

        meal_service.mark_item_purchased(db, item.id, True, user_id=family.id)
        assert item.purchased is True
        assert item.purchased_by == family.id
        assert item.purchased_at is not None

        meal_service.mark_item_purchased(db, item.id, False)
        assert item.purchased_by is None
        assert item.purchased_at is None

    def test_item_requires_list(self, db, meal_service):
        with pytest.raises(NotFoundError):
            meal_service.add_grocery_item(db, "missing", "Plantain")
