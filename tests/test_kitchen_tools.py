"""Tests for the demo kitchen tools."""

from datetime import date

import pytest

from chefmate.kitchen import DemoKitchen, kitchen_tools, register_kitchen_tools
from chefmate.tools.registry import ToolRegistry
from chefmate.types import ErrorCode

TODAY = date(2026, 3, 11)


@pytest.fixture
def kitchen():
    return DemoKitchen(today=TODAY)


@pytest.fixture
def registry(kitchen):
    reg = ToolRegistry()
    register_kitchen_tools(reg, kitchen)
    return reg


class TestRegistration:
    def test_all_tools_registered(self, registry):
        assert [t.name for t in registry.list()] == [
            "generate_shopping_list",
            "get_inventory",
            "get_meal_plan",
            "get_nutrition_summary",
            "log_meal",
            "search_recipes",
            "suggest_meals",
        ]

    def test_schemas_are_strict_objects(self, kitchen):
        for tool in kitchen_tools(kitchen):
            params = tool.to_openai_schema()["function"]["parameters"]
            assert params["type"] == "object"
            assert params["additionalProperties"] is False


class TestSearchRecipes:
    async def test_query_ranks_title_matches(self, registry):
        outcome = await registry.execute("search_recipes", {"query": "rice"}, "u")
        titles = [r["title"] for r in outcome.result["recipes"]]
        assert titles[0] == "Veggie Egg Fried Rice"
        assert outcome.metadata["type"] == "recipes"
        assert outcome.metadata["recipeIds"][0] == "r-fried-rice"

    async def test_filters(self, registry):
        outcome = await registry.execute(
            "search_recipes", {"difficulty": "easy", "maxTime": 20}, "u"
        )
        ids = {r["id"] for r in outcome.result["recipes"]}
        assert ids == {"r-spinach-omelet", "r-fried-rice", "r-chicken-wrap"}

    async def test_no_results_message(self, registry):
        outcome = await registry.execute("search_recipes", {"query": "lasagna"}, "u")
        assert outcome.result["count"] == 0
        assert "No recipes found" in outcome.result["message"]

    async def test_bad_category_is_validation_error(self, registry):
        outcome = await registry.execute("search_recipes", {"category": "soup"}, "u")
        assert outcome.error_code == ErrorCode.VALIDATION_ERROR


class TestInventory:
    async def test_grouped_by_location(self, registry):
        outcome = await registry.execute("get_inventory", {}, "u")
        inventory = outcome.result["inventory"]
        assert set(inventory) == {"fridge", "freezer", "pantry", "other"}
        assert len(inventory["freezer"]) == 2
        assert outcome.result["totalItems"] == 11

    async def test_expiring_soon(self, registry):
        outcome = await registry.execute("get_inventory", {"includeExpiring": True}, "u")
        names = [i["name"] for i in outcome.result["expiringSoon"]]
        assert names == ["chicken breast", "spinach", "bell pepper"]
        assert outcome.result["expiringSoon"][0]["expiresAt"] == "2026-03-12"

    async def test_expiring_can_be_left_out(self, registry):
        outcome = await registry.execute("get_inventory", {"includeExpiring": False}, "u")
        assert "expiringSoon" not in outcome.result


class TestSuggestMeals:
    async def test_prefers_expiring_ingredients(self, registry):
        outcome = await registry.execute("suggest_meals", {"count": 2}, "u")
        suggestions = outcome.result["suggestions"]
        assert len(suggestions) == 2
        assert suggestions[0]["id"] == "r-burrito-bowl"
        assert "chicken breast" in outcome.result["expiringItems"]

    async def test_breakfast_only(self, registry):
        outcome = await registry.execute("suggest_meals", {"mealType": "breakfast"}, "u")
        assert [s["id"] for s in outcome.result["suggestions"]] == ["r-spinach-omelet"]

    async def test_empty_inventory(self, kitchen, registry):
        kitchen.inventory.clear()
        outcome = await registry.execute("suggest_meals", {}, "u")
        assert outcome.result["suggestions"] == []
        assert "inventory" in outcome.result["message"]


class TestMealPlan:
    async def test_current_week(self, registry):
        outcome = await registry.execute("get_meal_plan", {}, "u")
        plan = outcome.result["plan"]
        assert plan["startDate"] == "2026-03-09"
        assert plan["endDate"] == "2026-03-15"
        assert [s["date"] for s in plan["slots"]] == [
            "2026-03-09", "2026-03-10", "2026-03-11", "2026-03-12",
        ]
        assert plan["slots"][3]["recipe"] is None
        assert plan["slots"][3]["customName"] == "Leftover burrito bowl"

    async def test_no_plan_for_last_week(self, registry):
        outcome = await registry.execute("get_meal_plan", {"weekOffset": -1}, "u")
        assert outcome.result["plan"] is None
        assert "last week" in outcome.result["message"]


class TestShoppingList:
    async def test_plan_shopping_list(self, registry):
        outcome = await registry.execute("generate_shopping_list", {"name": "Weekly"}, "u")
        names = [i["name"] for i in outcome.result["items"]]
        assert names == ["cheddar", "feta", "pickles", "salsa", "whole wheat buns"]
        assert outcome.result["name"] == "Weekly"
        assert outcome.result["totalItems"] == 5

    async def test_single_recipe(self, registry):
        outcome = await registry.execute(
            "generate_shopping_list", {"recipeId": "r-chicken-wrap"}, "u"
        )
        names = [i["name"] for i in outcome.result["items"]]
        assert names == ["parmesan", "romaine"]
        assert outcome.result["items"][0]["sourceRecipes"] == ["Grilled Chicken Caesar Wrap"]

    async def test_unknown_recipe(self, registry):
        outcome = await registry.execute("generate_shopping_list", {"recipeId": "nope"}, "u")
        assert outcome.result == {"items": [], "message": "Recipe not found."}


class TestMealLogAndNutrition:
    async def test_log_requires_description_and_type(self, registry):
        outcome = await registry.execute("log_meal", {"description": "toast"}, "u")
        assert outcome.error_code == ErrorCode.VALIDATION_ERROR

    async def test_logged_meal_counts_toward_totals(self, registry):
        await registry.execute(
            "log_meal",
            {"description": "Chicken Burrito Bowl", "mealType": "dinner", "calories": 520, "protein": 42},
            "u",
        )
        outcome = await registry.execute("get_nutrition_summary", {}, "u")
        assert outcome.result["mealCount"] == 3
        assert outcome.result["totals"]["calories"] == 1280
        assert outcome.result["goal"] == {"targetCalories": 2000, "remaining": 720}

    async def test_week_range(self, registry):
        outcome = await registry.execute(
            "get_nutrition_summary", {"range": "week", "date": "2026-03-09"}, "u"
        )
        assert outcome.result["startDate"] == "2026-03-09"
        assert outcome.result["endDate"] == "2026-03-15"
        assert outcome.result["mealCount"] == 2
