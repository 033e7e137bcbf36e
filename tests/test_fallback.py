"""Tests for the deterministic fallback responder."""

from datetime import date

import pytest

from chefmate.kitchen import DemoKitchen, register_kitchen_tools
from chefmate.orchestrator.fallback import (
    DEFAULT_MATCHERS,
    DEGRADED_MODE_MARKER,
    FALLBACK_INTRO,
    FallbackResponder,
    IntentMatcher,
    extract_recipe_query,
)
from chefmate.tools.registry import ToolRegistry


@pytest.fixture
def kitchen():
    return DemoKitchen(today=date(2026, 3, 11))


@pytest.fixture
def registry(kitchen):
    reg = ToolRegistry()
    register_kitchen_tools(reg, kitchen)
    return reg


@pytest.fixture
def responder(registry):
    return FallbackResponder(registry)


class TestMatching:
    def test_cascade_order(self):
        assert [m.name for m in DEFAULT_MATCHERS] == [
            "expiring",
            "inventory",
            "suggest",
            "meal_plan",
            "shopping_list",
            "nutrition",
            "recipe_search",
        ]

    @pytest.mark.parametrize(
        "message, intent",
        [
            ("what's in my fridge", "inventory"),
            ("What’s in my FRIDGE?", "inventory"),
            ("Is anything in my fridge going bad?", "expiring"),
            ("what's expiring soon", "expiring"),
            ("What can I cook tonight?", "suggest"),
            ("show me my meal plan", "meal_plan"),
            ("make me a shopping list", "shopping_list"),
            ("how many calories have I eaten today", "nutrition"),
            ("find me chicken recipes", "recipe_search"),
            ("xyzzy", None),
        ],
    )
    def test_first_match_wins(self, responder, message, intent):
        matcher = responder.match(message)
        assert (matcher.name if matcher else None) == intent

    def test_custom_matchers_replace_cascade(self, registry):
        async def handler(turn, text):
            await turn.call("get_inventory", {})
            return "custom"

        responder = FallbackResponder(registry, [IntentMatcher("custom", ("pantry",), handler)])
        assert responder.match("what's in my fridge") is None
        assert responder.match("check the pantry").name == "custom"


class TestRespond:
    async def test_fridge_question_uses_inventory_once(self, responder):
        result = await responder.respond("what's in my fridge", "u-1")
        assert [r.name for r in result.tool_calls] == ["get_inventory"]
        assert DEGRADED_MODE_MARKER in result.content
        assert "chicken breast" in result.content
        assert result.metadata == {"type": "inventory"}

    async def test_unrecognized_message_gets_intro(self, responder):
        result = await responder.respond("xyzzy", "u-1")
        assert result.content == FALLBACK_INTRO
        assert result.tool_calls == []
        assert result.usage is None

    async def test_expiring_lists_items(self, responder):
        result = await responder.respond("what's expiring soon?", "u-1")
        [record] = result.tool_calls
        assert record.arguments == {"includeExpiring": True}
        assert "chicken breast, spinach and bell pepper" in result.content

    async def test_suggestions(self, responder):
        result = await responder.respond("What can I cook tonight?", "u-1")
        assert [r.name for r in result.tool_calls] == ["suggest_meals"]
        assert "Chicken Burrito Bowl" in result.content
        assert DEGRADED_MODE_MARKER in result.content

    async def test_meal_plan(self, responder):
        result = await responder.respond("show me my meal plan", "u-1")
        assert "Chicken Burrito Bowl" in result.content
        assert "Leftover burrito bowl" in result.content
        assert result.metadata["mealPlanId"] == "plan-current"

    async def test_missing_meal_plan_offers_to_create(self, responder):
        result = await responder.respond("what's on my meal plan next week", "u-1")
        assert result.tool_calls[0].arguments == {"weekOffset": 1}
        assert "Would you like me to create one?" in result.content

    async def test_shopping_list(self, responder):
        result = await responder.respond("make me a shopping list", "u-1")
        assert [r.name for r in result.tool_calls] == ["generate_shopping_list"]
        assert "salsa" in result.content
        assert "chicken breast" not in result.content

    async def test_nutrition(self, responder):
        result = await responder.respond("how many calories have I eaten today", "u-1")
        assert "760 kcal" in result.content
        assert "1240 kcal" in result.content

    async def test_recipe_search_extracts_query(self, responder):
        result = await responder.respond("find me chicken recipes", "u-1")
        [record] = result.tool_calls
        assert record.arguments == {"limit": 5, "query": "chicken"}
        assert "Chicken Burrito Bowl" in result.content
        assert "Grilled Chicken Caesar Wrap" in result.content

    async def test_recipe_search_without_hits(self, responder):
        result = await responder.respond("any lasagna recipe?", "u-1")
        assert "couldn't find any recipes" in result.content
        assert DEGRADED_MODE_MARKER in result.content

    async def test_tool_error_renders_apology(self):
        responder = FallbackResponder(ToolRegistry())
        result = await responder.respond("what's in my fridge", "u-1")
        [record] = result.tool_calls
        assert "error" in record.result
        assert "couldn't load your inventory" in result.content
        assert DEGRADED_MODE_MARKER in result.content


class TestExtractRecipeQuery:
    @pytest.mark.parametrize(
        "text, query",
        [
            ("how do i make fried rice?", "fried rice"),
            ("show me some easy recipes", ""),
            ("recipe for turkey burger", "turkey burger"),
        ],
    )
    def test_extract(self, text, query):
        assert extract_recipe_query(text) == query
