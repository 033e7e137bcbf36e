"""
Kitchen tools backed by :class:`~chefmate.kitchen.demo.DemoKitchen`.

These follow the call contracts and result shapes of the production tool
set closely enough for the model and the fallback responder to work against
them, without any persistence behind them.
"""

from __future__ import annotations

from datetime import date, timedelta

from chefmate.kitchen.demo import (
    EXPIRING_WINDOW_DAYS,
    STORAGE_LOCATIONS,
    DemoKitchen,
    MealLog,
    Recipe,
)
from chefmate.tools.base import Tool
from chefmate.tools.registry import ToolRegistry
from chefmate.types import ToolResult

SEARCH_RECIPES = "search_recipes"
GET_INVENTORY = "get_inventory"
SUGGEST_MEALS = "suggest_meals"
GET_MEAL_PLAN = "get_meal_plan"
GENERATE_SHOPPING_LIST = "generate_shopping_list"
LOG_MEAL = "log_meal"
GET_NUTRITION_SUMMARY = "get_nutrition_summary"

RECIPE_CATEGORIES = [
    "burger", "chicken", "pizza", "mexican", "breakfast",
    "salad", "sides", "dessert", "drink",
]
MEAL_TYPES = ["breakfast", "lunch", "dinner", "snack"]


def _loose_match(a: str, b: str) -> bool:
    a, b = a.lower(), b.lower()
    return a in b or b in a


class KitchenTool(Tool):
    def __init__(self, kitchen: DemoKitchen) -> None:
        self._kitchen = kitchen


class SearchRecipesTool(KitchenTool):
    @property
    def name(self) -> str:
        return SEARCH_RECIPES

    @property
    def description(self) -> str:
        return (
            "Search the recipe database. Use when the user asks about recipes, wants "
            "meal ideas, or asks what they can cook. Returns matching recipes with key details."
        )

    @property
    def parameters(self) -> dict:
        return {
            "type": "object",
            "properties": {
                "query": {
                    "type": "string",
                    "description": "Search term (recipe name, ingredient, cuisine style)",
                },
                "category": {"type": "string", "enum": RECIPE_CATEGORIES},
                "difficulty": {"type": "string", "enum": ["easy", "medium", "hard"]},
                "maxTime": {
                    "type": "number",
                    "description": "Maximum total cook time in minutes",
                },
                "limit": {"type": "number", "description": "Max results to return (default 5)"},
            },
        }

    async def execute(self, arguments: dict, *, user_id: str) -> ToolResult:
        query = (arguments.get("query") or "").strip().lower()
        limit = int(arguments.get("limit") or 5)

        scored: list[tuple[int, Recipe]] = []
        for recipe in self._kitchen.recipes:
            if arguments.get("category") and recipe.category != arguments["category"]:
                continue
            if arguments.get("difficulty") and recipe.difficulty != arguments["difficulty"]:
                continue
            if arguments.get("maxTime") and recipe.total_time > arguments["maxTime"]:
                continue
            score = _score_recipe(recipe, query) if query else 1
            if score > 0:
                scored.append((score, recipe))

        scored.sort(key=lambda pair: (-pair[0], pair[1].title))
        recipes = [r.summary() for _, r in scored[:limit]]
        result: dict = {"recipes": recipes, "count": len(recipes)}
        if not recipes:
            result["message"] = "No recipes found matching your criteria."
        return ToolResult(
            result=result,
            metadata={"type": "recipes", "recipeIds": [r["id"] for r in recipes]},
        )


def _score_recipe(recipe: Recipe, query: str) -> int:
    title = recipe.title.lower()
    description = recipe.description.lower()
    ingredients = " ".join(i.name for i in recipe.ingredients).lower()

    score = 0
    if query in title:
        score += 10
    if query in description:
        score += 5
    if query in ingredients:
        score += 7
    for word in query.split():
        if len(word) < 3:
            continue
        if word in title:
            score += 3
        if word in ingredients:
            score += 2
        if word in description:
            score += 1
    return score


class GetInventoryTool(KitchenTool):
    @property
    def name(self) -> str:
        return GET_INVENTORY

    @property
    def description(self) -> str:
        return (
            "Get the user's current food inventory, grouped by storage location. Use when "
            "the user asks what they have, what's in their fridge, or before suggesting "
            "meals based on available ingredients."
        )

    @property
    def parameters(self) -> dict:
        return {
            "type": "object",
            "properties": {
                "includeExpiring": {
                    "type": "boolean",
                    "description": "If true, also highlight items expiring within 3 days",
                },
            },
        }

    async def execute(self, arguments: dict, *, user_id: str) -> ToolResult:
        grouped: dict[str, list[dict]] = {loc: [] for loc in STORAGE_LOCATIONS}
        for item in self._kitchen.inventory:
            bucket = grouped.get(item.location, grouped["other"])
            bucket.append(item.to_dict())

        result: dict = {
            "inventory": grouped,
            "totalItems": len(self._kitchen.inventory),
        }
        if arguments.get("includeExpiring", True):
            result["expiringSoon"] = [i.to_dict() for i in self._kitchen.expiring()]
        return ToolResult(result=result, metadata={"type": "inventory"})


class SuggestMealsTool(KitchenTool):
    @property
    def name(self) -> str:
        return SUGGEST_MEALS

    @property
    def description(self) -> str:
        return (
            "Suggest meals the user can make based on their current inventory and items "
            "about to expire. Use when the user asks what they can cook tonight."
        )

    @property
    def parameters(self) -> dict:
        return {
            "type": "object",
            "properties": {
                "count": {"type": "number", "description": "Number of suggestions (default 3)"},
                "mealType": {"type": "string", "enum": MEAL_TYPES},
                "prioritizeExpiring": {
                    "type": "boolean",
                    "description": "Prioritize using items that are expiring soon (default true)",
                },
            },
        }

    async def execute(self, arguments: dict, *, user_id: str) -> ToolResult:
        count = int(arguments.get("count") or 3)
        prioritize = arguments.get("prioritizeExpiring", True)
        kitchen = self._kitchen

        if not kitchen.inventory:
            return ToolResult(
                result={
                    "suggestions": [],
                    "message": (
                        "You don't have any items in your inventory yet. Add some "
                        "ingredients to get personalized meal suggestions!"
                    ),
                }
            )

        on_hand = [i.name.lower() for i in kitchen.inventory]
        expiring = [i.name.lower() for i in kitchen.expiring()]

        scored = []
        for recipe in kitchen.recipes:
            if arguments.get("mealType") == "breakfast" and recipe.category != "breakfast":
                continue
            score = 0
            for ingredient in recipe.ingredients:
                if any(_loose_match(ingredient.name, name) for name in on_hand):
                    score += 1
                if prioritize and any(_loose_match(ingredient.name, name) for name in expiring):
                    score += 2
            scored.append((score, recipe))

        scored.sort(key=lambda pair: (-pair[0], pair[1].title))
        suggestions = [
            {**recipe.summary(), "ingredientMatchScore": score}
            for score, recipe in scored[:count]
        ]
        result: dict = {"suggestions": suggestions, "availableIngredients": on_hand}
        if expiring:
            result["expiringItems"] = expiring
        return ToolResult(
            result=result,
            metadata={"type": "suggestions", "recipeIds": [s["id"] for s in suggestions]},
        )


class GetMealPlanTool(KitchenTool):
    @property
    def name(self) -> str:
        return GET_MEAL_PLAN

    @property
    def description(self) -> str:
        return (
            "Get the user's current or upcoming meal plan. Use when the user asks about "
            "their meal plan, what they're eating this week, or their schedule."
        )

    @property
    def parameters(self) -> dict:
        return {
            "type": "object",
            "properties": {
                "weekOffset": {
                    "type": "number",
                    "description": "0 = current week, 1 = next week, -1 = last week",
                },
            },
        }

    async def execute(self, arguments: dict, *, user_id: str) -> ToolResult:
        offset = int(arguments.get("weekOffset") or 0)
        plan = self._kitchen.plan_for_week(offset)
        if plan is None:
            which = "this" if offset == 0 else ("next" if offset > 0 else "last")
            return ToolResult(
                result={
                    "plan": None,
                    "message": f"No meal plan found for {which} week. Would you like me to create one?",
                }
            )

        slots = []
        for slot in sorted(plan.slots, key=lambda s: (s.day, MEAL_TYPES.index(s.meal_type))):
            recipe = self._kitchen.recipe(slot.recipe_id) if slot.recipe_id else None
            slots.append(
                {
                    "date": slot.day.isoformat(),
                    "mealType": slot.meal_type,
                    "recipe": {"id": recipe.id, "title": recipe.title} if recipe else None,
                    "customName": slot.custom_name,
                }
            )
        return ToolResult(
            result={
                "plan": {
                    "id": plan.id,
                    "name": plan.name,
                    "startDate": plan.start.isoformat(),
                    "endDate": plan.end.isoformat(),
                    "slots": slots,
                }
            },
            metadata={"type": "meal_plan", "mealPlanId": plan.id},
        )


class GenerateShoppingListTool(KitchenTool):
    @property
    def name(self) -> str:
        return GENERATE_SHOPPING_LIST

    @property
    def description(self) -> str:
        return (
            "Generate a shopping list of ingredients the user is missing, either for a "
            "single recipe or for everything in the current meal plan."
        )

    @property
    def parameters(self) -> dict:
        return {
            "type": "object",
            "properties": {
                "recipeId": {
                    "type": "string",
                    "description": "Single recipe ID to generate missing ingredients for.",
                },
                "name": {
                    "type": "string",
                    "description": 'Name for the shopping list (e.g. "Weekly Groceries")',
                },
            },
        }

    async def execute(self, arguments: dict, *, user_id: str) -> ToolResult:
        kitchen = self._kitchen
        if arguments.get("recipeId"):
            recipe = kitchen.recipe(arguments["recipeId"])
            if recipe is None:
                return ToolResult(result={"items": [], "message": "Recipe not found."})
            recipes = [recipe]
        else:
            plan = kitchen.plan_for_week(0)
            if plan is None:
                return ToolResult(
                    result={
                        "items": [],
                        "message": (
                            "No active meal plan found. Provide a recipeId or create "
                            "a meal plan first."
                        ),
                    }
                )
            recipes = [
                r for r in (kitchen.recipe(s.recipe_id) for s in plan.slots if s.recipe_id)
                if r is not None
            ]

        on_hand = [i.name for i in kitchen.inventory]
        needed: dict[str, dict] = {}
        for recipe in recipes:
            for ingredient in recipe.ingredients:
                if any(_loose_match(ingredient.name, have) for have in on_hand):
                    continue
                key = ingredient.name.lower()
                entry = needed.setdefault(
                    key,
                    {
                        "name": ingredient.name,
                        "amount": 0,
                        "unit": ingredient.unit,
                        "sourceRecipes": [],
                    },
                )
                entry["amount"] += ingredient.amount
                if recipe.title not in entry["sourceRecipes"]:
                    entry["sourceRecipes"].append(recipe.title)

        items = sorted(needed.values(), key=lambda e: e["name"])
        message = (
            f"You need {len(items)} item(s) for {len(recipes)} recipe(s)."
            if items
            else "You already have everything you need."
        )
        return ToolResult(
            result={
                "name": arguments.get("name") or "Shopping List",
                "items": items,
                "totalItems": len(items),
                "message": message,
            },
            metadata={"type": "shopping_list"},
        )


class LogMealTool(KitchenTool):
    @property
    def name(self) -> str:
        return LOG_MEAL

    @property
    def description(self) -> str:
        return "Log a meal the user ate, with optional nutrition estimates."

    @property
    def parameters(self) -> dict:
        return {
            "type": "object",
            "properties": {
                "description": {"type": "string", "description": "What the user ate"},
                "mealType": {"type": "string", "enum": MEAL_TYPES},
                "calories": {"type": "number"},
                "protein": {"type": "number"},
                "carbs": {"type": "number"},
                "fat": {"type": "number"},
            },
            "required": ["description", "mealType"],
        }

    async def execute(self, arguments: dict, *, user_id: str) -> ToolResult:
        entry = MealLog(
            description=arguments["description"],
            meal_type=arguments["mealType"],
            day=self._kitchen.today,
            calories=int(arguments.get("calories") or 0),
            protein=int(arguments.get("protein") or 0),
            carbs=int(arguments.get("carbs") or 0),
            fat=int(arguments.get("fat") or 0),
        )
        self._kitchen.meal_logs.append(entry)
        return ToolResult(
            result={
                "logged": {
                    "description": entry.description,
                    "mealType": entry.meal_type,
                    "calories": entry.calories,
                },
                "message": f"Logged {entry.meal_type}: {entry.description}.",
            },
            metadata={"type": "meal_log"},
        )


class GetNutritionSummaryTool(KitchenTool):
    @property
    def name(self) -> str:
        return GET_NUTRITION_SUMMARY

    @property
    def description(self) -> str:
        return "Summarize logged calories and macros for a day or a week."

    @property
    def parameters(self) -> dict:
        return {
            "type": "object",
            "properties": {
                "range": {"type": "string", "enum": ["day", "week"]},
                "date": {"type": "string", "description": "Start date in YYYY-MM-DD format"},
            },
        }

    async def execute(self, arguments: dict, *, user_id: str) -> ToolResult:
        span = arguments.get("range") or "day"
        start = (
            date.fromisoformat(arguments["date"])
            if arguments.get("date")
            else self._kitchen.today
        )
        end = start + timedelta(days=6) if span == "week" else start

        meals = [m for m in self._kitchen.meal_logs if start <= m.day <= end]
        totals = {
            "calories": sum(m.calories for m in meals),
            "protein": sum(m.protein for m in meals),
            "carbs": sum(m.carbs for m in meals),
            "fat": sum(m.fat for m in meals),
        }
        result: dict = {
            "range": span,
            "startDate": start.isoformat(),
            "endDate": end.isoformat(),
            "meals": [
                {
                    "description": m.description,
                    "mealType": m.meal_type,
                    "calories": m.calories,
                    "protein": m.protein,
                }
                for m in meals
            ],
            "totals": totals,
            "mealCount": len(meals),
        }
        if self._kitchen.calorie_goal:
            result["goal"] = {
                "targetCalories": self._kitchen.calorie_goal,
                "remaining": self._kitchen.calorie_goal - totals["calories"],
            }
        return ToolResult(result=result, metadata={"type": "nutrition"})


def kitchen_tools(kitchen: DemoKitchen) -> list[Tool]:
    return [
        SearchRecipesTool(kitchen),
        GetInventoryTool(kitchen),
        SuggestMealsTool(kitchen),
        GetMealPlanTool(kitchen),
        GenerateShoppingListTool(kitchen),
        LogMealTool(kitchen),
        GetNutritionSummaryTool(kitchen),
    ]


def register_kitchen_tools(registry: ToolRegistry, kitchen: DemoKitchen) -> None:
    for tool in kitchen_tools(kitchen):
        registry.register(tool)
