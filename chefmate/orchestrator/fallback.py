"""
Deterministic fallback responder.

Used when no model backend is configured (or it cannot be reached).  The
lowercased user message is checked against an ordered list of intent
matchers; the first one whose trigger phrase appears wins, calls its tools
straight through the registry, and renders a templated answer.  Nothing
matched means the static introduction.  Every matcher answer carries
``DEGRADED_MODE_MARKER`` so the reduced experience is visible to the user.

New intents are added by appending an :class:`IntentMatcher` to the list
passed to :class:`FallbackResponder`; list order is priority order.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Sequence

from chefmate.tools.registry import ToolRegistry
from chefmate.types import OrchestrationResult, ToolExecutionRecord

logger = logging.getLogger(__name__)

DEGRADED_MODE_MARKER = (
    "(Basic mode: the AI assistant isn't available right now, so I can only "
    "handle simple requests.)"
)

FALLBACK_INTRO = (
    "Hi! I'm ChefMate, your kitchen assistant. I can show what's in your fridge, "
    "point out items that are about to expire, suggest meals from what you have, "
    "look up recipes, check your meal plan, build a shopping list and summarize "
    "your nutrition. What would you like to do?"
)


class FallbackTurn:
    """Tool access for one fallback answer; records every call it makes."""

    def __init__(self, registry: ToolRegistry, user_id: str) -> None:
        self.registry = registry
        self.user_id = user_id
        self.records: list[ToolExecutionRecord] = []

    async def call(self, tool_name: str, arguments: dict | None = None) -> Any:
        args = dict(arguments or {})
        outcome = await self.registry.execute(tool_name, args, self.user_id)
        if not outcome.success:
            logger.warning("Fallback tool %s failed: %s", tool_name, outcome.error)
        self.records.append(
            ToolExecutionRecord(
                name=tool_name,
                arguments=args,
                result=outcome.result,
                metadata=dict(outcome.metadata),
            )
        )
        return outcome.result


Handler = Callable[[FallbackTurn, str], Awaitable[str]]


@dataclass(frozen=True)
class IntentMatcher:
    name: str
    triggers: tuple[str, ...]
    handler: Handler

    def matches(self, text: str) -> bool:
        return any(trigger in text for trigger in self.triggers)


def normalize_message(message: str) -> str:
    text = message.lower().replace("’", "'").replace("‘", "'")
    return " ".join(text.split())


def _failed(result: Any) -> bool:
    return not isinstance(result, dict) or "error" in result


def _join(names: list[str]) -> str:
    if len(names) <= 1:
        return "".join(names)
    return ", ".join(names[:-1]) + f" and {names[-1]}"


def _recipe_label(recipe: dict) -> str:
    minutes = recipe.get("totalTime")
    title = recipe.get("title", "Untitled")
    return f"{title} ({minutes} min)" if minutes else title


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------

async def _expiring(turn: FallbackTurn, text: str) -> str:
    result = await turn.call("get_inventory", {"includeExpiring": True})
    if _failed(result):
        return "I couldn't check your expiry dates right now."
    expiring = result.get("expiringSoon") or []
    if not expiring:
        return "Good news: nothing in your kitchen expires in the next 3 days."
    names = [item.get("name", "?") for item in expiring]
    return (
        f"{len(names)} item(s) are expiring soon: {_join(names)}. "
        "Ask me what you can cook to use them up."
    )


async def _inventory(turn: FallbackTurn, text: str) -> str:
    result = await turn.call("get_inventory", {})
    if _failed(result):
        return "I couldn't load your inventory right now."
    total = result.get("totalItems", 0)
    if not total:
        return "Your inventory is empty. Add a few items and I can help you plan meals."
    parts = []
    for location, items in (result.get("inventory") or {}).items():
        if items:
            names = [item.get("name", "?") for item in items]
            parts.append(f"{location.capitalize()}: {', '.join(names)}")
    return f"You have {total} item(s) on hand. " + "; ".join(parts) + "."


async def _suggest(turn: FallbackTurn, text: str) -> str:
    result = await turn.call("suggest_meals", {"count": 3})
    if _failed(result):
        return "I couldn't come up with meal suggestions right now."
    suggestions = result.get("suggestions") or []
    if not suggestions:
        return result.get("message") or "I don't have any suggestions yet."
    labels = [_recipe_label(s) for s in suggestions]
    answer = f"Based on what you have, you could make: {_join(labels)}."
    if result.get("expiringItems"):
        answer += " These use up items that are expiring soon."
    return answer


async def _meal_plan(turn: FallbackTurn, text: str) -> str:
    offset = 1 if "next week" in text else 0
    result = await turn.call("get_meal_plan", {"weekOffset": offset})
    if _failed(result):
        return "I couldn't load your meal plan right now."
    plan = result.get("plan")
    if not plan:
        return result.get("message") or "You don't have a meal plan yet. Would you like to create one?"
    slots = plan.get("slots") or []
    if not slots:
        return f"Your plan \"{plan.get('name')}\" doesn't have any meals yet."
    lines = []
    for slot in slots:
        recipe = slot.get("recipe") or {}
        meal = recipe.get("title") or slot.get("customName") or "something"
        lines.append(f"{slot.get('date')} {slot.get('mealType')}: {meal}")
    return (
        f"Your plan \"{plan.get('name')}\" has {len(slots)} meal(s): "
        + "; ".join(lines)
        + "."
    )


async def _shopping_list(turn: FallbackTurn, text: str) -> str:
    result = await turn.call("generate_shopping_list", {})
    if _failed(result):
        return "I couldn't build a shopping list right now."
    items = result.get("items") or []
    if not items:
        return result.get("message") or "You already have everything you need."
    names = [item.get("name", "?") for item in items]
    return f"For your meal plan you still need {len(names)} item(s): {_join(names)}."


async def _nutrition(turn: FallbackTurn, text: str) -> str:
    span = "week" if "week" in text else "day"
    result = await turn.call("get_nutrition_summary", {"range": span})
    if _failed(result):
        return "I couldn't load your nutrition summary right now."
    totals = result.get("totals") or {}
    period = "this week" if span == "week" else "today"
    answer = (
        f"You've logged {result.get('mealCount', 0)} meal(s) {period}: "
        f"{totals.get('calories', 0)} kcal, {totals.get('protein', 0)} g protein, "
        f"{totals.get('carbs', 0)} g carbs and {totals.get('fat', 0)} g fat."
    )
    goal = result.get("goal")
    if goal and span == "day":
        answer += f" That leaves {goal.get('remaining')} kcal of your daily goal."
    return answer


_QUERY_NOISE = re.compile(
    r"\b(recipes?|how|do|does|you|i|to|make|cook|find|show|me|give|get|search|"
    r"look|up|for|a|an|the|some|any|please|can|could|with|good|easy|of)\b"
)


def extract_recipe_query(text: str) -> str:
    cleaned = re.sub(r"[^a-z0-9\s-]", " ", text)
    cleaned = _QUERY_NOISE.sub(" ", cleaned)
    return " ".join(cleaned.split())


async def _recipe_search(turn: FallbackTurn, text: str) -> str:
    query = extract_recipe_query(text)
    args: dict = {"limit": 5}
    if query:
        args["query"] = query
    result = await turn.call("search_recipes", args)
    if _failed(result):
        return "I couldn't search the recipe collection right now."
    recipes = result.get("recipes") or []
    if not recipes:
        return (
            f"I couldn't find any recipes for \"{query}\". Try a single ingredient or dish name."
            if query
            else "I couldn't find any recipes."
        )
    labels = [_recipe_label(r) for r in recipes]
    scope = f" for \"{query}\"" if query else ""
    return f"I found {len(recipes)} recipe(s){scope}: {_join(labels)}."


DEFAULT_MATCHERS: tuple[IntentMatcher, ...] = (
    IntentMatcher(
        "expiring",
        ("expir", "going bad", "go bad", "spoil", "use up"),
        _expiring,
    ),
    IntentMatcher(
        "inventory",
        ("fridge", "freezer", "pantry", "inventory", "what do i have", "what have i got", "in stock"),
        _inventory,
    ),
    IntentMatcher(
        "suggest",
        (
            "what can i cook", "what can i make", "what should i cook",
            "what should i make", "what should i eat", "suggest", "idea", "tonight",
        ),
        _suggest,
    ),
    IntentMatcher(
        "meal_plan",
        ("meal plan", "plan my", "this week", "next week", "what am i eating", "schedule"),
        _meal_plan,
    ),
    IntentMatcher(
        "shopping_list",
        ("shopping", "grocery", "groceries", "need to buy", "what to buy"),
        _shopping_list,
    ),
    IntentMatcher(
        "nutrition",
        ("calorie", "nutrition", "macros", "eaten today", "how much have i eaten", "my intake"),
        _nutrition,
    ),
    IntentMatcher(
        "recipe_search",
        ("recipe", "how do i make", "how to make", "how do you make", "cook"),
        _recipe_search,
    ),
)


class FallbackResponder:
    """
    Rule-based stand-in for the model.

    Parameters
    ----------
    registry : ToolRegistry
        Tools are called through the same dispatch contract the model uses.
    matchers : sequence of IntentMatcher
        Tried in order; the first match short-circuits the cascade.
    """

    def __init__(
        self,
        registry: ToolRegistry,
        matchers: Sequence[IntentMatcher] = DEFAULT_MATCHERS,
    ) -> None:
        self.registry = registry
        self.matchers = tuple(matchers)

    def match(self, message: str) -> IntentMatcher | None:
        text = normalize_message(message)
        for matcher in self.matchers:
            if matcher.matches(text):
                return matcher
        return None

    async def respond(self, message: str, user_id: str) -> OrchestrationResult:
        matcher = self.match(message)
        if matcher is None:
            logger.info("Fallback: no intent matched")
            return OrchestrationResult(content=FALLBACK_INTRO)

        logger.info("Fallback: matched intent %s", matcher.name)
        turn = FallbackTurn(self.registry, user_id)
        answer = await matcher.handler(turn, normalize_message(message))
        return OrchestrationResult.from_records(
            f"{answer}\n\n{DEGRADED_MODE_MARKER}", turn.records
        )
