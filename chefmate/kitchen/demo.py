"""
In-memory demo kitchen.

A small, self-contained data set (pantry, recipes, a meal plan, meal logs and
preferences) so the CLI and the tests can exercise the whole engine without a
database.  Expiry dates are relative to the day the kitchen is created.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, timedelta

EXPIRING_WINDOW_DAYS = 3
STORAGE_LOCATIONS = ("fridge", "freezer", "pantry", "other")


@dataclass
class InventoryItem:
    name: str
    quantity: float
    unit: str
    category: str
    location: str = "pantry"
    expires_on: date | None = None

    def expires_within(self, days: int, today: date) -> bool:
        return self.expires_on is not None and self.expires_on <= today + timedelta(days=days)

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "quantity": self.quantity,
            "unit": self.unit,
            "category": self.category,
            "expiresAt": self.expires_on.isoformat() if self.expires_on else None,
        }


@dataclass
class Ingredient:
    name: str
    amount: float
    unit: str


@dataclass
class Recipe:
    id: str
    title: str
    category: str
    difficulty: str
    total_time: int
    servings: int
    calories: int
    protein: int
    ingredients: list[Ingredient] = field(default_factory=list)
    description: str = ""
    dietary_tags: list[str] = field(default_factory=list)

    def summary(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "category": self.category,
            "difficulty": self.difficulty,
            "totalTime": self.total_time,
            "servings": self.servings,
            "calories": self.calories,
            "protein": self.protein,
            "dietaryTags": list(self.dietary_tags),
        }


@dataclass
class MealSlot:
    day: date
    meal_type: str
    recipe_id: str | None = None
    custom_name: str | None = None


@dataclass
class MealPlan:
    id: str
    name: str
    start: date
    slots: list[MealSlot] = field(default_factory=list)

    @property
    def end(self) -> date:
        return self.start + timedelta(days=6)


@dataclass
class MealLog:
    description: str
    meal_type: str
    day: date
    calories: int = 0
    protein: int = 0
    carbs: int = 0
    fat: int = 0


def week_start(day: date) -> date:
    return day - timedelta(days=day.weekday())


class DemoKitchen:
    """A single-household kitchen shared by every demo user."""

    def __init__(self, today: date | None = None) -> None:
        self.today = today or date.today()
        self.preferences = "Prefers high-protein dinners, no shellfish, cooks for two."
        self.calorie_goal = 2000
        self.inventory = _demo_inventory(self.today)
        self.recipes = _demo_recipes()
        self.meal_plans = [_demo_plan(self.today)]
        self.meal_logs: list[MealLog] = [
            MealLog("Greek yogurt with berries", "breakfast", self.today, 220, 18, 28, 4),
            MealLog("Turkey and avocado wrap", "lunch", self.today, 540, 34, 45, 22),
        ]

    def recipe(self, recipe_id: str) -> Recipe | None:
        for r in self.recipes:
            if r.id == recipe_id:
                return r
        return None

    def plan_for_week(self, offset: int = 0) -> MealPlan | None:
        start = week_start(self.today) + timedelta(weeks=offset)
        for plan in self.meal_plans:
            if plan.start == start:
                return plan
        return None

    def expiring(self, days: int = EXPIRING_WINDOW_DAYS) -> list[InventoryItem]:
        items = [i for i in self.inventory if i.expires_within(days, self.today)]
        return sorted(items, key=lambda i: i.expires_on or self.today)

    def inventory_summary(self, max_items: int = 8) -> str | None:
        """A short, already-truncated summary suitable for a system prompt."""
        if not self.inventory:
            return None
        names = [i.name for i in self.inventory[:max_items]]
        more = len(self.inventory) - len(names)
        line = f"{len(self.inventory)} items on hand: {', '.join(names)}"
        if more > 0:
            line += f" and {more} more"
        expiring = self.expiring()
        if expiring:
            soon = ", ".join(
                f"{i.name} ({(i.expires_on - self.today).days}d)"
                for i in expiring[:max_items]
                if i.expires_on is not None
            )
            line += f".\nExpiring soon: {soon}"
        return line


def _demo_inventory(today: date) -> list[InventoryItem]:
    def days(n: int) -> date:
        return today + timedelta(days=n)

    return [
        InventoryItem("chicken breast", 1.5, "lb", "protein", "fridge", days(1)),
        InventoryItem("spinach", 1, "bag", "produce", "fridge", days(2)),
        InventoryItem("eggs", 10, "count", "dairy", "fridge", days(12)),
        InventoryItem("greek yogurt", 2, "cup", "dairy", "fridge", days(5)),
        InventoryItem("bell pepper", 2, "count", "produce", "fridge", days(3)),
        InventoryItem("ground turkey", 1, "lb", "protein", "freezer", days(60)),
        InventoryItem("frozen peas", 1, "bag", "produce", "freezer", days(120)),
        InventoryItem("brown rice", 2, "lb", "grains", "pantry"),
        InventoryItem("whole wheat tortillas", 8, "count", "grains", "pantry", days(9)),
        InventoryItem("black beans", 2, "can", "pantry", "pantry"),
        InventoryItem("olive oil", 1, "bottle", "pantry", "pantry"),
    ]


def _demo_recipes() -> list[Recipe]:
    return [
        Recipe(
            "r-burrito-bowl", "Chicken Burrito Bowl", "mexican", "easy", 30, 2, 520, 42,
            [
                Ingredient("chicken breast", 1, "lb"),
                Ingredient("brown rice", 1, "cup"),
                Ingredient("black beans", 1, "can"),
                Ingredient("bell pepper", 1, "count"),
                Ingredient("salsa", 0.5, "cup"),
            ],
            "A lighter take on the fast-food burrito bowl with lean chicken and fiber-rich beans.",
            ["high-protein", "gluten-free"],
        ),
        Recipe(
            "r-spinach-omelet", "Spinach Feta Omelet", "breakfast", "easy", 15, 1, 310, 24,
            [
                Ingredient("eggs", 3, "count"),
                Ingredient("spinach", 1, "cup"),
                Ingredient("feta", 0.25, "cup"),
            ],
            "A quick protein-packed breakfast that uses up leafy greens.",
            ["vegetarian", "low-carb"],
        ),
        Recipe(
            "r-turkey-burger", "Crispy Turkey Smash Burger", "burger", "medium", 25, 2, 480, 38,
            [
                Ingredient("ground turkey", 1, "lb"),
                Ingredient("whole wheat buns", 2, "count"),
                Ingredient("cheddar", 2, "slice"),
                Ingredient("pickles", 4, "slice"),
            ],
            "A smash burger with lean turkey and a whole wheat bun.",
            ["high-protein"],
        ),
        Recipe(
            "r-fried-rice", "Veggie Egg Fried Rice", "sides", "easy", 20, 2, 430, 16,
            [
                Ingredient("brown rice", 1, "cup"),
                Ingredient("eggs", 2, "count"),
                Ingredient("frozen peas", 1, "cup"),
                Ingredient("soy sauce", 2, "tbsp"),
            ],
            "Takeout-style fried rice made with brown rice and plenty of vegetables.",
            ["vegetarian"],
        ),
        Recipe(
            "r-chicken-wrap", "Grilled Chicken Caesar Wrap", "chicken", "easy", 20, 2, 450, 36,
            [
                Ingredient("chicken breast", 0.5, "lb"),
                Ingredient("whole wheat tortillas", 2, "count"),
                Ingredient("romaine", 2, "cup"),
                Ingredient("greek yogurt", 0.25, "cup"),
                Ingredient("parmesan", 2, "tbsp"),
            ],
            "A Caesar wrap with a yogurt-based dressing instead of mayo.",
            ["high-protein"],
        ),
    ]


def _demo_plan(today: date) -> MealPlan:
    start = week_start(today)
    return MealPlan(
        id="plan-current",
        name=f"Week of {start.strftime('%b %d')}",
        start=start,
        slots=[
            MealSlot(start, "dinner", "r-burrito-bowl"),
            MealSlot(start + timedelta(days=1), "dinner", "r-turkey-burger"),
            MealSlot(start + timedelta(days=2), "breakfast", "r-spinach-omelet"),
            MealSlot(start + timedelta(days=3), "dinner", None, "Leftover burrito bowl"),
        ],
    )
