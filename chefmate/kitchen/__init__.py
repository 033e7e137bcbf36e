"""Demo kitchen data and the tools that operate on it."""

from chefmate.kitchen.demo import DemoKitchen
from chefmate.kitchen.tools import kitchen_tools, register_kitchen_tools

__all__ = ["DemoKitchen", "kitchen_tools", "register_kitchen_tools"]
