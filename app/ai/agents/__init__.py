"""Agent implementations."""

from app.ai.agents.base import BaseAgent
from app.ai.agents.planner import PlannerAgent, PlanRequest
from app.ai.agents.shopping_list import ShoppingListAgent, ShoppingListRequest

__all__ = ["BaseAgent", "PlannerAgent", "PlanRequest", "ShoppingListAgent", "ShoppingListRequest"]
