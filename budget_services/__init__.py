"""
budget_services -- orchestration and persistence over the pure engines.

Usage:
    from budget_services import BudgetPlanningService, BudgetStore
"""

from budget_services.budget_store import BudgetStore
from budget_services.planning_service import SYSTEM_ACTOR_ID, BudgetPlanningService

__all__ = [
    "BudgetPlanningService",
    "BudgetStore",
    "SYSTEM_ACTOR_ID",
]
