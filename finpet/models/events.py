# finpet/models/events.py
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from finpet.models.notification import NotificationSeverity


class FinancialEventType(str, Enum):
    GOAL_SET = "goalSet"
    GOAL_ACHIEVED = "goalAchieved"
    BUDGET_SAVED = "budgetSaved"
    UNPLANNED_EXPENSE = "unplannedExpense"
    DEBT_OVERDUE = "debtOverdue"


class FinancialEventData(BaseModel):
    """Optional context the reporting module attaches to an event."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    debt_id: Optional[str] = None
    debt_name: Optional[str] = None
    amount: Optional[float] = None
    category: Optional[str] = None


@dataclass(frozen=True)
class EventRule:
    title: str
    # Formatted with pet_name and subject (debt name for debtOverdue, expense detail for unplannedExpense)
    description: str
    treats: int = 0
    xp: int = 0
    happiness: int = 0
    energy: int = 0
    severity: NotificationSeverity = NotificationSeverity.INFO


FINANCIAL_EVENT_RULES: Dict[FinancialEventType, EventRule] = {
    FinancialEventType.GOAL_SET: EventRule(
        title="New Goal Set!",
        description="{pet_name} is excited about your new goal! +5 treats, +10 XP.",
        treats=5, xp=10,
    ),
    FinancialEventType.GOAL_ACHIEVED: EventRule(
        title="Goal Achieved! 🎉",
        description="Amazing work! {pet_name} is overjoyed! +20 treats, +50 XP.",
        treats=20, xp=50, happiness=20,
    ),
    FinancialEventType.BUDGET_SAVED: EventRule(
        title="Budget Saved!",
        description="{pet_name} appreciates your planning. +10 treats, +5 XP.",
        treats=10, xp=5,
    ),
    FinancialEventType.UNPLANNED_EXPENSE: EventRule(
        title="Expense Logged",
        description="{pet_name} noticed an unplanned expense{subject}. Keep an eye on your budget.",
        happiness=-10,
    ),
    FinancialEventType.DEBT_OVERDUE: EventRule(
        title="Debt Overdue!",
        description="{subject} is overdue. {pet_name} is worried about it.",
        happiness=-15, energy=-10,
        severity=NotificationSeverity.DESTRUCTIVE,
    ),
}
