"""
Goal Views

Progress is reported twice: `percent` is the true ratio and may exceed
100 when a goal is over-funded, `display_percent` is clamped to [0, 100]
for progress bars. Completion is decided on amounts, never on the
clamped number.
"""

from datetime import date
from decimal import Decimal
from typing import Iterable, Optional

from pydantic import BaseModel

from finance_sync.models.records import Goal


MILESTONES = (25, 50, 75, 100)

ZERO = Decimal("0.00")
HUNDRED = Decimal("100")


class GoalProgress(BaseModel):
    goal_id: str
    name: str
    percent: Decimal
    display_percent: Decimal
    completed: bool
    remaining: Decimal
    milestone: Optional[int] = None
    days_left: Optional[int] = None


class GoalsOverview(BaseModel):
    total_goals: int = 0
    completed_goals: int = 0
    active_goals: int = 0
    total_target: Decimal = ZERO
    total_saved: Decimal = ZERO
    overall_percent: Decimal = ZERO


def reached_milestone(percent: Decimal) -> Optional[int]:
    """Highest milestone at or below `percent`, if any."""
    reached = [m for m in MILESTONES if percent >= m]
    return reached[-1] if reached else None


def goal_progress(goal: Goal, today: Optional[date] = None) -> GoalProgress:
    percent = (goal.saved_amount / goal.target_amount * HUNDRED).quantize(Decimal("0.01"))
    display = min(max(percent, Decimal("0")), HUNDRED)

    days_left = None
    if goal.deadline is not None:
        days_left = (goal.deadline - (today or date.today())).days

    return GoalProgress(
        goal_id=str(goal.id),
        name=goal.name,
        percent=percent,
        display_percent=display,
        completed=goal.saved_amount >= goal.target_amount,
        remaining=max(goal.target_amount - goal.saved_amount, ZERO),
        milestone=reached_milestone(percent),
        days_left=days_left,
    )


def describe_deadline(days_left: Optional[int]) -> str:
    if days_left is None:
        return "No deadline"
    if days_left < 0:
        overdue = abs(days_left)
        return f"Overdue by {overdue} day{'s' if overdue != 1 else ''}"
    if days_left == 0:
        return "Due today"
    return f"{days_left} day{'s' if days_left != 1 else ''} left"


def goals_overview(goals: Iterable[Goal]) -> GoalsOverview:
    goals = list(goals)
    if not goals:
        return GoalsOverview()

    completed = sum(1 for g in goals if g.saved_amount >= g.target_amount)
    total_target = sum((g.target_amount for g in goals), ZERO)
    total_saved = sum((g.saved_amount for g in goals), ZERO)

    return GoalsOverview(
        total_goals=len(goals),
        completed_goals=completed,
        active_goals=len(goals) - completed,
        total_target=total_target,
        total_saved=total_saved,
        overall_percent=(total_saved / total_target * HUNDRED).quantize(Decimal("0.01")),
    )
