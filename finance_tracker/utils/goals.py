"""
Savings goal bookkeeping.

The contribution ledger is the source of truth for ``current_amount``: every
change to the amount is a ledger entry, and a direct edit is recorded as an
``adjustment`` entry carrying the difference. Functions here never mutate
their input; they return an updated copy.
"""
from __future__ import annotations

import math
from datetime import datetime
from typing import Any, Dict, Optional

from finance_tracker.core.errors import InvalidAmount
from finance_tracker.models.savings_goal import (
    Contribution,
    ContributionKind,
    SavingsGoal,
    SavingsGoalPublic,
)
from finance_tracker.utils.dates import utc_now

# Patch fields that are replaced only when truthy
REPLACEABLE_FIELDS = ("title", "target_amount", "category", "target_date", "description")


def new_contribution(amount: float, note: Optional[str] = None, now: Optional[datetime] = None) -> Contribution:
    """Build a ledger entry, rejecting non-positive and non-finite amounts."""
    if amount is None or not math.isfinite(amount) or amount <= 0:
        raise InvalidAmount()
    now = now or utc_now()
    return Contribution(amount=amount, note=note or "", date=now.isoformat())


def add_contribution(
    goal: SavingsGoal,
    amount: float,
    note: Optional[str] = None,
    now: Optional[datetime] = None,
) -> SavingsGoal:
    entry = new_contribution(amount, note, now)
    return goal.model_copy(
        update={
            "contributions": [*goal.contributions, entry],
            "current_amount": goal.current_amount + entry.amount,
        }
    )


def update_goal(goal: SavingsGoal, patch: Dict[str, Any], now: Optional[datetime] = None) -> SavingsGoal:
    updates: Dict[str, Any] = {}
    for field in REPLACEABLE_FIELDS:
        value = patch.get(field)
        # falsy means "leave unchanged", so a target of 0 is ignored too
        if value:
            updates[field] = value

    updated = goal.model_copy(update=updates)

    if patch.get("current_amount") is not None:
        delta = patch["current_amount"] - goal.current_amount
        if delta:
            now = now or utc_now()
            adjustment = Contribution(
                amount=delta,
                note="Manual adjustment",
                date=now.isoformat(),
                kind=ContributionKind.ADJUSTMENT,
            )
            updated = updated.model_copy(
                update={
                    "contributions": [*updated.contributions, adjustment],
                    "current_amount": patch["current_amount"],
                }
            )

    # re-validate so replaced fields are coerced the same way as on creation
    return SavingsGoal.model_validate(updated.model_dump())


def get_progress(goal: SavingsGoal) -> float:
    if goal.target_amount <= 0:
        return 0.0
    return goal.current_amount / goal.target_amount * 100


def get_required_monthly_saving(goal: SavingsGoal, now: Optional[datetime] = None) -> float:
    now = now or utc_now()
    months_left = (goal.target_date.year - now.year) * 12 + (goal.target_date.month - now.month)
    if months_left <= 0:
        return 0.0
    remaining = goal.target_amount - goal.current_amount
    # over-funded goals need nothing more
    return max(0.0, remaining / months_left)


def to_public(goal: SavingsGoal, now: Optional[datetime] = None) -> SavingsGoalPublic:
    return SavingsGoalPublic(
        goal_id=goal.goal_id,
        title=goal.title,
        target_amount=goal.target_amount,
        current_amount=goal.current_amount,
        category=goal.category,
        target_date=goal.target_date,
        description=goal.description,
        contributions=goal.contributions,
        created_at=goal.created_at,
        is_completed=goal.is_completed,
        progress=round(get_progress(goal), 2),
        required_monthly_saving=round(get_required_monthly_saving(goal, now), 2),
    )
