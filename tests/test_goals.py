from datetime import date, datetime, timezone

import pytest

from finance_tracker.core.errors import InvalidAmount
from finance_tracker.models.savings_goal import ContributionKind, GoalCategory, SavingsGoal
from finance_tracker.utils import goals

NOW = datetime(2024, 1, 15, 12, 0, tzinfo=timezone.utc)


def make_goal(**overrides):
    fields = {
        "user_id": "user-1",
        "title": "New car",
        "target_amount": 12000.0,
        "category": GoalCategory.CAR,
        "target_date": date(2025, 1, 15),
    }
    fields.update(overrides)
    return SavingsGoal(**fields)


def test_contributions_accumulate_and_complete_once_target_reached():
    goal = make_goal(target_amount=300.0)
    amounts = [100.0, 150.0, 50.0, 25.0]
    completed = []
    for amount in amounts:
        goal = goals.add_contribution(goal, amount, now=NOW)
        completed.append(goal.is_completed)

    assert goal.current_amount == sum(amounts)
    assert completed == [False, False, True, True]
    assert [c.amount for c in goal.contributions] == amounts


def test_add_contribution_does_not_mutate_input():
    goal = make_goal()
    updated = goals.add_contribution(goal, 100.0, note="first", now=NOW)
    assert goal.current_amount == 0
    assert goal.contributions == []
    assert updated.contributions[0].note == "first"
    assert updated.contributions[0].date == NOW.isoformat()


@pytest.mark.parametrize("amount", [0, -10, None, float("nan"), float("inf"), float("-inf")])
def test_invalid_contribution_amount_is_rejected(amount):
    goal = goals.add_contribution(make_goal(), 50.0, now=NOW)
    with pytest.raises(InvalidAmount):
        goals.add_contribution(goal, amount, now=NOW)
    assert goal.current_amount == 50.0


def test_update_replaces_truthy_fields():
    goal = make_goal()
    updated = goals.update_goal(goal, {"title": "Used car", "target_amount": 8000.0, "description": ""})
    assert updated.title == "Used car"
    assert updated.target_amount == 8000.0
    assert updated.description == goal.description


def test_update_ignores_zero_target():
    goal = make_goal()
    updated = goals.update_goal(goal, {"target_amount": 0})
    assert updated.target_amount == 12000.0


def test_direct_current_amount_is_recorded_as_adjustment():
    goal = goals.add_contribution(make_goal(target_amount=500.0), 200.0, now=NOW)
    updated = goals.update_goal(goal, {"current_amount": 600.0}, now=NOW)

    assert updated.current_amount == 600.0
    assert updated.is_completed
    adjustment = updated.contributions[-1]
    assert adjustment.kind == ContributionKind.ADJUSTMENT
    assert adjustment.amount == 400.0
    assert sum(c.amount for c in updated.contributions) == updated.current_amount


def test_lowering_current_amount_clears_completion():
    goal = goals.add_contribution(make_goal(target_amount=500.0), 500.0, now=NOW)
    assert goal.is_completed

    lowered = goals.update_goal(goal, {"current_amount": 0}, now=NOW)
    assert lowered.current_amount == 0
    assert not lowered.is_completed
    assert lowered.contributions[-1].amount == -500.0


def test_unchanged_current_amount_adds_no_entry():
    goal = goals.add_contribution(make_goal(), 100.0, now=NOW)
    updated = goals.update_goal(goal, {"current_amount": 100.0}, now=NOW)
    assert len(updated.contributions) == 1


def test_raising_target_reopens_goal():
    goal = goals.add_contribution(make_goal(target_amount=100.0), 100.0, now=NOW)
    updated = goals.update_goal(goal, {"target_amount": 200.0})
    assert not updated.is_completed


def test_progress():
    goal = goals.add_contribution(make_goal(target_amount=400.0), 100.0, now=NOW)
    assert goals.get_progress(goal) == 25.0
    assert goals.get_progress(make_goal(target_amount=0)) == 0.0


def test_required_monthly_saving_spreads_remaining_amount():
    assert goals.get_required_monthly_saving(make_goal(), NOW) == 1000.0


def test_required_monthly_saving_is_zero_when_due_or_overdue():
    assert goals.get_required_monthly_saving(make_goal(target_date=date(2023, 6, 1)), NOW) == 0
    assert goals.get_required_monthly_saving(make_goal(target_date=date(2024, 1, 31)), NOW) == 0


def test_required_monthly_saving_is_clamped_for_overfunded_goal():
    goal = goals.add_contribution(make_goal(target_amount=100.0), 250.0, now=NOW)
    assert goals.get_required_monthly_saving(goal, NOW) == 0


def test_public_projection_includes_derived_metrics():
    goal = goals.add_contribution(make_goal(), 6000.0, now=NOW)
    public = goals.to_public(goal, NOW)
    assert public.is_completed is False
    assert public.progress == 50.0
    assert public.required_monthly_saving == 500.0
