import logging
from typing import List

from fastapi import APIRouter, Depends, status

from finance_tracker.core.deps import get_current_user_id, get_store
from finance_tracker.core.errors import NotFound
from finance_tracker.db.dynamo import DynamoStore
from finance_tracker.models.savings_goal import (
    ContributionCreate,
    SavingsGoal,
    SavingsGoalCreate,
    SavingsGoalPublic,
    SavingsGoalUpdate,
)
from finance_tracker.utils import goals

router = APIRouter()
logger = logging.getLogger(__name__)

GOAL_NOT_FOUND = "Savings goal not found"


@router.get("", response_model=List[SavingsGoalPublic])
def list_goals(user_id: str = Depends(get_current_user_id), store: DynamoStore = Depends(get_store)):
    return [goals.to_public(goal) for goal in store.list_goals(user_id)]


@router.post("", response_model=SavingsGoalPublic, status_code=status.HTTP_201_CREATED)
def create_goal(
    goal_in: SavingsGoalCreate,
    user_id: str = Depends(get_current_user_id),
    store: DynamoStore = Depends(get_store),
):
    goal = SavingsGoal(
        user_id=user_id,
        title=goal_in.title,
        target_amount=goal_in.target_amount,
        category=goal_in.category,
        target_date=goal_in.target_date,
        description=goal_in.description or "",
    )
    store.put_goal(goal)
    logger.info(f"Created savings goal {goal.goal_id} for user {user_id}")
    return goals.to_public(goal)


@router.get("/{goal_id}", response_model=SavingsGoalPublic)
def get_goal(goal_id: str, user_id: str = Depends(get_current_user_id), store: DynamoStore = Depends(get_store)):
    goal = store.get_goal(user_id, goal_id)
    if goal is None:
        raise NotFound(GOAL_NOT_FOUND)
    return goals.to_public(goal)


@router.put("/{goal_id}", response_model=SavingsGoalPublic)
def update_goal(
    goal_id: str,
    patch: SavingsGoalUpdate,
    user_id: str = Depends(get_current_user_id),
    store: DynamoStore = Depends(get_store),
):
    changes = patch.model_dump(exclude_unset=True)
    updated = store.update_goal(user_id, goal_id, lambda goal: goals.update_goal(goal, changes))
    if updated is None:
        raise NotFound(GOAL_NOT_FOUND)
    return goals.to_public(updated)


@router.delete("/{goal_id}")
def delete_goal(goal_id: str, user_id: str = Depends(get_current_user_id), store: DynamoStore = Depends(get_store)):
    if not store.delete_goal(user_id, goal_id):
        raise NotFound(GOAL_NOT_FOUND)
    return {"message": "Savings goal deleted successfully"}


@router.post("/{goal_id}/contributions", response_model=SavingsGoalPublic)
def add_contribution(
    goal_id: str,
    contribution_in: ContributionCreate,
    user_id: str = Depends(get_current_user_id),
    store: DynamoStore = Depends(get_store),
):
    contribution = goals.new_contribution(contribution_in.amount, contribution_in.note)
    updated = store.add_contribution(user_id, goal_id, contribution)
    if updated is None:
        raise NotFound(GOAL_NOT_FOUND)
    logger.info(f"Contribution of {contribution.amount} added to goal {goal_id}")
    return goals.to_public(updated)
