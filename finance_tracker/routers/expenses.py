import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, status

from finance_tracker.core.deps import get_current_user_id, get_store
from finance_tracker.core.errors import NotFound, ValidationError
from finance_tracker.db.dynamo import DynamoStore
from finance_tracker.models.expense import (
    ExpenseCreate,
    ExpenseInDB,
    ExpensePublic,
    ExpenseStatisticsOut,
    ExpenseUpdate,
)
from finance_tracker.utils.analyzer import ExpenseAggregator
from finance_tracker.utils.dates import parse_range

router = APIRouter()
logger = logging.getLogger(__name__)
expense_aggregator = ExpenseAggregator()


@router.post("", response_model=ExpensePublic, status_code=status.HTTP_201_CREATED)
def create_expense(
    expense: ExpenseCreate,
    user_id: str = Depends(get_current_user_id),
    store: DynamoStore = Depends(get_store),
):
    expense_db = ExpenseInDB(user_id=user_id, **expense.model_dump(mode="json"))
    store.put_expense(expense_db.model_dump(mode="json", exclude_none=True))
    return ExpensePublic(**expense_db.model_dump())


@router.get("", response_model=List[ExpensePublic])
def list_expenses(
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    user_id: str = Depends(get_current_user_id),
    store: DynamoStore = Depends(get_store),
):
    """Expenses newest first; either bound may be given on its own."""
    date_range = parse_range(start_date, end_date)
    return store.list_expenses(user_id, date_range)


@router.get("/statistics", response_model=ExpenseStatisticsOut)
def expense_statistics(
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    user_id: str = Depends(get_current_user_id),
    store: DynamoStore = Depends(get_store),
):
    date_range = parse_range(start_date, end_date)
    # a half-open range does not filter statistics
    if not date_range.is_bounded:
        date_range = None
    expenses = store.list_expenses(user_id, date_range)
    stats = expense_aggregator.compute_statistics(expenses, date_range)
    logger.info(f"Statistics for user {user_id}: {stats.summary.count} expenses, total={stats.summary.total}")
    return stats.to_dict()


@router.put("/{expense_id}", response_model=ExpensePublic)
def update_expense(
    expense_id: str,
    expense_update: ExpenseUpdate,
    user_id: str = Depends(get_current_user_id),
    store: DynamoStore = Depends(get_store),
):
    mutable_fields = expense_update.to_storage()
    if not mutable_fields:
        raise ValidationError("No fields to update")

    updated = store.update_expense(user_id, expense_id, mutable_fields)
    if not updated:
        raise NotFound("Expense not found")
    return ExpensePublic(**updated)


@router.delete("/{expense_id}")
def delete_expense(
    expense_id: str,
    user_id: str = Depends(get_current_user_id),
    store: DynamoStore = Depends(get_store),
):
    deleted = store.delete_expense(user_id, expense_id)
    if not deleted:
        raise NotFound("Expense not found")
    return {"message": "Expense deleted successfully"}
