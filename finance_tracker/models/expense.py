from datetime import date, datetime, timezone
from enum import Enum
from typing import List, Optional
from uuid import uuid4

from pydantic import BaseModel, Field

from finance_tracker.utils.dates import UtcDate


class ExpenseCategory(str, Enum):
    FOOD = "Food"
    TRANSPORTATION = "Transportation"
    HOUSING = "Housing"
    UTILITIES = "Utilities"
    ENTERTAINMENT = "Entertainment"
    HEALTHCARE = "Healthcare"
    SHOPPING = "Shopping"
    OTHER = "Other"


class ExpenseCreate(BaseModel):
    description: str = Field(..., min_length=1)
    amount: float = Field(..., gt=0, allow_inf_nan=False)
    category: ExpenseCategory
    date: UtcDate
    notes: Optional[str] = None


class ExpenseUpdate(BaseModel):
    description: Optional[str] = Field(None, min_length=1)
    amount: Optional[float] = Field(None, gt=0, allow_inf_nan=False)
    category: Optional[ExpenseCategory] = None
    date: Optional[UtcDate] = None
    notes: Optional[str] = None

    def to_storage(self) -> dict:
        """Fields the client actually sent, serialized for DynamoDB."""
        updates = self.model_dump(exclude_unset=True, mode="json")
        return {k: v for k, v in updates.items() if v is not None or k == "notes"}


class ExpenseInDB(BaseModel):
    user_id: str
    expense_id: str = Field(default_factory=lambda: str(uuid4()))
    description: str
    amount: float
    # free text in storage so records from before the enum still load
    category: str
    date: UtcDate
    notes: Optional[str] = None
    created_at: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())


class ExpensePublic(BaseModel):
    expense_id: str
    description: str
    amount: float
    category: str
    date: UtcDate
    notes: Optional[str] = None
    created_at: Optional[str] = None


class CategoryAmountOut(BaseModel):
    category: str
    amount: float


class TrendPointOut(BaseModel):
    date: str
    amount: float
    category_breakdown: List[CategoryAmountOut]


class DistributionSliceOut(BaseModel):
    name: str
    value: float


class StatisticsSummaryOut(BaseModel):
    total: float
    count: int
    average: float
    average_transaction: float


class ExpenseStatisticsOut(BaseModel):
    trend: List[TrendPointOut]
    distribution: List[DistributionSliceOut]
    summary: StatisticsSummaryOut
