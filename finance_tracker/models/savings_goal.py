from datetime import date, datetime, timezone
from enum import Enum
from typing import List, Optional
from uuid import uuid4

from pydantic import BaseModel, Field

from finance_tracker.utils.dates import UtcDate


class GoalCategory(str, Enum):
    EMERGENCY = "Emergency"
    VACATION = "Vacation"
    CAR = "Car"
    HOUSE = "House"
    EDUCATION = "Education"
    RETIREMENT = "Retirement"
    OTHER = "Other"


class ContributionKind(str, Enum):
    CONTRIBUTION = "contribution"
    ADJUSTMENT = "adjustment"


class Contribution(BaseModel):
    amount: float
    date: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    note: str = ""
    kind: ContributionKind = ContributionKind.CONTRIBUTION


class SavingsGoal(BaseModel):
    """Stored shape of a goal; contributions are embedded in the same item."""

    goal_id: str = Field(default_factory=lambda: str(uuid4()))
    user_id: str
    title: str
    target_amount: float
    current_amount: float = 0.0
    category: GoalCategory
    target_date: UtcDate
    description: str = ""
    contributions: List[Contribution] = Field(default_factory=list)
    created_at: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    version: int = 0

    @property
    def is_completed(self) -> bool:
        return self.current_amount >= self.target_amount


class SavingsGoalCreate(BaseModel):
    title: str = Field(..., min_length=1)
    target_amount: float = Field(..., gt=0, allow_inf_nan=False)
    category: GoalCategory
    target_date: UtcDate
    description: Optional[str] = ""


class SavingsGoalUpdate(BaseModel):
    title: Optional[str] = None
    target_amount: Optional[float] = Field(None, ge=0, allow_inf_nan=False)
    category: Optional[GoalCategory] = None
    target_date: Optional[UtcDate] = None
    description: Optional[str] = None
    current_amount: Optional[float] = Field(None, ge=0, allow_inf_nan=False)


class ContributionCreate(BaseModel):
    # sign is checked by the tracker so that it reports InvalidAmount
    amount: float = Field(..., allow_inf_nan=False)
    note: Optional[str] = None


class SavingsGoalPublic(BaseModel):
    goal_id: str
    title: str
    target_amount: float
    current_amount: float
    category: GoalCategory
    target_date: date
    description: str = ""
    contributions: List[Contribution]
    created_at: str
    is_completed: bool
    progress: float
    required_monthly_saving: float
