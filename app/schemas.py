# app/schemas.py
# Role: Request and response bodies of the HTTP API.
#       Requests are permissive (every field optional) so that missing values
#       reach ExpenseValidator and come back as a list of issues.
#       Responses render money as JSON numbers.

"""
Pydantic schemas for the expense tracker HTTP API.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from expense_tracker.models.ledger import AlertLevel, ExpenseDraft


# -------------------------------------------------------------------
# Requests
# -------------------------------------------------------------------

class AddExpenseRequest(BaseModel):
    user_id: Optional[int] = None
    amount: Optional[Decimal] = None
    # Length limits mirror ExpenseDraft so oversized fields fail as a bad request
    budget_type: Optional[str] = Field(default=None, max_length=50)
    category: Optional[str] = Field(default=None, max_length=100)
    note: Optional[str] = Field(default=None, max_length=1000)
    expense_date: Optional[date] = None

    def to_draft(self) -> ExpenseDraft:
        return ExpenseDraft(**self.model_dump())


class ReloadSalaryRequest(BaseModel):
    user_id: Optional[int] = None


class UpdateSalaryRequest(BaseModel):
    user_id: Optional[int] = None
    salary: Optional[Decimal] = None


class AddNotificationRequest(BaseModel):
    user_id: Optional[int] = None
    title: Optional[str] = Field(default=None, max_length=200)
    message: Optional[str] = None


# -------------------------------------------------------------------
# Responses
# -------------------------------------------------------------------

class ExpenseOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    cycle_id: int
    amount: float
    budget_type: Optional[str] = None
    category: str
    note: Optional[str] = None
    expense_date: date
    created_at: datetime


class CycleOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    salary: float
    started_at: datetime


class NotificationOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    title: Optional[str] = None
    message: str
    cycle_id: Optional[int] = None
    level: Optional[AlertLevel] = None
    created_at: datetime
