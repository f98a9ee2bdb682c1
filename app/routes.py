# app/routes.py
"""
HTTP routes: expenses, salary cycles and notifications.

Routes only translate between JSON and the core. Errors raised by the core
are mapped to status codes by the handlers registered in app.main.
"""

from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query

from app.deps import get_components
from app.schemas import (
    AddExpenseRequest,
    AddNotificationRequest,
    CycleOut,
    ExpenseOut,
    NotificationOut,
    ReloadSalaryRequest,
    UpdateSalaryRequest,
)
from expense_tracker.audit import create_correlation_id
from expense_tracker.exceptions import ValidationError
from expense_tracker.models.ledger import ValidationIssue
from expense_tracker.orchestrator import AppComponents

router = APIRouter()


def _require(value, field: str, message: str):
    """Reject a missing body field with the same shape as validator errors."""
    if value is None:
        issue = ValidationIssue(
            field=field,
            issue_type="missing",
            message=message,
            severity="error",
        )
        raise ValidationError(message, issues=[issue])
    return value


# -------------------------------------------------------------------
# Expenses
# -------------------------------------------------------------------

@router.post("/expenses/add", status_code=201)
async def add_expense(
    body: AddExpenseRequest,
    background_tasks: BackgroundTasks,
    components: AppComponents = Depends(get_components),
):
    """
    Record an expense in the user's current cycle.

    The push for a triggered alert is sent after the response.
    """
    correlation_id = create_correlation_id()
    receipt = await components.ledger.append(body.to_draft(), correlation_id)

    if receipt.alert is not None:
        background_tasks.add_task(
            components.dispatcher.dispatch,
            receipt.expense.user_id,
            receipt.alert,
            correlation_id,
        )

    summary = receipt.summary
    return {
        "message": "Expense added successfully",
        "expenseId": receipt.expense.id,
        "salary": float(summary.salary),
        "total_spent": float(summary.spent),
        "remaining": float(summary.remaining),
        "percentUsed": summary.percent_used_display,
        "alert": receipt.alert.level.value if receipt.alert else None,
    }


@router.get("/expenses/summary/{user_id}")
async def expense_summary(
    user_id: int,
    components: AppComponents = Depends(get_components),
):
    summary = await components.accounting.get_cycle_summary(user_id)
    return {
        "salary": float(summary.salary),
        "spent": float(summary.spent),
        "remaining": float(summary.remaining),
        "percentUsed": summary.percent_used_display,
        "cycle_id": summary.cycle_id,
    }


@router.get("/expenses/categories/{user_id}")
async def expense_categories(
    user_id: int,
    components: AppComponents = Depends(get_components),
):
    summary = await components.accounting.get_category_summary(user_id)
    return {
        "cycle_id": summary.cycle_id,
        "categories": {name: float(total) for name, total in summary.totals.items()},
    }


@router.get("/expenses/all/{user_id}", response_model=list[ExpenseOut])
async def all_expenses(
    user_id: int,
    components: AppComponents = Depends(get_components),
):
    """Every expense of the user across cycles (admin/debug)."""
    return await components.ledger.list_all(user_id)


@router.get("/expenses/{user_id}", response_model=list[ExpenseOut])
async def current_expenses(
    user_id: int,
    components: AppComponents = Depends(get_components),
):
    """Expenses of the current cycle, newest first."""
    return await components.ledger.list_current(user_id)


@router.delete("/expenses/{expense_id}")
async def delete_expense(
    expense_id: int,
    user_id: Optional[int] = Query(None),
    components: AppComponents = Depends(get_components),
):
    await components.ledger.remove(expense_id, requester_id=user_id)
    return {"message": "Expense deleted successfully"}


# -------------------------------------------------------------------
# Salary cycles
# -------------------------------------------------------------------

@router.get("/cycles/{user_id}", response_model=list[CycleOut])
async def list_cycles(
    user_id: int,
    components: AppComponents = Depends(get_components),
):
    return await components.lifecycle.list_cycles(user_id)


@router.get("/cycles/{user_id}/{cycle_id}/expenses", response_model=list[ExpenseOut])
async def cycle_expenses(
    user_id: int,
    cycle_id: int,
    components: AppComponents = Depends(get_components),
):
    return await components.accounting.list_cycle_expenses(user_id, cycle_id)


@router.post("/user/reload-salary")
async def reload_salary(
    body: ReloadSalaryRequest,
    components: AppComponents = Depends(get_components),
):
    user_id = _require(body.user_id, "user_id", "User ID required")
    cycle = await components.lifecycle.reload_cycle(user_id)
    return {"message": "Salary reloaded successfully", "cycle_id": cycle.id}


@router.post("/user/update-salary")
async def update_salary(
    body: UpdateSalaryRequest,
    components: AppComponents = Depends(get_components),
):
    user_id = _require(body.user_id, "user_id", "User ID required")
    salary = _require(body.salary, "salary", "Salary required")
    user = await components.registration.update_salary(user_id, salary)
    return {"message": "Salary updated", "salary": float(user.salary)}


# -------------------------------------------------------------------
# Notifications
# -------------------------------------------------------------------

@router.post("/notifications/add")
async def add_notification(
    body: AddNotificationRequest,
    components: AppComponents = Depends(get_components),
):
    user_id = _require(body.user_id, "user_id", "User ID required")
    record = await components.notifications.add(user_id, body.title, body.message)
    return {"message": "Notification added successfully", "id": record.id}


@router.get("/notifications/{user_id}", response_model=list[NotificationOut])
async def list_notifications(
    user_id: int,
    components: AppComponents = Depends(get_components),
):
    return await components.notifications.list_for_user(user_id)
