"""
SQL Storage Implementation

DESIGN DECISION: A relational database is the production backend because:
1. Appending an expense must read the user's cycle pointer and insert the
   row in one transaction
2. Cycle totals are plain SUM/GROUP BY queries
3. SQLite needs no setup, PostgreSQL/MySQL work through the same URL setting

TRADEOFFS:
- Sessions are synchronous; each call is short and runs inline
- users.current_cycle_id carries no foreign key (see orm.py)

The implementation follows the abstract interface, so business logic never
sees a Session or a Row.
"""

from contextlib import contextmanager
from datetime import date, datetime
from decimal import Decimal
from typing import Iterator, Optional
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from expense_tracker.models.audit import AuditEvent, AuditEventType, AuditSeverity
from expense_tracker.models.ledger import (
    AlertLevel,
    AlertRecord,
    Expense,
    SalaryCycle,
    UserAccount,
)
from expense_tracker.services.storage.interface import (
    AlertStorageInterface,
    AuditStorageInterface,
    CycleStorageInterface,
    DuplicateError,
    ExpenseStorageInterface,
    NotFoundError,
    StorageError,
    UserStorageInterface,
)
from expense_tracker.services.storage.orm import (
    AuditEventRow,
    CycleAlertWatermarkRow,
    ExpenseRow,
    NotificationRow,
    SalaryCycleRow,
    UserRow,
)


# =============================================================================
# ROW CONVERSION
# =============================================================================

def _to_user(row: UserRow) -> UserAccount:
    return UserAccount(
        id=row.id,
        full_name=row.full_name,
        email=row.email,
        password_hash=row.password_hash or "",
        salary=Decimal(row.salary),
        current_cycle_id=row.current_cycle_id,
        push_token=row.push_token,
        created_at=row.created_at,
    )


def _to_cycle(row: SalaryCycleRow) -> SalaryCycle:
    return SalaryCycle(
        id=row.id,
        user_id=row.user_id,
        salary=Decimal(row.salary),
        started_at=row.started_at,
    )


def _to_expense(row: ExpenseRow) -> Expense:
    return Expense(
        id=row.id,
        user_id=row.user_id,
        cycle_id=row.cycle_id,
        amount=Decimal(row.amount),
        budget_type=row.budget_type,
        category=row.category,
        note=row.note,
        expense_date=row.expense_date,
        created_at=row.created_at,
    )


def _to_alert(row: NotificationRow) -> AlertRecord:
    return AlertRecord(
        id=row.id,
        user_id=row.user_id,
        title=row.title,
        message=row.message,
        cycle_id=row.cycle_id,
        level=AlertLevel(row.level) if row.level else None,
        created_at=row.created_at,
    )


def _to_event(row: AuditEventRow) -> AuditEvent:
    return AuditEvent(
        event_id=UUID(row.event_id),
        timestamp=row.timestamp,
        event_type=AuditEventType(row.event_type),
        severity=AuditSeverity(row.severity),
        entity_type=row.entity_type,
        entity_id=row.entity_id,
        correlation_id=UUID(row.correlation_id) if row.correlation_id else None,
        description=row.description,
        details=row.details or {},
        error_message=row.error_message,
        is_user_action=row.is_user_action,
    )


# =============================================================================
# STORAGE
# =============================================================================

class SqlStorage(
    UserStorageInterface,
    CycleStorageInterface,
    ExpenseStorageInterface,
    AlertStorageInterface,
    AuditStorageInterface,
):
    """
    SQLAlchemy implementation of all storage interfaces.

    Every method is one session and one transaction. Database errors come
    out as StorageError; NotFoundError and DuplicateError pass through.
    """

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    @contextmanager
    def _transaction(self, action: str) -> Iterator[Session]:
        """Open a session, commit on success, roll back on any error."""
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except StorageError:
            session.rollback()
            raise
        except IntegrityError as e:
            session.rollback()
            raise DuplicateError(f"Failed to {action}: {e.orig}") from e
        except SQLAlchemyError as e:
            session.rollback()
            raise StorageError(f"Failed to {action}: {e}") from e
        finally:
            session.close()

    @staticmethod
    def _require_user(session: Session, user_id: int, lock: bool = False) -> UserRow:
        stmt = select(UserRow).where(UserRow.id == user_id)
        if lock:
            stmt = stmt.with_for_update()
        row = session.execute(stmt).scalar_one_or_none()
        if row is None:
            raise NotFoundError(f"User not found: {user_id}")
        return row

    # -------------------------------------------------------------------
    # Users
    # -------------------------------------------------------------------

    async def create_user(
        self,
        full_name: str,
        email: str,
        password_hash: str,
        salary: Decimal,
        push_token: Optional[str] = None,
    ) -> UserAccount:
        with self._transaction("create user") as session:
            existing = session.execute(
                select(UserRow.id).where(func.lower(UserRow.email) == email.lower())
            ).first()
            if existing is not None:
                raise DuplicateError(f"Email already exists: {email}")

            row = UserRow(
                full_name=full_name,
                email=email,
                password_hash=password_hash,
                salary=salary,
                push_token=push_token,
                created_at=datetime.utcnow(),
            )
            session.add(row)
            session.flush()
            return _to_user(row)

    async def get_user(self, user_id: int) -> Optional[UserAccount]:
        with self._transaction("get user") as session:
            row = session.get(UserRow, user_id)
            return _to_user(row) if row else None

    async def get_user_by_email(self, email: str) -> Optional[UserAccount]:
        with self._transaction("get user by email") as session:
            row = session.execute(
                select(UserRow).where(func.lower(UserRow.email) == email.lower())
            ).scalar_one_or_none()
            return _to_user(row) if row else None

    async def delete_user(self, user_id: int) -> bool:
        with self._transaction("delete user") as session:
            row = session.get(UserRow, user_id)
            if row is None:
                return False
            session.delete(row)
            return True

    async def update_salary(self, user_id: int, salary: Decimal) -> UserAccount:
        with self._transaction("update salary") as session:
            row = self._require_user(session, user_id, lock=True)
            row.salary = salary
            session.flush()
            return _to_user(row)

    async def set_current_cycle(self, user_id: int, cycle_id: int) -> None:
        with self._transaction("set current cycle") as session:
            row = self._require_user(session, user_id, lock=True)
            row.current_cycle_id = cycle_id

    async def set_push_token(self, user_id: int, push_token: Optional[str]) -> None:
        with self._transaction("set push token") as session:
            row = self._require_user(session, user_id)
            row.push_token = push_token

    # -------------------------------------------------------------------
    # Cycles
    # -------------------------------------------------------------------

    async def create_cycle(self, user_id: int, salary: Decimal) -> SalaryCycle:
        with self._transaction("create cycle") as session:
            self._require_user(session, user_id)
            row = SalaryCycleRow(
                user_id=user_id,
                salary=salary,
                started_at=datetime.utcnow(),
            )
            session.add(row)
            session.flush()
            return _to_cycle(row)

    async def get_cycle(self, cycle_id: int) -> Optional[SalaryCycle]:
        with self._transaction("get cycle") as session:
            row = session.get(SalaryCycleRow, cycle_id)
            return _to_cycle(row) if row else None

    async def list_cycles(self, user_id: int) -> list[SalaryCycle]:
        with self._transaction("list cycles") as session:
            rows = session.execute(
                select(SalaryCycleRow)
                .where(SalaryCycleRow.user_id == user_id)
                .order_by(SalaryCycleRow.started_at.desc(), SalaryCycleRow.id.desc())
            ).scalars()
            return [_to_cycle(row) for row in rows]

    async def delete_cycles_for_user(self, user_id: int) -> int:
        with self._transaction("delete cycles") as session:
            rows = session.execute(
                select(SalaryCycleRow).where(SalaryCycleRow.user_id == user_id)
            ).scalars().all()
            for row in rows:
                watermark = session.get(CycleAlertWatermarkRow, row.id)
                if watermark is not None:
                    session.delete(watermark)
                session.delete(row)
            return len(rows)

    async def get_alert_watermark(self, cycle_id: int) -> AlertLevel:
        with self._transaction("get alert watermark") as session:
            row = session.get(CycleAlertWatermarkRow, cycle_id)
            return AlertLevel(row.level) if row else AlertLevel.NONE

    async def set_alert_watermark(self, cycle_id: int, level: AlertLevel) -> None:
        with self._transaction("set alert watermark") as session:
            row = session.get(CycleAlertWatermarkRow, cycle_id)
            if row is None:
                session.add(
                    CycleAlertWatermarkRow(
                        cycle_id=cycle_id,
                        level=level.value,
                        updated_at=datetime.utcnow(),
                    )
                )
            elif level > AlertLevel(row.level):
                row.level = level.value
                row.updated_at = datetime.utcnow()

    # -------------------------------------------------------------------
    # Expenses
    # -------------------------------------------------------------------

    async def append_expense(
        self,
        user_id: int,
        amount: Decimal,
        category: str,
        expense_date: date,
        budget_type: Optional[str] = None,
        note: Optional[str] = None,
    ) -> Expense:
        with self._transaction("append expense") as session:
            # Row lock keeps a concurrent retarget from slipping in between
            user = self._require_user(session, user_id, lock=True)
            if user.current_cycle_id is None:
                raise NotFoundError(f"User {user_id} has no current cycle")

            row = ExpenseRow(
                user_id=user_id,
                cycle_id=user.current_cycle_id,
                amount=amount,
                budget_type=budget_type,
                category=category,
                note=note,
                expense_date=expense_date,
                created_at=datetime.utcnow(),
            )
            session.add(row)
            session.flush()
            return _to_expense(row)

    async def get_expense(self, expense_id: int) -> Optional[Expense]:
        with self._transaction("get expense") as session:
            row = session.get(ExpenseRow, expense_id)
            return _to_expense(row) if row else None

    async def delete_expense(self, expense_id: int) -> bool:
        with self._transaction("delete expense") as session:
            row = session.get(ExpenseRow, expense_id)
            if row is None:
                return False
            session.delete(row)
            return True

    async def list_expenses_for_cycle(self, cycle_id: int) -> list[Expense]:
        with self._transaction("list cycle expenses") as session:
            rows = session.execute(
                select(ExpenseRow)
                .where(ExpenseRow.cycle_id == cycle_id)
                .order_by(ExpenseRow.expense_date.desc(), ExpenseRow.id.desc())
            ).scalars()
            return [_to_expense(row) for row in rows]

    async def list_expenses_for_user(self, user_id: int) -> list[Expense]:
        with self._transaction("list user expenses") as session:
            rows = session.execute(
                select(ExpenseRow)
                .where(ExpenseRow.user_id == user_id)
                .order_by(ExpenseRow.expense_date.desc(), ExpenseRow.id.desc())
            ).scalars()
            return [_to_expense(row) for row in rows]

    async def total_for_cycle(self, cycle_id: int) -> Decimal:
        with self._transaction("total cycle expenses") as session:
            total = session.execute(
                select(func.coalesce(func.sum(ExpenseRow.amount), 0))
                .where(ExpenseRow.cycle_id == cycle_id)
            ).scalar_one()
            return Decimal(str(total))

    async def totals_by_category(self, cycle_id: int) -> dict[str, Decimal]:
        with self._transaction("total expenses by category") as session:
            rows = session.execute(
                select(ExpenseRow.category, func.sum(ExpenseRow.amount))
                .where(ExpenseRow.cycle_id == cycle_id)
                .group_by(ExpenseRow.category)
            ).all()
            return {category: Decimal(str(total)) for category, total in rows}

    # -------------------------------------------------------------------
    # Alerts
    # -------------------------------------------------------------------

    async def append_alert(
        self,
        user_id: int,
        title: Optional[str],
        message: str,
        cycle_id: Optional[int] = None,
        level: Optional[AlertLevel] = None,
    ) -> AlertRecord:
        with self._transaction("append notification") as session:
            row = NotificationRow(
                user_id=user_id,
                title=title,
                message=message,
                cycle_id=cycle_id,
                level=level.value if level else None,
                created_at=datetime.utcnow(),
            )
            session.add(row)
            session.flush()
            return _to_alert(row)

    async def list_alerts(self, user_id: int) -> list[AlertRecord]:
        with self._transaction("list notifications") as session:
            rows = session.execute(
                select(NotificationRow)
                .where(NotificationRow.user_id == user_id)
                .order_by(NotificationRow.created_at.desc(), NotificationRow.id.desc())
            ).scalars()
            return [_to_alert(row) for row in rows]

    # -------------------------------------------------------------------
    # Audit
    # -------------------------------------------------------------------

    async def append_event(self, event: AuditEvent) -> bool:
        with self._transaction("append audit event") as session:
            session.add(
                AuditEventRow(
                    event_id=str(event.event_id),
                    timestamp=event.timestamp,
                    event_type=event.event_type.value,
                    severity=event.severity.value,
                    entity_type=event.entity_type,
                    entity_id=event.entity_id,
                    correlation_id=str(event.correlation_id) if event.correlation_id else None,
                    description=event.description,
                    details=event.details,
                    error_message=event.error_message,
                    is_user_action=event.is_user_action,
                )
            )
        return True

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        with self._transaction("read audit events") as session:
            rows = session.execute(
                select(AuditEventRow)
                .where(AuditEventRow.correlation_id == str(correlation_id))
                .order_by(AuditEventRow.timestamp)
            ).scalars()
            return [_to_event(row) for row in rows]

    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: int,
    ) -> list[AuditEvent]:
        with self._transaction("read audit events") as session:
            rows = session.execute(
                select(AuditEventRow)
                .where(
                    AuditEventRow.entity_type == entity_type,
                    AuditEventRow.entity_id == entity_id,
                )
                .order_by(AuditEventRow.timestamp)
            ).scalars()
            return [_to_event(row) for row in rows]

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        with self._transaction("read audit events") as session:
            rows = session.execute(
                select(AuditEventRow)
                .order_by(AuditEventRow.timestamp.desc())
                .limit(limit)
            ).scalars()
            return [_to_event(row) for row in rows]
