"""
SQLAlchemy ORM models for the SQL storage backend.

One table per stored concept. users.current_cycle_id is a plain column
rather than a foreign key: users and salary_cycles reference each other
and SQLite cannot add the second constraint after the fact.
"""

from datetime import datetime

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
)

from expense_tracker.services.storage.database import Base


class UserRow(Base):
    """A registered user and their current-cycle pointer."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    full_name = Column(String(200), nullable=False)
    email = Column(String(255), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False, default="")

    # Baseline salary, copied into each new cycle
    salary = Column(Numeric(12, 2), nullable=False)

    current_cycle_id = Column(Integer, nullable=True, index=True)
    push_token = Column(String(255), nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)


class SalaryCycleRow(Base):
    """One salary period. Never updated after insert."""

    __tablename__ = "salary_cycles"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    salary = Column(Numeric(12, 2), nullable=False)
    started_at = Column(DateTime, nullable=False, default=datetime.utcnow)


class CycleAlertWatermarkRow(Base):
    """Highest alert level already emitted for a cycle."""

    __tablename__ = "cycle_alert_watermarks"

    cycle_id = Column(Integer, ForeignKey("salary_cycles.id"), primary_key=True)
    level = Column(String(10), nullable=False)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow)


class ExpenseRow(Base):
    """A spend event, bound to the cycle that was current when it was added."""

    __tablename__ = "expenses"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    cycle_id = Column(Integer, ForeignKey("salary_cycles.id"), nullable=False, index=True)
    amount = Column(Numeric(12, 2), nullable=False)
    budget_type = Column(String(50), nullable=True)
    category = Column(String(100), nullable=False)
    note = Column(Text, nullable=True)
    expense_date = Column(Date, nullable=False)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)


class NotificationRow(Base):
    """Append-only notification log."""

    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    title = Column(String(200), nullable=True)
    message = Column(Text, nullable=False)
    cycle_id = Column(Integer, nullable=True)
    level = Column(String(10), nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)


class AuditEventRow(Base):
    """Append-only audit trail."""

    __tablename__ = "audit_events"

    event_id = Column(String(36), primary_key=True)
    timestamp = Column(DateTime, nullable=False, index=True)
    event_type = Column(String(50), nullable=False)
    severity = Column(String(20), nullable=False)
    entity_type = Column(String(50), nullable=True)
    entity_id = Column(Integer, nullable=True)
    correlation_id = Column(String(36), nullable=True, index=True)
    description = Column(String(500), nullable=False)
    details = Column(JSON, nullable=False, default=dict)
    error_message = Column(Text, nullable=True)
    is_user_action = Column(Boolean, nullable=False, default=False)
