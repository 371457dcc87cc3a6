"""BudgetPlan / BudgetAllocation models: yearly PTRES → Dotação → Elemento ledger."""

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from app.database import Base


class BudgetPlan(Base):
    """Budget plan header; one per fiscal year.

    Attributes:
        id: Primary key.
        year: Fiscal year (unique).
        total_budget: Global cap for the year.
    """

    __tablename__ = "budget_plan"

    id = Column(Integer, primary_key=True, autoincrement=True)
    year = Column(Integer, unique=True, nullable=False)
    total_budget = Column(Numeric(15, 2), nullable=False)
    created_at = Column(DateTime, default=func.now(), nullable=False)
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now(), nullable=False)

    # Relationships
    allocations = relationship(
        "BudgetAllocation",
        back_populates="plan",
        order_by="BudgetAllocation.id",
        lazy="select",
        cascade="all, delete-orphan",
    )


class BudgetAllocation(Base):
    """One dotação line (an expense element under a PTRES).

    Lines are versioned with the exhaust-and-renew pattern: a renewed line
    is a new row pointing at its predecessor through ``parent_id`` and only
    the row with ``is_active`` participates in sums and balance lookups.
    Commitments stay on the row they were made against.

    Attributes:
        id: Primary key.
        plan_id: FK to BudgetPlan.
        ptres_code: PTRES the line belongs to, e.g. "8193".
        ptres_description: Editable PTRES description (denormalised per line).
        element_code: Expense nature, e.g. "33.90.33".
        element_name: Expense nature label.
        dotacao_code: Editable budget-line number, e.g. "170".
        allocated_value: Dotação atual.
        committed_value: Valor empenhado.
        is_active: Whether this row is the current line for its element.
        parent_id: Predecessor row in the renewal chain.
        version: Incremented on every commitment.
    """

    __tablename__ = "budget_allocation"

    id = Column(Integer, primary_key=True, autoincrement=True)
    plan_id = Column(Integer, ForeignKey("budget_plan.id"), nullable=False, index=True)
    ptres_code = Column(String(10), nullable=False)
    ptres_description = Column(String(300), nullable=True)
    element_code = Column(String(20), nullable=False)
    element_name = Column(String(200), nullable=True)
    dotacao_code = Column(String(20), nullable=False)
    allocated_value = Column(Numeric(15, 2), nullable=False, default=0)
    committed_value = Column(Numeric(15, 2), nullable=False, default=0)
    is_active = Column(Boolean, default=True, nullable=False)
    parent_id = Column(Integer, ForeignKey("budget_allocation.id"), nullable=True)
    version = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime, default=func.now(), nullable=False)
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now(), nullable=False)

    # Relationships
    plan = relationship("BudgetPlan", back_populates="allocations", lazy="select")
