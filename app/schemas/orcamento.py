"""
Pydantic v2 schemas for the budget plan (Orçamento) module.

``BudgetPlanConfig`` is the immutable snapshot the ledger computes over:
Global Cap → PTRES → Dotação → Elemento.  The computed-value models define the
exact JSON returned by ``GET /api/orcamento/{year}/valores``.  They are free of
SQLAlchemy imports so that the schema layer stays decoupled from ORM internals.
"""

from __future__ import annotations

from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# Configuration snapshot
# ---------------------------------------------------------------------------


class DotacaoItem(BaseModel):
    """One budget line inside a PTRES.

    Attributes:
        id: Database id (``None`` for lines not yet persisted).
        element_code: Expense nature, e.g. ``"33.90.33"``.
        element_name: Expense nature label.
        dotacao_code: Editable budget-line number.
        allocated_value: Dotação atual.
        committed_value: Valor empenhado.
        is_active: Whether the line is the current one for its element.
        parent_id: Predecessor line in the exhaust-and-renew chain.
    """

    id: int | None = None
    element_code: str = Field(..., max_length=20)
    element_name: str = ""
    dotacao_code: str = Field(..., min_length=1, max_length=20)
    allocated_value: Decimal = Field(default=Decimal("0.00"), ge=0, decimal_places=2)
    committed_value: Decimal = Field(default=Decimal("0.00"), ge=0, decimal_places=2)
    is_active: bool = True
    parent_id: int | None = None

    model_config = ConfigDict(from_attributes=True, frozen=True)


class PtresAllocation(BaseModel):
    """Container of dotação lines for one PTRES.

    Attributes:
        ptres_code: One of the PTRES codes in ``constants.PTRES_CONFIG``.
        ptres_name: Short label, e.g. ``"Ordinário"``.
        description: Editable description.
        items: Dotação lines, active and superseded.
    """

    ptres_code: str = Field(..., max_length=10)
    ptres_name: str = ""
    description: str | None = None
    items: list[DotacaoItem] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)


class BudgetPlanConfig(BaseModel):
    """Full budget plan for one fiscal year.

    Attributes:
        id: Database id of the plan header.
        year: Fiscal year.
        total_budget: Global cap.
        allocations: One container per PTRES.
    """

    id: int | None = None
    year: int = Field(..., ge=2000, le=2100)
    total_budget: Decimal = Field(..., ge=0, decimal_places=2)
    allocations: list[PtresAllocation] = Field(default_factory=list)

    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "year": 2026,
                "total_budget": "6000000.00",
                "allocations": [
                    {
                        "ptres_code": "8193",
                        "ptres_name": "Ordinário",
                        "items": [
                            {
                                "element_code": "33.90.33",
                                "element_name": "Passagens e Locomoção",
                                "dotacao_code": "171",
                                "allocated_value": "1500000.00",
                                "committed_value": "0.00",
                            }
                        ],
                    }
                ],
            }
        },
    )


# ---------------------------------------------------------------------------
# Computed values
# ---------------------------------------------------------------------------


class ItemBreakdown(BaseModel):
    element_code: str
    value: Decimal
    percentage: Decimal = Field(..., description="Participação no total do PTRES (%).")


class PtresComputedValues(BaseModel):
    """Aggregates for one PTRES.

    Attributes:
        total_allocated: Sum of active lines.
        percentage_of_global: ``total_allocated / total_budget × 100``; 0 when the cap is 0.
        items_breakdown: Per-line value and share of the PTRES total.
    """

    total_allocated: Decimal
    percentage_of_global: Decimal
    items_breakdown: list[ItemBreakdown]


class BudgetPlanComputedValues(BaseModel):
    """Derived aggregates of a ``BudgetPlanConfig``.

    Attributes:
        total_distributed: Sum of every active ``allocated_value``.
        remaining: ``total_budget - total_distributed`` (negative when over budget).
        is_over_budget: ``total_distributed > total_budget``.
        percentage_used: ``total_distributed / total_budget × 100``; 0 when the cap is 0.
        ptres_values: Aggregates keyed by PTRES code.
    """

    total_distributed: Decimal
    remaining: Decimal
    is_over_budget: bool
    percentage_used: Decimal
    ptres_values: dict[str, PtresComputedValues]

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "total_distributed": "6500000.00",
                "remaining": "-500000.00",
                "is_over_budget": True,
                "percentage_used": "108.33",
                "ptres_values": {},
            }
        }
    )


# ---------------------------------------------------------------------------
# Ledger operations
# ---------------------------------------------------------------------------


class CommitRequest(BaseModel):
    """Payload for committing a value against a (PTRES, dotação) line."""

    ptres_code: str = Field(..., max_length=10)
    dotacao_code: str = Field(..., max_length=20)
    amount: Decimal = Field(..., gt=0, decimal_places=2)


class RenewDotacaoRequest(BaseModel):
    """Payload for exhausting a line and opening its successor.

    Attributes:
        ptres_code: PTRES of the line being renewed.
        element_code: Expense element whose active line is superseded.
        new_dotacao_code: Budget-line number of the successor.
        allocated_value: Allocation of the successor line.
    """

    ptres_code: str = Field(..., max_length=10)
    element_code: str = Field(..., max_length=20)
    new_dotacao_code: str = Field(..., min_length=1, max_length=20)
    allocated_value: Decimal = Field(..., ge=0, decimal_places=2)


class SaldoResponse(BaseModel):
    ptres_code: str
    element_code: str
    dotacao_code: str
    allocated_value: Decimal
    committed_value: Decimal
    available_balance: Decimal


class BudgetPlanResponse(BaseModel):
    """Plan snapshot plus its derived aggregates."""

    config: BudgetPlanConfig
    values: BudgetPlanComputedValues
