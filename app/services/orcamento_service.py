"""
Budget ledger service layer.

Owns the yearly budget plan (Global Cap → PTRES → Dotação → Elemento), its
derived aggregates, balance lookups and the commitment of empenho values
against a dotação line.

Design notes
------------
- ``calculate_budget_values`` is pure: it works on a frozen
  ``BudgetPlanConfig`` snapshot and never touches the store.
- All money math is ``Decimal`` quantized to centavos; percentages are
  rounded to 2 dp and are *not* capped, so an over-distributed plan reports
  e.g. ``108.33``.
- Superseded (``is_active=False``) lines are ignored by sums and lookups but
  keep the commitments made against them.
- ``commit_value`` locks the line (``SELECT ... FOR UPDATE`` where supported),
  checks the balance in ``Decimal`` and writes through a version
  compare-and-set.  A lost race re-reads the line a bounded number of times.
"""

from __future__ import annotations

import datetime
import logging
from decimal import Decimal

from app.models.orcamento import BudgetAllocation, BudgetPlan
from app.schemas.common import OperationResult
from app.schemas.orcamento import (
    BudgetPlanComputedValues,
    BudgetPlanConfig,
    DotacaoItem,
    ItemBreakdown,
    PtresAllocation,
    PtresComputedValues,
    SaldoResponse,
)
from app.services.errors import (
    InsufficientBalance,
    NotFound,
    StoreFailure,
    ValidationError,
    as_result,
)
from app.stores.base import UnitOfWork
from app.utils.constants import (
    DEFAULT_DOTACAO_BASE,
    DEFAULT_TOTAL_BUDGET,
    EXPENSE_ELEMENTS,
    PTRES_CONFIG,
)
from app.utils.money import format_brl, safe_pct, to_money

logger = logging.getLogger(__name__)

# Attempts made by commit_value before giving up on a contended line
_COMMIT_ATTEMPTS = 3


# ---------------------------------------------------------------------------
# Pure computation
# ---------------------------------------------------------------------------


def calculate_budget_values(config: BudgetPlanConfig) -> BudgetPlanComputedValues:
    """Derive the aggregates of a budget plan.

    Args:
        config: Immutable plan snapshot.

    Returns:
        Per-PTRES totals and shares plus the global distribution figures.
    """
    total_budget = to_money(config.total_budget)
    total_distributed = Decimal("0.00")
    ptres_values: dict[str, PtresComputedValues] = {}

    # Containers repeating a PTRES code are merged into one entry
    grouped: dict[str, list[DotacaoItem]] = {}
    for allocation in config.allocations:
        grouped.setdefault(allocation.ptres_code, []).extend(allocation.items)

    for ptres_code, items in grouped.items():
        active = [item for item in items if item.is_active]
        ptres_total = to_money(sum((to_money(i.allocated_value) for i in active), Decimal("0")))
        total_distributed += ptres_total

        ptres_values[ptres_code] = PtresComputedValues(
            total_allocated=ptres_total,
            percentage_of_global=safe_pct(ptres_total, total_budget),
            items_breakdown=[
                ItemBreakdown(
                    element_code=item.element_code,
                    value=to_money(item.allocated_value),
                    percentage=safe_pct(to_money(item.allocated_value), ptres_total),
                )
                for item in active
            ],
        )

    total_distributed = to_money(total_distributed)
    return BudgetPlanComputedValues(
        total_distributed=total_distributed,
        remaining=to_money(total_budget - total_distributed),
        is_over_budget=total_distributed > total_budget,
        percentage_used=safe_pct(total_distributed, total_budget),
        ptres_values=ptres_values,
    )


def plan_to_config(plan: BudgetPlan) -> BudgetPlanConfig:
    """Convert a persisted plan into its immutable snapshot, grouped by PTRES."""
    grouped: dict[str, list[BudgetAllocation]] = {}
    for allocation in plan.allocations:
        grouped.setdefault(allocation.ptres_code, []).append(allocation)

    allocations = []
    for code, rows in grouped.items():
        description = next((r.ptres_description for r in rows if r.is_active), None)
        allocations.append(
            PtresAllocation(
                ptres_code=code,
                ptres_name=PTRES_CONFIG.get(code, {}).get("name", code),
                description=description or rows[0].ptres_description,
                items=[_item(r) for r in rows],
            )
        )
    return BudgetPlanConfig(
        id=plan.id,
        year=plan.year,
        total_budget=to_money(plan.total_budget),
        allocations=allocations,
    )


def _item(row: BudgetAllocation) -> DotacaoItem:
    return DotacaoItem(
        id=row.id,
        element_code=row.element_code,
        element_name=row.element_name or "",
        dotacao_code=row.dotacao_code,
        allocated_value=to_money(row.allocated_value),
        committed_value=to_money(row.committed_value),
        is_active=bool(row.is_active),
        parent_id=row.parent_id,
    )


def _available(allocation: BudgetAllocation) -> Decimal:
    return to_money(allocation.allocated_value) - to_money(allocation.committed_value)


def _current_year() -> int:
    return datetime.date.today().year


# ---------------------------------------------------------------------------
# Plan maintenance
# ---------------------------------------------------------------------------


@as_result
def get_budget_plan(uow: UnitOfWork, year: int) -> OperationResult:
    """Return the plan of *year* together with its computed values.

    Returns:
        ``data = {"config": BudgetPlanConfig, "values": BudgetPlanComputedValues}``.
    """
    plan = uow.budget.get_plan(year)
    if plan is None:
        raise NotFound(f"Nenhum plano orçamentário cadastrado para {year}.")
    config = plan_to_config(plan)
    logger.debug("Loaded budget plan %s (%d PTRES)", year, len(config.allocations))
    return OperationResult.success(
        "Plano orçamentário",
        f"Plano {year} carregado.",
        data={"config": config, "values": calculate_budget_values(config)},
    )


@as_result
def create_default_budget_plan(uow: UnitOfWork, year: int) -> OperationResult:
    """Create the default plan for *year*.

    Global cap R$ 6.000.000,00; every PTRES of ``PTRES_CONFIG`` gets one zeroed
    line per expense element with dotação codes 170, 171, 172, 173.

    Raises (as a failed result):
        ValidationError: A plan already exists for *year*.
    """
    with uow.transaction():
        if uow.budget.get_plan(year) is not None:
            raise ValidationError(f"Já existe um plano orçamentário para {year}.")
        plan = uow.budget.add_plan(BudgetPlan(year=year, total_budget=DEFAULT_TOTAL_BUDGET))
        for ptres_code, meta in PTRES_CONFIG.items():
            for idx, element in enumerate(EXPENSE_ELEMENTS):
                uow.budget.add_allocation(
                    BudgetAllocation(
                        plan=plan,
                        ptres_code=ptres_code,
                        ptres_description=meta["description"],
                        element_code=element["code"],
                        element_name=element["name"],
                        dotacao_code=str(DEFAULT_DOTACAO_BASE + idx),
                        allocated_value=Decimal("0.00"),
                        committed_value=Decimal("0.00"),
                        is_active=True,
                    )
                )
        config = plan_to_config(plan)

    logger.info("Created default budget plan for %s", year)
    return OperationResult.success(
        "Plano criado",
        f"Plano orçamentário {year} criado com teto de {format_brl(DEFAULT_TOTAL_BUDGET)}.",
        data=config,
    )


@as_result
def save_budget_plan(uow: UnitOfWork, config: BudgetPlanConfig) -> OperationResult:
    """Persist the editable parts of a plan: cap, descriptions, codes and allocations.

    Committed values and ``is_active`` flags are owned by the ledger and never
    overwritten here.  Items without an ``id`` are created as new active lines;
    stored lines left out of *config* keep their values.  The cap is checked
    against the plan as stored after the changes are applied.

    Raises (as a failed result):
        NotFound: No plan for ``config.year``.
        ValidationError: The plan would be over budget, or a line would end up
            with less allocated than already committed.
    """
    with uow.transaction():
        plan = uow.budget.get_plan(config.year)
        if plan is None:
            raise NotFound(f"Nenhum plano orçamentário cadastrado para {config.year}.")
        rows = {row.id: row for row in plan.allocations}
        problems: list[str] = []

        plan.total_budget = to_money(config.total_budget)
        for allocation in config.allocations:
            for item in allocation.items:
                row = rows.get(item.id) if item.id is not None else None
                if item.id is not None and row is None:
                    raise NotFound(f"Linha de dotação {item.id} não pertence ao plano {config.year}.")
                if row is None:
                    uow.budget.add_allocation(
                        BudgetAllocation(
                            plan=plan,
                            ptres_code=allocation.ptres_code,
                            ptres_description=allocation.description,
                            element_code=item.element_code,
                            element_name=item.element_name,
                            dotacao_code=item.dotacao_code,
                            allocated_value=to_money(item.allocated_value),
                            committed_value=Decimal("0.00"),
                            is_active=True,
                        )
                    )
                    continue
                if to_money(row.committed_value) > to_money(item.allocated_value):
                    problems.append(
                        f"PTRES {row.ptres_code} / dotação {row.dotacao_code}: empenhado "
                        f"{format_brl(row.committed_value)} maior que "
                        f"{format_brl(item.allocated_value)}"
                    )
                row.allocated_value = to_money(item.allocated_value)
                row.dotacao_code = item.dotacao_code
                row.element_name = item.element_name or row.element_name
                if allocation.description is not None:
                    row.ptres_description = allocation.description
        if problems:
            raise ValidationError(
                "Dotação menor que o valor já empenhado.", details=problems
            )

        saved = plan_to_config(plan)
        values = calculate_budget_values(saved)
        if values.is_over_budget:
            raise ValidationError(
                "O valor distribuído excede o teto orçamentário.",
                details=[
                    f"Distribuído: {format_brl(values.total_distributed)}",
                    f"Teto: {format_brl(saved.total_budget)}",
                ],
            )

    logger.info(
        "Saved budget plan %s: distributed=%s cap=%s",
        config.year, values.total_distributed, saved.total_budget,
    )
    return OperationResult.success(
        "Plano salvo",
        f"Plano orçamentário {config.year} atualizado.",
        data={"config": saved, "values": values},
    )


@as_result
def renew_dotacao(
    uow: UnitOfWork,
    year: int,
    ptres_code: str,
    element_code: str,
    new_dotacao_code: str,
    allocated_value: Decimal,
) -> OperationResult:
    """Exhaust the active line of (PTRES, element) and open its successor.

    The superseded line keeps its commitments; the successor starts with
    nothing committed and points back through ``parent_id``.
    """
    try:
        allocated = to_money(allocated_value)
    except ValueError as exc:
        raise ValidationError(str(exc), details=["allocated_value"]) from exc
    if allocated < 0:
        raise ValidationError("A dotação não pode ser negativa.")

    with uow.transaction():
        current = uow.budget.find_active(year, ptres_code, element_code=element_code, lock=True)
        if current is None:
            raise NotFound(
                f"Nenhuma dotação ativa para PTRES {ptres_code} / elemento {element_code} em {year}."
            )
        current.is_active = False
        successor = uow.budget.add_allocation(
            BudgetAllocation(
                plan=current.plan,
                ptres_code=current.ptres_code,
                ptres_description=current.ptres_description,
                element_code=current.element_code,
                element_name=current.element_name,
                dotacao_code=new_dotacao_code,
                allocated_value=allocated,
                committed_value=Decimal("0.00"),
                is_active=True,
                parent_id=current.id,
            )
        )
        item = _item(successor)

    logger.info(
        "Renewed dotação %s -> %s (PTRES %s, element %s)",
        current.dotacao_code, new_dotacao_code, ptres_code, element_code,
    )
    return OperationResult.success(
        "Dotação renovada",
        f"Dotação {current.dotacao_code} encerrada; nova dotação {new_dotacao_code} ativa.",
        data=item,
    )


# ---------------------------------------------------------------------------
# Balance and commitment
# ---------------------------------------------------------------------------


def _saldo(allocation: BudgetAllocation, available: Decimal) -> SaldoResponse:
    return SaldoResponse(
        ptres_code=allocation.ptres_code,
        element_code=allocation.element_code,
        dotacao_code=allocation.dotacao_code,
        allocated_value=to_money(allocation.allocated_value),
        committed_value=to_money(allocation.committed_value),
        available_balance=available,
    )


@as_result
def lookup_available_balance(
    uow: UnitOfWork, ptres_code: str, element_code: str, year: int | None = None
) -> OperationResult:
    """Return ``allocated - committed`` of the active (PTRES, element) line.

    The balance is floored at zero; a negative raw balance means the ledger is
    inconsistent and is logged as an error.

    Returns:
        ``data`` is a ``SaldoResponse``.
    """
    year = year or _current_year()
    allocation = uow.budget.find_active(year, ptres_code, element_code=element_code)
    if allocation is None:
        raise NotFound(
            f"Nenhuma dotação ativa para PTRES {ptres_code} / elemento {element_code} em {year}."
        )
    raw = _available(allocation)
    if raw < 0:
        logger.error(
            "Inconsistent ledger: allocation %s has committed %s above allocated %s",
            allocation.id, allocation.committed_value, allocation.allocated_value,
        )
    available = max(raw, Decimal("0.00"))
    logger.debug("Balance PTRES %s / %s: %s", ptres_code, element_code, available)
    return OperationResult.success(
        "Saldo disponível",
        f"Saldo disponível: {format_brl(available)}.",
        data=_saldo(allocation, available),
    )


def commit_against_line(
    uow: UnitOfWork, year: int, ptres_code: str, dotacao_code: str, amount: Decimal
) -> BudgetAllocation:
    """Commit *amount* against the active line inside the caller's transaction.

    Used directly by operations that commit as part of a larger unit of work
    (NE registration); ``commit_value`` wraps it in its own transaction.

    Raises:
        ValidationError: *amount* is not a positive monetary value, or no
            active line matches.
        InsufficientBalance: *amount* exceeds the available balance.
        StoreFailure: The line kept changing under concurrent writers.
    """
    try:
        amount = to_money(amount)
    except ValueError as exc:
        raise ValidationError(str(exc), details=["valor"]) from exc
    if amount <= 0:
        raise ValidationError("O valor a empenhar deve ser maior que zero.")

    for attempt in range(1, _COMMIT_ATTEMPTS + 1):
        allocation = uow.budget.find_active(year, ptres_code, dotacao_code=dotacao_code, lock=True)
        if allocation is None:
            raise ValidationError(
                f"Nenhuma dotação ativa {dotacao_code} no PTRES {ptres_code} para {year}."
            )
        available = _available(allocation)
        if amount > available:
            logger.warning(
                "Commitment of %s refused on PTRES %s / dotação %s: available %s",
                amount, ptres_code, dotacao_code, available,
            )
            raise InsufficientBalance(
                f"Saldo insuficiente na dotação {dotacao_code}.",
                details=[
                    f"Solicitado: {format_brl(amount)}",
                    f"Disponível: {format_brl(max(available, Decimal('0.00')))}",
                ],
            )
        new_committed = to_money(allocation.committed_value) + amount
        if uow.budget.compare_and_set_committed(allocation, allocation.version, new_committed):
            return allocation
        logger.info(
            "Concurrent commitment on allocation %s (attempt %d)", allocation.id, attempt
        )
    raise StoreFailure(
        f"A dotação {dotacao_code} está sendo alterada por outro usuário. Tente novamente."
    )


@as_result
def commit_value(
    uow: UnitOfWork,
    ptres_code: str,
    dotacao_code: str,
    amount: Decimal,
    year: int | None = None,
) -> OperationResult:
    """Commit (empenhar) *amount* against the active (PTRES, dotação) line.

    Args:
        uow: Unit of work.
        ptres_code: PTRES of the line.
        dotacao_code: Budget-line number.
        amount: Value to commit; must be positive.
        year: Fiscal year; defaults to the current one.

    Returns:
        ``data`` is the line's ``SaldoResponse`` after the commitment.
    """
    year = year or _current_year()
    with uow.transaction():
        allocation = commit_against_line(uow, year, ptres_code, dotacao_code, amount)
        saldo = _saldo(allocation, _available(allocation))

    logger.info(
        "Committed %s on PTRES %s / dotação %s (available now %s)",
        to_money(amount), ptres_code, dotacao_code, saldo.available_balance,
    )
    return OperationResult.success(
        "Valor empenhado",
        f"{format_brl(amount)} empenhado na dotação {dotacao_code}.",
        data=saldo,
    )
