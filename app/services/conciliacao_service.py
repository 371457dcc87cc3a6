"""
NE / DL / OB value reconciliation ("triple check").

One function, two severities: a Liquidação that differs from the Empenho is a
WARNING (partial liquidation is legitimate), an Ordem Bancária that differs
from the Liquidação is an ERROR.  Neither blocks a registration; the findings
travel with the result so the operator decides.
"""

from __future__ import annotations

from decimal import Decimal

from app.schemas.common import ConciliacaoFlag
from app.schemas.execucao import DocStatus, TripleCheckResult
from app.utils.money import format_brl, to_money


def _status(value: Decimal | None) -> DocStatus:
    if value is None:
        return "MISSING"
    return "VALID" if to_money(value) > 0 else "INVALID"


def verificar(
    ne_valor: Decimal | None,
    dl_valor: Decimal | None,
    ob_valor: Decimal | None,
) -> TripleCheckResult:
    """Compare the declared values of the three financial documents.

    Args:
        ne_valor: Nota de Empenho value, ``None`` when not registered.
        dl_valor: Liquidação value, ``None`` when not registered.
        ob_valor: Ordem Bancária value, ``None`` when not registered.

    Returns:
        Per-document status plus the WARNING / ERROR findings.  ``is_valid``
        is true only when all three exist and there is no ERROR.
    """
    flags: list[ConciliacaoFlag] = []
    ne_status, dl_status, ob_status = _status(ne_valor), _status(dl_valor), _status(ob_valor)

    if ne_valor is not None and dl_valor is not None and to_money(dl_valor) != to_money(ne_valor):
        flags.append(
            ConciliacaoFlag(
                severity="WARNING",
                code="DL_DIVERGE_NE",
                message=(
                    f"Liquidação ({format_brl(dl_valor)}) diverge do Empenho "
                    f"({format_brl(ne_valor)})."
                ),
            )
        )
    if dl_valor is not None and ob_valor is not None and to_money(ob_valor) != to_money(dl_valor):
        ob_status = "INVALID"
        flags.append(
            ConciliacaoFlag(
                severity="ERROR",
                code="OB_DIVERGE_DL",
                message=(
                    f"Ordem Bancária ({format_brl(ob_valor)}) diverge da Liquidação "
                    f"({format_brl(dl_valor)})."
                ),
            )
        )

    todos = all(s != "MISSING" for s in (ne_status, dl_status, ob_status))
    sem_erro = not any(f.severity == "ERROR" for f in flags)
    return TripleCheckResult(
        is_valid=todos and sem_erro and "INVALID" not in (ne_status, dl_status, ob_status),
        ne_status=ne_status,
        dl_status=dl_status,
        ob_status=ob_status,
        flags=flags,
    )
