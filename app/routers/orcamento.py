"""
Budget plan (Orçamento) router.

Mounts under ``/api/orcamento`` (prefix set in ``main.py``).

Endpoints
---------
POST /valores                 — Compute aggregates of an unsaved plan (no persistence).
GET  /{year}                  — Plan of the year with its computed values.
POST /{year}/padrao           — Create the default plan (R$ 6 mi, 3 PTRES × 4 elementos).
PUT  /{year}                  — Save caps, descriptions, codes and allocations.
GET  /{year}/saldo            — Available balance of a (PTRES, elemento) line.
POST /{year}/empenhos         — Commit a value against a (PTRES, dotação) line.
POST /{year}/renovacoes       — Exhaust a line and open its successor.
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Path, Query, status

from app.dependencies import get_uow, unwrap
from app.schemas.orcamento import (
    BudgetPlanComputedValues,
    BudgetPlanConfig,
    BudgetPlanResponse,
    CommitRequest,
    DotacaoItem,
    RenewDotacaoRequest,
    SaldoResponse,
)
from app.services import orcamento_service
from app.stores.base import UnitOfWork

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Orçamento"])

YearPath = Annotated[int, Path(description="Exercício financeiro, ex. 2026.", ge=2000, le=2100)]


@router.post(
    "/valores",
    response_model=BudgetPlanComputedValues,
    summary="Calcular valores de um plano orçamentário",
    description=(
        "Calcula total distribuído, saldo, percentual utilizado e a participação de "
        "cada PTRES e elemento. Linhas inativas (renovadas) são ignoradas. "
        "Não grava nada."
    ),
)
def calcular_valores(config: BudgetPlanConfig) -> BudgetPlanComputedValues:
    return orcamento_service.calculate_budget_values(config)


@router.get(
    "/{year}",
    response_model=BudgetPlanResponse,
    summary="Plano orçamentário do exercício",
    responses={404: {"description": "Nenhum plano para o exercício."}},
)
def get_plano(
    year: YearPath,
    uow: Annotated[UnitOfWork, Depends(get_uow)],
) -> BudgetPlanResponse:
    logger.debug("GET /orcamento/%d", year)
    result = unwrap(orcamento_service.get_budget_plan(uow, year))
    return BudgetPlanResponse(**result.data)


@router.post(
    "/{year}/padrao",
    response_model=BudgetPlanConfig,
    status_code=status.HTTP_201_CREATED,
    summary="Criar plano orçamentário padrão",
    description=(
        "Cria o plano do exercício com teto de R$ 6.000.000,00 e, para cada PTRES "
        "(8193, 8727, 8163), uma linha zerada por elemento de despesa com dotações "
        "170 a 173."
    ),
    responses={422: {"description": "Já existe plano para o exercício."}},
)
def criar_plano_padrao(
    year: YearPath,
    uow: Annotated[UnitOfWork, Depends(get_uow)],
) -> BudgetPlanConfig:
    logger.info("POST /orcamento/%d/padrao", year)
    return unwrap(orcamento_service.create_default_budget_plan(uow, year)).data


@router.put(
    "/{year}",
    response_model=BudgetPlanResponse,
    summary="Salvar plano orçamentário",
    description=(
        "Grava teto, descrições, códigos de dotação e valores alocados. "
        "Bloqueado quando o total distribuído excede o teto ou quando uma linha "
        "ficaria com dotação menor que o já empenhado."
    ),
    responses={
        404: {"description": "Plano ou linha inexistente."},
        422: {"description": "Plano acima do teto ou dotação menor que o empenhado."},
    },
)
def salvar_plano(
    year: YearPath,
    config: BudgetPlanConfig,
    uow: Annotated[UnitOfWork, Depends(get_uow)],
) -> BudgetPlanResponse:
    if config.year != year:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"Exercício do corpo ({config.year}) difere da URL ({year}).",
        )
    logger.info("PUT /orcamento/%d", year)
    result = unwrap(orcamento_service.save_budget_plan(uow, config))
    return BudgetPlanResponse(**result.data)


@router.get(
    "/{year}/saldo",
    response_model=SaldoResponse,
    summary="Saldo disponível de uma linha",
    responses={404: {"description": "Nenhuma linha ativa para PTRES / elemento."}},
)
def get_saldo(
    year: YearPath,
    ptres_code: Annotated[str, Query(description="Código PTRES, ex. 8193.", max_length=10)],
    element_code: Annotated[str, Query(description="Elemento de despesa, ex. 33.90.33.", max_length=20)],
    uow: Annotated[UnitOfWork, Depends(get_uow)],
) -> SaldoResponse:
    return unwrap(
        orcamento_service.lookup_available_balance(uow, ptres_code, element_code, year=year)
    ).data


@router.post(
    "/{year}/empenhos",
    response_model=SaldoResponse,
    summary="Empenhar valor em uma dotação",
    responses={
        409: {"description": "Saldo insuficiente."},
        422: {"description": "Valor não positivo ou dotação inexistente."},
    },
)
def empenhar(
    year: YearPath,
    body: CommitRequest,
    uow: Annotated[UnitOfWork, Depends(get_uow)],
) -> SaldoResponse:
    logger.info("POST /orcamento/%d/empenhos %s/%s %s", year, body.ptres_code, body.dotacao_code, body.amount)
    return unwrap(
        orcamento_service.commit_value(
            uow, body.ptres_code, body.dotacao_code, body.amount, year=year
        )
    ).data


@router.post(
    "/{year}/renovacoes",
    response_model=DotacaoItem,
    status_code=status.HTTP_201_CREATED,
    summary="Renovar dotação (esgotar e abrir sucessora)",
    description=(
        "Desativa a linha ativa do elemento e cria a sucessora com nova dotação. "
        "Os empenhos permanecem na linha original."
    ),
    responses={404: {"description": "Nenhuma linha ativa para PTRES / elemento."}},
)
def renovar_dotacao(
    year: YearPath,
    body: RenewDotacaoRequest,
    uow: Annotated[UnitOfWork, Depends(get_uow)],
) -> DotacaoItem:
    logger.info("POST /orcamento/%d/renovacoes %s/%s", year, body.ptres_code, body.element_code)
    return unwrap(
        orcamento_service.renew_dotacao(
            uow, year, body.ptres_code, body.element_code,
            body.new_dotacao_code, body.allocated_value,
        )
    ).data
