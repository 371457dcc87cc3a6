"""
Solicitações router.

Mounts under ``/api/solicitacoes`` (prefix set in ``main.py``).

Endpoints
---------
POST  /                       — Submit a request (lands in SODPA as ENVIADO).
GET   /caixa/{destino}        — Paginated department queue.
GET   /protocolo/{protocolo}  — Lookup by protocol number.
GET   /{id}                   — Record detail.
PATCH /{id}/execucao          — Write one whitelisted execution field.
GET   /{id}/historico         — Tramitação history, oldest first.
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Path, Query, status

from app.dependencies import get_uow, unwrap
from app.schemas.common import PaginationParams
from app.schemas.solicitacao import (
    ExecutionFieldUpdate,
    InboxResponse,
    SolicitacaoCreate,
    SolicitacaoResponse,
)
from app.schemas.tramitacao import HistoricoResponse
from app.services import historico_service, solicitacao_service
from app.stores.base import UnitOfWork
from app.utils.constants import Destino, StatusSolicitacao

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Solicitações"])

RecordPath = Annotated[int, Path(description="ID da solicitação.", ge=1)]


def _pagination_params(
    page: Annotated[int, Query(description="Página (base 1).", ge=1)] = 1,
    page_size: Annotated[
        int, Query(description="Registros por página (máx. 200).", ge=1, le=200)
    ] = 20,
) -> PaginationParams:
    return PaginationParams(page=page, page_size=page_size)


@router.post(
    "/",
    response_model=SolicitacaoResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Enviar nova solicitação",
    description=(
        "Cria a solicitação com protocolo ``TJPA-{DIA|PAS|MIS}-{ANO}-{SEQ}``, status "
        "``ENVIADO`` na SODPA, e registra a primeira entrada do histórico."
    ),
    responses={422: {"description": "Campos obrigatórios ausentes ou datas inválidas."}},
)
def criar_solicitacao(
    data: SolicitacaoCreate,
    uow: Annotated[UnitOfWork, Depends(get_uow)],
) -> SolicitacaoResponse:
    logger.info("POST /solicitacoes tipo=%s", data.tipo.value)
    return unwrap(
        solicitacao_service.create(
            uow, data.tipo, data.solicitante, data.destino,
            valor=data.valor, tramitado_por=data.tramitado_por,
        )
    ).data


@router.get(
    "/caixa/{destino}",
    response_model=InboxResponse,
    summary="Caixa de entrada do setor",
)
def caixa_de_entrada(
    destino: Annotated[Destino, Path(description="Setor: SODPA, AJSEFIN, SEFIN, PRESIDENCIA ou SOSFU.")],
    pagination: Annotated[PaginationParams, Depends(_pagination_params)],
    uow: Annotated[UnitOfWork, Depends(get_uow)],
    status_filtro: Annotated[
        StatusSolicitacao | None,
        Query(alias="status", description="Filtrar por status."),
    ] = None,
) -> InboxResponse:
    return unwrap(
        solicitacao_service.list_inbox(uow, destino, status_filtro, pagination)
    ).data


@router.get(
    "/protocolo/{protocolo}",
    response_model=SolicitacaoResponse,
    summary="Buscar solicitação pelo protocolo",
    responses={404: {"description": "Protocolo inexistente."}},
)
def get_por_protocolo(
    protocolo: Annotated[str, Path(max_length=40)],
    uow: Annotated[UnitOfWork, Depends(get_uow)],
) -> SolicitacaoResponse:
    return unwrap(solicitacao_service.get_by_protocolo(uow, protocolo)).data


@router.get(
    "/{record_id}",
    response_model=SolicitacaoResponse,
    summary="Detalhe da solicitação",
    responses={404: {"description": "Solicitação inexistente."}},
)
def get_solicitacao(
    record_id: RecordPath,
    uow: Annotated[UnitOfWork, Depends(get_uow)],
) -> SolicitacaoResponse:
    return unwrap(solicitacao_service.get(uow, record_id)).data


@router.patch(
    "/{record_id}/execucao",
    response_model=SolicitacaoResponse,
    summary="Atualizar campo de execução",
    description=(
        "Aceita somente ptres_code, dotacao_code, ne_numero, ne_valor, dl_numero, "
        "dl_valor, ob_numero, ob_valor e portaria_sf_numero. Status e setor só mudam "
        "por tramitação."
    ),
    responses={
        404: {"description": "Solicitação inexistente."},
        409: {"description": "Registro alterado por outro usuário."},
        422: {"description": "Campo não permitido ou valor inválido."},
    },
)
def atualizar_campo_execucao(
    record_id: RecordPath,
    body: ExecutionFieldUpdate,
    uow: Annotated[UnitOfWork, Depends(get_uow)],
) -> SolicitacaoResponse:
    logger.info("PATCH /solicitacoes/%d/execucao field=%s", record_id, body.field)
    return unwrap(
        solicitacao_service.update_execution_field(uow, record_id, body.field, body.value)
    ).data


@router.get(
    "/{record_id}/historico",
    response_model=list[HistoricoResponse],
    summary="Histórico de tramitação",
    responses={404: {"description": "Solicitação inexistente."}},
)
def get_historico(
    record_id: RecordPath,
    uow: Annotated[UnitOfWork, Depends(get_uow)],
) -> list[HistoricoResponse]:
    unwrap(solicitacao_service.get(uow, record_id))
    return list(historico_service.query_by_record(uow, record_id))
