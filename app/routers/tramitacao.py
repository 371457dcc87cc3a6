"""
Tramitação router: every department action on a Solicitação.

Mounts under ``/api/tramitacao`` (prefix set in ``main.py``).  Every action
answers with the ``OperationResult`` envelope; refused actions become
``HTTPException`` (404 unknown record, 409 action not allowed in the current
state, 422 missing reason / opinion).

Endpoints
---------
POST /assinaturas/lote                  — SEFIN batch signature (per-record results).
POST /{id}/encaminhar-ajsefin           — SODPA → AJSEFIN.
POST /{id}/atribuir                     — Assign reviewer (no state change).
POST /{id}/parecer                      — AJSEFIN opinion → SEFIN.
POST /{id}/encaminhar-assinatura        — SEFIN queues the authorization.
POST /{id}/devolver                     — Return to SOSFU (AJSEFIN or SEFIN).
POST /{id}/reenviar                     — SOSFU → AJSEFIN after adjustment.
POST /{id}/assinar                      — Ordenador signs → SOSFU / APROVADO.
POST /{id}/tramitar-ordenador           — Executed dossier → SEFIN.
POST /{id}/presidencia                  — Signed interstate trip → PRESIDÊNCIA.
POST /{id}/presidencia/autorizar        — PRESIDÊNCIA → SEFIN / APROVADO.
POST /{id}/presidencia/rejeitar         — PRESIDÊNCIA → SODPA / DEVOLVIDO.
POST /{id}/concluir                     — Archive → SOSFU / CONCLUIDO.
POST /{id}/indeferir                    — SODPA rejects.
POST /{id}/cancelar                     — SODPA cancels.
GET  /{id}/tarefas                      — Signing tasks of the record.
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Path, Query

from app.dependencies import get_uow, unwrap
from app.schemas.common import OperationResult
from app.schemas.tramitacao import (
    AcaoRequest,
    AssinaturaLoteRequest,
    AssinaturaLoteResponse,
    AtribuicaoRequest,
    MotivoRequest,
    ParecerRequest,
    TarefaAssinaturaResponse,
)
from app.services import tramitacao_service
from app.stores.base import UnitOfWork

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Tramitação"])

RecordPath = Annotated[int, Path(description="ID da solicitação.", ge=1)]
Uow = Annotated[UnitOfWork, Depends(get_uow)]

_RESPONSES = {
    404: {"description": "Solicitação inexistente."},
    409: {"description": "Ação não permitida no estado atual."},
}


@router.post(
    "/assinaturas/lote",
    response_model=AssinaturaLoteResponse,
    summary="Assinatura em lote (Ordenador)",
    description=(
        "Assina as solicitações na ordem informada, cada uma em sua própria transação. "
        "Falhas são reportadas por item e não interrompem as demais."
    ),
)
def assinar_lote(body: AssinaturaLoteRequest, uow: Uow) -> AssinaturaLoteResponse:
    logger.info("POST /tramitacao/assinaturas/lote n=%d", len(body.solicitacao_ids))
    return unwrap(
        tramitacao_service.batch_sign(uow, body.solicitacao_ids, tramitado_por=body.tramitado_por)
    ).data


@router.post(
    "/{record_id}/encaminhar-ajsefin",
    response_model=OperationResult,
    summary="Encaminhar para análise jurídica (SODPA → AJSEFIN)",
    responses=_RESPONSES,
)
def encaminhar_ajsefin(record_id: RecordPath, body: AcaoRequest, uow: Uow) -> OperationResult:
    return unwrap(
        tramitacao_service.encaminhar_ajsefin(
            uow, record_id, tramitado_por=body.tramitado_por, observacao=body.observacao
        )
    )


@router.post(
    "/{record_id}/atribuir",
    response_model=OperationResult,
    summary="Atribuir responsável",
    description="Define o assessor / ordenador responsável. Não altera status nem histórico.",
    responses=_RESPONSES,
)
def atribuir(record_id: RecordPath, body: AtribuicaoRequest, uow: Uow) -> OperationResult:
    return unwrap(tramitacao_service.assign_to_reviewer(uow, record_id, body.reviewer_id))


@router.post(
    "/{record_id}/parecer",
    response_model=OperationResult,
    summary="Emitir parecer jurídico (AJSEFIN → SEFIN)",
    responses={**_RESPONSES, 422: {"description": "Parecer em branco."}},
)
def emitir_parecer(record_id: RecordPath, body: ParecerRequest, uow: Uow) -> OperationResult:
    return unwrap(
        tramitacao_service.submit_opinion(
            uow, record_id, body.parecer, tramitado_por=body.tramitado_por
        )
    )


@router.post(
    "/{record_id}/encaminhar-assinatura",
    response_model=OperationResult,
    summary="Encaminhar para assinatura do Ordenador",
    responses=_RESPONSES,
)
def encaminhar_assinatura(record_id: RecordPath, body: AcaoRequest, uow: Uow) -> OperationResult:
    return unwrap(
        tramitacao_service.encaminhar_assinatura(
            uow, record_id, tramitado_por=body.tramitado_por, observacao=body.observacao
        )
    )


@router.post(
    "/{record_id}/devolver",
    response_model=OperationResult,
    summary="Devolver à SOSFU para ajuste",
    description=(
        "Da AJSEFIN: DEVOLVIDO_PARA_AJUSTE. Da SEFIN (Ordenador): "
        "DEVOLVIDO_PELO_ORDENADOR. O motivo é obrigatório."
    ),
    responses={**_RESPONSES, 422: {"description": "Motivo em branco."}},
)
def devolver(record_id: RecordPath, body: MotivoRequest, uow: Uow) -> OperationResult:
    return unwrap(
        tramitacao_service.return_for_adjustment(
            uow, record_id, body.motivo, tramitado_por=body.tramitado_por
        )
    )


@router.post(
    "/{record_id}/reenviar",
    response_model=OperationResult,
    summary="Reenviar para análise jurídica (SOSFU → AJSEFIN)",
    responses=_RESPONSES,
)
def reenviar(record_id: RecordPath, body: AcaoRequest, uow: Uow) -> OperationResult:
    return unwrap(
        tramitacao_service.reenviar_para_analise(
            uow, record_id, tramitado_por=body.tramitado_por, observacao=body.observacao
        )
    )


@router.post(
    "/{record_id}/assinar",
    response_model=OperationResult,
    summary="Assinar (Ordenador de Despesa)",
    responses=_RESPONSES,
)
def assinar(record_id: RecordPath, body: AcaoRequest, uow: Uow) -> OperationResult:
    return unwrap(
        tramitacao_service.sign_document(uow, record_id, tramitado_por=body.tramitado_por)
    )


@router.post(
    "/{record_id}/tramitar-ordenador",
    response_model=OperationResult,
    summary="Tramitar execução ao Ordenador (SOSFU → SEFIN)",
    description="Exige Portaria, Certidão e Nota de Empenho concluídas.",
    responses={**_RESPONSES, 409: {"description": "Estado inválido ou etapas pendentes."}},
)
def tramitar_ordenador(record_id: RecordPath, body: AcaoRequest, uow: Uow) -> OperationResult:
    return unwrap(
        tramitacao_service.tramitar_to_ordenador(
            uow, record_id, tramitado_por=body.tramitado_por, observacao=body.observacao
        )
    )


@router.post(
    "/{record_id}/presidencia",
    response_model=OperationResult,
    summary="Submeter à Presidência",
    responses=_RESPONSES,
)
def submeter_presidencia(record_id: RecordPath, body: AcaoRequest, uow: Uow) -> OperationResult:
    return unwrap(
        tramitacao_service.submeter_presidencia(
            uow, record_id, tramitado_por=body.tramitado_por, observacao=body.observacao
        )
    )


@router.post(
    "/{record_id}/presidencia/autorizar",
    response_model=OperationResult,
    summary="Autorizar (Presidência)",
    responses=_RESPONSES,
)
def autorizar_presidencia(record_id: RecordPath, body: AcaoRequest, uow: Uow) -> OperationResult:
    return unwrap(
        tramitacao_service.authorize_by_presidency(
            uow, record_id, tramitado_por=body.tramitado_por, observacao=body.observacao
        )
    )


@router.post(
    "/{record_id}/presidencia/rejeitar",
    response_model=OperationResult,
    summary="Não autorizar (Presidência)",
    responses={**_RESPONSES, 422: {"description": "Motivo em branco."}},
)
def rejeitar_presidencia(record_id: RecordPath, body: MotivoRequest, uow: Uow) -> OperationResult:
    return unwrap(
        tramitacao_service.reject_by_presidency(
            uow, record_id, body.motivo, tramitado_por=body.tramitado_por
        )
    )


@router.post(
    "/{record_id}/concluir",
    response_model=OperationResult,
    summary="Concluir processo",
    responses=_RESPONSES,
)
def concluir(record_id: RecordPath, body: AcaoRequest, uow: Uow) -> OperationResult:
    return unwrap(
        tramitacao_service.concluir(
            uow, record_id, tramitado_por=body.tramitado_por, observacao=body.observacao
        )
    )


@router.post(
    "/{record_id}/indeferir",
    response_model=OperationResult,
    summary="Indeferir solicitação (SODPA)",
    responses={**_RESPONSES, 422: {"description": "Motivo em branco."}},
)
def indeferir(record_id: RecordPath, body: MotivoRequest, uow: Uow) -> OperationResult:
    return unwrap(
        tramitacao_service.indeferir(uow, record_id, body.motivo, tramitado_por=body.tramitado_por)
    )


@router.post(
    "/{record_id}/cancelar",
    response_model=OperationResult,
    summary="Cancelar solicitação (SODPA)",
    responses=_RESPONSES,
)
def cancelar(record_id: RecordPath, body: AcaoRequest, uow: Uow) -> OperationResult:
    return unwrap(
        tramitacao_service.cancelar(
            uow, record_id, tramitado_por=body.tramitado_por, observacao=body.observacao
        )
    )


@router.get(
    "/{record_id}/tarefas",
    response_model=list[TarefaAssinaturaResponse],
    summary="Tarefas de assinatura da solicitação",
    responses={404: {"description": "Solicitação inexistente."}},
)
def listar_tarefas(
    record_id: RecordPath,
    uow: Uow,
    status_filtro: Annotated[
        str | None,
        Query(alias="status", description="PENDING, SIGNED ou REJECTED.", max_length=20),
    ] = None,
) -> list[TarefaAssinaturaResponse]:
    return unwrap(tramitacao_service.list_tarefas(uow, record_id, status=status_filtro)).data
