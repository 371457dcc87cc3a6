"""
Expense-execution wizard router.

Mounts under ``/api/execucao`` (prefix set in ``main.py``).

Endpoints
---------
GET  /{id}                     — Resumable wizard state.
POST /{id}/portaria            — Generate the Portaria SF (PTRES + dotações).
POST /{id}/certidao            — Generate the regularity certificate.
POST /{id}/pular               — Skip a step (any but TRAMITAR).
POST /{id}/documentos/{tipo}   — Upload the NE, DL or OB PDF with its value.
GET  /{id}/documentos          — Dossier documents.
GET  /{id}/conciliacao         — NE / DL / OB triple check.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Annotated

from fastapi import APIRouter, Depends, File, Form, Path, UploadFile

from app.dependencies import get_uow, unwrap
from app.schemas.common import OperationResult
from app.schemas.execucao import (
    DocumentoResponse,
    ExecucaoResponse,
    PortariaRequest,
    PularEtapaRequest,
    UploadedFile,
)
from app.schemas.tramitacao import AcaoRequest
from app.services import execucao_service
from app.stores.base import UnitOfWork
from app.utils.constants import TipoDocumentoFinanceiro

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Execução da Despesa"])

RecordPath = Annotated[int, Path(description="ID da solicitação.", ge=1)]
Uow = Annotated[UnitOfWork, Depends(get_uow)]

_RESPONSES = {
    404: {"description": "Solicitação inexistente."},
    409: {"description": "Solicitação fora da fase de execução."},
}


@router.get(
    "/{record_id}",
    response_model=ExecucaoResponse,
    summary="Estado do assistente de execução",
    responses={404: {"description": "Solicitação inexistente."}},
)
def get_execucao(record_id: RecordPath, uow: Uow) -> ExecucaoResponse:
    return unwrap(execucao_service.get_wizard_state(uow, record_id)).data


@router.post(
    "/{record_id}/portaria",
    response_model=OperationResult,
    summary="Gerar Portaria SF",
    description=(
        "Gera a minuta da Portaria com número ``{SEQ}/{ANO}-SF``. Havendo plano "
        "orçamentário no exercício, cada dotação deve ser linha ativa do PTRES."
    ),
    responses={**_RESPONSES, 422: {"description": "PTRES ou dotação inválidos."}},
)
def gerar_portaria(record_id: RecordPath, body: PortariaRequest, uow: Uow) -> OperationResult:
    logger.info("POST /execucao/%d/portaria ptres=%s", record_id, body.ptres_code)
    return unwrap(
        execucao_service.generate_portaria(
            uow, record_id, body.ptres_code, body.dotacao_codes, tramitado_por=body.tramitado_por
        )
    )


@router.post(
    "/{record_id}/certidao",
    response_model=OperationResult,
    summary="Gerar Certidão de Regularidade",
    responses=_RESPONSES,
)
def gerar_certidao(record_id: RecordPath, body: AcaoRequest, uow: Uow) -> OperationResult:
    return unwrap(
        execucao_service.generate_certidao(uow, record_id, tramitado_por=body.tramitado_por)
    )


@router.post(
    "/{record_id}/pular",
    response_model=OperationResult,
    summary="Pular etapa",
    responses={**_RESPONSES, 422: {"description": "Etapa não pode ser pulada."}},
)
def pular_etapa(record_id: RecordPath, body: PularEtapaRequest, uow: Uow) -> OperationResult:
    return unwrap(
        execucao_service.skip_step(uow, record_id, body.etapa, tramitado_por=body.tramitado_por)
    )


@router.post(
    "/{record_id}/documentos/{tipo}",
    response_model=OperationResult,
    summary="Registrar NE, DL ou OB",
    description=(
        "Recebe o PDF do documento financeiro e o valor declarado. A NE empenha o "
        "valor na primeira dotação da Portaria. A conciliação NE / DL / OB é devolvida "
        "em ``flags`` (WARNING ou ERROR) sem bloquear o registro."
    ),
    responses={
        **_RESPONSES,
        409: {"description": "Fora da fase de execução, saldo insuficiente ou Portaria pendente."},
        422: {"description": "Arquivo ausente / não PDF ou valor inválido."},
    },
)
async def registrar_documento(
    record_id: RecordPath,
    tipo: Annotated[TipoDocumentoFinanceiro, Path(description="NE, DL ou OB.")],
    file: Annotated[UploadFile, File(description="PDF do documento financeiro.")],
    valor: Annotated[Decimal, Form(description="Valor declarado no documento.")],
    uow: Uow,
    numero: Annotated[str | None, Form(max_length=50)] = None,
    tramitado_por: Annotated[str | None, Form(max_length=100)] = None,
) -> OperationResult:
    content = await file.read()
    logger.info(
        "POST /execucao/%d/documentos/%s file='%s' (%d bytes)",
        record_id, tipo.value, file.filename, len(content),
    )
    uploaded = UploadedFile(
        filename=file.filename or "documento.pdf",
        content_type=file.content_type,
        content=content,
    )
    return unwrap(
        execucao_service.register_financial_document(
            uow, record_id, tipo, uploaded, valor, numero=numero, tramitado_por=tramitado_por
        )
    )


@router.get(
    "/{record_id}/documentos",
    response_model=list[DocumentoResponse],
    summary="Documentos do processo",
    responses={404: {"description": "Solicitação inexistente."}},
)
def listar_documentos(record_id: RecordPath, uow: Uow) -> list[DocumentoResponse]:
    return unwrap(execucao_service.list_documentos(uow, record_id)).data


@router.get(
    "/{record_id}/conciliacao",
    response_model=OperationResult,
    summary="Conciliação NE / DL / OB",
    responses={404: {"description": "Solicitação inexistente."}},
)
def conciliacao(record_id: RecordPath, uow: Uow) -> OperationResult:
    return unwrap(execucao_service.verificar_conciliacao(uow, record_id))
