"""
Process record (Solicitação) service layer.

Creation, lookup, department inboxes and the whitelisted execution-field
updates.  ``destino_atual`` and ``status`` are never written here after
creation: they belong to ``tramitacao_service``.

Design notes
------------
- The protocol sequence is the count of same-type records created in the
  year plus one, formatted ``{PREFIX}-{DIA|PAS|MIS}-{YEAR}-{SEQ:04d}``.  The
  unique constraint on ``protocolo`` turns a concurrent collision into a
  ``StoreFailure`` instead of a duplicate.
- All required-field problems are reported together in one ``ValidationError``.
"""

from __future__ import annotations

import datetime
import logging
from typing import Any

from app.config import get_settings
from app.models.solicitacao import Solicitacao
from app.schemas.common import OperationResult, PaginationParams
from app.schemas.solicitacao import (
    DestinationInfo,
    InboxResponse,
    RequesterInfo,
    SolicitacaoResponse,
)
from app.services import historico_service
from app.services.errors import InvalidTransition, NotFound, ValidationError, as_result
from app.stores.base import UnitOfWork
from app.utils.constants import (
    ORIGEM_SOLICITANTE,
    SIGLAS_TIPO,
    Destino,
    StatusSolicitacao,
    TipoSolicitacao,
)
from app.utils.money import to_money

logger = logging.getLogger(__name__)

# Fields the execution screens may write directly
EXECUTION_FIELDS: frozenset[str] = frozenset(
    {
        "ptres_code",
        "dotacao_code",
        "ne_numero",
        "ne_valor",
        "dl_numero",
        "dl_valor",
        "ob_numero",
        "ob_valor",
        "portaria_sf_numero",
    }
)
_MONEY_FIELDS: frozenset[str] = frozenset({"ne_valor", "dl_valor", "ob_valor"})
_STATE_FIELDS: frozenset[str] = frozenset({"status", "destino_atual"})


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _blank(value: str | None) -> bool:
    return value is None or not value.strip()


def _missing_fields(requester: RequesterInfo, destination: DestinationInfo) -> list[str]:
    missing = []
    if _blank(requester.nome):
        missing.append("solicitante.nome")
    if _blank(requester.email):
        missing.append("solicitante.email")
    if destination.data_inicio is None:
        missing.append("destino.data_inicio")
    if destination.data_fim is None:
        missing.append("destino.data_fim")
    return missing


def generate_protocolo(uow: UnitOfWork, tipo: str, year: int) -> str:
    """Return the next protocol number for *tipo* in *year*, e.g. ``TJPA-DIA-2026-0001``."""
    prefix = get_settings().PROTOCOLO_PREFIX
    seq = uow.records.count_for_year(year, tipo) + 1
    return f"{prefix}-{SIGLAS_TIPO[tipo]}-{year}-{seq:04d}"


def load_record(uow: UnitOfWork, record_id: int) -> Solicitacao:
    """Return the record or raise ``NotFound``."""
    record = uow.records.get(record_id)
    if record is None:
        raise NotFound(f"Solicitação {record_id} não encontrada.")
    return record


def write_record(uow: UnitOfWork, record: Solicitacao, values: dict[str, Any]) -> None:
    """Apply *values* to *record* only if nobody else changed it since it was read.

    Raises:
        InvalidTransition: The stored version moved on (concurrent writer).
    """
    values = {**values, "updated_at": datetime.datetime.now()}
    if not uow.records.conditional_update(record, record.version, values):
        logger.warning("Stale write rejected on %s (version %s)", record.protocolo, record.version)
        raise InvalidTransition(
            "Registro alterado por outro usuário. Recarregue e tente novamente."
        )


# ---------------------------------------------------------------------------
# Public service functions
# ---------------------------------------------------------------------------


@as_result
def create(
    uow: UnitOfWork,
    request_type: TipoSolicitacao | str,
    requester_info: RequesterInfo,
    destination_info: DestinationInfo,
    valor: Any = None,
    tramitado_por: str | None = None,
) -> OperationResult:
    """Submit a new request: it lands in SODPA's inbox as ``ENVIADO``.

    Args:
        uow: Unit of work.
        request_type: ``PASSAGEM``, ``DIARIA`` or ``MISTA``.
        requester_info: Requester identity (name and e-mail required).
        destination_info: Trip data (start and end dates required).
        valor: Requested total.
        tramitado_por: Actor submitting the request.

    Returns:
        ``data`` is the created record as ``SolicitacaoResponse``.

    Raises (as a failed result):
        ValidationError: Missing required fields, unknown type, or an end date
            before the start date.
    """
    try:
        tipo = TipoSolicitacao(request_type).value
    except ValueError as exc:
        raise ValidationError(f"Tipo de solicitação inválido: {request_type!r}.") from exc

    missing = _missing_fields(requester_info, destination_info)
    if missing:
        raise ValidationError(
            "Preencha os campos obrigatórios da solicitação.", details=missing
        )
    if destination_info.data_fim < destination_info.data_inicio:
        raise ValidationError(
            "A data de retorno não pode ser anterior à data de início.",
            details=["destino.data_fim"],
        )

    now = datetime.datetime.now()
    with uow.transaction():
        record = uow.records.add(
            Solicitacao(
                protocolo=generate_protocolo(uow, tipo, now.year),
                tipo=tipo,
                status=StatusSolicitacao.ENVIADO.value,
                destino_atual=Destino.SODPA.value,
                valor=to_money(valor),
                solicitante_nome=requester_info.nome.strip(),
                solicitante_email=requester_info.email.strip(),
                solicitante_cpf=requester_info.cpf,
                solicitante_matricula=requester_info.matricula,
                solicitante_cargo=requester_info.cargo,
                solicitante_lotacao=requester_info.lotacao,
                tipo_destino=destination_info.tipo_destino.value,
                origem=destination_info.origem,
                destino=destination_info.destino,
                data_inicio=destination_info.data_inicio,
                data_fim=destination_info.data_fim,
                motivo=destination_info.motivo,
                version=1,
                created_at=now,
                updated_at=now,
            )
        )
        historico_service.append(
            uow,
            record,
            origem=ORIGEM_SOLICITANTE,
            destino=Destino.SODPA.value,
            status_anterior=None,
            status_novo=StatusSolicitacao.ENVIADO.value,
            observacao="Solicitação enviada",
            tramitado_por=tramitado_por,
        )
        response = SolicitacaoResponse.model_validate(record)

    logger.info("Created solicitação %s (id=%s)", record.protocolo, record.id)
    return OperationResult.success(
        "Solicitação enviada",
        f"Protocolo {record.protocolo} enviado à SODPA.",
        data=response,
    )


@as_result
def get(uow: UnitOfWork, record_id: int) -> OperationResult:
    record = load_record(uow, record_id)
    logger.debug("Loaded solicitação %s", record.protocolo)
    return OperationResult.success(
        "Solicitação", record.protocolo, data=SolicitacaoResponse.model_validate(record)
    )


@as_result
def get_by_protocolo(uow: UnitOfWork, protocolo: str) -> OperationResult:
    record = uow.records.get_by_protocolo(protocolo)
    if record is None:
        raise NotFound(f"Protocolo {protocolo} não encontrado.")
    return OperationResult.success(
        "Solicitação", record.protocolo, data=SolicitacaoResponse.model_validate(record)
    )


@as_result
def list_inbox(
    uow: UnitOfWork,
    destino: Destino | str,
    status: StatusSolicitacao | str | None = None,
    pagination: PaginationParams | None = None,
) -> OperationResult:
    """Return the department queue, most recently moved first.

    Returns:
        ``data`` is an ``InboxResponse``.
    """
    pagination = pagination or PaginationParams()
    try:
        destino_value = Destino(destino).value
        status_value = StatusSolicitacao(status).value if status is not None else None
    except ValueError as exc:
        raise ValidationError(f"Filtro de caixa de entrada inválido: {exc}") from exc
    offset = (pagination.page - 1) * pagination.page_size
    rows, total = uow.records.list_by_destino(
        destino_value, status_value, offset, pagination.page_size
    )
    logger.debug("Inbox %s/%s: %d of %d", destino_value, status_value, len(rows), total)
    return OperationResult.success(
        "Caixa de entrada",
        f"{total} solicitação(ões) em {destino_value}.",
        data=InboxResponse(
            rows=[SolicitacaoResponse.model_validate(r) for r in rows],
            total=total,
            page=pagination.page,
            page_size=pagination.page_size,
        ),
    )


@as_result
def update_execution_field(
    uow: UnitOfWork, record_id: int, field: str, value: Any
) -> OperationResult:
    """Write one whitelisted execution field on the record.

    Monetary fields are quantized to centavos.  ``status`` and
    ``destino_atual`` can only change through a tramitação.

    Raises (as a failed result):
        ValidationError: Field not whitelisted or invalid monetary value.
        NotFound: Unknown record.
        InvalidTransition: The record changed concurrently.
    """
    if field in _STATE_FIELDS:
        raise ValidationError(
            f"O campo '{field}' só pode ser alterado por tramitação."
        )
    if field not in EXECUTION_FIELDS:
        raise ValidationError(f"Campo de execução desconhecido: '{field}'.")

    if field in _MONEY_FIELDS and value is not None:
        try:
            value = to_money(value)
        except ValueError as exc:
            raise ValidationError(str(exc), details=[field]) from exc
    elif value is not None:
        value = str(value).strip() or None

    with uow.transaction():
        record = load_record(uow, record_id)
        write_record(uow, record, {field: value})
        response = SolicitacaoResponse.model_validate(record)

    logger.info("Updated %s.%s on %s", Solicitacao.__tablename__, field, record.protocolo)
    return OperationResult.success(
        "Dados atualizados", f"Campo {field} atualizado.", data=response
    )
