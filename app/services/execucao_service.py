"""
Expense-execution wizard.

SOSFU executes an approved request in six linear steps::

    PORTARIA → CERTIDAO → NE → DL → OB → TRAMITAR

Completing a step stores its artifact and moves ``etapa_atual`` past it;
any step but TRAMITAR may be skipped explicitly.  The wizard state is
persisted, so a half-finished execution resumes where it stopped.  The
final step is ``tramitacao_service.tramitar_to_ordenador``.

Design notes
------------
- Mutations require the record in SOSFU as ``APROVADO`` or
  ``DEVOLVIDO_PELO_ORDENADOR``; reading the wizard state does not.
- The budget year of a record is the year it was created in.
- Registering the NE commits its value against the Portaria's first dotação
  in the same unit of work; ``InsufficientBalance`` rolls the whole
  registration back, uploaded file included.
"""

from __future__ import annotations

import datetime
import logging
from decimal import Decimal
from typing import Any

from app.config import get_settings
from app.models.execucao import Documento, ExecucaoDespesa
from app.models.solicitacao import Solicitacao
from app.schemas.common import OperationResult
from app.schemas.execucao import DocumentoResponse, ExecucaoResponse, UploadedFile
from app.services import conciliacao_service, orcamento_service
from app.services.errors import (
    InvalidTransition,
    InvalidValue,
    MissingDocument,
    MissingRequiredField,
    PrerequisitesNotMet,
    ValidationError,
    as_result,
)
from app.services.solicitacao_service import load_record, write_record
from app.stores.base import UnitOfWork
from app.utils.constants import (
    ACCEPTED_UPLOAD_TYPES,
    DOCUMENTO_LABELS,
    DOCUMENTO_POR_ETAPA,
    ETAPAS_OBRIGATORIAS,
    ETAPAS_SEQUENCIA,
    PTRES_CONFIG,
    STATUS_LABELS,
    Destino,
    EtapaExecucao,
    StatusSolicitacao,
    TipoDocumentoFinanceiro,
)
from app.utils.money import format_brl, to_money

logger = logging.getLogger(__name__)

ESTADOS_EXECUCAO: frozenset[tuple[str, str]] = frozenset(
    {
        (Destino.SOSFU.value, StatusSolicitacao.APROVADO.value),
        (Destino.SOSFU.value, StatusSolicitacao.DEVOLVIDO_PELO_ORDENADOR.value),
    }
)

_SEPARADOR_DOTACAO = ";"


# ---------------------------------------------------------------------------
# Wizard bookkeeping
# ---------------------------------------------------------------------------


def _lista(csv: str | None) -> list[str]:
    return [e for e in (csv or "").split(",") if e]


def _exigir_execucao(record: Solicitacao) -> None:
    if (record.destino_atual, record.status) not in ESTADOS_EXECUCAO:
        raise InvalidTransition(
            f"{record.protocolo} não está em execução na SOSFU "
            f"({record.destino_atual} / {STATUS_LABELS.get(record.status, record.status)})."
        )


def _carregar(uow: UnitOfWork, record_id: int) -> tuple[Solicitacao, ExecucaoDespesa]:
    """Load an executable record and its wizard, creating the wizard on first use."""
    record = load_record(uow, record_id)
    _exigir_execucao(record)
    wizard = uow.execucao.get_wizard(record.id)
    if wizard is None:
        wizard = uow.execucao.add_wizard(
            ExecucaoDespesa(
                solicitacao_id=record.id,
                etapa_atual=EtapaExecucao.PORTARIA.value,
                etapas_concluidas="",
                etapas_puladas="",
            )
        )
    return record, wizard


def _avancar(wizard: ExecucaoDespesa, etapa: str) -> None:
    """Move ``etapa_atual`` to the step after *etapa* unless it is already further."""
    idx = ETAPAS_SEQUENCIA.index(etapa)
    if ETAPAS_SEQUENCIA.index(wizard.etapa_atual) <= idx:
        wizard.etapa_atual = ETAPAS_SEQUENCIA[min(idx + 1, len(ETAPAS_SEQUENCIA) - 1)]


def _concluir_etapa(wizard: ExecucaoDespesa, etapa: str) -> None:
    concluidas = _lista(wizard.etapas_concluidas)
    if etapa not in concluidas:
        concluidas.append(etapa)
    wizard.etapas_concluidas = ",".join(e for e in ETAPAS_SEQUENCIA if e in concluidas)
    wizard.etapas_puladas = ",".join(e for e in _lista(wizard.etapas_puladas) if e != etapa)
    _avancar(wizard, etapa)


def build_state(record_id: int, wizard: ExecucaoDespesa | None) -> ExecucaoResponse:
    """Serialize a wizard (or the initial state when there is none yet)."""
    concluidas = _lista(wizard.etapas_concluidas) if wizard else []
    pendentes = [e for e in ETAPAS_OBRIGATORIAS if e not in concluidas]
    return ExecucaoResponse(
        solicitacao_id=record_id,
        etapa_atual=wizard.etapa_atual if wizard else EtapaExecucao.PORTARIA.value,
        etapas_concluidas=concluidas,
        etapas_puladas=_lista(wizard.etapas_puladas) if wizard else [],
        etapas_pendentes=pendentes,
        pode_tramitar=not pendentes,
        ne_valor=wizard.ne_valor if wizard else None,
        dl_valor=wizard.dl_valor if wizard else None,
        ob_valor=wizard.ob_valor if wizard else None,
        assinado_em=wizard.assinado_em if wizard else None,
    )


def _ano_exercicio(record: Solicitacao) -> int:
    return (record.created_at or datetime.datetime.now()).year


def _dotacoes(record: Solicitacao) -> list[str]:
    return [d for d in (record.dotacao_code or "").split(_SEPARADOR_DOTACAO) if d]


def _guardar_documento(
    uow: UnitOfWork,
    record: Solicitacao,
    tipo: str,
    nome: str,
    *,
    conteudo: str | None = None,
    data: bytes | None = None,
    filename: str,
    created_by: str | None,
) -> Documento:
    payload = data if data is not None else (conteudo or "").encode("utf-8")
    url = uow.documents.put(payload, filename, record.protocolo)
    return uow.execucao.add_documento(
        Documento(
            solicitacao_id=record.id,
            tipo=tipo,
            nome=nome,
            status="MINUTA",
            conteudo=conteudo,
            url=url,
            created_by=created_by,
        )
    )


# ---------------------------------------------------------------------------
# Read
# ---------------------------------------------------------------------------


@as_result
def get_wizard_state(uow: UnitOfWork, record_id: int) -> OperationResult:
    """Return the persisted wizard state of a record (initial state if never started)."""
    record = load_record(uow, record_id)
    state = build_state(record.id, uow.execucao.get_wizard(record.id))
    logger.debug("Wizard of %s at %s", record.protocolo, state.etapa_atual)
    return OperationResult.success("Execução", f"Etapa atual: {state.etapa_atual}.", data=state)


@as_result
def list_documentos(uow: UnitOfWork, record_id: int) -> OperationResult:
    record = load_record(uow, record_id)
    documentos = uow.execucao.list_documentos(record.id)
    return OperationResult.success(
        "Documentos",
        f"{len(documentos)} documento(s) em {record.protocolo}.",
        data=[DocumentoResponse.model_validate(d) for d in documentos],
    )


@as_result
def verificar_conciliacao(uow: UnitOfWork, record_id: int) -> OperationResult:
    """Run the NE / DL / OB triple check on what has been registered so far."""
    record = load_record(uow, record_id)
    wizard = uow.execucao.get_wizard(record.id)
    check = conciliacao_service.verificar(
        wizard.ne_valor if wizard else None,
        wizard.dl_valor if wizard else None,
        wizard.ob_valor if wizard else None,
    )
    return OperationResult.success(
        "Conciliação",
        "Valores conferidos." if check.is_valid else "Conciliação incompleta ou divergente.",
        data=check,
        flags=check.flags,
    )


# ---------------------------------------------------------------------------
# Steps
# ---------------------------------------------------------------------------


@as_result
def skip_step(
    uow: UnitOfWork, record_id: int, etapa: EtapaExecucao | str, tramitado_por: str | None = None
) -> OperationResult:
    """Mark a step as explicitly skipped and move past it.

    Skipping a mandatory step (PORTARIA, CERTIDAO, NE) is allowed but keeps
    the dossier from being sent to the Ordenador.
    """
    try:
        etapa = EtapaExecucao(etapa).value
    except ValueError as exc:
        raise ValidationError(f"Etapa desconhecida: {etapa!r}.") from exc
    if etapa == EtapaExecucao.TRAMITAR.value:
        raise ValidationError("A etapa de tramitação não pode ser pulada.")

    with uow.transaction():
        record, wizard = _carregar(uow, record_id)
        if etapa in _lista(wizard.etapas_concluidas):
            raise ValidationError(f"A etapa {etapa} já foi concluída.")
        puladas = _lista(wizard.etapas_puladas)
        if etapa not in puladas:
            puladas.append(etapa)
        wizard.etapas_puladas = ",".join(e for e in ETAPAS_SEQUENCIA if e in puladas)
        _avancar(wizard, etapa)
        state = build_state(record.id, wizard)

    logger.info("Skipped %s on %s (by %s)", etapa, record.protocolo, tramitado_por)
    return OperationResult.success("Etapa pulada", f"Etapa {etapa} pulada.", data=state)


@as_result
def generate_portaria(
    uow: UnitOfWork,
    record_id: int,
    ptres_code: str,
    dotacao_codes: list[str],
    tramitado_por: str | None = None,
) -> OperationResult:
    """Generate the Portaria SF draft binding the request to its budget lines.

    Args:
        uow: Unit of work.
        record_id: Record being executed.
        ptres_code: PTRES funding the expense.
        dotacao_codes: Budget lines; the first one receives the NE commitment.
        tramitado_por: Actor.

    Returns:
        ``data`` is the wizard state; the Portaria number is in the message.

    Raises (as a failed result):
        MissingRequiredField: No dotação given.
        ValidationError: Unknown PTRES, or a dotação that is not an active
            line of the PTRES in the year's budget plan.
        InvalidTransition: The NE is already committed and the PTRES or
            dotação would change.
    """
    codes = [c.strip() for c in dotacao_codes or [] if c and c.strip()]
    if not codes:
        raise MissingRequiredField("Selecione ao menos uma dotação orçamentária.", details=["dotacao_codes"])
    if ptres_code not in PTRES_CONFIG:
        raise ValidationError(f"PTRES desconhecido: {ptres_code}.", details=["ptres_code"])

    with uow.transaction():
        record, wizard = _carregar(uow, record_id)
        if wizard.ne_valor is not None and (
            ptres_code != record.ptres_code
            or _SEPARADOR_DOTACAO.join(codes) != record.dotacao_code
        ):
            raise InvalidTransition(
                "A NE já foi registrada: a Portaria não pode mudar o PTRES ou a dotação.",
                details=[
                    f"Empenhado em PTRES {record.ptres_code} / dotação {record.dotacao_code}",
                ],
            )
        year = _ano_exercicio(record)
        if uow.budget.get_plan(year) is not None:
            invalidas = [
                c for c in codes
                if uow.budget.find_active(year, ptres_code, dotacao_code=c) is None
            ]
            if invalidas:
                raise ValidationError(
                    f"Dotação(ões) sem linha ativa no PTRES {ptres_code} em {year}.",
                    details=invalidas,
                )

        numero = record.portaria_sf_numero or f"{uow.execucao.count_portarias(year) + 1:03d}/{year}-SF"
        conteudo = (
            f"PORTARIA SF Nº {numero}\n\n"
            f"O Secretário de Planejamento, Coordenação e Finanças, no uso de suas atribuições,\n"
            f"RESOLVE conceder a {record.solicitante_nome}"
            f"{', matrícula ' + record.solicitante_matricula if record.solicitante_matricula else ''}"
            f", {record.tipo.lower()} para {record.destino or '-'}, no período de "
            f"{record.data_inicio:%d/%m/%Y} a {record.data_fim:%d/%m/%Y}, no valor de "
            f"{format_brl(record.valor)}, à conta do PTRES {ptres_code} "
            f"({PTRES_CONFIG[ptres_code]['description']}), dotação(ões) {', '.join(codes)}.\n\n"
            f"Protocolo: {record.protocolo}\n"
        )
        tipo = DOCUMENTO_POR_ETAPA[EtapaExecucao.PORTARIA.value]
        _guardar_documento(
            uow, record, tipo, f"{DOCUMENTO_LABELS[tipo]} {numero}",
            conteudo=conteudo,
            filename=f"portaria_{numero.replace('/', '-')}.txt",
            created_by=tramitado_por,
        )
        write_record(
            uow,
            record,
            {
                "ptres_code": ptres_code,
                "dotacao_code": _SEPARADOR_DOTACAO.join(codes),
                "portaria_sf_numero": numero,
            },
        )
        _concluir_etapa(wizard, EtapaExecucao.PORTARIA.value)
        state = build_state(record.id, wizard)

    logger.info("Generated Portaria %s for %s", numero, record.protocolo)
    return OperationResult.success(
        "Portaria gerada", f"Portaria SF {numero} gerada para {record.protocolo}.", data=state
    )


@as_result
def generate_certidao(
    uow: UnitOfWork, record_id: int, tramitado_por: str | None = None
) -> OperationResult:
    """Generate the regularity certificate.

    The certificate attests the requester's standing as declared by SOSFU;
    no external registry is consulted, so generation always succeeds for an
    executable record.
    """
    with uow.transaction():
        record, wizard = _carregar(uow, record_id)
        tipo = DOCUMENTO_POR_ETAPA[EtapaExecucao.CERTIDAO.value]
        conteudo = (
            f"{DOCUMENTO_LABELS[tipo].upper()}\n\n"
            f"Certificamos que {record.solicitante_nome} não possui pendências de prestação "
            f"de contas junto a este Tribunal até a presente data.\n\n"
            f"Protocolo: {record.protocolo}\n"
            f"Emitida em {datetime.datetime.now():%d/%m/%Y}.\n"
        )
        _guardar_documento(
            uow, record, tipo, f"{DOCUMENTO_LABELS[tipo]} - {record.protocolo}",
            conteudo=conteudo,
            filename=f"certidao_{record.protocolo}.txt",
            created_by=tramitado_por,
        )
        _concluir_etapa(wizard, EtapaExecucao.CERTIDAO.value)
        state = build_state(record.id, wizard)

    logger.info("Generated certidão for %s", record.protocolo)
    return OperationResult.success(
        "Certidão gerada", f"Certidão de regularidade emitida para {record.protocolo}.", data=state
    )


def _validar_arquivo(uploaded_file: UploadedFile | None) -> UploadedFile:
    if uploaded_file is None or not uploaded_file.content:
        raise MissingDocument("Anexe o PDF do documento.", details=["arquivo"])
    is_pdf = (
        uploaded_file.content_type in ACCEPTED_UPLOAD_TYPES
        if uploaded_file.content_type
        else uploaded_file.filename.lower().endswith(".pdf")
    )
    if not is_pdf:
        raise MissingDocument(
            f"O arquivo '{uploaded_file.filename}' não é um PDF.", details=["arquivo"]
        )
    max_bytes = get_settings().MAX_UPLOAD_MB * 1024 * 1024
    if len(uploaded_file.content) > max_bytes:
        raise ValidationError(
            f"O arquivo excede o limite de {get_settings().MAX_UPLOAD_MB} MB.", details=["arquivo"]
        )
    return uploaded_file


def _validar_valor(declared_value: Any) -> Decimal:
    try:
        valor = to_money(declared_value)
    except ValueError as exc:
        raise InvalidValue(str(exc), details=["valor"]) from exc
    if valor <= 0:
        raise InvalidValue("O valor do documento deve ser maior que zero.", details=["valor"])
    return valor


@as_result
def register_financial_document(
    uow: UnitOfWork,
    record_id: int,
    kind: TipoDocumentoFinanceiro | str,
    uploaded_file: UploadedFile | None,
    declared_value: Any,
    numero: str | None = None,
    tramitado_por: str | None = None,
) -> OperationResult:
    """Register the NE, DL or OB of an execution.

    The PDF is stored through the document store and the declared value is
    recorded on the wizard and on the record.  Registering the NE also
    commits its value against the budget line chosen in the Portaria when a
    plan exists for the year.  The triple check runs afterwards and its
    findings are returned as flags.

    Raises (as a failed result):
        MissingDocument: No file, or the file is not a PDF.
        InvalidValue: Value missing, not numeric, or not positive.
        ValidationError: Unknown kind, or the NE was already registered.
        PrerequisitesNotMet: NE with a budget plan but no Portaria yet.
        InsufficientBalance: The NE value exceeds the dotação balance.
    """
    try:
        kind = TipoDocumentoFinanceiro(kind).value
    except ValueError as exc:
        raise ValidationError(f"Tipo de documento financeiro desconhecido: {kind!r}.") from exc
    arquivo = _validar_arquivo(uploaded_file)
    valor = _validar_valor(declared_value)
    prefixo = kind.lower()

    with uow.transaction():
        record, wizard = _carregar(uow, record_id)
        if kind == TipoDocumentoFinanceiro.NE.value and wizard.ne_valor is not None:
            raise ValidationError(
                f"A Nota de Empenho de {record.protocolo} já foi registrada."
            )

        if kind == TipoDocumentoFinanceiro.NE.value:
            year = _ano_exercicio(record)
            if uow.budget.get_plan(year) is not None:
                dotacoes = _dotacoes(record)
                if not record.ptres_code or not dotacoes:
                    raise PrerequisitesNotMet(
                        "Gere a Portaria (PTRES e dotação) antes de registrar a NE.",
                        details=[EtapaExecucao.PORTARIA.value],
                    )
                allocation = orcamento_service.commit_against_line(
                    uow, year, record.ptres_code, dotacoes[0], valor
                )
                wizard.ne_allocation_id = allocation.id

        tipo = DOCUMENTO_POR_ETAPA[kind]
        documento = _guardar_documento(
            uow, record, tipo,
            f"{DOCUMENTO_LABELS[tipo]} {numero or ''}".strip(),
            data=arquivo.content,
            filename=arquivo.filename,
            created_by=tramitado_por,
        )
        setattr(wizard, f"{prefixo}_valor", valor)
        setattr(wizard, f"{prefixo}_url", documento.url)
        write_record(uow, record, {f"{prefixo}_numero": numero, f"{prefixo}_valor": valor})
        _concluir_etapa(wizard, kind)
        state = build_state(record.id, wizard)
        check = conciliacao_service.verificar(wizard.ne_valor, wizard.dl_valor, wizard.ob_valor)

    for flag in check.flags:
        logger.warning("Reconciliation %s on %s: %s", flag.code, record.protocolo, flag.message)
    logger.info("Registered %s of %s for %s", kind, valor, record.protocolo)
    return OperationResult.success(
        "Documento financeiro registrado",
        f"{DOCUMENTO_LABELS[tipo]} de {format_brl(valor)} registrada em {record.protocolo}.",
        data=state,
        flags=check.flags,
    )
