"""
Tramitação state machine.

Moves a Solicitação between departments (SODPA → AJSEFIN → SEFIN →
PRESIDÊNCIA → SOSFU).  Every transition follows the same contract:

1. the record's current ``(destino_atual, status)`` must be one of the
   transition's origins, otherwise ``InvalidTransition``;
2. ``destino_atual`` + ``status`` are written with a version compare-and-set;
3. exactly one history entry is appended;
4. downstream tasks / documents are created;

all inside one ``uow.transaction()``, so a failure leaves the record and its
history untouched.

Design notes
------------
- ``TRANSICOES`` is the only place where origins and targets are declared;
  the operations below never write ``destino_atual`` / ``status`` on their own.
- Pre-execution signature (``AGUARDANDO_ASSINATURA_SEFIN``) produces the
  Ordenador's authorization document.  Post-execution signature
  (``AGUARDANDO_ASSINATURA``) signs the queued tasks and stamps the wizard;
  that stamp is what ``submeter_presidencia`` and ``concluir`` look for.
- ``batch_sign`` runs one transaction per record, in order.
"""

from __future__ import annotations

import datetime
import logging
from dataclasses import dataclass
from typing import Callable

from app.models.execucao import Documento, ExecucaoDespesa, TarefaAssinatura
from app.models.solicitacao import Solicitacao
from app.schemas.common import OperationResult
from app.schemas.solicitacao import SolicitacaoResponse
from app.schemas.tramitacao import (
    AssinaturaLoteItem,
    AssinaturaLoteResponse,
    TarefaAssinaturaResponse,
)
from app.services import historico_service
from app.services.errors import (
    InvalidTransition,
    MissingRequiredField,
    PrerequisitesNotMet,
    ValidationError,
    as_result,
)
from app.services.solicitacao_service import load_record, write_record
from app.stores.base import UnitOfWork
from app.utils.constants import (
    DESTINOS_COM_PRESIDENCIA,
    DOCUMENTO_LABELS,
    DOCUMENTO_POR_ETAPA,
    ESTADOS_VALIDOS,
    ETAPAS_OBRIGATORIAS,
    ETAPAS_SEQUENCIA,
    STATUS_LABELS,
    STATUS_TERMINAIS,
    TAREFA_ASSINADA,
    TAREFA_PENDENTE,
    TAREFA_REJEITADA,
    Destino,
    StatusSolicitacao,
    TipoDocumento,
    TipoSolicitacao,
)
from app.utils.money import format_brl, to_money

logger = logging.getLogger(__name__)

_S = StatusSolicitacao
_D = Destino


@dataclass(frozen=True)
class Transicao:
    """One row of the state table.

    Attributes:
        origens: ``(destino, status)`` pairs the action may start from.
        destino: Department the record is moved to.
        status: Status the record is set to.
        titulo: Title of the confirmation shown to the operator.
        observacao: History note used when the actor gives none.
    """

    origens: frozenset[tuple[str, str]]
    destino: str
    status: str
    titulo: str
    observacao: str


def _t(origens: list[tuple[Destino, StatusSolicitacao]], destino: Destino,
       status: StatusSolicitacao, titulo: str, observacao: str) -> Transicao:
    return Transicao(
        origens=frozenset((d.value, s.value) for d, s in origens),
        destino=destino.value,
        status=status.value,
        titulo=titulo,
        observacao=observacao,
    )


TRANSICOES: dict[str, Transicao] = {
    "encaminhar_ajsefin": _t(
        [(_D.SODPA, _S.ENVIADO), (_D.SODPA, _S.DEVOLVIDO)],
        _D.AJSEFIN, _S.EM_ANALISE_AJSEFIN,
        "Encaminhado à AJSEFIN", "Encaminhado para análise jurídica",
    ),
    "emitir_parecer": _t(
        [(_D.AJSEFIN, _S.EM_ANALISE_AJSEFIN)],
        _D.SEFIN, _S.PARECER_EMITIDO,
        "Parecer emitido", "Parecer jurídico emitido",
    ),
    "encaminhar_assinatura": _t(
        [(_D.SEFIN, _S.PARECER_EMITIDO)],
        _D.SEFIN, _S.AGUARDANDO_ASSINATURA_SEFIN,
        "Enviado para assinatura", "Aguardando assinatura do Ordenador",
    ),
    "devolver_ajsefin": _t(
        [(_D.AJSEFIN, _S.EM_ANALISE_AJSEFIN)],
        _D.SOSFU, _S.DEVOLVIDO_PARA_AJUSTE,
        "Devolvido para ajuste", "Devolvido pela AJSEFIN para ajuste",
    ),
    "devolver_ordenador": _t(
        [
            (_D.SEFIN, _S.PARECER_EMITIDO),
            (_D.SEFIN, _S.AGUARDANDO_ASSINATURA_SEFIN),
            (_D.SEFIN, _S.AGUARDANDO_ASSINATURA),
        ],
        _D.SOSFU, _S.DEVOLVIDO_PELO_ORDENADOR,
        "Devolvido pelo Ordenador", "Devolvido pelo Ordenador de Despesa",
    ),
    "reenviar_para_analise": _t(
        [(_D.SOSFU, _S.DEVOLVIDO_PARA_AJUSTE), (_D.SOSFU, _S.DEVOLVIDO_PELO_ORDENADOR)],
        _D.AJSEFIN, _S.EM_ANALISE_AJSEFIN,
        "Reenviado para análise", "Reenviado para nova análise jurídica",
    ),
    "assinar": _t(
        [(_D.SEFIN, _S.AGUARDANDO_ASSINATURA_SEFIN), (_D.SEFIN, _S.AGUARDANDO_ASSINATURA)],
        _D.SOSFU, _S.APROVADO,
        "Documento assinado", "Assinado pelo Ordenador de Despesa",
    ),
    "tramitar_ordenador": _t(
        [(_D.SOSFU, _S.APROVADO), (_D.SOSFU, _S.DEVOLVIDO_PELO_ORDENADOR)],
        _D.SEFIN, _S.AGUARDANDO_ASSINATURA,
        "Tramitado ao Ordenador", "Execução enviada para assinatura do Ordenador",
    ),
    "submeter_presidencia": _t(
        [(_D.SOSFU, _S.APROVADO)],
        _D.PRESIDENCIA, _S.EM_ANALISE_PRESIDENCIA,
        "Enviado à Presidência", "Submetido à autorização da Presidência",
    ),
    "autorizar_presidencia": _t(
        [(_D.PRESIDENCIA, _S.EM_ANALISE_PRESIDENCIA)],
        _D.SEFIN, _S.APROVADO,
        "Autorizado pela Presidência", "Autorizado pela Presidência",
    ),
    "rejeitar_presidencia": _t(
        [(_D.PRESIDENCIA, _S.EM_ANALISE_PRESIDENCIA)],
        _D.SODPA, _S.DEVOLVIDO,
        "Devolvido pela Presidência", "Não autorizado pela Presidência",
    ),
    "concluir": _t(
        [(_D.SOSFU, _S.APROVADO), (_D.SEFIN, _S.APROVADO)],
        _D.SOSFU, _S.CONCLUIDO,
        "Processo concluído", "Processo concluído e arquivado",
    ),
    "indeferir": _t(
        [(_D.SODPA, _S.ENVIADO), (_D.SODPA, _S.DEVOLVIDO)],
        _D.SODPA, _S.REJEITADO,
        "Solicitação indeferida", "Solicitação indeferida pela SODPA",
    ),
    "cancelar": _t(
        [(_D.SODPA, _S.ENVIADO), (_D.SODPA, _S.DEVOLVIDO)],
        _D.SODPA, _S.CANCELADO,
        "Solicitação cancelada", "Solicitação cancelada",
    ),
}


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _estado(record: Solicitacao) -> tuple[str, str]:
    return record.destino_atual, record.status


def _label(record: Solicitacao) -> str:
    return f"{record.destino_atual} / {STATUS_LABELS.get(record.status, record.status)}"


def _exigir_origem(record: Solicitacao, acao: str) -> Transicao:
    """Return the transition for *acao* or raise ``InvalidTransition``."""
    transicao = TRANSICOES[acao]
    if _estado(record) not in ESTADOS_VALIDOS:
        logger.error(
            "Record %s in unknown state %s/%s", record.protocolo, *_estado(record)
        )
        raise InvalidTransition(
            f"{record.protocolo} está em um estado desconhecido ({_label(record)})."
        )
    if _estado(record) not in transicao.origens:
        raise InvalidTransition(
            f"'{transicao.titulo}' não é permitido para {record.protocolo} em {_label(record)}.",
            details=[f"{d}/{s}" for d, s in sorted(transicao.origens)],
        )
    return transicao


def _aplicar(
    uow: UnitOfWork,
    record: Solicitacao,
    acao: str,
    transicao: Transicao,
    *,
    observacao: str | None,
    tramitado_por: str | None,
    values: dict | None = None,
) -> None:
    """Write the new state and append the history entry."""
    origem, status_anterior = _estado(record)
    write_record(
        uow,
        record,
        {"destino_atual": transicao.destino, "status": transicao.status, **(values or {})},
    )
    historico_service.append(
        uow,
        record,
        origem=origem,
        destino=transicao.destino,
        status_anterior=status_anterior,
        status_novo=transicao.status,
        observacao=observacao or transicao.observacao,
        tramitado_por=tramitado_por,
    )
    logger.info(
        "Tramitação %s on %s: %s/%s -> %s/%s",
        acao, record.protocolo, origem, status_anterior, transicao.destino, transicao.status,
    )


def _tramitar(
    uow: UnitOfWork,
    record_id: int,
    acao: str,
    *,
    observacao: str | None = None,
    tramitado_por: str | None = None,
    values: dict | None = None,
    antes: Callable[[UnitOfWork, Solicitacao], None] | None = None,
    depois: Callable[[UnitOfWork, Solicitacao], None] | None = None,
) -> OperationResult:
    """Run one transition in its own unit of work.

    Args:
        antes: Extra precondition checks, run after the origin check.
        depois: Downstream effects (tasks, documents) run after the write.
    """
    with uow.transaction():
        record = load_record(uow, record_id)
        transicao = _exigir_origem(record, acao)
        if antes is not None:
            antes(uow, record)
        _aplicar(
            uow, record, acao, transicao,
            observacao=observacao, tramitado_por=tramitado_por, values=values,
        )
        if depois is not None:
            depois(uow, record)
        response = SolicitacaoResponse.model_validate(record)

    return OperationResult.success(
        transicao.titulo,
        f"{record.protocolo}: {_label(record)}.",
        data=response,
    )


def _exigir_texto(value: str | None, campo: str) -> str:
    if value is None or not value.strip():
        raise ValidationError(f"Informe o {campo}.", details=[campo])
    return value.strip()


def _wizard(uow: UnitOfWork, record: Solicitacao) -> ExecucaoDespesa | None:
    return uow.execucao.get_wizard(record.id)


def _etapas(csv: str | None) -> list[str]:
    return [e for e in (csv or "").split(",") if e]


def _requer_presidencia(record: Solicitacao) -> bool:
    return record.tipo_destino in DESTINOS_COM_PRESIDENCIA


def _exigir_pacote_assinado(uow: UnitOfWork, record: Solicitacao) -> None:
    wizard = _wizard(uow, record)
    if wizard is None or wizard.assinado_em is None:
        raise PrerequisitesNotMet(
            f"A execução de {record.protocolo} ainda não foi assinada pelo Ordenador.",
            details=["ASSINATURA_ORDENADOR"],
        )


def _fechar_tarefas(uow: UnitOfWork, record: Solicitacao, status: str) -> int:
    """Move every pending signing task of *record* to *status*."""
    now = datetime.datetime.now()
    tarefas = uow.execucao.list_tarefas(record.id, status=TAREFA_PENDENTE)
    for tarefa in tarefas:
        tarefa.status = status
        if status == TAREFA_ASSINADA:
            tarefa.assinado_em = now
    return len(tarefas)


# ---------------------------------------------------------------------------
# SODPA
# ---------------------------------------------------------------------------


@as_result
def encaminhar_ajsefin(
    uow: UnitOfWork, record_id: int, tramitado_por: str | None = None,
    observacao: str | None = None,
) -> OperationResult:
    """SODPA forwards a submitted (or re-submitted) request for legal analysis."""
    return _tramitar(
        uow, record_id, "encaminhar_ajsefin",
        observacao=observacao, tramitado_por=tramitado_por,
    )


@as_result
def indeferir(
    uow: UnitOfWork, record_id: int, motivo: str, tramitado_por: str | None = None
) -> OperationResult:
    """SODPA rejects the request; terminal."""
    motivo = _exigir_texto(motivo, "motivo")
    return _tramitar(
        uow, record_id, "indeferir",
        observacao=f"Indeferido: {motivo}", tramitado_por=tramitado_por,
    )


@as_result
def cancelar(
    uow: UnitOfWork, record_id: int, tramitado_por: str | None = None,
    observacao: str | None = None,
) -> OperationResult:
    """Cancel a request still in SODPA; terminal."""
    return _tramitar(
        uow, record_id, "cancelar",
        observacao=observacao, tramitado_por=tramitado_por,
    )


@as_result
def assign_to_reviewer(uow: UnitOfWork, record_id: int, reviewer_id: str) -> OperationResult:
    """Set the assessor / ordenador responsible for the record.

    Not a tramitação: status and department are unchanged and no history
    entry is written.  Assigning the current reviewer again is a no-op.
    """
    reviewer_id = _exigir_texto(reviewer_id, "responsável")
    with uow.transaction():
        record = load_record(uow, record_id)
        if record.status in STATUS_TERMINAIS:
            raise InvalidTransition(
                f"{record.protocolo} está encerrado ({_label(record)}) e não pode ser atribuído."
            )
        if record.atribuido_a != reviewer_id:
            write_record(uow, record, {"atribuido_a": reviewer_id})
            logger.info("Assigned %s to %s", record.protocolo, reviewer_id)
        response = SolicitacaoResponse.model_validate(record)

    return OperationResult.success(
        "Responsável atribuído", f"{record.protocolo} atribuído a {reviewer_id}.", data=response
    )


# ---------------------------------------------------------------------------
# AJSEFIN / SEFIN
# ---------------------------------------------------------------------------


@as_result
def submit_opinion(
    uow: UnitOfWork, record_id: int, opinion_text: str, tramitado_por: str | None = None
) -> OperationResult:
    """AJSEFIN issues its legal opinion and moves the record to SEFIN."""
    if opinion_text is None or not opinion_text.strip():
        raise MissingRequiredField("O texto do parecer jurídico é obrigatório.", details=["parecer"])
    return _tramitar(
        uow, record_id, "emitir_parecer",
        tramitado_por=tramitado_por,
        values={"parecer_juridico": opinion_text.strip(), "parecer_autor": tramitado_por},
    )


@as_result
def encaminhar_assinatura(
    uow: UnitOfWork, record_id: int, tramitado_por: str | None = None,
    observacao: str | None = None,
) -> OperationResult:
    """SEFIN queues the pre-execution authorization for the Ordenador."""

    def enfileirar(uow: UnitOfWork, record: Solicitacao) -> None:
        tipo = TipoDocumento.AUTORIZACAO_ORDENADOR.value
        uow.execucao.add_tarefa(
            TarefaAssinatura(
                solicitacao_id=record.id,
                tipo=tipo,
                titulo=f"{DOCUMENTO_LABELS[tipo]} - {record.protocolo}",
                origem=Destino.SEFIN.value,
                valor=to_money(record.valor),
                status=TAREFA_PENDENTE,
            )
        )

    return _tramitar(
        uow, record_id, "encaminhar_assinatura",
        observacao=observacao, tramitado_por=tramitado_por, depois=enfileirar,
    )


@as_result
def return_for_adjustment(
    uow: UnitOfWork, record_id: int, reason: str, tramitado_por: str | None = None
) -> OperationResult:
    """Send the record back to SOSFU for adjustment.

    From AJSEFIN the record becomes ``DEVOLVIDO_PARA_AJUSTE``; from SEFIN
    (Ordenador) it becomes ``DEVOLVIDO_PELO_ORDENADOR`` and any pending
    signing task is rejected.
    """
    reason = _exigir_texto(reason, "motivo")
    record = load_record(uow, record_id)
    acao = "devolver_ajsefin" if record.destino_atual == Destino.AJSEFIN.value else "devolver_ordenador"

    def rejeitar_tarefas(uow: UnitOfWork, record: Solicitacao) -> None:
        rejeitadas = _fechar_tarefas(uow, record, TAREFA_REJEITADA)
        if rejeitadas:
            logger.info("Rejected %d signing task(s) of %s", rejeitadas, record.protocolo)

    return _tramitar(
        uow, record_id, acao,
        observacao=f"Devolvido: {reason}", tramitado_por=tramitado_por,
        depois=rejeitar_tarefas if acao == "devolver_ordenador" else None,
    )


@as_result
def reenviar_para_analise(
    uow: UnitOfWork, record_id: int, tramitado_por: str | None = None,
    observacao: str | None = None,
) -> OperationResult:
    """SOSFU sends an adjusted record back to AJSEFIN; the previous opinion is cleared."""
    return _tramitar(
        uow, record_id, "reenviar_para_analise",
        observacao=observacao, tramitado_por=tramitado_por,
        values={"parecer_juridico": None, "parecer_autor": None},
    )


def _gerar_autorizacao(uow: UnitOfWork, record: Solicitacao, tramitado_por: str | None) -> None:
    tipo = TipoDocumento.AUTORIZACAO_ORDENADOR.value
    conteudo = (
        f"{DOCUMENTO_LABELS[tipo].upper()}\n\n"
        f"Protocolo: {record.protocolo}\n"
        f"Solicitante: {record.solicitante_nome}\n"
        f"Destino: {record.destino or '-'} ({record.tipo_destino})\n"
        f"Período: {record.data_inicio:%d/%m/%Y} a {record.data_fim:%d/%m/%Y}\n"
        f"Valor: {format_brl(record.valor)}\n\n"
        f"Autorizo a despesa, nos termos do parecer jurídico.\n"
        f"Assinado em {datetime.datetime.now():%d/%m/%Y %H:%M} por {tramitado_por or 'Ordenador de Despesa'}.\n"
    )
    url = uow.documents.put(
        conteudo.encode("utf-8"), f"autorizacao_{record.protocolo}.txt", record.protocolo
    )
    uow.execucao.add_documento(
        Documento(
            solicitacao_id=record.id,
            tipo=tipo,
            nome=f"{DOCUMENTO_LABELS[tipo]} - {record.protocolo}",
            status="ASSINADO",
            conteudo=conteudo,
            url=url,
            created_by=tramitado_por,
        )
    )


def _assinar_pacote(uow: UnitOfWork, record: Solicitacao) -> None:
    now = datetime.datetime.now()
    wizard = _wizard(uow, record)
    if wizard is not None:
        wizard.assinado_em = now
    tipos = {t.tipo for t in uow.execucao.list_tarefas(record.id, status=TAREFA_PENDENTE)}
    for documento in uow.execucao.list_documentos(record.id):
        if documento.tipo in tipos:
            documento.status = "ASSINADO"


@as_result
def sign_document(
    uow: UnitOfWork, record_id: int, tramitado_por: str | None = None
) -> OperationResult:
    """The Ordenador signs what is waiting for them; the record returns to SOSFU as ``APROVADO``."""
    record = load_record(uow, record_id)
    pre_execucao = record.status == StatusSolicitacao.AGUARDANDO_ASSINATURA_SEFIN.value

    def assinar(uow: UnitOfWork, record: Solicitacao) -> None:
        if pre_execucao:
            _gerar_autorizacao(uow, record, tramitado_por)
        else:
            _assinar_pacote(uow, record)
        _fechar_tarefas(uow, record, TAREFA_ASSINADA)

    return _tramitar(
        uow, record_id, "assinar",
        tramitado_por=tramitado_por, depois=assinar,
    )


@as_result
def batch_sign(
    uow: UnitOfWork, record_ids: list[int], tramitado_por: str | None = None
) -> OperationResult:
    """Sign several records one after the other.

    Each record is signed in its own unit of work; a failure is reported in
    its item and does not affect the others.

    Returns:
        ``data`` is an ``AssinaturaLoteResponse`` in input order.
    """
    items = []
    for record_id in record_ids:
        result = sign_document(uow, record_id, tramitado_por=tramitado_por)
        items.append(AssinaturaLoteItem(solicitacao_id=record_id, result=result))
    assinados = sum(1 for item in items if item.result.ok)
    falhas = len(items) - assinados
    logger.info("Batch sign: %d signed, %d failed", assinados, falhas)
    return OperationResult.success(
        "Assinatura em lote",
        f"{assinados} de {len(items)} documento(s) assinado(s).",
        data=AssinaturaLoteResponse(
            total=len(items), assinados=assinados, falhas=falhas, items=items
        ),
    )


# ---------------------------------------------------------------------------
# SOSFU (execution) / PRESIDÊNCIA
# ---------------------------------------------------------------------------


@as_result
def tramitar_to_ordenador(
    uow: UnitOfWork, record_id: int, tramitado_por: str | None = None,
    observacao: str | None = None,
) -> OperationResult:
    """Send the executed dossier to the Ordenador for signature.

    Requires the Portaria, the Certidão and the NE.  One signing task is
    queued per completed document.
    """

    def exigir_documentos(uow: UnitOfWork, record: Solicitacao) -> None:
        wizard = _wizard(uow, record)
        concluidas = set(_etapas(wizard.etapas_concluidas)) if wizard else set()
        faltando = [e for e in ETAPAS_OBRIGATORIAS if e not in concluidas]
        if faltando:
            nomes = ", ".join(DOCUMENTO_LABELS[DOCUMENTO_POR_ETAPA[e]] for e in faltando)
            raise PrerequisitesNotMet(
                f"Conclua as etapas obrigatórias antes de tramitar: {nomes}.",
                details=faltando,
            )

    def enfileirar(uow: UnitOfWork, record: Solicitacao) -> None:
        wizard = _wizard(uow, record)
        concluidas = _etapas(wizard.etapas_concluidas)
        valores = {"NE": wizard.ne_valor, "DL": wizard.dl_valor, "OB": wizard.ob_valor}
        for etapa in ETAPAS_SEQUENCIA:
            if etapa not in concluidas or etapa not in DOCUMENTO_POR_ETAPA:
                continue
            tipo = DOCUMENTO_POR_ETAPA[etapa]
            uow.execucao.add_tarefa(
                TarefaAssinatura(
                    solicitacao_id=record.id,
                    tipo=tipo,
                    titulo=f"{DOCUMENTO_LABELS[tipo]} - {record.protocolo}",
                    origem=Destino.SOSFU.value,
                    valor=to_money(valores.get(etapa, record.valor) or record.valor),
                    status=TAREFA_PENDENTE,
                )
            )
        if "TRAMITAR" not in concluidas:
            concluidas.append("TRAMITAR")
        wizard.etapas_concluidas = ",".join(concluidas)
        wizard.etapa_atual = "TRAMITAR"
        wizard.assinado_em = None

    return _tramitar(
        uow, record_id, "tramitar_ordenador",
        observacao=observacao, tramitado_por=tramitado_por,
        antes=exigir_documentos, depois=enfileirar,
    )


@as_result
def submeter_presidencia(
    uow: UnitOfWork, record_id: int, tramitado_por: str | None = None,
    observacao: str | None = None,
) -> OperationResult:
    """Send a signed interstate / international trip to the Presidency."""

    def exigir(uow: UnitOfWork, record: Solicitacao) -> None:
        if not _requer_presidencia(record):
            raise InvalidTransition(
                f"Viagens com destino {record.tipo_destino} não exigem autorização da Presidência."
            )
        _exigir_pacote_assinado(uow, record)

    return _tramitar(
        uow, record_id, "submeter_presidencia",
        observacao=observacao, tramitado_por=tramitado_por, antes=exigir,
    )


@as_result
def authorize_by_presidency(
    uow: UnitOfWork, record_id: int, tramitado_por: str | None = None,
    observacao: str | None = None,
) -> OperationResult:
    return _tramitar(
        uow, record_id, "autorizar_presidencia",
        observacao=observacao, tramitado_por=tramitado_por,
    )


@as_result
def reject_by_presidency(
    uow: UnitOfWork, record_id: int, reason: str, tramitado_por: str | None = None
) -> OperationResult:
    """The Presidency refuses the trip; the record goes back to SODPA as ``DEVOLVIDO``."""
    reason = _exigir_texto(reason, "motivo")
    return _tramitar(
        uow, record_id, "rejeitar_presidencia",
        observacao=f"Não autorizado: {reason}", tramitado_por=tramitado_por,
    )


@as_result
def concluir(
    uow: UnitOfWork, record_id: int, tramitado_por: str | None = None,
    observacao: str | None = None,
) -> OperationResult:
    """Archive a fully executed process.

    From SOSFU the package must be signed and the trip must not need the
    Presidency.  An Ordem Bancária is required unless the request is a
    ticket-only (``PASSAGEM``) one.
    """

    def exigir(uow: UnitOfWork, record: Solicitacao) -> None:
        if record.destino_atual == Destino.SOSFU.value:
            if _requer_presidencia(record):
                raise InvalidTransition(
                    f"{record.protocolo} precisa da autorização da Presidência antes de ser concluído."
                )
            _exigir_pacote_assinado(uow, record)
        if record.tipo != TipoSolicitacao.PASSAGEM.value:
            wizard = _wizard(uow, record)
            if wizard is None or wizard.ob_valor is None:
                raise PrerequisitesNotMet(
                    "Registre a Ordem Bancária antes de concluir o processo.",
                    details=["OB"],
                )

    return _tramitar(
        uow, record_id, "concluir",
        observacao=observacao, tramitado_por=tramitado_por, antes=exigir,
    )


@as_result
def list_tarefas(
    uow: UnitOfWork, record_id: int, status: str | None = None
) -> OperationResult:
    """Signing tasks of a record, optionally filtered by status."""
    record = load_record(uow, record_id)
    tarefas = uow.execucao.list_tarefas(record.id, status=status)
    return OperationResult.success(
        "Tarefas de assinatura",
        f"{len(tarefas)} tarefa(s) para {record.protocolo}.",
        data=[TarefaAssinaturaResponse.model_validate(t) for t in tarefas],
    )
