"""
Testes da máquina de estados de tramitação.

Cobre as transições entre setores, a rejeição de ações fora do estado de
origem, a assinatura em lote e os pré-requisitos de Presidência e conclusão.
"""

from decimal import Decimal

from app.models.execucao import Documento
from app.services import execucao_service, historico_service, solicitacao_service, tramitacao_service
from app.services.tramitacao_service import TRANSICOES
from app.utils.constants import ESTADOS_VALIDOS


def _estado(uow, record_id):
    record = solicitacao_service.get(uow, record_id).data
    return record.destino_atual, record.status


def _historico(uow, record_id):
    return list(historico_service.query_by_record(uow, record_id))


def _ate_assinatura_sefin(uow, record_id):
    tramitacao_service.encaminhar_ajsefin(uow, record_id)
    tramitacao_service.submit_opinion(uow, record_id, "De acordo.", tramitado_por="assessor.1")
    tramitacao_service.encaminhar_assinatura(uow, record_id)


# ============================================================================
# Tabela de transições
# ============================================================================


class TestTabelaTransicoes:
    def test_origens_e_destinos_sao_estados_validos(self):
        for acao, transicao in TRANSICOES.items():
            assert (transicao.destino, transicao.status) in ESTADOS_VALIDOS, acao
            assert transicao.origens <= ESTADOS_VALIDOS, acao

    def test_estados_terminais_nao_tem_saida(self):
        terminais = {("SODPA", "REJEITADO"), ("SODPA", "CANCELADO"), ("SOSFU", "CONCLUIDO")}
        for transicao in TRANSICOES.values():
            assert not (transicao.origens & terminais)


# ============================================================================
# Fluxo de análise (SODPA → AJSEFIN → SEFIN → SOSFU)
# ============================================================================


class TestFluxoAnalise:
    """Caminho feliz da pré-execução."""

    def test_encaminhar_ajsefin(self, uow, nova_solicitacao):
        record_id = nova_solicitacao()

        result = tramitacao_service.encaminhar_ajsefin(uow, record_id, tramitado_por="sodpa.1")

        assert result.ok, result.message
        assert _estado(uow, record_id) == ("AJSEFIN", "EM_ANALISE_AJSEFIN")
        ultima = _historico(uow, record_id)[-1]
        assert (ultima.origem, ultima.destino) == ("SODPA", "AJSEFIN")
        assert ultima.tramitado_por == "sodpa.1"

    def test_parecer_gravado(self, uow, nova_solicitacao):
        record_id = nova_solicitacao()
        tramitacao_service.encaminhar_ajsefin(uow, record_id)

        result = tramitacao_service.submit_opinion(uow, record_id, "  Nada a opor.  ", tramitado_por="assessor.1")

        assert result.ok
        assert result.data.parecer_juridico == "Nada a opor."
        assert result.data.parecer_autor == "assessor.1"
        assert (result.data.destino_atual, result.data.status) == ("SEFIN", "PARECER_EMITIDO")

    def test_parecer_em_branco(self, uow, nova_solicitacao):
        record_id = nova_solicitacao()
        tramitacao_service.encaminhar_ajsefin(uow, record_id)

        result = tramitacao_service.submit_opinion(uow, record_id, "   ")

        assert not result.ok
        assert result.kind == "MissingRequiredField"
        assert _estado(uow, record_id) == ("AJSEFIN", "EM_ANALISE_AJSEFIN")

    def test_encaminhar_assinatura_cria_tarefa(self, uow, nova_solicitacao):
        record_id = nova_solicitacao()
        _ate_assinatura_sefin(uow, record_id)

        tarefas = tramitacao_service.list_tarefas(uow, record_id).data

        assert _estado(uow, record_id) == ("SEFIN", "AGUARDANDO_ASSINATURA_SEFIN")
        assert [(t.tipo, t.status) for t in tarefas] == [("AUTORIZACAO_ORDENADOR", "PENDING")]
        assert tarefas[0].valor == Decimal("1500.00")

    def test_assinatura_gera_uma_entrada(self, uow, nova_solicitacao, db):
        record_id = nova_solicitacao()
        _ate_assinatura_sefin(uow, record_id)
        antes = historico_service.count_by_record(uow, record_id)

        result = tramitacao_service.sign_document(uow, record_id, tramitado_por="ordenador")

        assert result.ok, result.message
        assert _estado(uow, record_id) == ("SOSFU", "APROVADO")
        entradas = _historico(uow, record_id)
        assert len(entradas) == antes + 1
        ultima = entradas[-1]
        assert (ultima.origem, ultima.destino) == ("SEFIN", "SOSFU")
        assert (ultima.status_anterior, ultima.status_novo) == ("AGUARDANDO_ASSINATURA_SEFIN", "APROVADO")

        tarefas = tramitacao_service.list_tarefas(uow, record_id).data
        assert [t.status for t in tarefas] == ["SIGNED"]
        autorizacao = db.query(Documento).filter_by(solicitacao_id=record_id).one()
        assert autorizacao.tipo == "AUTORIZACAO_ORDENADOR"
        assert autorizacao.status == "ASSINADO"
        assert "AUTORIZAÇÃO DO ORDENADOR DE DESPESA" in autorizacao.conteudo

    def test_historico_em_ordem(self, uow, aprovada):
        record_id = aprovada()

        status = [e.status_novo for e in _historico(uow, record_id)]

        assert status == [
            "ENVIADO",
            "EM_ANALISE_AJSEFIN",
            "PARECER_EMITIDO",
            "AGUARDANDO_ASSINATURA_SEFIN",
            "APROVADO",
        ]


# ============================================================================
# Transições inválidas
# ============================================================================


class TestTransicaoInvalida:
    """Ações fora do estado de origem não alteram nada."""

    def test_assinar_solicitacao_enviada(self, uow, nova_solicitacao):
        record_id = nova_solicitacao()
        antes = solicitacao_service.get(uow, record_id).data

        result = tramitacao_service.sign_document(uow, record_id)

        assert not result.ok
        assert result.kind == "InvalidTransition"
        assert "SEFIN/AGUARDANDO_ASSINATURA_SEFIN" in result.details
        depois = solicitacao_service.get(uow, record_id).data
        assert (depois.destino_atual, depois.status, depois.version) == (
            antes.destino_atual, antes.status, antes.version,
        )
        assert historico_service.count_by_record(uow, record_id) == 1

    def test_solicitacao_inexistente(self, uow):
        result = tramitacao_service.encaminhar_ajsefin(uow, 4242)

        assert not result.ok
        assert result.kind == "NotFound"

    def test_encaminhar_duas_vezes(self, uow, nova_solicitacao):
        record_id = nova_solicitacao()
        tramitacao_service.encaminhar_ajsefin(uow, record_id)

        result = tramitacao_service.encaminhar_ajsefin(uow, record_id)

        assert not result.ok
        assert result.kind == "InvalidTransition"
        assert historico_service.count_by_record(uow, record_id) == 2

    def test_notificador_recebe_sucesso_e_falha(self, uow, nova_solicitacao, notifier):
        record_id = nova_solicitacao()

        tramitacao_service.sign_document(uow, record_id)
        falha = notifier.published[-1]
        tramitacao_service.encaminhar_ajsefin(uow, record_id)
        sucesso = notifier.published[-1]

        assert (falha.ok, falha.kind) == (False, "InvalidTransition")
        assert sucesso.ok
        assert sucesso.title == "Encaminhado à AJSEFIN"


# ============================================================================
# Assinatura em lote
# ============================================================================


class TestBatchSign:
    def test_falha_isolada(self, uow, nova_solicitacao):
        r1, r2, r3 = nova_solicitacao(), nova_solicitacao(), nova_solicitacao()
        _ate_assinatura_sefin(uow, r1)
        _ate_assinatura_sefin(uow, r3)

        result = tramitacao_service.batch_sign(uow, [r1, r2, r3], tramitado_por="ordenador")

        assert result.ok
        lote = result.data
        assert (lote.total, lote.assinados, lote.falhas) == (3, 2, 1)
        assert [i.solicitacao_id for i in lote.items] == [r1, r2, r3]
        assert [i.result.ok for i in lote.items] == [True, False, True]
        assert lote.items[1].result.kind == "InvalidTransition"
        assert _estado(uow, r1) == ("SOSFU", "APROVADO")
        assert _estado(uow, r2) == ("SODPA", "ENVIADO")
        assert _estado(uow, r3) == ("SOSFU", "APROVADO")


# ============================================================================
# Devoluções, indeferimento e atribuição
# ============================================================================


class TestDevolucao:
    def test_devolucao_exige_motivo(self, uow, nova_solicitacao):
        record_id = nova_solicitacao()
        tramitacao_service.encaminhar_ajsefin(uow, record_id)

        result = tramitacao_service.return_for_adjustment(uow, record_id, "")

        assert not result.ok
        assert result.kind == "ValidationError"
        assert _estado(uow, record_id) == ("AJSEFIN", "EM_ANALISE_AJSEFIN")

    def test_devolucao_da_ajsefin(self, uow, nova_solicitacao):
        record_id = nova_solicitacao()
        tramitacao_service.encaminhar_ajsefin(uow, record_id)

        result = tramitacao_service.return_for_adjustment(uow, record_id, "Falta o convite.")

        assert result.ok
        assert _estado(uow, record_id) == ("SOSFU", "DEVOLVIDO_PARA_AJUSTE")
        assert _historico(uow, record_id)[-1].observacao == "Devolvido: Falta o convite."

    def test_devolucao_do_ordenador_rejeita_tarefas(self, uow, nova_solicitacao):
        record_id = nova_solicitacao()
        _ate_assinatura_sefin(uow, record_id)

        result = tramitacao_service.return_for_adjustment(uow, record_id, "Valor incorreto.")

        assert result.ok
        assert _estado(uow, record_id) == ("SOSFU", "DEVOLVIDO_PELO_ORDENADOR")
        tarefas = tramitacao_service.list_tarefas(uow, record_id).data
        assert [t.status for t in tarefas] == ["REJECTED"]

    def test_reenvio_limpa_parecer(self, uow, nova_solicitacao):
        record_id = nova_solicitacao()
        tramitacao_service.encaminhar_ajsefin(uow, record_id)
        tramitacao_service.submit_opinion(uow, record_id, "Favorável.")
        tramitacao_service.return_for_adjustment(uow, record_id, "Rever período.")

        result = tramitacao_service.reenviar_para_analise(uow, record_id)

        assert result.ok
        assert (result.data.destino_atual, result.data.status) == ("AJSEFIN", "EM_ANALISE_AJSEFIN")
        assert result.data.parecer_juridico is None
        assert result.data.parecer_autor is None


class TestIndeferirCancelar:
    def test_indeferir_exige_motivo(self, uow, nova_solicitacao):
        record_id = nova_solicitacao()

        result = tramitacao_service.indeferir(uow, record_id, "  ")

        assert not result.ok
        assert _estado(uow, record_id) == ("SODPA", "ENVIADO")

    def test_indeferida_e_terminal(self, uow, nova_solicitacao):
        record_id = nova_solicitacao()
        tramitacao_service.indeferir(uow, record_id, "Fora do prazo.")

        encaminhar = tramitacao_service.encaminhar_ajsefin(uow, record_id)
        atribuir = tramitacao_service.assign_to_reviewer(uow, record_id, "assessor.2")

        assert _estado(uow, record_id) == ("SODPA", "REJEITADO")
        assert encaminhar.kind == "InvalidTransition"
        assert atribuir.kind == "InvalidTransition"

    def test_cancelar(self, uow, nova_solicitacao):
        record_id = nova_solicitacao()

        result = tramitacao_service.cancelar(uow, record_id, observacao="Viagem desmarcada.")

        assert result.ok
        assert _estado(uow, record_id) == ("SODPA", "CANCELADO")
        assert _historico(uow, record_id)[-1].observacao == "Viagem desmarcada."


class TestAtribuicao:
    def test_nao_gera_historico(self, uow, nova_solicitacao):
        record_id = nova_solicitacao()
        tramitacao_service.encaminhar_ajsefin(uow, record_id)

        result = tramitacao_service.assign_to_reviewer(uow, record_id, "assessor.2")

        assert result.ok
        assert result.data.atribuido_a == "assessor.2"
        assert _estado(uow, record_id) == ("AJSEFIN", "EM_ANALISE_AJSEFIN")
        assert historico_service.count_by_record(uow, record_id) == 2

    def test_mesmo_responsavel_nao_grava(self, uow, nova_solicitacao):
        record_id = nova_solicitacao()
        primeira = tramitacao_service.assign_to_reviewer(uow, record_id, "assessor.2")

        segunda = tramitacao_service.assign_to_reviewer(uow, record_id, "assessor.2")

        assert segunda.ok
        assert segunda.data.version == primeira.data.version


# ============================================================================
# Execução, Presidência e conclusão
# ============================================================================


class TestPosExecucao:
    def test_tramitar_cria_tarefas_por_documento(self, uow, executada):
        record_id = executada()

        result = tramitacao_service.tramitar_to_ordenador(uow, record_id)

        assert result.ok, result.message
        assert _estado(uow, record_id) == ("SEFIN", "AGUARDANDO_ASSINATURA")
        pendentes = tramitacao_service.list_tarefas(uow, record_id, status="PENDING").data
        assert [t.tipo for t in pendentes] == ["PORTARIA_SF", "CERTIDAO_REGULARIDADE", "NOTA_EMPENHO"]
        wizard = execucao_service.get_wizard_state(uow, record_id).data
        assert wizard.etapa_atual == "TRAMITAR"
        assert "TRAMITAR" in wizard.etapas_concluidas

    def test_assinatura_do_pacote(self, uow, executada, db):
        record_id = executada()
        tramitacao_service.tramitar_to_ordenador(uow, record_id)

        result = tramitacao_service.sign_document(uow, record_id, tramitado_por="ordenador")

        assert result.ok
        assert _estado(uow, record_id) == ("SOSFU", "APROVADO")
        assert execucao_service.get_wizard_state(uow, record_id).data.assinado_em is not None
        assert tramitacao_service.list_tarefas(uow, record_id, status="PENDING").data == []
        tipos_assinados = {
            d.tipo for d in db.query(Documento).filter_by(solicitacao_id=record_id, status="ASSINADO")
        }
        assert {"PORTARIA_SF", "CERTIDAO_REGULARIDADE", "NOTA_EMPENHO"} <= tipos_assinados

    def test_concluir_exige_ordem_bancaria(self, uow, executada):
        record_id = executada()
        tramitacao_service.tramitar_to_ordenador(uow, record_id)
        tramitacao_service.sign_document(uow, record_id)

        result = tramitacao_service.concluir(uow, record_id)

        assert not result.ok
        assert result.kind == "PrerequisitesNotMet"
        assert result.details == ["OB"]

    def test_concluir_passagem_sem_ordem_bancaria(self, uow, executada):
        record_id = executada(tipo="PASSAGEM")
        tramitacao_service.tramitar_to_ordenador(uow, record_id)
        tramitacao_service.sign_document(uow, record_id)

        result = tramitacao_service.concluir(uow, record_id)

        assert result.ok, result.message
        assert _estado(uow, record_id) == ("SOSFU", "CONCLUIDO")

    def test_concluir_sem_pacote_assinado(self, uow, aprovada):
        record_id = aprovada()

        result = tramitacao_service.concluir(uow, record_id)

        assert not result.ok
        assert result.details == ["ASSINATURA_ORDENADOR"]


class TestPresidencia:
    """Viagens para fora do estado passam pela Presidência."""

    def _assinada(self, uow, executada, pdf, tipo_destino="PAIS"):
        record_id = executada(tipo_destino=tipo_destino)
        execucao_service.register_financial_document(uow, record_id, "DL", pdf("dl.pdf"), Decimal("1500.00"))
        execucao_service.register_financial_document(uow, record_id, "OB", pdf("ob.pdf"), Decimal("1500.00"))
        tramitacao_service.tramitar_to_ordenador(uow, record_id)
        tramitacao_service.sign_document(uow, record_id)
        return record_id

    def test_autorizacao_e_conclusao(self, uow, executada, pdf):
        record_id = self._assinada(uow, executada, pdf)

        bloqueado = tramitacao_service.concluir(uow, record_id)
        submetido = tramitacao_service.submeter_presidencia(uow, record_id)
        autorizado = tramitacao_service.authorize_by_presidency(uow, record_id, tramitado_por="presidente")
        concluido = tramitacao_service.concluir(uow, record_id)

        assert bloqueado.kind == "InvalidTransition"
        assert submetido.ok and autorizado.ok and concluido.ok
        assert _estado(uow, record_id) == ("SOSFU", "CONCLUIDO")
        caminho = [(e.origem, e.destino) for e in _historico(uow, record_id)[-3:]]
        assert caminho == [("SOSFU", "PRESIDENCIA"), ("PRESIDENCIA", "SEFIN"), ("SEFIN", "SOSFU")]

    def test_rejeicao_volta_para_sodpa(self, uow, executada, pdf):
        record_id = self._assinada(uow, executada, pdf, tipo_destino="INTERNACIONAL")
        tramitacao_service.submeter_presidencia(uow, record_id)

        sem_motivo = tramitacao_service.reject_by_presidency(uow, record_id, "")
        result = tramitacao_service.reject_by_presidency(uow, record_id, "Sem dotação para o exterior.")

        assert sem_motivo.kind == "ValidationError"
        assert result.ok
        assert _estado(uow, record_id) == ("SODPA", "DEVOLVIDO")

    def test_viagem_no_estado_nao_vai_a_presidencia(self, uow, executada, pdf):
        record_id = self._assinada(uow, executada, pdf, tipo_destino="ESTADO")

        result = tramitacao_service.submeter_presidencia(uow, record_id)

        assert not result.ok
        assert result.kind == "InvalidTransition"
        assert _estado(uow, record_id) == ("SOSFU", "APROVADO")
