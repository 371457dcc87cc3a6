"""
Testes do assistente de execução da despesa e da conciliação NE / DL / OB.
"""

import datetime
from decimal import Decimal

from app.models.orcamento import BudgetAllocation
from app.schemas.execucao import UploadedFile
from app.services import (
    conciliacao_service,
    execucao_service,
    solicitacao_service,
    tramitacao_service,
)


# ============================================================================
# Conciliação (função pura)
# ============================================================================


class TestVerificar:
    """Checagem tripla dos valores declarados."""

    def test_valores_iguais(self):
        check = conciliacao_service.verificar(Decimal("100"), Decimal("100"), Decimal("100.00"))

        assert check.is_valid
        assert (check.ne_status, check.dl_status, check.ob_status) == ("VALID", "VALID", "VALID")
        assert check.flags == []

    def test_documentos_ausentes(self):
        check = conciliacao_service.verificar(Decimal("100"), None, None)

        assert not check.is_valid
        assert (check.dl_status, check.ob_status) == ("MISSING", "MISSING")
        assert check.flags == []

    def test_liquidacao_parcial_e_aviso(self):
        check = conciliacao_service.verificar(Decimal("150"), Decimal("120"), Decimal("120"))

        assert check.is_valid
        assert [(f.severity, f.code) for f in check.flags] == [("WARNING", "DL_DIVERGE_NE")]

    def test_ordem_bancaria_divergente_e_erro(self):
        check = conciliacao_service.verificar(Decimal("150"), Decimal("150"), Decimal("100"))

        assert not check.is_valid
        assert check.ob_status == "INVALID"
        assert [(f.severity, f.code) for f in check.flags] == [("ERROR", "OB_DIVERGE_DL")]

    def test_valor_zero_e_invalido(self):
        check = conciliacao_service.verificar(Decimal("0"), Decimal("0"), Decimal("0"))

        assert not check.is_valid
        assert check.ne_status == "INVALID"


# ============================================================================
# Estado do assistente
# ============================================================================


class TestWizardState:
    def test_estado_inicial(self, uow, aprovada):
        record_id = aprovada()

        state = execucao_service.get_wizard_state(uow, record_id).data

        assert state.etapa_atual == "PORTARIA"
        assert state.etapas_concluidas == []
        assert state.etapas_pendentes == ["PORTARIA", "CERTIDAO", "NE"]
        assert state.pode_tramitar is False

    def test_fora_da_execucao(self, uow, nova_solicitacao):
        record_id = nova_solicitacao()

        leitura = execucao_service.get_wizard_state(uow, record_id)
        certidao = execucao_service.generate_certidao(uow, record_id)

        assert leitura.ok
        assert not certidao.ok
        assert certidao.kind == "InvalidTransition"

    def test_retoma_de_onde_parou(self, uow, aprovada):
        record_id = aprovada()
        execucao_service.generate_portaria(uow, record_id, "8193", ["171"])
        execucao_service.generate_certidao(uow, record_id)

        state = execucao_service.get_wizard_state(uow, record_id).data

        assert state.etapa_atual == "NE"
        assert state.etapas_concluidas == ["PORTARIA", "CERTIDAO"]
        assert state.etapas_pendentes == ["NE"]


class TestSkipStep:
    def test_pular_dl(self, uow, executada):
        record_id = executada()

        result = execucao_service.skip_step(uow, record_id, "DL")

        assert result.ok
        assert result.data.etapas_puladas == ["DL"]
        assert result.data.etapa_atual == "OB"

    def test_tramitar_nao_pode_ser_pulada(self, uow, aprovada):
        record_id = aprovada()

        result = execucao_service.skip_step(uow, record_id, "TRAMITAR")

        assert not result.ok
        assert result.kind == "ValidationError"

    def test_etapa_concluida_nao_pode_ser_pulada(self, uow, aprovada):
        record_id = aprovada()
        execucao_service.generate_certidao(uow, record_id)

        result = execucao_service.skip_step(uow, record_id, "CERTIDAO")

        assert not result.ok

    def test_etapa_pulada_pode_ser_concluida_depois(self, uow, aprovada):
        record_id = aprovada()
        execucao_service.skip_step(uow, record_id, "PORTARIA")

        result = execucao_service.generate_portaria(uow, record_id, "8193", ["171"])

        assert result.data.etapas_puladas == []
        assert result.data.etapas_concluidas == ["PORTARIA"]


# ============================================================================
# Portaria e Certidão
# ============================================================================


class TestPortaria:
    def test_numeracao(self, uow, aprovada):
        year = datetime.date.today().year
        r1, r2 = aprovada(), aprovada()

        primeira = execucao_service.generate_portaria(uow, r1, "8193", ["171"])
        segunda = execucao_service.generate_portaria(uow, r2, "8727", ["170", "173"])

        assert primeira.ok, primeira.message
        assert f"001/{year}-SF" in primeira.message
        assert f"002/{year}-SF" in segunda.message

    def test_grava_ptres_e_dotacoes(self, uow, aprovada):
        record_id = aprovada()
        execucao_service.generate_portaria(uow, record_id, "8727", ["170", "173"])

        record = solicitacao_service.get(uow, record_id).data
        documentos = execucao_service.list_documentos(uow, record_id).data

        assert record.ptres_code == "8727"
        assert record.dotacao_code == "170;173"
        assert documentos[-1].tipo == "PORTARIA_SF"
        assert documentos[-1].status == "MINUTA"

    def test_sem_dotacao(self, uow, aprovada):
        result = execucao_service.generate_portaria(uow, aprovada(), "8193", [])

        assert result.kind == "MissingRequiredField"

    def test_ptres_desconhecido(self, uow, aprovada):
        result = execucao_service.generate_portaria(uow, aprovada(), "0000", ["171"])

        assert result.kind == "ValidationError"

    def test_dotacao_fora_do_plano(self, uow, aprovada, plano):
        plano()

        result = execucao_service.generate_portaria(uow, aprovada(), "8193", ["171", "999"])

        assert result.kind == "ValidationError"
        assert result.details == ["999"]

    def test_portaria_apos_ne_nao_muda_dotacao(self, uow, aprovada, plano, pdf, db):
        plano({("8193", "171"): "5000.00", ("8727", "172"): "5000.00"})
        record_id = aprovada()
        execucao_service.generate_portaria(uow, record_id, "8193", ["171"])
        execucao_service.generate_certidao(uow, record_id)
        ne = execucao_service.register_financial_document(
            uow, record_id, "NE", pdf("ne.pdf"), Decimal("1500.00")
        )
        assert ne.ok, ne.message

        result = execucao_service.generate_portaria(uow, record_id, "8727", ["172"])

        assert not result.ok
        assert result.kind == "InvalidTransition"
        record = solicitacao_service.get(uow, record_id).data
        assert (record.ptres_code, record.dotacao_code) == ("8193", "171")
        empenhado = {
            (linha.ptres_code, linha.dotacao_code): linha.committed_value
            for linha in db.query(BudgetAllocation).filter(
                BudgetAllocation.dotacao_code.in_(["171", "172"])
            )
        }
        assert empenhado[("8193", "171")] == Decimal("1500.00")
        assert empenhado[("8727", "172")] == Decimal("0.00")

    def test_portaria_apos_ne_com_mesma_dotacao(self, uow, executada):
        record_id = executada()

        result = execucao_service.generate_portaria(uow, record_id, "8193", ["171"])

        assert result.ok, result.message


# ============================================================================
# Documentos financeiros
# ============================================================================


class TestRegisterFinancialDocument:
    """NE, DL e OB: PDF obrigatório, valor positivo, conciliação não bloqueante."""

    def test_arquivo_que_nao_e_pdf(self, uow, aprovada):
        record_id = aprovada()
        planilha = UploadedFile(
            filename="ne.xlsx",
            content_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
            content=b"PK\x03\x04",
        )

        result = execucao_service.register_financial_document(uow, record_id, "NE", planilha, "100.00")

        assert not result.ok
        assert result.kind == "MissingDocument"

    def test_sem_arquivo(self, uow, aprovada):
        result = execucao_service.register_financial_document(uow, aprovada(), "NE", None, "100.00")

        assert result.kind == "MissingDocument"

    def test_valor_nao_positivo(self, uow, aprovada, pdf):
        record_id = aprovada()

        for valor in ("0", "-5", "abc", None):
            result = execucao_service.register_financial_document(uow, record_id, "NE", pdf(), valor)
            assert not result.ok
            assert result.kind == "InvalidValue"

    def test_registro_da_ne(self, uow, aprovada, pdf, document_store):
        record_id = aprovada()

        result = execucao_service.register_financial_document(
            uow, record_id, "NE", pdf("ne.pdf"), Decimal("1500.00"), numero="2026NE000123"
        )

        assert result.ok, result.message
        assert result.title == "Documento financeiro registrado"
        assert result.data.ne_valor == Decimal("1500.00")
        assert "NE" in result.data.etapas_concluidas
        documento = execucao_service.list_documentos(uow, record_id).data[-1]
        assert documento.tipo == "NOTA_EMPENHO"
        assert document_store.read(documento.url) == b"%PDF-1.4 teste"

    def test_ne_registrada_uma_vez(self, uow, executada, pdf):
        record_id = executada()

        result = execucao_service.register_financial_document(uow, record_id, "NE", pdf(), "10.00")

        assert not result.ok
        assert result.kind == "ValidationError"

    def test_ob_divergente_nao_bloqueia(self, uow, executada, pdf):
        record_id = executada(valor_ne="150.00")
        execucao_service.register_financial_document(uow, record_id, "DL", pdf("dl.pdf"), "150.00")

        result = execucao_service.register_financial_document(uow, record_id, "OB", pdf("ob.pdf"), "100.00")

        assert result.ok
        assert [(f.severity, f.code) for f in result.flags] == [("ERROR", "OB_DIVERGE_DL")]
        assert result.data.ob_valor == Decimal("100.00")

    def test_dl_divergente_e_aviso(self, uow, executada, pdf):
        record_id = executada(valor_ne="150.00")

        result = execucao_service.register_financial_document(uow, record_id, "DL", pdf("dl.pdf"), "120.00")

        assert result.ok
        assert [(f.severity, f.code) for f in result.flags] == [("WARNING", "DL_DIVERGE_NE")]
        conciliacao = execucao_service.verificar_conciliacao(uow, record_id)
        assert conciliacao.data.ob_status == "MISSING"


class TestEmpenhoNoPlano:
    """Com plano do ano, a NE empenha contra a dotação da Portaria."""

    def test_ne_empenha_dotacao(self, uow, aprovada, plano, pdf, db):
        plano({("8193", "171"): "5000.00"})
        record_id = aprovada()
        execucao_service.generate_portaria(uow, record_id, "8193", ["171"])

        result = execucao_service.register_financial_document(
            uow, record_id, "NE", pdf("ne.pdf"), Decimal("1200.00")
        )

        assert result.ok, result.message
        linha = db.query(BudgetAllocation).filter_by(ptres_code="8193", dotacao_code="171").one()
        assert linha.committed_value == Decimal("1200.00")

    def test_ne_sem_portaria(self, uow, aprovada, plano, pdf):
        plano({("8193", "171"): "5000.00"})
        record_id = aprovada()

        result = execucao_service.register_financial_document(uow, record_id, "NE", pdf(), "100.00")

        assert result.kind == "PrerequisitesNotMet"
        assert result.details == ["PORTARIA"]

    def test_saldo_insuficiente_desfaz_registro(self, uow, aprovada, plano, pdf, document_store):
        plano({("8193", "171"): "500.00"})
        record_id = aprovada()
        execucao_service.generate_portaria(uow, record_id, "8193", ["171"])
        antes = sorted(p for p in document_store.root_dir.rglob("*") if p.is_file())

        result = execucao_service.register_financial_document(uow, record_id, "NE", pdf(), "500.01")

        assert not result.ok
        assert result.kind == "InsufficientBalance"
        state = execucao_service.get_wizard_state(uow, record_id).data
        assert state.ne_valor is None
        assert "NE" not in state.etapas_concluidas
        depois = sorted(p for p in document_store.root_dir.rglob("*") if p.is_file())
        assert depois == antes


# ============================================================================
# Pré-requisitos para tramitar ao Ordenador
# ============================================================================


class TestPrerequisitos:
    def test_somente_portaria(self, uow, aprovada):
        record_id = aprovada()
        execucao_service.generate_portaria(uow, record_id, "8193", ["171"])

        result = tramitacao_service.tramitar_to_ordenador(uow, record_id)

        assert not result.ok
        assert result.kind == "PrerequisitesNotMet"
        assert result.details == ["CERTIDAO", "NE"]
        assert "Certidão de Regularidade" in result.message

    def test_etapa_obrigatoria_pulada_bloqueia(self, uow, aprovada, pdf):
        record_id = aprovada()
        execucao_service.generate_portaria(uow, record_id, "8193", ["171"])
        execucao_service.skip_step(uow, record_id, "CERTIDAO")
        execucao_service.register_financial_document(uow, record_id, "NE", pdf(), "100.00")

        result = tramitacao_service.tramitar_to_ordenador(uow, record_id)

        assert result.details == ["CERTIDAO"]

    def test_devolvido_pelo_ordenador_pode_tramitar_de_novo(self, uow, executada):
        record_id = executada()
        tramitacao_service.tramitar_to_ordenador(uow, record_id)
        tramitacao_service.return_for_adjustment(uow, record_id, "Corrigir a Portaria.")

        certidao = execucao_service.generate_certidao(uow, record_id)
        result = tramitacao_service.tramitar_to_ordenador(uow, record_id)

        assert certidao.ok
        assert result.ok, result.message
        pendentes = tramitacao_service.list_tarefas(uow, record_id, status="PENDING").data
        assert len(pendentes) == 3
