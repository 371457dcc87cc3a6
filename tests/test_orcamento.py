"""
Testes do plano orçamentário: agregados, manutenção do plano e empenho.
"""

from decimal import Decimal

from app.models.orcamento import BudgetAllocation
from app.schemas.orcamento import BudgetPlanConfig, DotacaoItem, PtresAllocation
from app.services import orcamento_service
from app.services.orcamento_service import calculate_budget_values


def _config(total, *linhas):
    """Monta um plano com linhas (ptres, elemento, dotação, valor, ativo)."""
    por_ptres = {}
    for ptres, elemento, dotacao, valor, ativo in linhas:
        por_ptres.setdefault(ptres, []).append(
            DotacaoItem(
                element_code=elemento,
                dotacao_code=dotacao,
                allocated_value=Decimal(valor),
                is_active=ativo,
            )
        )
    return BudgetPlanConfig(
        year=2026,
        total_budget=Decimal(total),
        allocations=[PtresAllocation(ptres_code=p, items=items) for p, items in por_ptres.items()],
    )


def _com_valor(config, dotacao, valor):
    """Cópia do plano com *valor* alocado na linha ativa de *dotacao* do PTRES 8193."""
    allocations = []
    for allocation in config.allocations:
        items = [
            item.model_copy(update={"allocated_value": Decimal(valor)})
            if allocation.ptres_code == "8193" and item.dotacao_code == dotacao and item.is_active
            else item
            for item in allocation.items
        ]
        allocations.append(allocation.model_copy(update={"items": items}))
    return config.model_copy(update={"allocations": allocations})


# ============================================================================
# calculate_budget_values
# ============================================================================


class TestCalculateBudgetValues:
    """Agregados derivados de um plano."""

    def test_plano_acima_do_teto(self):
        """6,5 milhões distribuídos sobre teto de 6 milhões."""
        config = _config("6000000.00", ("8193", "33.90.33", "171", "6500000.00", True))

        values = calculate_budget_values(config)

        assert values.is_over_budget is True
        assert values.total_distributed == Decimal("6500000.00")
        assert values.remaining == Decimal("-500000.00")
        assert values.percentage_used == Decimal("108.33")
        assert values.ptres_values["8193"].percentage_of_global == Decimal("108.33")

    def test_plano_vazio(self):
        values = calculate_budget_values(_config("6000000.00"))

        assert values.total_distributed == Decimal("0.00")
        assert values.remaining == Decimal("6000000.00")
        assert values.is_over_budget is False
        assert values.ptres_values == {}

    def test_teto_zero_nao_divide(self):
        """Teto zero devolve 0% em vez de erro de divisão."""
        config = _config("0.00", ("8193", "33.90.30", "170", "100.00", True))

        values = calculate_budget_values(config)

        assert values.percentage_used == Decimal("0.00")
        assert values.ptres_values["8193"].percentage_of_global == Decimal("0.00")
        assert values.is_over_budget is True

    def test_linhas_inativas_sao_ignoradas(self):
        config = _config(
            "1000.00",
            ("8193", "33.90.33", "171", "400.00", False),
            ("8193", "33.90.33", "190", "300.00", True),
        )

        values = calculate_budget_values(config)

        assert values.total_distributed == Decimal("300.00")
        breakdown = values.ptres_values["8193"].items_breakdown
        assert [b.value for b in breakdown] == [Decimal("300.00")]
        assert breakdown[0].percentage == Decimal("100.00")

    def test_total_e_soma_dos_ptres(self):
        config = _config(
            "6000000.00",
            ("8193", "33.90.30", "170", "1000000.00", True),
            ("8193", "33.90.33", "171", "250000.50", True),
            ("8727", "33.90.39", "173", "333333.33", True),
            ("8163", "33.90.36", "172", "0.01", True),
        )

        values = calculate_budget_values(config)

        soma = sum(v.total_allocated for v in values.ptres_values.values())
        assert values.total_distributed == soma == Decimal("1583333.84")
        assert values.remaining == Decimal("6000000.00") - soma

    def test_ptres_repetido_e_agrupado(self):
        """Dois contêineres do mesmo PTRES somam numa única entrada."""
        config = BudgetPlanConfig(
            year=2026,
            total_budget=Decimal("1000.00"),
            allocations=[
                PtresAllocation(
                    ptres_code="8193",
                    items=[
                        DotacaoItem(
                            element_code="33.90.30",
                            dotacao_code="170",
                            allocated_value=Decimal("100.00"),
                        )
                    ],
                ),
                PtresAllocation(
                    ptres_code="8193",
                    items=[
                        DotacaoItem(
                            element_code="33.90.33",
                            dotacao_code="171",
                            allocated_value=Decimal("300.00"),
                        )
                    ],
                ),
            ],
        )

        values = calculate_budget_values(config)

        assert values.total_distributed == Decimal("400.00")
        assert values.ptres_values["8193"].total_allocated == Decimal("400.00")
        assert values.ptres_values["8193"].percentage_of_global == Decimal("40.00")
        breakdown = values.ptres_values["8193"].items_breakdown
        assert [b.percentage for b in breakdown] == [Decimal("25.00"), Decimal("75.00")]



# ============================================================================
# Manutenção do plano
# ============================================================================


class TestBudgetPlan:
    """Criação, leitura e gravação do plano do ano."""

    def test_cria_plano_padrao(self, uow):
        result = orcamento_service.create_default_budget_plan(uow, 2026)

        assert result.ok
        config = result.data
        assert config.total_budget == Decimal("6000000.00")
        assert sorted(a.ptres_code for a in config.allocations) == ["8163", "8193", "8727"]
        items = [i for a in config.allocations for i in a.items]
        assert len(items) == 12
        assert {i.dotacao_code for i in items} == {"170", "171", "172", "173"}
        assert all(i.allocated_value == Decimal("0.00") for i in items)

    def test_plano_duplicado_e_recusado(self, uow):
        orcamento_service.create_default_budget_plan(uow, 2026)

        result = orcamento_service.create_default_budget_plan(uow, 2026)

        assert not result.ok
        assert result.kind == "ValidationError"

    def test_plano_inexistente(self, uow):
        result = orcamento_service.get_budget_plan(uow, 2031)

        assert not result.ok
        assert result.kind == "NotFound"

    def test_salva_alocacoes(self, uow):
        config = orcamento_service.create_default_budget_plan(uow, 2026).data

        result = orcamento_service.save_budget_plan(uow, _com_valor(config, "171", "150000.00"))

        assert result.ok, result.message
        values = orcamento_service.get_budget_plan(uow, 2026).data["values"]
        assert values.total_distributed == Decimal("150000.00")
        assert values.ptres_values["8193"].total_allocated == Decimal("150000.00")

    def test_salvar_acima_do_teto_e_bloqueado(self, uow):
        config = orcamento_service.create_default_budget_plan(uow, 2026).data

        result = orcamento_service.save_budget_plan(uow, _com_valor(config, "171", "6000000.01"))

        assert not result.ok
        assert result.kind == "ValidationError"
        values = orcamento_service.get_budget_plan(uow, 2026).data["values"]
        assert values.total_distributed == Decimal("0.00")

    def test_salvar_parcial_respeita_linhas_gravadas(self, uow):
        """Linhas omitidas continuam contando para o teto."""
        config = orcamento_service.create_default_budget_plan(uow, 2026).data

        def _so_ptres(ptres, valor):
            allocation = next(a for a in config.allocations if a.ptres_code == ptres)
            items = [
                item.model_copy(update={"allocated_value": Decimal(valor)})
                for item in allocation.items
                if item.dotacao_code == "170"
            ]
            return config.model_copy(
                update={"allocations": [allocation.model_copy(update={"items": items})]}
            )

        primeiro = orcamento_service.save_budget_plan(uow, _so_ptres("8193", "5000000.00"))
        segundo = orcamento_service.save_budget_plan(uow, _so_ptres("8727", "5000000.00"))

        assert primeiro.ok, primeiro.message
        assert not segundo.ok
        assert segundo.kind == "ValidationError"
        values = orcamento_service.get_budget_plan(uow, 2026).data["values"]
        assert values.total_distributed == Decimal("5000000.00")
        assert values.is_over_budget is False

    def test_flag_inativa_do_cliente_e_ignorada(self, uow):
        config = orcamento_service.create_default_budget_plan(uow, 2026).data
        allocation = next(a for a in config.allocations if a.ptres_code == "8193")
        item = next(i for i in allocation.items if i.dotacao_code == "170")
        enviado = config.model_copy(
            update={
                "allocations": [
                    allocation.model_copy(
                        update={
                            "items": [
                                item.model_copy(
                                    update={"allocated_value": Decimal("9000000.00"), "is_active": False}
                                )
                            ]
                        }
                    )
                ]
            }
        )

        result = orcamento_service.save_budget_plan(uow, enviado)

        assert not result.ok
        assert result.kind == "ValidationError"
        salvo = orcamento_service.get_budget_plan(uow, 2026).data
        assert salvo["values"].total_distributed == Decimal("0.00")
        linhas = [i for a in salvo["config"].allocations for i in a.items]
        assert all(i.is_active for i in linhas)


    def test_dotacao_menor_que_empenhado_e_bloqueada(self, uow, plano):
        year = plano({("8193", "171"): "1000.00"})
        orcamento_service.commit_value(uow, "8193", "171", Decimal("800.00"), year=year)
        config = orcamento_service.get_budget_plan(uow, year).data["config"]

        result = orcamento_service.save_budget_plan(uow, _com_valor(config, "171", "500.00"))

        assert not result.ok
        assert result.kind == "ValidationError"
        assert "dotação 171" in result.details[0]


# ============================================================================
# Saldo e empenho
# ============================================================================


class TestCommitValue:
    """Empenho contra uma linha (PTRES, dotação)."""

    def test_empenho_reduz_saldo(self, uow, plano):
        year = plano({("8193", "171"): "10000.00"})

        result = orcamento_service.commit_value(uow, "8193", "171", Decimal("2500.00"), year=year)

        assert result.ok, result.message
        assert result.data.committed_value == Decimal("2500.00")
        assert result.data.available_balance == Decimal("7500.00")
        saldo = orcamento_service.lookup_available_balance(uow, "8193", "33.90.33", year=year)
        assert saldo.data.available_balance == Decimal("7500.00")

    def test_saldo_insuficiente(self, uow, plano, db):
        year = plano({("8193", "171"): "10000.00"})

        result = orcamento_service.commit_value(uow, "8193", "171", Decimal("10000.01"), year=year)

        assert not result.ok
        assert result.kind == "InsufficientBalance"
        linha = db.query(BudgetAllocation).filter_by(ptres_code="8193", dotacao_code="171").one()
        assert linha.committed_value == Decimal("0.00")

    def test_saldo_exato_e_aceito(self, uow, plano):
        year = plano({("8193", "171"): "10000.00"})

        result = orcamento_service.commit_value(uow, "8193", "171", Decimal("10000.00"), year=year)

        assert result.ok
        assert result.data.available_balance == Decimal("0.00")

    def test_valor_nao_positivo(self, uow, plano):
        year = plano({("8193", "171"): "10000.00"})

        for valor in ("0", "-1.00"):
            result = orcamento_service.commit_value(uow, "8193", "171", Decimal(valor), year=year)
            assert not result.ok
            assert result.kind == "ValidationError"

    def test_valor_ilegivel(self, uow, plano):
        year = plano({("8193", "171"): "10000.00"})

        result = orcamento_service.commit_value(uow, "8193", "171", "mil reais", year=year)

        assert not result.ok
        assert result.kind == "ValidationError"

    def test_dotacao_inexistente(self, uow, plano):
        year = plano()

        result = orcamento_service.commit_value(uow, "8193", "999", Decimal("1.00"), year=year)

        assert not result.ok
        assert result.kind == "ValidationError"

    def test_saldo_negativo_e_exibido_como_zero(self, uow, plano, db):
        year = plano({("8193", "170"): "100.00"})
        linha = db.query(BudgetAllocation).filter_by(ptres_code="8193", dotacao_code="170").one()
        linha.committed_value = Decimal("150.00")
        db.commit()

        result = orcamento_service.lookup_available_balance(uow, "8193", "33.90.30", year=year)

        assert result.ok
        assert result.data.available_balance == Decimal("0.00")


class TestRenewDotacao:
    """Esgotamento e renovação de dotação."""

    def test_empenhos_ficam_na_linha_encerrada(self, uow, plano, db):
        year = plano({("8193", "171"): "3000.00"})
        orcamento_service.commit_value(uow, "8193", "171", Decimal("2500.00"), year=year)

        result = orcamento_service.renew_dotacao(
            uow, year, "8193", "33.90.33", "190", Decimal("5000.00")
        )

        assert result.ok, result.message
        antiga = db.query(BudgetAllocation).filter_by(ptres_code="8193", dotacao_code="171").one()
        nova = db.query(BudgetAllocation).filter_by(ptres_code="8193", dotacao_code="190").one()
        assert antiga.is_active is False
        assert antiga.committed_value == Decimal("2500.00")
        assert nova.is_active is True
        assert nova.committed_value == Decimal("0.00")
        assert nova.parent_id == antiga.id

        saldo = orcamento_service.lookup_available_balance(uow, "8193", "33.90.33", year=year)
        assert saldo.data.dotacao_code == "190"
        assert saldo.data.available_balance == Decimal("5000.00")

    def test_linha_encerrada_nao_entra_no_total(self, uow, plano):
        year = plano({("8193", "171"): "3000.00"})
        orcamento_service.renew_dotacao(uow, year, "8193", "33.90.33", "190", Decimal("1000.00"))

        values = orcamento_service.get_budget_plan(uow, year).data["values"]

        assert values.total_distributed == Decimal("1000.00")

    def test_sem_linha_ativa(self, uow):
        result = orcamento_service.renew_dotacao(
            uow, 2030, "8193", "33.90.33", "190", Decimal("1.00")
        )

        assert not result.ok
        assert result.kind == "NotFound"
