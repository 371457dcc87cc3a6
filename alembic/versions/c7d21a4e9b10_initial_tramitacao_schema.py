"""initial_tramitacao_schema

Cria as tabelas do fluxo de tramitação: solicitacao, historico_tramitacao,
budget_plan, budget_allocation, execucao_despesa, documento e tarefa_assinatura.

Revision ID: c7d21a4e9b10
Revises:
Create Date: 2026-03-02 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = 'c7d21a4e9b10'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        'solicitacao',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('protocolo', sa.String(40), nullable=False, unique=True),
        sa.Column('tipo', sa.String(20), nullable=False),
        sa.Column('status', sa.String(40), nullable=False),
        sa.Column('destino_atual', sa.String(20), nullable=False),
        sa.Column('valor', sa.Numeric(15, 2), nullable=False, server_default='0'),
        sa.Column('solicitante_nome', sa.String(300), nullable=False),
        sa.Column('solicitante_email', sa.String(200), nullable=False),
        sa.Column('solicitante_cpf', sa.String(14)),
        sa.Column('solicitante_matricula', sa.String(30)),
        sa.Column('solicitante_cargo', sa.String(200)),
        sa.Column('solicitante_lotacao', sa.String(200)),
        sa.Column('tipo_destino', sa.String(20), nullable=False),
        sa.Column('origem', sa.String(200)),
        sa.Column('destino', sa.String(200)),
        sa.Column('data_inicio', sa.Date(), nullable=False),
        sa.Column('data_fim', sa.Date(), nullable=False),
        sa.Column('motivo', sa.Text()),
        sa.Column('parecer_juridico', sa.Text()),
        sa.Column('parecer_autor', sa.String(100)),
        sa.Column('atribuido_a', sa.String(100)),
        sa.Column('ptres_code', sa.String(10)),
        sa.Column('dotacao_code', sa.String(200)),
        sa.Column('ne_numero', sa.String(50)),
        sa.Column('ne_valor', sa.Numeric(15, 2)),
        sa.Column('dl_numero', sa.String(50)),
        sa.Column('dl_valor', sa.Numeric(15, 2)),
        sa.Column('ob_numero', sa.String(50)),
        sa.Column('ob_valor', sa.Numeric(15, 2)),
        sa.Column('portaria_sf_numero', sa.String(20)),
        sa.Column('version', sa.Integer(), nullable=False, server_default='1'),
        *_timestamps(),
    )
    op.create_index('ix_solicitacao_destino_atual', 'solicitacao', ['destino_atual'])

    op.create_table(
        'historico_tramitacao',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('solicitacao_id', sa.Integer(), sa.ForeignKey('solicitacao.id'), nullable=False),
        sa.Column('origem', sa.String(20), nullable=False),
        sa.Column('destino', sa.String(20), nullable=False),
        sa.Column('status_anterior', sa.String(40)),
        sa.Column('status_novo', sa.String(40), nullable=False),
        sa.Column('observacao', sa.Text()),
        sa.Column('tramitado_por', sa.String(100)),
        sa.Column('data_tramitacao', sa.DateTime(), server_default=sa.func.now(), nullable=False),
    )
    op.create_index(
        'ix_historico_tramitacao_solicitacao_id', 'historico_tramitacao', ['solicitacao_id']
    )

    op.create_table(
        'budget_plan',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('year', sa.Integer(), nullable=False, unique=True),
        sa.Column('total_budget', sa.Numeric(15, 2), nullable=False),
        *_timestamps(),
    )

    op.create_table(
        'budget_allocation',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('plan_id', sa.Integer(), sa.ForeignKey('budget_plan.id'), nullable=False),
        sa.Column('ptres_code', sa.String(10), nullable=False),
        sa.Column('ptres_description', sa.String(300)),
        sa.Column('element_code', sa.String(20), nullable=False),
        sa.Column('element_name', sa.String(200)),
        sa.Column('dotacao_code', sa.String(20), nullable=False),
        sa.Column('allocated_value', sa.Numeric(15, 2), nullable=False, server_default='0'),
        sa.Column('committed_value', sa.Numeric(15, 2), nullable=False, server_default='0'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('parent_id', sa.Integer(), sa.ForeignKey('budget_allocation.id')),
        sa.Column('version', sa.Integer(), nullable=False, server_default='1'),
        *_timestamps(),
    )
    op.create_index('ix_budget_allocation_plan_id', 'budget_allocation', ['plan_id'])

    op.create_table(
        'execucao_despesa',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            'solicitacao_id', sa.Integer(), sa.ForeignKey('solicitacao.id'),
            nullable=False, unique=True,
        ),
        sa.Column('etapa_atual', sa.String(20), nullable=False, server_default='PORTARIA'),
        sa.Column('etapas_concluidas', sa.String(100), nullable=False, server_default=''),
        sa.Column('etapas_puladas', sa.String(100), nullable=False, server_default=''),
        sa.Column('ne_valor', sa.Numeric(15, 2)),
        sa.Column('dl_valor', sa.Numeric(15, 2)),
        sa.Column('ob_valor', sa.Numeric(15, 2)),
        sa.Column('ne_url', sa.String(500)),
        sa.Column('dl_url', sa.String(500)),
        sa.Column('ob_url', sa.String(500)),
        sa.Column('ne_allocation_id', sa.Integer(), sa.ForeignKey('budget_allocation.id')),
        sa.Column('assinado_em', sa.DateTime()),
        *_timestamps(),
    )

    op.create_table(
        'documento',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('solicitacao_id', sa.Integer(), sa.ForeignKey('solicitacao.id'), nullable=False),
        sa.Column('tipo', sa.String(40), nullable=False),
        sa.Column('nome', sa.String(300), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='MINUTA'),
        sa.Column('conteudo', sa.Text()),
        sa.Column('url', sa.String(500)),
        sa.Column('created_by', sa.String(100)),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_documento_solicitacao_id', 'documento', ['solicitacao_id'])

    op.create_table(
        'tarefa_assinatura',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('solicitacao_id', sa.Integer(), sa.ForeignKey('solicitacao.id'), nullable=False),
        sa.Column('tipo', sa.String(40), nullable=False),
        sa.Column('titulo', sa.String(300), nullable=False),
        sa.Column('origem', sa.String(20), nullable=False),
        sa.Column('valor', sa.Numeric(15, 2), nullable=False, server_default='0'),
        sa.Column('status', sa.String(20), nullable=False, server_default='PENDING'),
        sa.Column('assinado_em', sa.DateTime()),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_tarefa_assinatura_solicitacao_id', 'tarefa_assinatura', ['solicitacao_id'])

    print("[MIGRATION] Esquema de tramitação criado.")


def downgrade() -> None:
    op.drop_index('ix_tarefa_assinatura_solicitacao_id', table_name='tarefa_assinatura')
    op.drop_table('tarefa_assinatura')
    op.drop_index('ix_documento_solicitacao_id', table_name='documento')
    op.drop_table('documento')
    op.drop_table('execucao_despesa')
    op.drop_index('ix_budget_allocation_plan_id', table_name='budget_allocation')
    op.drop_table('budget_allocation')
    op.drop_table('budget_plan')
    op.drop_index('ix_historico_tramitacao_solicitacao_id', table_name='historico_tramitacao')
    op.drop_table('historico_tramitacao')
    op.drop_index('ix_solicitacao_destino_atual', table_name='solicitacao')
    op.drop_table('solicitacao')
