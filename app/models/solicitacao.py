"""Solicitacao model: one travel / allowance request routed between departments."""

from sqlalchemy import Column, Date, DateTime, Integer, Numeric, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from app.database import Base


class Solicitacao(Base):
    """Authoritative state of one request (diária, passagem, or both).

    ``destino_atual`` and ``status`` are only written by the tramitação state
    machine; every write bumps ``version`` so that concurrent actors holding a
    stale read are rejected.

    Attributes:
        id: Primary key.
        protocolo: Tracking number, e.g. "TJPA-DIA-2026-0001". Immutable.
        tipo: "PASSAGEM", "DIARIA" or "MISTA".
        status: Current status from ``constants.StatusSolicitacao``.
        destino_atual: Department currently owning the request.
        valor: Requested total.
        solicitante_*: Requester identity snapshot.
        tipo_destino: "ESTADO", "PAIS" or "INTERNACIONAL".
        origem / destino: Trip cities.
        data_inicio / data_fim: Trip dates.
        motivo: Trip justification.
        parecer_juridico / parecer_autor: AJSEFIN legal opinion.
        atribuido_a: Assessor / ordenador the request is assigned to.
        ptres_code, dotacao_code: Budget lines chosen at execution
            (``dotacao_code`` may hold several codes joined by ";").
        ne_*, dl_*, ob_*: Financial documents registered at execution.
        portaria_sf_numero: Portaria number, e.g. "001/2026-SF".
        version: Optimistic-concurrency counter.
    """

    __tablename__ = "solicitacao"

    id = Column(Integer, primary_key=True, autoincrement=True)
    protocolo = Column(String(40), unique=True, nullable=False)
    tipo = Column(String(20), nullable=False)
    status = Column(String(40), nullable=False)
    destino_atual = Column(String(20), nullable=False, index=True)
    valor = Column(Numeric(15, 2), nullable=False, default=0)

    solicitante_nome = Column(String(300), nullable=False)
    solicitante_email = Column(String(200), nullable=False)
    solicitante_cpf = Column(String(14), nullable=True)
    solicitante_matricula = Column(String(30), nullable=True)
    solicitante_cargo = Column(String(200), nullable=True)
    solicitante_lotacao = Column(String(200), nullable=True)

    tipo_destino = Column(String(20), nullable=False)
    origem = Column(String(200), nullable=True)
    destino = Column(String(200), nullable=True)
    data_inicio = Column(Date, nullable=False)
    data_fim = Column(Date, nullable=False)
    motivo = Column(Text, nullable=True)

    parecer_juridico = Column(Text, nullable=True)
    parecer_autor = Column(String(100), nullable=True)
    atribuido_a = Column(String(100), nullable=True)

    ptres_code = Column(String(10), nullable=True)
    dotacao_code = Column(String(200), nullable=True)
    ne_numero = Column(String(50), nullable=True)
    ne_valor = Column(Numeric(15, 2), nullable=True)
    dl_numero = Column(String(50), nullable=True)
    dl_valor = Column(Numeric(15, 2), nullable=True)
    ob_numero = Column(String(50), nullable=True)
    ob_valor = Column(Numeric(15, 2), nullable=True)
    portaria_sf_numero = Column(String(20), nullable=True)

    version = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime, default=func.now(), nullable=False)
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now(), nullable=False)

    # Relationships
    historico = relationship(
        "HistoricoTramitacao",
        back_populates="solicitacao",
        order_by="HistoricoTramitacao.id",
        lazy="select",
    )
    execucao = relationship(
        "ExecucaoDespesa",
        back_populates="solicitacao",
        uselist=False,
        lazy="select",
    )
