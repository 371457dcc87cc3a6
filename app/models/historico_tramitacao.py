"""HistoricoTramitacao model: append-only audit log of every transition."""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from app.database import Base


class HistoricoTramitacao(Base):
    """One row per tramitação; rows are never updated or deleted.

    Attributes:
        id: Primary key (also the chronological tiebreaker).
        solicitacao_id: FK to Solicitacao.
        origem: Department the record left.
        destino: Department the record entered.
        status_anterior: Status before the transition (``None`` on creation).
        status_novo: Status after the transition.
        observacao: Human-readable note.
        tramitado_por: Actor identifier.
        data_tramitacao: Timestamp of the transition.
    """

    __tablename__ = "historico_tramitacao"

    id = Column(Integer, primary_key=True, autoincrement=True)
    solicitacao_id = Column(Integer, ForeignKey("solicitacao.id"), nullable=False, index=True)
    origem = Column(String(20), nullable=False)
    destino = Column(String(20), nullable=False)
    status_anterior = Column(String(40), nullable=True)
    status_novo = Column(String(40), nullable=False)
    observacao = Column(Text, nullable=True)
    tramitado_por = Column(String(100), nullable=True)
    data_tramitacao = Column(DateTime, default=func.now(), nullable=False)

    # Relationships
    solicitacao = relationship(
        "Solicitacao", back_populates="historico", lazy="select"
    )
