"""Execution models: wizard state, dossier documents and SEFIN signing tasks."""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from app.database import Base


class ExecucaoDespesa(Base):
    """Resumable state of the expense-execution wizard for one Solicitacao.

    Attributes:
        id: Primary key.
        solicitacao_id: FK to Solicitacao (one wizard per record).
        etapa_atual: Step the actor is on: PORTARIA … TRAMITAR.
        etapas_concluidas: Comma-joined steps with generated artifacts.
        etapas_puladas: Comma-joined steps explicitly skipped.
        ne_valor / dl_valor / ob_valor: Declared values of each financial document.
        ne_url / dl_url / ob_url: Document Store URLs of the uploaded PDFs.
        ne_allocation_id: Budget line the NE value was committed against.
        assinado_em: When the Ordenador signed the post-execution package.
    """

    __tablename__ = "execucao_despesa"

    id = Column(Integer, primary_key=True, autoincrement=True)
    solicitacao_id = Column(
        Integer, ForeignKey("solicitacao.id"), unique=True, nullable=False
    )
    etapa_atual = Column(String(20), nullable=False, default="PORTARIA")
    etapas_concluidas = Column(String(100), nullable=False, default="")
    etapas_puladas = Column(String(100), nullable=False, default="")
    ne_valor = Column(Numeric(15, 2), nullable=True)
    dl_valor = Column(Numeric(15, 2), nullable=True)
    ob_valor = Column(Numeric(15, 2), nullable=True)
    ne_url = Column(String(500), nullable=True)
    dl_url = Column(String(500), nullable=True)
    ob_url = Column(String(500), nullable=True)
    ne_allocation_id = Column(Integer, ForeignKey("budget_allocation.id"), nullable=True)
    assinado_em = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=func.now(), nullable=False)
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now(), nullable=False)

    # Relationships
    solicitacao = relationship("Solicitacao", back_populates="execucao", lazy="select")


class Documento(Base):
    """Document attached to a Solicitacao dossier (generated minuta or uploaded PDF).

    Attributes:
        id: Primary key.
        solicitacao_id: FK to Solicitacao.
        tipo: One of ``constants.TipoDocumento``.
        nome: Display name, e.g. "Portaria SF 001/2026-SF".
        status: "MINUTA" or "ASSINADO".
        conteudo: Generated text (minutas only).
        url: Document Store URL.
        created_by: Actor identifier.
    """

    __tablename__ = "documento"

    id = Column(Integer, primary_key=True, autoincrement=True)
    solicitacao_id = Column(Integer, ForeignKey("solicitacao.id"), nullable=False, index=True)
    tipo = Column(String(40), nullable=False)
    nome = Column(String(300), nullable=False)
    status = Column(String(20), nullable=False, default="MINUTA")
    conteudo = Column(Text, nullable=True)
    url = Column(String(500), nullable=True)
    created_by = Column(String(100), nullable=True)
    created_at = Column(DateTime, default=func.now(), nullable=False)


class TarefaAssinatura(Base):
    """Signing task queued for the Ordenador de Despesa (SEFIN).

    Attributes:
        id: Primary key.
        solicitacao_id: FK to Solicitacao.
        tipo: Document type to sign.
        titulo: Queue label.
        origem: Department that queued the task.
        valor: Amount shown to the signer.
        status: "PENDING", "SIGNED" or "REJECTED".
        assinado_em: Signature timestamp.
    """

    __tablename__ = "tarefa_assinatura"

    id = Column(Integer, primary_key=True, autoincrement=True)
    solicitacao_id = Column(Integer, ForeignKey("solicitacao.id"), nullable=False, index=True)
    tipo = Column(String(40), nullable=False)
    titulo = Column(String(300), nullable=False)
    origem = Column(String(20), nullable=False)
    valor = Column(Numeric(15, 2), nullable=False, default=0)
    status = Column(String(20), nullable=False, default="PENDING")
    assinado_em = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=func.now(), nullable=False)
