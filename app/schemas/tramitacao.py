"""
Pydantic v2 schemas for tramitação actions and the audit log.
"""

from __future__ import annotations

import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from app.schemas.common import OperationResult


# ---------------------------------------------------------------------------
# Action payloads
# ---------------------------------------------------------------------------


class AcaoRequest(BaseModel):
    """Base payload: who performs the action and an optional note."""

    tramitado_por: str | None = Field(default=None, max_length=100)
    observacao: str | None = Field(default=None, max_length=2000)


class AtribuicaoRequest(BaseModel):
    reviewer_id: str = Field(..., min_length=1, max_length=100)


class ParecerRequest(AcaoRequest):
    parecer: str = Field(default="", description="Texto do parecer jurídico.")


class MotivoRequest(AcaoRequest):
    motivo: str = Field(default="", description="Motivo obrigatório da devolução / indeferimento.")


class AssinaturaLoteRequest(AcaoRequest):
    solicitacao_ids: list[int] = Field(..., min_length=1, max_length=200)


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------


class HistoricoResponse(BaseModel):
    id: int
    solicitacao_id: int
    origem: str
    destino: str
    status_anterior: str | None = None
    status_novo: str
    observacao: str | None = None
    tramitado_por: str | None = None
    data_tramitacao: datetime.datetime

    model_config = ConfigDict(from_attributes=True)


class TarefaAssinaturaResponse(BaseModel):
    id: int
    solicitacao_id: int
    tipo: str
    titulo: str
    origem: str
    valor: Decimal
    status: str
    assinado_em: datetime.datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class AssinaturaLoteItem(BaseModel):
    solicitacao_id: int
    result: OperationResult


class AssinaturaLoteResponse(BaseModel):
    """Per-record outcome of a batch signature; failures never abort siblings."""

    total: int
    assinados: int
    falhas: int
    items: list[AssinaturaLoteItem]
