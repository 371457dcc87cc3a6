"""
Pydantic v2 schemas for process records (Solicitações).

Creation input is split the same way the request wizard collects it:
request type, requester data, and destination data.  Required fields are
optional at the schema level so that the service can report every missing
field at once in a single ``ValidationError``.
"""

from __future__ import annotations

import datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from app.utils.constants import TipoDestino, TipoSolicitacao


# ---------------------------------------------------------------------------
# Input schemas: write operations
# ---------------------------------------------------------------------------


class RequesterInfo(BaseModel):
    """Identity of the server requesting the trip."""

    nome: str | None = Field(default=None, max_length=300)
    email: str | None = Field(default=None, max_length=200)
    cpf: str | None = Field(default=None, max_length=14)
    matricula: str | None = Field(default=None, max_length=30)
    cargo: str | None = Field(default=None, max_length=200)
    lotacao: str | None = Field(default=None, max_length=200)


class DestinationInfo(BaseModel):
    """Trip destination and period."""

    tipo_destino: TipoDestino = TipoDestino.ESTADO
    origem: str | None = Field(default=None, max_length=200)
    destino: str | None = Field(default=None, max_length=200)
    data_inicio: datetime.date | None = None
    data_fim: datetime.date | None = None
    motivo: str | None = None


class SolicitacaoCreate(BaseModel):
    """Payload for ``POST /api/solicitacoes``.

    Attributes:
        tipo: Request type.
        solicitante: Requester identity (name and e-mail required).
        destino: Trip data (start and end dates required).
        valor: Requested total.
        tramitado_por: Actor submitting the request.
    """

    tipo: TipoSolicitacao
    solicitante: RequesterInfo
    destino: DestinationInfo
    valor: Decimal = Field(default=Decimal("0.00"), ge=0, decimal_places=2)
    tramitado_por: str | None = Field(default=None, max_length=100)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "tipo": "DIARIA",
                "solicitante": {
                    "nome": "Maria Souza",
                    "email": "maria.souza@tjpa.jus.br",
                    "matricula": "12345",
                    "lotacao": "Comarca de Santarém",
                },
                "destino": {
                    "tipo_destino": "PAIS",
                    "origem": "Belém",
                    "destino": "Brasília",
                    "data_inicio": "2026-03-10",
                    "data_fim": "2026-03-12",
                    "motivo": "Curso de capacitação",
                },
                "valor": "2450.00",
            }
        }
    )


class ExecutionFieldUpdate(BaseModel):
    """Payload for ``PATCH /api/solicitacoes/{id}/execucao``."""

    field: str = Field(..., max_length=50)
    value: Any = None


# ---------------------------------------------------------------------------
# Response schemas: read operations
# ---------------------------------------------------------------------------


class SolicitacaoResponse(BaseModel):
    id: int
    protocolo: str
    tipo: str
    status: str
    destino_atual: str
    valor: Decimal
    solicitante_nome: str
    solicitante_email: str
    solicitante_matricula: str | None = None
    solicitante_lotacao: str | None = None
    tipo_destino: str
    origem: str | None = None
    destino: str | None = None
    data_inicio: datetime.date
    data_fim: datetime.date
    motivo: str | None = None
    parecer_juridico: str | None = None
    parecer_autor: str | None = None
    atribuido_a: str | None = None
    ptres_code: str | None = None
    dotacao_code: str | None = None
    ne_numero: str | None = None
    ne_valor: Decimal | None = None
    dl_numero: str | None = None
    dl_valor: Decimal | None = None
    ob_numero: str | None = None
    ob_valor: Decimal | None = None
    portaria_sf_numero: str | None = None
    version: int
    created_at: datetime.datetime | None = None
    updated_at: datetime.datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class InboxResponse(BaseModel):
    """Paginated department queue."""

    rows: list[SolicitacaoResponse]
    total: int = Field(..., ge=0)
    page: int = Field(..., ge=1)
    page_size: int = Field(..., ge=1)
