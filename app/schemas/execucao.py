"""
Pydantic v2 schemas for the expense-execution wizard.
"""

from __future__ import annotations

import datetime
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from app.schemas.common import ConciliacaoFlag
from app.utils.constants import EtapaExecucao


class PortariaRequest(BaseModel):
    ptres_code: str = Field(..., max_length=10)
    dotacao_codes: list[str] = Field(default_factory=list)
    tramitado_por: str | None = Field(default=None, max_length=100)


class PularEtapaRequest(BaseModel):
    etapa: EtapaExecucao
    tramitado_por: str | None = Field(default=None, max_length=100)


class UploadedFile(BaseModel):
    """File handed to the wizard by the HTTP layer (or a test)."""

    filename: str
    content_type: str | None = None
    content: bytes = b""


class ExecucaoResponse(BaseModel):
    """Resumable wizard state."""

    solicitacao_id: int
    etapa_atual: str
    etapas_concluidas: list[str]
    etapas_puladas: list[str]
    etapas_pendentes: list[str] = Field(
        ..., description="Etapas obrigatórias ainda não concluídas para tramitar."
    )
    pode_tramitar: bool
    ne_valor: Decimal | None = None
    dl_valor: Decimal | None = None
    ob_valor: Decimal | None = None
    assinado_em: datetime.datetime | None = None


DocStatus = Literal["MISSING", "VALID", "INVALID"]


class TripleCheckResult(BaseModel):
    """NE / DL / OB value reconciliation.

    Attributes:
        is_valid: All three documents present and no ERROR finding.
        ne_status / dl_status / ob_status: Per-document status.
        flags: WARNING / ERROR findings; none of them blocks execution.
    """

    is_valid: bool
    ne_status: DocStatus
    dl_status: DocStatus
    ob_status: DocStatus
    flags: list[ConciliacaoFlag] = Field(default_factory=list)


class DocumentoResponse(BaseModel):
    id: int
    solicitacao_id: int
    tipo: str
    nome: str
    status: str
    url: str | None = None
    created_by: str | None = None
    created_at: datetime.datetime | None = None

    model_config = ConfigDict(from_attributes=True)
