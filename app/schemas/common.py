"""
Shared Pydantic v2 schemas reused across multiple modules.

Provides pagination, the reconciliation flag, and ``OperationResult``,
the success/failure envelope every core operation returns, so that each
domain module can compose them without duplicating field definitions.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field


class PaginationParams(BaseModel):
    """Pagination parameters for list endpoints.

    Attributes:
        page: 1-based page number.
        page_size: Number of rows per page (capped at 200 to protect DB).
    """

    page: int = Field(
        default=1,
        ge=1,
        description="Número da página (base 1).",
    )
    page_size: int = Field(
        default=20,
        ge=1,
        le=200,
        description="Registros por página (máximo 200).",
    )


class ConciliacaoFlag(BaseModel):
    """One finding of the NE / DL / OB value reconciliation.

    Attributes:
        severity: ``WARNING`` (soft divergence) or ``ERROR`` (stronger styling).
            Neither blocks the registration.
        code: Machine-readable finding, e.g. ``DL_DIVERGE_NE``.
        message: Text shown to the operator.
    """

    severity: Literal["WARNING", "ERROR"]
    code: str
    message: str


class OperationResult(BaseModel):
    """Explicit success/failure envelope returned by every core operation.

    Attributes:
        ok: Whether the operation was applied.
        kind: Machine-readable error kind (``InvalidTransition``, ...) or ``None``.
        title: Short human title (toast header).
        message: Human-readable reason or confirmation.
        details: Enumerated specifics (missing steps, missing fields, ...).
        flags: Non-blocking reconciliation findings.
        data: Operation payload (updated record, balance, ...).
    """

    ok: bool
    kind: str | None = None
    title: str = ""
    message: str = ""
    details: list[str] = Field(default_factory=list)
    flags: list[ConciliacaoFlag] = Field(default_factory=list)
    data: Any = None

    @classmethod
    def success(
        cls,
        title: str,
        message: str,
        data: Any = None,
        flags: list[ConciliacaoFlag] | None = None,
    ) -> "OperationResult":
        return cls(ok=True, title=title, message=message, data=data, flags=flags or [])
