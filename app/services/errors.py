"""
Domain error taxonomy and the result envelope returned by core operations.

Core services raise ``DomainError`` subclasses internally, but every public
operation converts them into an ``OperationResult`` through the ``as_result``
decorator, so callers (routers, batch loops) branch on ``result.ok`` instead of
unwinding.  Each error carries a machine-readable ``kind`` plus a human title
and message, mirroring the title+message toasts operators see.
"""

from __future__ import annotations

import functools
import logging
from typing import Any, Callable, TypeVar

from app.schemas.common import OperationResult

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])


class DomainError(Exception):
    """Base class for every failure a core operation may report."""

    kind: str = "DomainError"
    title: str = "Erro"

    def __init__(self, message: str, details: list[str] | None = None, title: str | None = None):
        super().__init__(message)
        self.message = message
        self.details = list(details or [])
        if title is not None:
            self.title = title

    def to_result(self) -> OperationResult:
        return OperationResult(
            ok=False,
            kind=self.kind,
            title=self.title,
            message=self.message,
            details=self.details,
        )


class ValidationError(DomainError):
    kind = "ValidationError"
    title = "Dados inválidos"


class MissingRequiredField(ValidationError):
    kind = "MissingRequiredField"
    title = "Campo obrigatório"


class MissingDocument(ValidationError):
    kind = "MissingDocument"
    title = "Documento obrigatório"


class InvalidValue(ValidationError):
    kind = "InvalidValue"
    title = "Valor inválido"


class NotFound(DomainError):
    kind = "NotFound"
    title = "Não encontrado"


class InvalidTransition(DomainError):
    kind = "InvalidTransition"
    title = "Tramitação não permitida"


class InsufficientBalance(DomainError):
    kind = "InsufficientBalance"
    title = "Saldo insuficiente"


class PrerequisitesNotMet(DomainError):
    kind = "PrerequisitesNotMet"
    title = "Documentos pendentes"


class StoreFailure(DomainError):
    kind = "StoreFailure"
    title = "Falha de persistência"


class OperationTimedOut(StoreFailure):
    kind = "OperationTimedOut"
    title = "Tempo esgotado"


def as_result(func: F) -> F:
    """Wrap a core operation so that ``DomainError`` becomes a failed ``OperationResult``.

    The wrapped function must take the ``UnitOfWork`` as its first argument and
    return an ``OperationResult`` on success.  Every outcome, failed or not, is
    published to ``uow.notifier``.
    """

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> OperationResult:
        try:
            result = func(*args, **kwargs)
        except DomainError as exc:
            logger.warning("%s rejected: %s: %s", func.__name__, exc.kind, exc.message)
            result = exc.to_result()
        notifier = getattr(args[0], "notifier", None) if args else None
        if notifier is not None:
            notifier.publish(result)
        return result

    return wrapper  # type: ignore[return-value]
