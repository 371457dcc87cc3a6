"""
FastAPI dependencies shared by the routers.

``get_uow`` assembles the unit of work the core services expect from the
request's ``Session``, the filesystem document store and the logging
notifier.  ``unwrap`` turns a failed ``OperationResult`` into the matching
``HTTPException``.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.config import get_settings
from app.database import get_db
from app.schemas.common import OperationResult
from app.stores.base import DocumentStore, NotificationSink, UnitOfWork
from app.stores.documentos import FileSystemDocumentStore
from app.stores.notificacoes import LoggingNotificationSink
from app.stores.sqlalchemy_store import SqlUnitOfWork

# Error kind → HTTP status; unknown kinds fall back to 400
_STATUS_BY_KIND: dict[str, int] = {
    "ValidationError": status.HTTP_422_UNPROCESSABLE_ENTITY,
    "MissingRequiredField": status.HTTP_422_UNPROCESSABLE_ENTITY,
    "MissingDocument": status.HTTP_422_UNPROCESSABLE_ENTITY,
    "InvalidValue": status.HTTP_422_UNPROCESSABLE_ENTITY,
    "NotFound": status.HTTP_404_NOT_FOUND,
    "InvalidTransition": status.HTTP_409_CONFLICT,
    "InsufficientBalance": status.HTTP_409_CONFLICT,
    "PrerequisitesNotMet": status.HTTP_409_CONFLICT,
    "StoreFailure": status.HTTP_503_SERVICE_UNAVAILABLE,
    "OperationTimedOut": status.HTTP_504_GATEWAY_TIMEOUT,
}


def get_document_store() -> DocumentStore:
    return FileSystemDocumentStore(get_settings().DOCUMENTS_DIR)


def get_notifier() -> NotificationSink:
    return LoggingNotificationSink()


def get_uow(
    db: Annotated[Session, Depends(get_db)],
    documents: Annotated[DocumentStore, Depends(get_document_store)],
    notifier: Annotated[NotificationSink, Depends(get_notifier)],
) -> UnitOfWork:
    return SqlUnitOfWork(db, documents, notifier)


def unwrap(result: OperationResult) -> OperationResult:
    """Return *result* when it succeeded, otherwise raise the mapped ``HTTPException``.

    The exception ``detail`` carries ``kind``, ``title``, ``message`` and
    ``details`` so the frontend can render the same toast it would for a
    success.
    """
    if result.ok:
        return result
    raise HTTPException(
        status_code=_STATUS_BY_KIND.get(result.kind or "", status.HTTP_400_BAD_REQUEST),
        detail=result.model_dump(include={"kind", "title", "message", "details"}),
    )
