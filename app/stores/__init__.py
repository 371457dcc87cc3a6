"""Persistence collaborators reached by the core services through narrow interfaces."""

from app.stores.base import (  # noqa: F401
    BudgetStore,
    DocumentStore,
    ExecucaoStore,
    HistoryStore,
    NotificationSink,
    RecordStore,
    UnitOfWork,
)
