"""
SQLAlchemy implementations of the store interfaces.

All stores of one ``SqlUnitOfWork`` share the request's ``Session``; nothing
is committed until ``transaction()`` exits cleanly, so a record update and its
history entry either land together or not at all.

Design notes
------------
- Conditional updates are single ``UPDATE ... WHERE id = :id AND version = :v``
  statements; ``rowcount == 0`` means a concurrent writer won.  The commitment
  update also requires ``allocated_value >= :new_committed``.
- ``find_active(..., lock=True)`` issues ``SELECT ... FOR UPDATE`` on backends
  that support it (ignored by SQLite, which serialises writers anyway) and
  refreshes the row already held by the session.
- Driver errors are translated to ``StoreFailure`` / ``OperationTimedOut``
  inside ``transaction()`` and the session is rolled back.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Iterator

from sqlalchemy import extract, func, update
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.models.execucao import Documento, ExecucaoDespesa, TarefaAssinatura
from app.models.historico_tramitacao import HistoricoTramitacao
from app.models.orcamento import BudgetAllocation, BudgetPlan
from app.models.solicitacao import Solicitacao
from app.services.errors import DomainError, OperationTimedOut, StoreFailure
from app.stores.base import (
    BudgetStore,
    DocumentStore,
    ExecucaoStore,
    HistoryStore,
    NotificationSink,
    RecordStore,
    UnitOfWork,
)

logger = logging.getLogger(__name__)

# Fragments of driver messages that indicate a lock wait or statement timeout
_TIMEOUT_MARKERS: tuple[str, ...] = (
    "database is locked",
    "statement timeout",
    "canceling statement",
    "lock timeout",
    "timeout",
)


def _is_timeout(exc: OperationalError) -> bool:
    text = str(exc.orig if exc.orig is not None else exc).lower()
    return any(marker in text for marker in _TIMEOUT_MARKERS)


# ---------------------------------------------------------------------------
# Stores
# ---------------------------------------------------------------------------


class SqlRecordStore(RecordStore):
    def __init__(self, db: Session):
        self.db = db

    def get(self, record_id: int) -> Solicitacao | None:
        return self.db.get(Solicitacao, record_id)

    def get_by_protocolo(self, protocolo: str) -> Solicitacao | None:
        return (
            self.db.query(Solicitacao)
            .filter(Solicitacao.protocolo == protocolo)
            .first()
        )

    def add(self, record: Solicitacao) -> Solicitacao:
        self.db.add(record)
        self.db.flush()
        return record

    def conditional_update(
        self, record: Solicitacao, expected_version: int, values: dict[str, Any]
    ) -> bool:
        stmt = (
            update(Solicitacao)
            .where(Solicitacao.id == record.id, Solicitacao.version == expected_version)
            .values(**values, version=expected_version + 1)
            .execution_options(synchronize_session="fetch")
        )
        result = self.db.execute(stmt)
        return result.rowcount == 1

    def count_for_year(self, year: int, tipo: str) -> int:
        return (
            self.db.query(func.count(Solicitacao.id))
            .filter(
                Solicitacao.tipo == tipo,
                extract("year", Solicitacao.created_at) == year,
            )
            .scalar()
            or 0
        )

    def list_by_destino(
        self, destino: str, status: str | None, offset: int, limit: int
    ) -> tuple[list[Solicitacao], int]:
        q = self.db.query(Solicitacao).filter(Solicitacao.destino_atual == destino)
        if status is not None:
            q = q.filter(Solicitacao.status == status)
        total: int = q.count()
        rows = (
            q.order_by(Solicitacao.updated_at.desc(), Solicitacao.id.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )
        return rows, total


class SqlHistoryStore(HistoryStore):
    # Rows fetched per round-trip while iterating a record's history
    _BATCH = 100

    def __init__(self, db: Session):
        self.db = db

    def append(self, entry: HistoricoTramitacao) -> HistoricoTramitacao:
        self.db.add(entry)
        self.db.flush()
        return entry

    def iter_by_record(self, record_id: int) -> Iterator[HistoricoTramitacao]:
        q = (
            self.db.query(HistoricoTramitacao)
            .filter(HistoricoTramitacao.solicitacao_id == record_id)
            .order_by(HistoricoTramitacao.data_tramitacao.asc(), HistoricoTramitacao.id.asc())
            .yield_per(self._BATCH)
        )
        yield from q

    def count_by_record(self, record_id: int) -> int:
        return (
            self.db.query(func.count(HistoricoTramitacao.id))
            .filter(HistoricoTramitacao.solicitacao_id == record_id)
            .scalar()
            or 0
        )


class SqlExecucaoStore(ExecucaoStore):
    def __init__(self, db: Session):
        self.db = db

    def get_wizard(self, record_id: int) -> ExecucaoDespesa | None:
        return (
            self.db.query(ExecucaoDespesa)
            .filter(ExecucaoDespesa.solicitacao_id == record_id)
            .first()
        )

    def add_wizard(self, wizard: ExecucaoDespesa) -> ExecucaoDespesa:
        self.db.add(wizard)
        self.db.flush()
        return wizard

    def add_documento(self, documento: Documento) -> Documento:
        self.db.add(documento)
        self.db.flush()
        return documento

    def list_documentos(self, record_id: int) -> list[Documento]:
        return (
            self.db.query(Documento)
            .filter(Documento.solicitacao_id == record_id)
            .order_by(Documento.id.asc())
            .all()
        )

    def add_tarefa(self, tarefa: TarefaAssinatura) -> TarefaAssinatura:
        self.db.add(tarefa)
        self.db.flush()
        return tarefa

    def list_tarefas(self, record_id: int, status: str | None = None) -> list[TarefaAssinatura]:
        q = self.db.query(TarefaAssinatura).filter(TarefaAssinatura.solicitacao_id == record_id)
        if status is not None:
            q = q.filter(TarefaAssinatura.status == status)
        return q.order_by(TarefaAssinatura.id.asc()).all()

    def count_portarias(self, year: int) -> int:
        return (
            self.db.query(func.count(Solicitacao.id))
            .filter(Solicitacao.portaria_sf_numero.like(f"%/{year}-SF"))
            .scalar()
            or 0
        )


class SqlBudgetStore(BudgetStore):
    def __init__(self, db: Session):
        self.db = db

    def get_plan(self, year: int) -> BudgetPlan | None:
        return self.db.query(BudgetPlan).filter(BudgetPlan.year == year).first()

    def add_plan(self, plan: BudgetPlan) -> BudgetPlan:
        self.db.add(plan)
        self.db.flush()
        return plan

    def add_allocation(self, allocation: BudgetAllocation) -> BudgetAllocation:
        self.db.add(allocation)
        self.db.flush()
        return allocation

    def find_active(
        self,
        year: int,
        ptres_code: str,
        *,
        element_code: str | None = None,
        dotacao_code: str | None = None,
        lock: bool = False,
    ) -> BudgetAllocation | None:
        q = (
            self.db.query(BudgetAllocation)
            .join(BudgetPlan, BudgetAllocation.plan_id == BudgetPlan.id)
            .filter(
                BudgetPlan.year == year,
                BudgetAllocation.ptres_code == ptres_code,
                BudgetAllocation.is_active.is_(True),
            )
        )
        if element_code is not None:
            q = q.filter(BudgetAllocation.element_code == element_code)
        if dotacao_code is not None:
            q = q.filter(BudgetAllocation.dotacao_code == dotacao_code)
        if lock:
            q = q.with_for_update().populate_existing()
        return q.order_by(BudgetAllocation.id.desc()).first()

    def compare_and_set_committed(
        self, allocation: BudgetAllocation, expected_version: int, committed_value: Any
    ) -> bool:
        stmt = (
            update(BudgetAllocation)
            .where(
                BudgetAllocation.id == allocation.id,
                BudgetAllocation.version == expected_version,
                BudgetAllocation.allocated_value >= committed_value,
            )
            .values(committed_value=committed_value, version=expected_version + 1)
            .execution_options(synchronize_session="fetch")
        )
        return self.db.execute(stmt).rowcount == 1


# ---------------------------------------------------------------------------
# Unit of work
# ---------------------------------------------------------------------------


class SqlUnitOfWork(UnitOfWork):
    """Stores bound to one ``Session`` plus the document store and notifier.

    Documents written to the document store during a transaction that is
    later rolled back are discarded so that no orphan file survives.
    """

    def __init__(self, db: Session, documents: DocumentStore, notifier: NotificationSink):
        self.db = db
        self.records = SqlRecordStore(db)
        self.history = SqlHistoryStore(db)
        self.execucao = SqlExecucaoStore(db)
        self.budget = SqlBudgetStore(db)
        self.documents = _TrackingDocumentStore(documents)
        self.notifier = notifier

    @contextmanager
    def transaction(self) -> Iterator["SqlUnitOfWork"]:
        self.documents.begin()
        try:
            yield self
            self.db.commit()
        except DomainError:
            self._rollback()
            raise
        except OperationalError as exc:
            self._rollback()
            if _is_timeout(exc):
                logger.error("Store call timed out: %s", exc)
                raise OperationTimedOut(
                    "O armazenamento não respondeu a tempo. Tente novamente."
                ) from exc
            logger.exception("Store operational failure")
            raise StoreFailure("Falha ao gravar no armazenamento. Tente novamente.") from exc
        except SQLAlchemyError as exc:
            self._rollback()
            logger.exception("Store failure")
            raise StoreFailure("Falha ao gravar no armazenamento. Tente novamente.") from exc
        else:
            self.documents.forget()

    def _rollback(self) -> None:
        self.db.rollback()
        self.documents.discard_pending()


class _TrackingDocumentStore(DocumentStore):
    """Remembers URLs written inside the current transaction."""

    def __init__(self, inner: DocumentStore):
        self.inner = inner
        self._pending: list[str] = []

    def begin(self) -> None:
        self._pending = []

    def forget(self) -> None:
        self._pending = []

    def discard_pending(self) -> None:
        for url in self._pending:
            self.inner.discard(url)
        self._pending = []

    def put(self, data: bytes, filename: str, folder: str) -> str:
        url = self.inner.put(data, filename, folder)
        self._pending.append(url)
        return url

    def read(self, url: str) -> bytes:
        return self.inner.read(url)

    def discard(self, url: str) -> None:
        self.inner.discard(url)
