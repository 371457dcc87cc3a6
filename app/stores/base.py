"""
Store interfaces the core services depend on.

The services never import a persistence client: they receive a
``UnitOfWork`` exposing these narrow collaborators and wrap every state
change in ``uow.transaction()`` so that a record mutation and its history
entry are committed (or discarded) together.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Any, Iterator

from app.models.execucao import Documento, ExecucaoDespesa, TarefaAssinatura
from app.models.historico_tramitacao import HistoricoTramitacao
from app.models.orcamento import BudgetAllocation, BudgetPlan
from app.models.solicitacao import Solicitacao
from app.schemas.common import OperationResult


class RecordStore(ABC):
    """CRUD plus conditional update for process records."""

    @abstractmethod
    def get(self, record_id: int) -> Solicitacao | None: ...

    @abstractmethod
    def get_by_protocolo(self, protocolo: str) -> Solicitacao | None: ...

    @abstractmethod
    def add(self, record: Solicitacao) -> Solicitacao: ...

    @abstractmethod
    def conditional_update(
        self, record: Solicitacao, expected_version: int, values: dict[str, Any]
    ) -> bool:
        """Write *values* only if the stored version still equals *expected_version*.

        Returns:
            ``True`` when the row was updated (and its version bumped),
            ``False`` when another writer got there first.
        """

    @abstractmethod
    def count_for_year(self, year: int, tipo: str) -> int: ...

    @abstractmethod
    def list_by_destino(
        self, destino: str, status: str | None, offset: int, limit: int
    ) -> tuple[list[Solicitacao], int]: ...


class HistoryStore(ABC):
    """Append-only transition log."""

    @abstractmethod
    def append(self, entry: HistoricoTramitacao) -> HistoricoTramitacao: ...

    @abstractmethod
    def iter_by_record(self, record_id: int) -> Iterator[HistoricoTramitacao]: ...

    @abstractmethod
    def count_by_record(self, record_id: int) -> int: ...


class ExecucaoStore(ABC):
    """Wizard state, dossier documents, and signing tasks."""

    @abstractmethod
    def get_wizard(self, record_id: int) -> ExecucaoDespesa | None: ...

    @abstractmethod
    def add_wizard(self, wizard: ExecucaoDespesa) -> ExecucaoDespesa: ...

    @abstractmethod
    def add_documento(self, documento: Documento) -> Documento: ...

    @abstractmethod
    def list_documentos(self, record_id: int) -> list[Documento]: ...

    @abstractmethod
    def add_tarefa(self, tarefa: TarefaAssinatura) -> TarefaAssinatura: ...

    @abstractmethod
    def list_tarefas(self, record_id: int, status: str | None = None) -> list[TarefaAssinatura]: ...

    @abstractmethod
    def count_portarias(self, year: int) -> int: ...


class BudgetStore(ABC):
    """Budget plan persistence with a guarded commitment write."""

    @abstractmethod
    def get_plan(self, year: int) -> BudgetPlan | None: ...

    @abstractmethod
    def add_plan(self, plan: BudgetPlan) -> BudgetPlan: ...

    @abstractmethod
    def add_allocation(self, allocation: BudgetAllocation) -> BudgetAllocation: ...

    @abstractmethod
    def find_active(
        self,
        year: int,
        ptres_code: str,
        *,
        element_code: str | None = None,
        dotacao_code: str | None = None,
        lock: bool = False,
    ) -> BudgetAllocation | None: ...

    @abstractmethod
    def compare_and_set_committed(
        self, allocation: BudgetAllocation, expected_version: int, committed_value: Any
    ) -> bool: ...


class DocumentStore(ABC):
    """Opaque binary storage keyed by path, returning a retrievable URL."""

    @abstractmethod
    def put(self, data: bytes, filename: str, folder: str) -> str: ...

    @abstractmethod
    def read(self, url: str) -> bytes: ...

    @abstractmethod
    def discard(self, url: str) -> None: ...


class NotificationSink(ABC):
    """Fire-and-forget user-facing outcome messages."""

    @abstractmethod
    def publish(self, result: OperationResult) -> None: ...


class UnitOfWork(ABC):
    """Bundle of stores sharing one transactional boundary."""

    records: RecordStore
    history: HistoryStore
    execucao: ExecucaoStore
    budget: BudgetStore
    documents: DocumentStore
    notifier: NotificationSink

    @abstractmethod
    @contextmanager
    def transaction(self) -> Iterator["UnitOfWork"]:
        """Commit on normal exit; roll back and re-raise as a domain error otherwise."""
