"""SQLAlchemy models package for Tramitação TJPA.

Importing all models here ensures that SQLAlchemy's mapper registry is
populated before ``Base.metadata.create_all()`` or Alembic migrations run.
The import order follows the foreign-key dependency graph so that parent
tables are always registered before their children.

Usage from other modules:
    from app.models import Solicitacao, BudgetAllocation
"""

# Budget ledger
from app.models.orcamento import BudgetAllocation, BudgetPlan  # noqa: F401

# Process record and its audit log
from app.models.solicitacao import Solicitacao  # noqa: F401
from app.models.historico_tramitacao import HistoricoTramitacao  # noqa: F401

# Expense execution
from app.models.execucao import Documento, ExecucaoDespesa, TarefaAssinatura  # noqa: F401

__all__ = [
    "BudgetPlan",
    "BudgetAllocation",
    "Solicitacao",
    "HistoricoTramitacao",
    "ExecucaoDespesa",
    "Documento",
    "TarefaAssinatura",
]
