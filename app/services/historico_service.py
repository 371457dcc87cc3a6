"""
Audit log of tramitações.

Entries are only ever appended, inside the unit of work of the transition
they describe, so a failed append fails the transition with it.  Reads are
lazy: ``query_by_record`` streams rows in batches and can be called again to
restart from the first entry.
"""

from __future__ import annotations

import datetime
import logging
from typing import Iterator

from app.models.historico_tramitacao import HistoricoTramitacao
from app.models.solicitacao import Solicitacao
from app.schemas.tramitacao import HistoricoResponse
from app.stores.base import UnitOfWork

logger = logging.getLogger(__name__)


def append(
    uow: UnitOfWork,
    record: Solicitacao,
    *,
    origem: str,
    destino: str,
    status_anterior: str | None,
    status_novo: str,
    observacao: str | None = None,
    tramitado_por: str | None = None,
) -> HistoricoTramitacao:
    """Append one entry for *record*; must run inside ``uow.transaction()``."""
    entry = uow.history.append(
        HistoricoTramitacao(
            solicitacao_id=record.id,
            origem=origem,
            destino=destino,
            status_anterior=status_anterior,
            status_novo=status_novo,
            observacao=observacao,
            tramitado_por=tramitado_por,
            data_tramitacao=datetime.datetime.now(),
        )
    )
    logger.debug(
        "History %s: %s/%s -> %s/%s",
        record.protocolo, origem, status_anterior, destino, status_novo,
    )
    return entry


def query_by_record(uow: UnitOfWork, record_id: int) -> Iterator[HistoricoResponse]:
    """Yield the entries of *record_id* oldest first.

    Nothing is fetched until the first ``next()``.
    """
    for entry in uow.history.iter_by_record(record_id):
        yield HistoricoResponse.model_validate(entry)


def count_by_record(uow: UnitOfWork, record_id: int) -> int:
    return uow.history.count_by_record(record_id)
