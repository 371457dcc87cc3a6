"""
Fixtures compartilhadas dos testes.

Cada teste recebe um banco SQLite em memória novo (``StaticPool`` mantém a
mesma conexão para a sessão e para o ``TestClient``), um document store em
``tmp_path`` e um notificador que guarda tudo o que foi publicado.
"""

import datetime
import os
import tempfile
from decimal import Decimal

# Before any app import: the lifespan must not touch the real database or storage
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("DOCUMENTS_DIR", tempfile.mkdtemp(prefix="tramitacao-docs-"))

import pytest  # noqa: E402
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app import models  # noqa: F401
from app.database import Base, get_db
from app.dependencies import get_document_store, get_notifier
from app.main import app as fastapi_app
from app.models.orcamento import BudgetAllocation
from app.schemas.execucao import UploadedFile
from app.schemas.solicitacao import DestinationInfo, RequesterInfo
from app.services import (
    execucao_service,
    orcamento_service,
    solicitacao_service,
    tramitacao_service,
)
from app.stores.base import NotificationSink
from app.stores.documentos import FileSystemDocumentStore
from app.stores.sqlalchemy_store import SqlUnitOfWork


class MemoryNotificationSink(NotificationSink):
    """Guarda os resultados publicados para inspeção."""

    def __init__(self):
        self.published = []

    def publish(self, result):
        self.published.append(result)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def document_store(tmp_path):
    return FileSystemDocumentStore(tmp_path / "documentos")


@pytest.fixture
def notifier():
    return MemoryNotificationSink()


@pytest.fixture
def uow(db, document_store, notifier):
    return SqlUnitOfWork(db, document_store, notifier)


@pytest.fixture
def client(session_factory, document_store, notifier):
    def _get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    fastapi_app.dependency_overrides[get_db] = _get_db
    fastapi_app.dependency_overrides[get_document_store] = lambda: document_store
    fastapi_app.dependency_overrides[get_notifier] = lambda: notifier
    with TestClient(fastapi_app) as test_client:
        yield test_client
    fastapi_app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------


@pytest.fixture
def nova_solicitacao(uow):
    """Cria uma solicitação em SODPA / ENVIADO e devolve o id."""

    def _criar(tipo="DIARIA", tipo_destino="ESTADO", valor="1500.00"):
        result = solicitacao_service.create(
            uow,
            tipo,
            RequesterInfo(nome="Maria Souza", email="maria.souza@tjpa.jus.br", matricula="12345"),
            DestinationInfo(
                tipo_destino=tipo_destino,
                origem="Belém",
                destino="Santarém",
                data_inicio=datetime.date(2026, 3, 10),
                data_fim=datetime.date(2026, 3, 12),
                motivo="Correição ordinária",
            ),
            valor=Decimal(valor),
            tramitado_por="servidor.1",
        )
        assert result.ok, result.message
        return result.data.id

    return _criar


@pytest.fixture
def aprovada(uow, nova_solicitacao):
    """Leva uma solicitação nova até SOSFU / APROVADO (pré-execução assinada)."""

    def _levar(**kwargs):
        record_id = nova_solicitacao(**kwargs)
        for passo in (
            lambda: tramitacao_service.encaminhar_ajsefin(uow, record_id, tramitado_por="sodpa.1"),
            lambda: tramitacao_service.submit_opinion(
                uow, record_id, "Nada a opor.", tramitado_por="assessor.1"
            ),
            lambda: tramitacao_service.encaminhar_assinatura(uow, record_id, tramitado_por="sefin.1"),
            lambda: tramitacao_service.sign_document(uow, record_id, tramitado_por="ordenador"),
        ):
            result = passo()
            assert result.ok, result.message
        return record_id

    return _levar


@pytest.fixture
def pdf():
    def _pdf(nome="documento.pdf"):
        return UploadedFile(filename=nome, content_type="application/pdf", content=b"%PDF-1.4 teste")

    return _pdf


@pytest.fixture
def executada(uow, aprovada, pdf):
    """Solicitação aprovada com Portaria, Certidão e NE registradas."""

    def _executar(valor_ne="1500.00", **kwargs):
        record_id = aprovada(**kwargs)
        for result in (
            execucao_service.generate_portaria(uow, record_id, "8193", ["171"]),
            execucao_service.generate_certidao(uow, record_id),
            execucao_service.register_financial_document(
                uow, record_id, "NE", pdf("ne.pdf"), Decimal(valor_ne), numero="2026NE000123"
            ),
        ):
            assert result.ok, result.message
        return record_id

    return _executar


@pytest.fixture
def plano(uow, db):
    """Cria o plano padrão do ano corrente e aloca valores em algumas linhas."""

    def _criar(alocacoes=None):
        year = datetime.date.today().year
        result = orcamento_service.create_default_budget_plan(uow, year)
        assert result.ok, result.message
        for (ptres, dotacao), valor in (alocacoes or {}).items():
            row = (
                db.query(BudgetAllocation)
                .filter_by(ptres_code=ptres, dotacao_code=dotacao, is_active=True)
                .one()
            )
            row.allocated_value = Decimal(valor)
        db.commit()
        return year

    return _criar
