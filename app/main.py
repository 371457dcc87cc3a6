import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.config import get_settings

settings = get_settings()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: make sure the schema and the document store exist
    from app.database import Base, engine
    from app import models  # noqa: F401  (registers every table on Base.metadata)

    Base.metadata.create_all(bind=engine)
    settings.DOCUMENTS_DIR.mkdir(parents=True, exist_ok=True)
    logger.info("%s ready (documents in %s)", settings.APP_NAME, settings.DOCUMENTS_DIR)
    yield


app = FastAPI(
    title=settings.APP_NAME,
    version="1.0.0",
    debug=settings.DEBUG,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/api/health")
def health_check():
    return {"status": "ok", "app": settings.APP_NAME}


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------

# Process records and department inboxes
from app.routers import solicitacoes  # noqa: E402

app.include_router(
    solicitacoes.router,
    prefix=f"{settings.API_PREFIX}/solicitacoes",
    tags=["Solicitações"],
)

# Department actions (state machine)
from app.routers import tramitacao  # noqa: E402

app.include_router(
    tramitacao.router,
    prefix=f"{settings.API_PREFIX}/tramitacao",
    tags=["Tramitação"],
)

# Expense-execution wizard
from app.routers import execucao  # noqa: E402

app.include_router(
    execucao.router,
    prefix=f"{settings.API_PREFIX}/execucao",
    tags=["Execução da Despesa"],
)

# Budget plan
from app.routers import orcamento  # noqa: E402

app.include_router(
    orcamento.router,
    prefix=f"{settings.API_PREFIX}/orcamento",
    tags=["Orçamento"],
)
