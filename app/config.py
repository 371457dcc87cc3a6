from pathlib import Path

from pydantic_settings import BaseSettings
from functools import lru_cache

# Backend root (the repository root when running from a checkout)
_BACKEND_ROOT = Path(__file__).resolve().parent.parent


class Settings(BaseSettings):
    # Database
    DATABASE_URL: str = "sqlite:///./tramitacao.db"

    # Seconds a single store call may wait on locks / statements
    STORE_TIMEOUT_SECONDS: float = 10.0

    # App
    APP_NAME: str = "Tramitação TJPA"
    DEBUG: bool = True
    API_PREFIX: str = "/api"

    # Protocol numbers: {PREFIX}-{TIPO}-{ANO}-{SEQ}
    PROTOCOLO_PREFIX: str = "TJPA"

    # CORS: sobrescreva com a env var CORS_ORIGINS (array JSON)
    CORS_ORIGINS: list[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
    ]

    # Document store (generated minutas and uploaded PDFs)
    DOCUMENTS_DIR: Path = _BACKEND_ROOT / "storage" / "documentos"
    MAX_UPLOAD_MB: int = 10

    model_config = {"env_file": ".env", "extra": "ignore"}


@lru_cache
def get_settings() -> Settings:
    return Settings()
