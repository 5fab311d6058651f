"""Environment-aware settings loader for the clinical records API."""
from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel

BASE_DIR = Path(__file__).resolve().parent.parent
ENV_PATH = BASE_DIR / ".env"

if ENV_PATH.exists():
    load_dotenv(ENV_PATH)


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


class Settings(BaseModel):
    database_path: Path = Path(os.getenv("DB_DATABASE", str(BASE_DIR / "clinica.db")))
    db_pool_size: int = int(os.getenv("DB_POOL_SIZE", "10"))
    db_timeout: float = float(os.getenv("DB_TIMEOUT", "5"))
    secret_key: str = os.getenv("JWT_SECRET", "change-me")
    token_max_age: int = int(os.getenv("TOKEN_MAX_AGE", "86400"))
    bcrypt_rounds: int = int(os.getenv("BCRYPT_SALT_ROUNDS", "10"))
    host: str = os.getenv("HOST", "0.0.0.0")
    port: int = int(os.getenv("PORT", "3000"))
    cors_origin: str = os.getenv("CORS_ORIGIN", "http://localhost:4200")
    expose_error_details: bool = _env_flag("EXPOSE_ERROR_DETAILS")
    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    # Seeded account
    default_admin_username: str = os.getenv("DEFAULT_ADMIN_USERNAME", "admin")
    default_admin_password: str = os.getenv("DEFAULT_ADMIN_PASSWORD", "changeme")


@lru_cache
def get_settings() -> Settings:
    return Settings()
