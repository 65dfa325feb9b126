# auth_api/app/core/config.py
import logging
from typing import List, Literal
from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent.parent
ENV_FILE_PATH = BASE_DIR / ".env"

class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        case_sensitive=True,
        env_file=ENV_FILE_PATH,
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Core
    DATABASE_URL: str
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    API_V1_PREFIX: str = "/api/v1"

    # Access Token (stateless JWT)
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 15
    JWT_ISSUER: str = "urn:refresh-sessions:authapi"
    JWT_AUDIENCE: str = "urn:refresh-sessions:client"

    # Refresh Session (stored, single use, bound to a fingerprint)
    REFRESH_TOKEN_EXPIRE_DAYS: int = 30
    SESSION_ISSUE_MAX_ATTEMPTS: int = 3
    # 0 disables the periodic sweep; expired sessions are still rejected at lookup
    SESSION_SWEEP_INTERVAL_MINUTES: int = 0

    # Password hashing
    BCRYPT_ROUNDS: int = 12

    # --- Cookies ---
    ACCESS_TOKEN_COOKIE_NAME: str = "access-token"
    REFRESH_TOKEN_COOKIE_NAME: str = "refresh-token"
    COOKIE_SECURE: bool = False
    COOKIE_SAMESITE: Literal["lax", "strict", "none"] = "lax"
    # --- Fim Cookies ---

    # HTTP
    BACKEND_CORS_ORIGINS: List[str] = [
        "http://localhost:5173",
        "http://localhost:3000",
        "http://localhost:8000",
    ]
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_DEFAULT: str = "10/minute"

    @property
    def auth_prefix(self) -> str:
        return f"{self.API_V1_PREFIX}/auth"

    @model_validator(mode="after")
    def check_token_lifetimes(self) -> "Settings":
        if self.ACCESS_TOKEN_EXPIRE_MINUTES <= 0 or self.REFRESH_TOKEN_EXPIRE_DAYS <= 0:
            raise ValueError("Token lifetimes must be positive")
        if self.ACCESS_TOKEN_EXPIRE_MINUTES >= self.REFRESH_TOKEN_EXPIRE_DAYS * 24 * 60:
            raise ValueError("ACCESS_TOKEN_EXPIRE_MINUTES must be shorter than the refresh lifetime")
        if self.SESSION_ISSUE_MAX_ATTEMPTS < 1:
            raise ValueError("SESSION_ISSUE_MAX_ATTEMPTS must be at least 1")
        return self

try:
    settings = Settings()
except Exception as e:
    logging.error(f"FATAL: Erro ao carregar 'settings' a partir do .env em {ENV_FILE_PATH}: {e}")
    raise e
