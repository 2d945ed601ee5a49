"""
Application settings loaded from environment variables.
"""

from pydantic_settings import BaseSettings
from typing import List


DEFAULT_JWT_SECRET = "dev-secret-change-me"


class Settings(BaseSettings):
    # ── Server ───────────────────────────────────────────────────────────
    host: str = "0.0.0.0"
    port: int = 4000
    debug: bool = False
    cors_origins: List[str] = ["*"]

    # ── Security Secrets ──────────────────────────────────────────────────
    jwt_secret: str = DEFAULT_JWT_SECRET    # HMAC secret for auth tokens (placeholder, never use in prod)
    jwt_algorithm: str = "HS256"
    jwt_expiry_seconds: int = 2592000       # 30 days
    bcrypt_rounds: int = 10
    min_password_length: int = 6

    # ── Storage ──────────────────────────────────────────────────────────
    storage_backend: str = "sqlite"         # "sqlite" | "file"
    database_url: str = "sqlite+aiosqlite:///./db/auth.db"
    users_file: str = "./db/users.json"
    otp_file: str = "./db/otps.json"

    # ── Password reset ───────────────────────────────────────────────────
    otp_ttl_seconds: int = 600

    # ── Client fallback ──────────────────────────────────────────────────
    api_base: str = "http://localhost:4000"   # empty string disables the remote backend
    client_storage_file: str = "./.auth_local_storage.json"
    client_timeout_seconds: float = 5.0

    model_config = {
        "env_file": ".env",
        "case_sensitive": False,
    }

    @property
    def uses_default_secret(self) -> bool:
        return self.jwt_secret == DEFAULT_JWT_SECRET


config = Settings()
