from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Runtime settings, read from `TASKHUB_*` environment variables.

    - `db_url` / `security_config_path`: default to `taskhub.db` and
      `config/security_config.yaml` at the repo root.
    - `jwt_secret` / `jwt_algorithm`: shared-secret signing for access tokens. The default
      secret is for local runs only; set `TASKHUB_JWT_SECRET` anywhere else.
    - `access_token_ttl_minutes`: lifetime of tokens from `issue_access_token`.
    """

    model_config = SettingsConfigDict(env_prefix="TASKHUB_", extra="ignore")

    db_url: str | None = None
    security_config_path: str | None = None
    log_level: str = "INFO"

    jwt_secret: str = "taskhub-dev-secret-change-me-0123456789"
    jwt_algorithm: str = "HS256"
    access_token_ttl_minutes: int = 60

    def resolved_db_url(self) -> str:
        if self.db_url:
            return self.db_url

        repo_root = Path(__file__).resolve().parents[1]
        db_path = repo_root / "taskhub.db"
        return f"sqlite:///{db_path}"

    def resolved_security_config_path(self) -> Path:
        if self.security_config_path:
            return Path(self.security_config_path)

        repo_root = Path(__file__).resolve().parents[1]
        return repo_root / "config" / "security_config.yaml"


@lru_cache
def get_settings() -> Settings:
    return Settings()
