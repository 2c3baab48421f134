"""
codedrop/core/config.py

Centralised configuration loaded from environment variables.
Use a .env file locally; Docker Compose injects these at runtime.
"""

from typing import List, Literal, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # ── Application ────────────────────────────────────────────────────────────
    app_name: str = "codedrop"
    app_version: str = "1.0.0"
    debug: bool = False

    # ── HTTP ───────────────────────────────────────────────────────────────────
    host: str = "0.0.0.0"
    port: int = 3000
    cors_origins: List[str] = ["*"]
    static_dir: Optional[str] = None   # serve the browser UI from here when set

    # ── Entry store ────────────────────────────────────────────────────────────
    store_backend: Literal["sql", "memory"] = "sql"
    database_url: str = "sqlite+aiosqlite:///./data/codedrop.db"
    storage_timeout_seconds: float = 5.0
    sweep_interval_seconds: float = 60.0

    # ── Code allocation ────────────────────────────────────────────────────────
    code_max_attempts: int = 64   # draws before the code space counts as full

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )


# Single shared instance — import this everywhere.
settings = Settings()
