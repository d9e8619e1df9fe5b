"""Process settings read from the environment."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from tablekit.persistence.config import MEMORY_URL, DatabaseConfig

DEV_SECRET_KEY = "dev-secret-key-change-in-production"


def _flag(name: str) -> bool:
    return os.environ.get(name, "").lower() in ("1", "true", "yes")


def _default_tables_path() -> Path:
    """tables/ next to backend/, resolved from cwd."""
    cwd = Path.cwd()
    base_path = cwd.parent if cwd.name == "backend" else cwd
    return base_path / "tables"


@dataclass
class Settings:
    """Runtime settings for the API server and CLI.

    Attributes:
        database: Record store configuration
        tables_path: Directory holding table YAML files
        secret_key: HS256 key for caller tokens
        disable_auth: Serve every request as a fixed development caller
        port: HTTP port for `tablekit serve`
        log_level: Root log level name
    """

    database: DatabaseConfig = field(default_factory=lambda: DatabaseConfig(MEMORY_URL))
    tables_path: Path = field(default_factory=_default_tables_path)
    secret_key: str = DEV_SECRET_KEY
    disable_auth: bool = False
    port: int = 8000
    log_level: str = "info"

    @classmethod
    def from_env(cls) -> Settings:
        tables_path = os.environ.get("TABLEKIT_TABLES_PATH")
        return cls(
            database=DatabaseConfig.from_env(),
            tables_path=Path(tables_path) if tables_path else _default_tables_path(),
            secret_key=os.environ.get("TABLEKIT_SECRET_KEY", DEV_SECRET_KEY),
            disable_auth=_flag("TABLEKIT_DISABLE_AUTH"),
            port=int(os.environ.get("TABLEKIT_PORT", "8000")),
            log_level=os.environ.get("TABLEKIT_LOG_LEVEL", "info").lower(),
        )
