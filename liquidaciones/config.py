from __future__ import annotations
from pathlib import Path
from typing import Any

import yaml
from pydantic_settings import BaseSettings, SettingsConfigDict

CONFIG_PATH = Path(__file__).resolve().parent.parent / "config" / "config.yaml"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    mariadb_host: str = "localhost"
    mariadb_port: int = 3306
    mariadb_database: str = "liquidaciones"
    mariadb_user: str = "liquidaciones"
    mariadb_password: str = ""

    # e.g. "sqlite+aiosqlite:///liquidaciones.db" for local work
    database_url_override: str = ""

    metrics_port: int = 9091
    netting_max_retries: int = 3
    log_level: str = "INFO"
    log_file: str = "liquidaciones.log"

    @property
    def database_url(self) -> str:
        if self.database_url_override:
            return self.database_url_override
        return (
            f"mysql+aiomysql://{self.mariadb_user}:{self.mariadb_password}"
            f"@{self.mariadb_host}:{self.mariadb_port}/{self.mariadb_database}"
        )


def load_app_config(path: str | Path = CONFIG_PATH) -> dict[str, Any]:
    with open(path) as f:
        return yaml.safe_load(f)


settings = Settings()
app_config = load_app_config()
