from __future__ import annotations

import secrets
from pathlib import Path

from cellblob_core.services import DEFAULT_CHUNK_SIZE
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_host: str = "127.0.0.1"
    app_port: int = 0
    app_data_dir: str = "./data"
    database_name: str = "cells.sqlite3"
    auth_token: str | None = None

    # "table.column" pairs reachable over HTTP
    blob_columns: list[str] = Field(default_factory=lambda: ["blobs.data"])
    chunk_size: int = Field(default=DEFAULT_CHUNK_SIZE, gt=0)
    max_upload_bytes: int = Field(default=256 * 1024 * 1024, ge=0)

    log_level: str = "INFO"
    daemon_state_dir: str = Field(default="~/.cellblob")

    @field_validator("blob_columns")
    @classmethod
    def _check_blob_columns(cls, value: list[str]) -> list[str]:
        for item in value:
            table, sep, column = item.partition(".")
            if not sep or not table or not column:
                raise ValueError(f"blob column must look like 'table.column', got {item!r}")
        return value

    @property
    def data_dir(self) -> Path:
        return Path(self.app_data_dir).resolve()

    @property
    def sqlite_path(self) -> Path:
        return self.data_dir / self.database_name

    @property
    def daemon_state_path(self) -> Path:
        return Path(self.daemon_state_dir).expanduser() / "daemon.json"

    def exposes(self, table: str, column: str) -> bool:
        return f"{table}.{column}" in self.blob_columns

    def ensure_dirs(self) -> None:
        self.data_dir.mkdir(parents=True, exist_ok=True)
        self.daemon_state_path.parent.mkdir(parents=True, exist_ok=True)

    def resolved_auth_token(self) -> str:
        return self.auth_token or secrets.token_urlsafe(32)
