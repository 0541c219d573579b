"""Runtime settings read from the environment (and a local .env file)."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

from .collection import DEFAULT_STORAGE_KEY
from .covers import DEFAULT_API_BASE, DEFAULT_COVER_MODEL, DEFAULT_TIMEOUT


@dataclass(frozen=True)
class Settings:
    api_key: str = ""
    cover_model: str = DEFAULT_COVER_MODEL
    cover_api_base: str = DEFAULT_API_BASE
    cover_timeout: float = DEFAULT_TIMEOUT
    data_dir: Path = Path(".data")
    storage_key: str = DEFAULT_STORAGE_KEY
    port: int = 8000
    environment: str = "dev"

    @property
    def db_path(self) -> Path:
        return self.data_dir / "shelfwise.db"

    @classmethod
    def from_env(cls) -> Settings:
        load_dotenv()
        return cls(
            api_key=os.environ.get("GEMINI_API_KEY") or os.environ.get("GOOGLE_API_KEY", ""),
            cover_model=os.environ.get("COVER_MODEL", DEFAULT_COVER_MODEL),
            cover_api_base=os.environ.get("COVER_API_BASE", DEFAULT_API_BASE),
            cover_timeout=float(os.environ.get("COVER_TIMEOUT", DEFAULT_TIMEOUT)),
            data_dir=Path(os.environ.get("DATA_DIR", ".data")),
            storage_key=os.environ.get("STORAGE_KEY", DEFAULT_STORAGE_KEY),
            port=int(os.environ.get("PORT", "8000")),
            environment=os.environ.get("ENV", "dev"),
        )
