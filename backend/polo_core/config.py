from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

DEFAULT_BASE_URL = "http://localhost:3000/api"
DEFAULT_SECRET_SERVICE = "com.australianpolo.app"


@dataclass(frozen=True)
class Settings:
    """Runtime configuration read from the environment."""

    api_base_url: str
    data_dir: Path
    secret_service: str
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        data_dir = os.getenv("POLO_DATA_DIR", "").strip()
        return cls(
            api_base_url=os.getenv("POLO_API_BASE_URL", DEFAULT_BASE_URL).strip() or DEFAULT_BASE_URL,
            data_dir=Path(data_dir) if data_dir else Path(__file__).parent.parent / "data",
            secret_service=os.getenv("POLO_SECRET_SERVICE", DEFAULT_SECRET_SERVICE).strip()
            or DEFAULT_SECRET_SERVICE,
            log_level=os.getenv("POLO_LOG_LEVEL", "INFO").upper(),
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings.from_env()
