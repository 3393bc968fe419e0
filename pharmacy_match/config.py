import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv


LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _int_env(name: str, default: int) -> int:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None


@dataclass(frozen=True)
class Settings:
    data_dir: Path
    supabase_url: str
    supabase_service_role_key: str
    top_k: int
    log_level: str
    request_timeout_seconds: int

    @property
    def backend(self) -> str:
        if self.supabase_url and self.supabase_service_role_key:
            return "supabase"
        return "file"

    @staticmethod
    def from_env(dotenv_path: Optional[Path] = None) -> "Settings":
        load_dotenv(dotenv_path=dotenv_path)

        data_dir = os.environ.get("PHARMACY_MATCH_DATA_DIR", "data").strip() or "data"
        supabase_url = os.environ.get("SUPABASE_URL", "").strip()
        supabase_key = os.environ.get("SUPABASE_SERVICE_ROLE_KEY", "").strip()
        top_k = _int_env("PHARMACY_MATCH_TOP_K", 3)
        log_level = os.environ.get("PHARMACY_MATCH_LOG_LEVEL", "INFO").strip().upper() or "INFO"
        timeout = _int_env("PHARMACY_MATCH_TIMEOUT", 30)

        if top_k < 1:
            raise ValueError("PHARMACY_MATCH_TOP_K must be at least 1")
        if log_level not in LOG_LEVELS:
            raise ValueError(f"PHARMACY_MATCH_LOG_LEVEL must be one of {', '.join(LOG_LEVELS)}, got {log_level!r}")
        if bool(supabase_url) != bool(supabase_key):
            raise RuntimeError("Set both SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY, or neither")

        return Settings(
            data_dir=Path(data_dir),
            supabase_url=supabase_url,
            supabase_service_role_key=supabase_key,
            top_k=top_k,
            log_level=log_level,
            request_timeout_seconds=timeout,
        )
