"""Settings loaded from environment variables (+ optional .env).

One frozen ``Settings`` object for the whole app. Nothing here requires a
secret at import time; the LLM key is only checked when a plan is generated.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv

ENV_PREFIX = "CUTOVER"

load_dotenv(override=False)


def _k(suffix: str) -> str:
    return f"{ENV_PREFIX}_{suffix}"


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _first_env(*names: str, default: str | None = None) -> str | None:
    for n in names:
        v = os.getenv(n)
        if v is not None and v.strip() != "":
            return v
    return default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str = "cutover-planner"
    log_level: str = "INFO"

    # ---- Storage ----
    data_dir: Path = Path(".local/cutover")
    db_path: Path = Path(".local/cutover/planner.sqlite3")
    seed_defaults: bool = True

    # ---- HTTP API ----
    api_host: str = "0.0.0.0"
    api_port: int = 8081
    api_url: str = "http://localhost:8081/api"

    # ---- LLM plan generation ----
    llm_provider: str = "openai"  # "openai" (any compatible endpoint) | "gemini"
    llm_api_key: str | None = None
    llm_base_url: str = "https://openrouter.ai/api/v1"
    llm_model: str = "qwen/qwen3-32b"
    llm_timeout_seconds: float = 60.0

    @staticmethod
    def from_env() -> "Settings":
        data_dir = _env_path(_k("DATA_DIR"), Path(".local/cutover"))
        provider = _env(_k("LLM_PROVIDER"), "openai").strip().lower()
        if provider == "gemini":
            api_key = _first_env(_k("LLM_API_KEY"), "GEMINI_API_KEY", "GOOGLE_API_KEY")
            default_model = "gemini-2.5-flash"
        else:
            api_key = _first_env(_k("LLM_API_KEY"), "OPENROUTER_API_KEY", "OPENAI_API_KEY")
            default_model = "qwen/qwen3-32b"
        return Settings(
            app_name=_env(_k("APP_NAME"), "cutover-planner"),
            log_level=_env(_k("LOG_LEVEL"), "INFO"),
            data_dir=data_dir,
            db_path=_env_path(_k("DB_PATH"), data_dir / "planner.sqlite3"),
            seed_defaults=_env_bool(_k("SEED_DEFAULTS"), True),
            api_host=_env(_k("API_HOST"), "0.0.0.0"),
            api_port=_env_int(_k("API_PORT"), _env_int("PORT", 8081)),
            api_url=_env(_k("API_URL"), "http://localhost:8081/api").rstrip("/"),
            llm_provider=provider,
            llm_api_key=api_key,
            llm_base_url=_env(_k("LLM_BASE_URL"), "https://openrouter.ai/api/v1"),
            llm_model=_env(_k("LLM_MODEL"), default_model),
            llm_timeout_seconds=_env_float(_k("LLM_TIMEOUT_SECONDS"), 60.0),
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings.from_env()
