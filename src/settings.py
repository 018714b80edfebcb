import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import dotenv_values

ENV_SEARCH_PATHS = [
    Path(".env"),
    Path(".env.local"),
]


@dataclass
class Settings:
    llm_provider: str = "gemini"
    gemini_api_key: Optional[str] = None
    gemini_model: str = "gemini-2.0-flash"
    openai_api_key: Optional[str] = None
    openai_model: Optional[str] = None
    openai_base_url: Optional[str] = None
    model_timeout_seconds: float = 30.0
    model_max_attempts: int = 2
    model_retry_delay_seconds: float = 1.0
    max_concurrent_model_calls: int = 4
    client_base_url: str = "http://localhost:5000"


def load_dotenv() -> None:
    """Load env vars from .env files. Values already in the environment win."""
    merged: dict[str, str] = {}
    for env_path in ENV_SEARCH_PATHS:
        if not env_path.exists():
            continue
        for key, value in dotenv_values(env_path).items():
            if value is not None:
                merged[key] = value

    for key, value in merged.items():
        os.environ.setdefault(key, value)


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}")


def _env_int(name: str, default: int, minimum: int = 1) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}")
    if value < minimum:
        raise ValueError(f"{name} must be at least {minimum}, got {value}")
    return value


def load_settings() -> Settings:
    load_dotenv()
    return Settings(
        llm_provider=os.getenv("LLM_PROVIDER", Settings.llm_provider).lower(),
        gemini_api_key=os.getenv("GEMINI_API_KEY"),
        gemini_model=os.getenv("GEMINI_MODEL") or Settings.gemini_model,
        openai_api_key=os.getenv("OPENAI_API_KEY"),
        openai_model=os.getenv("OPENAI_MODEL"),
        openai_base_url=os.getenv("OPENAI_BASE_URL"),
        model_timeout_seconds=_env_float(
            "MODEL_TIMEOUT_SECONDS", Settings.model_timeout_seconds
        ),
        model_max_attempts=_env_int("MODEL_MAX_ATTEMPTS", Settings.model_max_attempts),
        model_retry_delay_seconds=_env_float(
            "MODEL_RETRY_DELAY_SECONDS", Settings.model_retry_delay_seconds
        ),
        max_concurrent_model_calls=_env_int(
            "MAX_CONCURRENT_MODEL_CALLS", Settings.max_concurrent_model_calls
        ),
        client_base_url=os.getenv("TOPCLIP_BASE_URL") or Settings.client_base_url,
    )
