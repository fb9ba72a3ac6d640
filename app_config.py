from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, Optional

from dotenv import load_dotenv


DEFAULT_API_BASE_URL = "http://localhost:3003"
DEFAULT_REQUEST_TIMEOUT_S = 10.0
DEFAULT_CHAT_MODEL = "gpt-5-mini"


@dataclass(frozen=True)
class Settings:
    api_base_url: str = DEFAULT_API_BASE_URL
    request_timeout_s: Optional[float] = DEFAULT_REQUEST_TIMEOUT_S
    analytics_enabled: bool = True
    draft_path: Optional[Path] = None
    openai_api_key: str = ""
    openai_chat_enabled: bool = False
    openai_chat_model: str = DEFAULT_CHAT_MODEL
    log_level: str = "INFO"
    log_json: bool = False


def truthy_str(value: object) -> bool:
    return str(value or "").strip().lower() in {"1", "true", "yes", "y", "on"}


def _lookup(key: str, secrets: Mapping[str, Any], environ: Mapping[str, str]) -> str:
    """
    Read a value from secrets (preferred) or the environment; "" when missing.
    """
    val: object = ""
    try:
        val = secrets.get(key, "")
    except Exception:
        # Streamlit raises when no secrets.toml exists at all.
        val = ""
    if not val:
        val = environ.get(key, "")
    if val is None:
        return ""
    return str(val).strip()


def _parse_timeout(raw: str) -> Optional[float]:
    if not raw:
        return DEFAULT_REQUEST_TIMEOUT_S
    if raw.lower() in {"0", "none", "off"}:
        return None
    try:
        value = float(raw)
    except ValueError:
        return DEFAULT_REQUEST_TIMEOUT_S
    return value if value > 0 else None


def load_settings(
    secrets: Optional[Mapping[str, Any]] = None,
    environ: Optional[Mapping[str, str]] = None,
    *,
    dotenv: bool = True,
) -> Settings:
    """
    Build settings from Streamlit secrets, then environment variables, then defaults.

    `.env` is loaded into the process environment first (without overriding variables that
    are already set) unless `dotenv=False` or an explicit `environ` is given.
    """
    if environ is None:
        if dotenv:
            load_dotenv(override=False)
        environ = os.environ
    secrets = secrets if secrets is not None else {}

    def get(key: str) -> str:
        return _lookup(key, secrets, environ)

    analytics_raw = get("YANNOVA_ANALYTICS_ENABLED")
    draft_path_raw = get("YANNOVA_DRAFT_PATH")
    return Settings(
        api_base_url=(get("YANNOVA_API_BASE_URL") or DEFAULT_API_BASE_URL).rstrip("/"),
        request_timeout_s=_parse_timeout(get("YANNOVA_REQUEST_TIMEOUT_S")),
        analytics_enabled=truthy_str(analytics_raw) if analytics_raw else True,
        draft_path=Path(draft_path_raw).expanduser() if draft_path_raw else None,
        openai_api_key=get("OPENAI_API_KEY"),
        openai_chat_enabled=truthy_str(get("OPENAI_CHAT_ENABLED")),
        openai_chat_model=get("OPENAI_CHAT_MODEL") or DEFAULT_CHAT_MODEL,
        log_level=(get("LOG_LEVEL") or "INFO").upper(),
        log_json=truthy_str(get("LOG_JSON")),
    )


def export_openai_env(settings: Settings) -> None:
    """
    Mirror the OpenAI settings into environment variables.

    This keeps `ai_intent.py` Streamlit-free while still letting secrets control it.
    """
    if settings.openai_api_key:
        os.environ["OPENAI_API_KEY"] = settings.openai_api_key
    os.environ["OPENAI_CHAT_ENABLED"] = "true" if settings.openai_chat_enabled else "false"
    os.environ["OPENAI_CHAT_MODEL"] = settings.openai_chat_model
