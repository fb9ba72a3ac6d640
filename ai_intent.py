from __future__ import annotations

import json
import logging
import os
import re
from dataclasses import dataclass
from typing import Any, Optional, Sequence

from openai import OpenAI


logger = logging.getLogger(__name__)

CHAT_INTENTS: tuple[str, ...] = (
    "offerte_aanvragen",
    "informatie_producten",
    "informatie_diensten",
    "contact",
    "garantie",
    "proces",
    "technisch",
    "afspraak_maken",
    "algemeen",
)


@dataclass(frozen=True)
class AiChatResult:
    intent: str
    confidence: float
    reply: str
    raw_json: Optional[dict[str, Any]] = None


def _truthy_env(name: str) -> bool:
    return str(os.getenv(name, "")).strip().lower() in {"1", "true", "yes", "y", "on"}


def ai_chat_enabled() -> bool:
    """
    Whether the chat assistant may ask OpenAI for free-form questions.

    Env-driven so the site runs without an API key by default.
    """
    if not _truthy_env("OPENAI_CHAT_ENABLED"):
        return False
    return bool(str(os.getenv("OPENAI_API_KEY", "")).strip())


def ai_chat_model() -> str:
    return str(os.getenv("OPENAI_CHAT_MODEL", "")).strip() or "gpt-5-mini"


_JSON_OBJECT_RE = re.compile(r"\{.*\}", re.DOTALL)


def _extract_json_object(text: str) -> Optional[dict[str, Any]]:
    """
    Extract and parse the first JSON object found in a string.
    """
    t = (text or "").strip()
    if not t:
        return None
    if t.startswith("{") and t.endswith("}"):
        try:
            payload = json.loads(t)
        except ValueError:
            payload = None
        if isinstance(payload, dict):
            return payload

    m = _JSON_OBJECT_RE.search(t)
    if not m:
        return None
    try:
        payload = json.loads(m.group(0))
    except ValueError:
        return None
    return payload if isinstance(payload, dict) else None


def _clamp_float(value: Any, lo: float, hi: float) -> float:
    try:
        f = float(value)
    except (TypeError, ValueError):
        return lo
    if f != f:  # NaN
        return lo
    return max(lo, min(hi, f))


def _build_chat_prompt(*, user_text: str, history: Sequence[dict[str, str]]) -> tuple[str, str]:
    system = (
        "You are the website assistant of Yannova Ramen en Deuren, a windows-and-doors contractor.\n"
        "Answer in Dutch, short and professional. Never quote exact prices; refer to a free quote.\n"
        "You MUST output ONLY a single JSON object (no markdown, no commentary).\n"
    )
    contract = {
        "type": "object",
        "required": ["intent", "confidence", "reply"],
        "properties": {
            "intent": {"type": "string", "enum": list(CHAT_INTENTS)},
            "confidence": {"type": "number"},
            "reply": {"type": "string"},
        },
    }
    recent = [f"{m.get('role')}: {m.get('content')}" for m in list(history)[-5:]]
    user = (
        "Recent conversation:\n"
        + ("\n".join(recent) or "(none)")
        + f"\n\nUSER_TEXT={user_text}\n\n"
        + "Return JSON with shape:\n"
        + json.dumps(contract, indent=2)
    )
    return system, user


def recognize_chat_intent(
    *,
    user_text: str,
    history: Sequence[dict[str, str]] = (),
    timeout_s: float = 6.0,
) -> Optional[AiChatResult]:
    """
    Ask GPT for an intent + reply to a chat message the keyword rules could not place.

    Returns None when AI is disabled or the response is unusable; the caller then falls
    back to its canned answer.
    """
    if not ai_chat_enabled():
        return None

    system, user = _build_chat_prompt(user_text=user_text, history=history)
    try:
        client = OpenAI(api_key=str(os.getenv("OPENAI_API_KEY", "")).strip(), timeout=timeout_s)
        resp = client.responses.create(
            model=ai_chat_model(),
            input=[
                {"role": "system", "content": system},
                {"role": "user", "content": user},
            ],
        )
        text = (resp.output_text or "").strip()
    except Exception as exc:
        logger.warning("OpenAI chat fallback failed: %s", exc)
        return None

    payload = _extract_json_object(text)
    if payload is None:
        return None

    intent = str(payload.get("intent") or "").strip()
    reply = payload.get("reply")
    if intent not in CHAT_INTENTS or not isinstance(reply, str) or not reply.strip():
        return None

    return AiChatResult(
        intent=intent,
        confidence=_clamp_float(payload.get("confidence"), 0.0, 1.0),
        reply=reply.strip(),
        raw_json=payload,
    )
