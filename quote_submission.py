from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional, Protocol

import httpx

from quote_draft import QuoteDraft


logger = logging.getLogger(__name__)

QUOTES_PATH = "/api/quotes"
SUBMISSION_SOURCE = "website"
UNSPECIFIED_PROJECT_TYPE = "Niet gespecificeerd"
DEFAULT_SUBMISSION_ERROR = "Er is een fout opgetreden"


@dataclass(frozen=True)
class SubmissionResult:
    success: bool
    id: Optional[str] = None
    error: Optional[str] = None
    status_code: int = 0


class QuoteSubmissionAdapter(Protocol):
    def submit(self, draft: QuoteDraft) -> SubmissionResult: ...


def build_quote_payload(draft: QuoteDraft, *, now: Optional[datetime] = None) -> dict[str, Any]:
    """
    Map a draft to the body `POST /api/quotes` expects.
    """
    ts = (now or datetime.now(timezone.utc)).isoformat()
    project_type = ", ".join(sorted(draft.project_types)) or UNSPECIFIED_PROJECT_TYPE
    return {
        "klantNaam": draft.contact.name.strip(),
        "email": draft.contact.email.strip(),
        "telefoon": draft.contact.phone.strip(),
        "projectType": project_type,
        "opmerkingen": draft.notes.strip(),
        "voorkeuren": {
            "material": draft.preferences.material,
            "color": draft.preferences.color.strip(),
            "timeline": draft.timeline.preferred,
            "preferredDate": draft.timeline.date,
        },
        "timestamp": ts,
        "source": SUBMISSION_SOURCE,
    }


class QuoteSubmitter:
    """
    Performs the single network call that turns a finished draft into a quote request.

    No retries. Every failure mode (transport error, non-2xx, `success: false`, unparseable
    body) comes back as `SubmissionResult(success=False, error=...)`; `submit` never raises.
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout_s: Optional[float] = 10.0,
        client: Optional[httpx.Client] = None,
    ) -> None:
        self._url = base_url.rstrip("/") + QUOTES_PATH
        self._owns_client = client is None
        self._client = client if client is not None else httpx.Client(timeout=timeout_s)

    def submit(self, draft: QuoteDraft) -> SubmissionResult:
        payload = build_quote_payload(draft)
        try:
            resp = self._client.post(self._url, json=payload)
        except httpx.HTTPError as exc:
            logger.error("Quote submission failed: %s", exc)
            return SubmissionResult(success=False, error=str(exc) or DEFAULT_SUBMISSION_ERROR)

        body = _json_body(resp)
        if not resp.is_success:
            error = _error_from_body(body) or f"HTTP {resp.status_code}"
            logger.error("Quote submission rejected (HTTP %s): %s", resp.status_code, error)
            return SubmissionResult(success=False, error=error, status_code=resp.status_code)

        if body is None or body.get("success") is not True:
            error = _error_from_body(body) or DEFAULT_SUBMISSION_ERROR
            logger.error("Quote submission unsuccessful: %s", error)
            return SubmissionResult(success=False, error=error, status_code=resp.status_code)

        quote_id = body.get("id")
        logger.info("Quote request submitted (id=%s)", quote_id)
        return SubmissionResult(
            success=True,
            id=str(quote_id) if quote_id is not None else None,
            status_code=resp.status_code,
        )

    def close(self) -> None:
        if self._owns_client:
            self._client.close()


def _json_body(resp: httpx.Response) -> Optional[dict[str, Any]]:
    try:
        body = resp.json()
    except ValueError:
        return None
    return body if isinstance(body, dict) else None


def _error_from_body(body: Optional[dict[str, Any]]) -> Optional[str]:
    if not body:
        return None
    error = body.get("error")
    if isinstance(error, str) and error.strip():
        return error.strip()
    return None
