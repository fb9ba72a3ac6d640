from __future__ import annotations

import itertools
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Literal, Mapping, Optional

import httpx


logger = logging.getLogger(__name__)

NotificationKind = Literal["success", "error", "info"]

NOTIFICATION_TTL_MS = 5000
ANALYTICS_EVENT_PATH = "/api/analytics/event"


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class Notification:
    id: int
    kind: NotificationKind
    message: str
    created_at_ms: int
    ttl_ms: int = NOTIFICATION_TTL_MS
    dismissible: bool = True

    def expired(self, now_ms: int) -> bool:
        return now_ms >= self.created_at_ms + self.ttl_ms


class Notifier:
    """
    Transient user-facing notifications (toasts / banners).

    Pure in-memory bookkeeping: the UI layer decides how to draw them and calls
    `dismiss` when the user closes one.
    """

    def __init__(self, *, clock: Callable[[], int] = _now_ms, ttl_ms: int = NOTIFICATION_TTL_MS) -> None:
        self._clock = clock
        self._ttl_ms = ttl_ms
        self._ids = itertools.count(1)
        self._items: list[Notification] = []

    def push(self, kind: NotificationKind, message: str) -> Optional[Notification]:
        clean = (message or "").strip()
        if not clean:
            return None
        item = Notification(
            id=next(self._ids),
            kind=kind,
            message=clean,
            created_at_ms=self._clock(),
            ttl_ms=self._ttl_ms,
        )
        self._items.append(item)
        return item

    def success(self, message: str) -> Optional[Notification]:
        return self.push("success", message)

    def error(self, message: str) -> Optional[Notification]:
        return self.push("error", message)

    def info(self, message: str) -> Optional[Notification]:
        return self.push("info", message)

    def dismiss(self, notification_id: int) -> None:
        self._items = [n for n in self._items if n.id != notification_id]

    def active(self) -> list[Notification]:
        now = self._clock()
        self._items = [n for n in self._items if not n.expired(now)]
        return list(self._items)


class AnalyticsTracker:
    """
    Fire-and-forget event logging to the site's analytics endpoint.

    `track` never raises: transport errors and non-2xx responses are logged and dropped.
    """

    def __init__(
        self,
        base_url: str,
        *,
        enabled: bool = True,
        timeout_s: Optional[float] = 5.0,
        client: Optional[httpx.Client] = None,
    ) -> None:
        self.enabled = bool(enabled)
        self._url = base_url.rstrip("/") + ANALYTICS_EVENT_PATH
        self._owns_client = client is None
        self._client = client if client is not None else httpx.Client(timeout=timeout_s)

    def track(self, event_type: str, data: Optional[Mapping[str, Any]] = None) -> bool:
        payload = {"eventType": event_type, "eventData": dict(data or {})}
        logger.debug("analytics event %s %s", event_type, payload["eventData"])
        if not self.enabled:
            return False
        try:
            resp = self._client.post(self._url, json=payload)
        except Exception as exc:
            logger.warning("Analytics tracking failed for %s: %s", event_type, exc)
            return False
        if not resp.is_success:
            logger.warning("Analytics endpoint returned HTTP %s for %s", resp.status_code, event_type)
            return False
        return True

    def close(self) -> None:
        if self._owns_client:
            self._client.close()
