from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import MutableMapping, Optional, Protocol

from quote_draft import QuoteDraft


logger = logging.getLogger(__name__)

DRAFT_STORAGE_KEY = "yannova_quote_data"


class DraftStore(Protocol):
    def load(self) -> Optional[QuoteDraft]: ...

    def save(self, draft: QuoteDraft) -> None: ...

    def clear(self) -> None: ...


class _JsonDraftStore:
    """
    Shared JSON handling for single-key draft stores.

    Storage problems (unreadable, corrupt, quota/permission errors) are logged and treated
    as "no draft"; they never propagate to the wizard.
    """

    def _read_raw(self) -> Optional[str]:
        raise NotImplementedError

    def _write_raw(self, raw: str) -> None:
        raise NotImplementedError

    def _delete_raw(self) -> None:
        raise NotImplementedError

    def load(self) -> Optional[QuoteDraft]:
        try:
            raw = self._read_raw()
        except (OSError, UnicodeDecodeError) as exc:
            logger.warning("Could not read saved quote draft: %s", exc)
            return None
        if not raw:
            return None
        try:
            payload = json.loads(raw)
        except ValueError as exc:
            logger.warning("Discarding unreadable quote draft: %s", exc)
            return None
        if not isinstance(payload, dict):
            logger.warning("Discarding quote draft with unexpected shape: %s", type(payload).__name__)
            return None
        return QuoteDraft.from_dict(payload)

    def save(self, draft: QuoteDraft) -> None:
        try:
            self._write_raw(json.dumps(draft.to_dict(), ensure_ascii=False))
        except (OSError, TypeError, ValueError) as exc:
            logger.warning("Could not save quote draft: %s", exc)

    def clear(self) -> None:
        try:
            self._delete_raw()
        except OSError as exc:
            logger.warning("Could not clear saved quote draft: %s", exc)


class InMemoryDraftStore(_JsonDraftStore):
    def __init__(self, raw: Optional[str] = None) -> None:
        self.raw = raw
        self.save_count = 0

    def _read_raw(self) -> Optional[str]:
        return self.raw

    def _write_raw(self, raw: str) -> None:
        self.raw = raw
        self.save_count += 1

    def _delete_raw(self) -> None:
        self.raw = None


class SessionStateDraftStore(_JsonDraftStore):
    """
    Keep the draft under one key of a per-browser-session mapping (e.g. `st.session_state`).

    This is the Streamlit counterpart of the site's local-storage key: it survives closing
    and reopening the wizard within the same session.
    """

    def __init__(self, state: MutableMapping[str, object], key: str = DRAFT_STORAGE_KEY) -> None:
        self._state = state
        self._key = key

    def _read_raw(self) -> Optional[str]:
        raw = self._state.get(self._key)
        return raw if isinstance(raw, str) else None

    def _write_raw(self, raw: str) -> None:
        self._state[self._key] = raw

    def _delete_raw(self) -> None:
        self._state.pop(self._key, None)


class JsonFileDraftStore(_JsonDraftStore):
    """
    Draft persisted to a JSON file, overwritten wholesale on every change.

    Useful for a single-user kiosk setup where the draft should survive restarts.
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def _read_raw(self) -> Optional[str]:
        if not self.path.exists():
            return None
        return self.path.read_text(encoding="utf-8")

    def _write_raw(self, raw: str) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_text(raw, encoding="utf-8")
        tmp.replace(self.path)

    def _delete_raw(self) -> None:
        if self.path.exists():
            self.path.unlink()
