from __future__ import annotations

"""
Smoke test for the quote wizard (local, offline).

This script simulates a user clicking through the six wizard steps against an in-memory
draft store and a mocked `/api/quotes` backend (httpx.MockTransport), then:
- checks that a validation failure blocks the step
- submits the request and checks the draft is cleared
- writes the confirmation PDF (quote_pdf)

It writes PDFs to `out/smoke_test_wizard/` and exits non-zero if anything breaks.

Usage:
  python3 scripts/smoke_test_wizard.py
  python3 scripts/smoke_test_wizard.py --out-dir out/smoke_test_wizard --fail-submit
"""

import argparse
import json
import sys
import traceback
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Callable, Optional

# Allow running as `python3 scripts/smoke_test_wizard.py` (module imports live at repo root).
_ROOT = Path(__file__).resolve().parents[1]
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

import httpx

from draft_store import InMemoryDraftStore
from logging_config import setup_logging
from notifications import AnalyticsTracker, Notifier
from quote_estimate import format_eur
from quote_pdf import build_request_artifact, make_quote_request_pdf_bytes
from quote_submission import QuoteSubmitter
from quote_wizard import QuoteWizard


_BASE_URL = "http://smoke.invalid"


def _repo_root() -> Path:
    return Path(__file__).resolve().parents[1]


def _mock_backend(*, fail_submit: bool, seen: list[dict]) -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content or b"{}")
        seen.append({"path": request.url.path, "body": body})
        if request.url.path == "/api/quotes":
            if fail_submit:
                return httpx.Response(500, json={"success": False, "error": "smoke failure"})
            return httpx.Response(201, json={"success": True, "id": "SMOKE-1"})
        return httpx.Response(204)

    return httpx.MockTransport(handler)


@dataclass(frozen=True)
class Step:
    label: str
    apply: Callable[[QuoteWizard], object]
    expect: object = True


def _run_steps(name: str, wizard: QuoteWizard, steps: list[Step]) -> None:
    print("")
    print("=" * 72)
    print(f"SCENARIO: {name}")
    print("=" * 72)
    for i, step in enumerate(steps, start=1):
        outcome = step.apply(wizard)
        print(f"[{i}/{len(steps)}] {step.label}")
        print(f"  - {wizard.progress_label}  errors: {dict(wizard.errors) or '-'}")
        if outcome != step.expect:
            raise AssertionError(f"{step.label}: expected {step.expect!r}, got {outcome!r}")


def _fill(**values: object) -> Callable[[QuoteWizard], object]:
    def _apply(w: QuoteWizard) -> object:
        for name, value in values.items():
            w.set_field(name, value)
        return w.next_step()

    return _apply


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser()
    parser.add_argument(
        "--out-dir",
        default=str(_repo_root() / "out" / "smoke_test_wizard"),
        help="Directory to write PDFs into (default: out/smoke_test_wizard).",
    )
    parser.add_argument(
        "--fail-submit",
        action="store_true",
        help="Make the mocked backend reject the submission.",
    )
    args = parser.parse_args(argv)
    setup_logging(level="WARNING")

    out_dir = Path(args.out_dir).resolve()
    out_dir.mkdir(parents=True, exist_ok=True)

    seen: list[dict] = []
    client = httpx.Client(transport=_mock_backend(fail_submit=args.fail_submit, seen=seen))
    store = InMemoryDraftStore()
    notifier = Notifier()
    wizard = QuoteWizard(
        store=store,
        submitter=QuoteSubmitter(_BASE_URL, client=client),
        notifier=notifier,
        analytics=AnalyticsTracker(_BASE_URL, client=client),
    )
    wizard.open()

    steps = [
        Step(label="contact_missing_email", apply=_fill(name="Jan Jansen", phone="+32 477 12 34 56"), expect=False),
        Step(label="contact", apply=_fill(email="jan@example.com", address="Kerkstraat 1, Antwerpen")),
        Step(label="project_types", apply=lambda w: (w.set_project_types(["ramen", "deuren"]), w.next_step())[1]),
        Step(label="preferences", apply=_fill(material="kunststof", color="antraciet")),
        Step(label="details", apply=_fill(notes="Vier ramen vervangen, 120x140 cm, HR++ glas.")),
        Step(label="timeline", apply=_fill(preferred="1-3-maanden", date="2026-12-01")),
        Step(label="accept_terms", apply=lambda w: w.set_field("terms_accepted", True), expect=None),
    ]
    _run_steps("happy path", wizard, steps)

    result = wizard.submit()
    if result is None:
        raise AssertionError(f"submit refused: {wizard.errors}")
    print(f"  - submit: success={result.success} id={result.id} error={result.error}")
    for n in notifier.active():
        print(f"  - notification [{n.kind}]: {n.message}")

    if args.fail_submit:
        if result.success or wizard.draft.is_empty():
            raise AssertionError("failed submission must keep the draft")
        print("")
        print("OK: failed submission kept the draft")
        return 0

    if not result.success or not wizard.draft.is_empty() or store.raw is not None:
        raise AssertionError("successful submission must clear the draft")
    submitted = wizard.last_submission
    assert submitted is not None
    artifact = build_request_artifact(submitted.draft, request_id=result.id, request_date=date.today())
    pdf_path = out_dir / f"offerteaanvraag-{result.id}.pdf"
    pdf_path.write_bytes(make_quote_request_pdf_bytes(artifact))
    if artifact.estimate is not None:
        print(f"  - indicative price: {format_eur(artifact.estimate.total_cents)} incl. btw")
    print(f"  - pdf: {pdf_path.name}")
    print(f"  - backend calls: {', '.join(str(c['path']) for c in seen)}")

    print("")
    print(f"OK: wrote PDFs to {out_dir}")
    return 0


if __name__ == "__main__":
    try:
        raise SystemExit(main())
    except SystemExit:
        raise
    except Exception:
        traceback.print_exc()
        raise SystemExit(1)
