from __future__ import annotations

import copy
import logging
from dataclasses import dataclass
from datetime import date
from typing import Any, Iterable, Mapping, Optional, Tuple

from draft_store import DraftStore
from form_validation import validate_field
from notifications import AnalyticsTracker, Notifier
from quote_draft import (
    FIELD_RULES,
    FIRST_STEP,
    LAST_STEP,
    MATERIALS,
    PROJECT_TYPES,
    TIMELINE_OPTIONS,
    QuoteDraft,
    QuoteWizardError,
)
from quote_estimate import QuoteEstimate, estimate_from_draft
from quote_submission import QuoteSubmissionAdapter, SubmissionResult


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WizardStep:
    number: int
    key: str
    title: str
    fields: Tuple[str, ...]


WIZARD_STEPS: Tuple[WizardStep, ...] = (
    WizardStep(1, "contact", "Contactgegevens", ("name", "email", "phone", "address")),
    WizardStep(2, "project", "Projecttype", ("project_types",)),
    WizardStep(3, "preferences", "Voorkeuren", ("material", "color")),
    WizardStep(4, "details", "Projectdetails", ("notes",)),
    WizardStep(5, "timeline", "Planning", ("preferred", "date")),
    WizardStep(6, "summary", "Overzicht", ("terms_accepted",)),
)

PROJECT_TYPE_REQUIRED_MESSAGE = "Selecteer minimaal één projecttype"
TERMS_REQUIRED_MESSAGE = "U moet akkoord gaan met de privacyvoorwaarden"
SUBMIT_SUCCESS_MESSAGE = (
    "Uw offerte aanvraag is succesvol verstuurd! We nemen zo snel mogelijk contact met u op."
)
SUBMIT_FAILURE_MESSAGE = (
    "Er is een fout opgetreden bij het versturen van uw aanvraag. Probeer het later opnieuw."
)

# Validated on every keystroke, not only when leaving the step.
_REALTIME_FIELDS = frozenset({"email", "phone"})
_PREFILL_FIELDS = ("name", "email", "phone", "material")


@dataclass(frozen=True)
class SummaryItem:
    label: str
    value: str


@dataclass(frozen=True)
class SubmittedQuote:
    draft: QuoteDraft
    result: SubmissionResult


def step_for(number: int) -> WizardStep:
    return WIZARD_STEPS[number - 1]


def build_summary(draft: QuoteDraft) -> list[SummaryItem]:
    """
    Read-only overview of everything filled in so far; empty fields are left out.
    """
    project_labels = [PROJECT_TYPES[t] for t in sorted(draft.project_types) if t in PROJECT_TYPES]
    items = [
        SummaryItem("Naam", draft.contact.name),
        SummaryItem("E-mail", draft.contact.email),
        SummaryItem("Telefoon", draft.contact.phone),
        SummaryItem("Adres", draft.contact.address),
        SummaryItem("Project type(s)", ", ".join(project_labels)),
        SummaryItem("Materiaal voorkeur", MATERIALS.get(draft.preferences.material, draft.preferences.material)),
        SummaryItem("Kleur", draft.preferences.color),
        SummaryItem("Project beschrijving", draft.notes),
        SummaryItem("Planning", TIMELINE_OPTIONS.get(draft.timeline.preferred, draft.timeline.preferred)),
        SummaryItem("Voorkeursdatum", draft.timeline.date),
    ]
    return [SummaryItem(i.label, i.value.strip()) for i in items if (i.value or "").strip()]


class QuoteWizard:
    """
    Six-step quote request state machine.

    UI-agnostic: widgets (or tests) call the transition methods; the wizard validates,
    persists every mutation through the injected `DraftStore`, and reports side effects
    through the notifier / analytics tracker. Side-channel failures never affect the flow.
    """

    def __init__(
        self,
        *,
        store: DraftStore,
        submitter: QuoteSubmissionAdapter,
        notifier: Optional[Notifier] = None,
        analytics: Optional[AnalyticsTracker] = None,
    ) -> None:
        self._store = store
        self._submitter = submitter
        self._notifier = notifier
        self._analytics = analytics
        self.errors: dict[str, str] = {}
        self.is_open = False
        self.is_submitting = False
        self.last_submission: Optional[SubmittedQuote] = None
        self.draft = self._restore()

    # -- state ---------------------------------------------------------------------

    @property
    def current_step(self) -> int:
        return self.draft.current_step

    @property
    def step(self) -> WizardStep:
        return step_for(self.current_step)

    @property
    def total_steps(self) -> int:
        return LAST_STEP

    @property
    def progress(self) -> float:
        return self.current_step / LAST_STEP

    @property
    def progress_label(self) -> str:
        return f"Stap {self.current_step} van {LAST_STEP}"

    @property
    def can_go_back(self) -> bool:
        return self.current_step > FIRST_STEP

    @property
    def shows_summary(self) -> bool:
        return self.current_step == LAST_STEP

    def summary(self) -> list[SummaryItem]:
        return build_summary(self.draft)

    def estimate(self, on: Optional[date] = None) -> Optional[QuoteEstimate]:
        """Indicative price for the summary step; None until it can be priced."""
        return estimate_from_draft(self.draft, on=on)

    # -- modal ---------------------------------------------------------------------

    def open(self) -> None:
        self.is_open = True
        self._track("quote_modal_opened", {"step": self.current_step})

    def close(self) -> None:
        # The draft stays in storage so the next open resumes where the user left off.
        self.is_open = False
        self._track("quote_modal_closed", {"step": self.current_step})

    # -- field mutations -----------------------------------------------------------

    def set_field(self, name: str, value: object) -> None:
        if name not in FIELD_RULES:
            raise QuoteWizardError(f"unknown wizard field {name!r}")
        self.draft.set_value(name, value)
        self._persist()

        if name in _REALTIME_FIELDS or name in self.errors:
            message = self._field_error(name)
            if message:
                self.errors[name] = message
            else:
                self.errors.pop(name, None)

    def toggle_project_type(self, tag: str) -> None:
        if tag not in PROJECT_TYPES:
            raise QuoteWizardError(f"unknown project type {tag!r}")
        if tag in self.draft.project_types:
            self.draft.project_types.discard(tag)
        else:
            self.draft.project_types.add(tag)
        self._after_project_types_change()

    def set_project_types(self, tags: Iterable[str]) -> None:
        selected = set(tags)
        unknown = selected - set(PROJECT_TYPES)
        if unknown:
            raise QuoteWizardError(f"unknown project type(s) {sorted(unknown)!r}")
        self.draft.project_types = selected
        self._after_project_types_change()

    def apply_prefill(self, prefill: Mapping[str, Any]) -> list[str]:
        """
        Fill in values the chat assistant picked up, without overwriting anything the
        user typed already. Returns the names of the fields that changed.
        """
        applied: list[str] = []
        for name in _PREFILL_FIELDS:
            value = str(prefill.get(name) or "").strip()
            if not value or str(self.draft.get_value(name) or "").strip():
                continue
            if not validate_field(FIELD_RULES[name], value).valid:
                continue
            self.draft.set_value(name, value)
            applied.append(name)

        tags = [t for t in (prefill.get("project_types") or ()) if t in PROJECT_TYPES]
        new_tags = set(tags) - self.draft.project_types
        if new_tags:
            self.draft.project_types |= new_tags
            applied.append("project_types")

        if applied:
            self._persist()
            self._track("quote_prefilled", {"fields": applied})
        return applied

    # -- transitions ---------------------------------------------------------------

    def validate_step(self, number: Optional[int] = None) -> bool:
        step = step_for(number or self.current_step)
        errors: dict[str, str] = {}
        for name in step.fields:
            message = self._field_error(name)
            if message:
                errors[name] = message
        self.errors = errors
        return not errors

    def next_step(self) -> bool:
        if not self.validate_step():
            return False
        completed = self.current_step
        self.draft.current_step = min(LAST_STEP, completed + 1)
        self._persist()
        self._track("quote_step_completed", {"step": completed})
        return True

    def prev_step(self) -> None:
        self.errors = {}
        self.draft.current_step = max(FIRST_STEP, self.current_step - 1)
        self._persist()

    def submit(self) -> Optional[SubmissionResult]:
        """
        Send the request. Returns None when the submit is refused (not on the last step,
        validation failed, or a submission is already in flight).
        """
        if self.is_submitting or self.current_step != LAST_STEP:
            return None
        if not self.validate_step():
            return None

        self._persist()
        self.is_submitting = True
        try:
            result = self._submitter.submit(self.draft)
        except Exception as exc:
            logger.exception("Quote submission adapter raised")
            result = SubmissionResult(success=False, error=str(exc))
        finally:
            self.is_submitting = False

        if not result.success:
            self._notify("error", SUBMIT_FAILURE_MESSAGE)
            self._track("quote_submission_failed", {"error": result.error or ""})
            return result

        submitted = copy.deepcopy(self.draft)
        self.last_submission = SubmittedQuote(draft=submitted, result=result)
        self._notify("success", SUBMIT_SUCCESS_MESSAGE)
        self.close()
        self.reset()
        self._track(
            "quote_submitted",
            {
                "project_types": sorted(submitted.project_types),
                "material": submitted.preferences.material,
            },
        )
        return result

    def reset(self) -> None:
        self.draft = QuoteDraft()
        self.errors = {}
        self._store.clear()

    # -- internals -----------------------------------------------------------------

    def _restore(self) -> QuoteDraft:
        try:
            stored = self._store.load()
        except Exception:
            logger.warning("Draft store failed to load; starting with an empty draft", exc_info=True)
            stored = None
        return stored if stored is not None else QuoteDraft()

    def _persist(self) -> None:
        try:
            self._store.save(self.draft)
        except Exception:
            logger.warning("Draft store failed to save", exc_info=True)

    def _after_project_types_change(self) -> None:
        self._persist()
        if self.draft.project_types:
            self.errors.pop("project_types", None)

    def _field_error(self, name: str) -> Optional[str]:
        if name == "project_types":
            return None if self.draft.project_types else PROJECT_TYPE_REQUIRED_MESSAGE
        result = validate_field(FIELD_RULES[name], self.draft.get_value(name))
        if result.valid:
            return None
        if name == "terms_accepted":
            return TERMS_REQUIRED_MESSAGE
        return result.message

    def _track(self, event_type: str, data: Mapping[str, Any]) -> None:
        if self._analytics is None:
            return
        try:
            self._analytics.track(event_type, data)
        except Exception:
            logger.warning("Analytics tracking failed for %s", event_type, exc_info=True)

    def _notify(self, kind: str, message: str) -> None:
        if self._notifier is None:
            return
        try:
            self._notifier.push(kind, message)  # type: ignore[arg-type]
        except Exception:
            logger.warning("Could not show %s notification", kind, exc_info=True)
