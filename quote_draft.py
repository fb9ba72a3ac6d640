from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Set, Tuple

from form_validation import NAME_MIN_LENGTH, NOTES_MAX_LENGTH, NOTES_MIN_LENGTH, FieldKind, FieldRule


FIRST_STEP = 1
LAST_STEP = 6

# tag -> display label
PROJECT_TYPES: Dict[str, str] = {
    "ramen": "Ramen",
    "deuren": "Deuren",
    "schuifdeuren": "Schuifdeuren",
    "garagedeuren": "Garagedeuren",
    "renovatie": "Renovatie",
}

MATERIALS: Dict[str, str] = {
    "kunststof": "Kunststof",
    "aluminium": "Aluminium",
    "hout": "Hout",
}

TIMELINE_OPTIONS: Dict[str, str] = {
    "zo-snel-mogelijk": "Zo snel mogelijk",
    "1-3-maanden": "Binnen 1-3 maanden",
    "3-6-maanden": "Binnen 3-6 maanden",
    "flexibel": "Flexibel",
}


class QuoteWizardError(ValueError):
    pass


FIELD_RULES: Dict[str, FieldRule] = {
    "name": FieldRule("name", "Naam", FieldKind.TEXT, required=True, min_length=NAME_MIN_LENGTH),
    "email": FieldRule("email", "Email", FieldKind.EMAIL, required=True),
    "phone": FieldRule("phone", "Telefoon", FieldKind.TEL, required=True),
    "address": FieldRule("address", "Adres", FieldKind.TEXT),
    "material": FieldRule(
        "material", "Materiaal", FieldKind.CHOICE, required=True, choices=tuple(MATERIALS.keys())
    ),
    "color": FieldRule("color", "Kleur", FieldKind.TEXT),
    "notes": FieldRule(
        "notes",
        "Projectbeschrijving",
        FieldKind.TEXTAREA,
        required=True,
        min_length=NOTES_MIN_LENGTH,
        max_length=NOTES_MAX_LENGTH,
    ),
    "preferred": FieldRule(
        "preferred", "Planning", FieldKind.CHOICE, required=True, choices=tuple(TIMELINE_OPTIONS.keys())
    ),
    "date": FieldRule("date", "Voorkeursdatum", FieldKind.DATE),
    "terms_accepted": FieldRule("terms_accepted", "Akkoord met de privacyvoorwaarden", FieldKind.CHECKBOX, required=True),
}

# field name -> (section attribute, attribute on that section)
_FIELD_PATHS: Dict[str, Tuple[str, str]] = {
    "name": ("contact", "name"),
    "email": ("contact", "email"),
    "phone": ("contact", "phone"),
    "address": ("contact", "address"),
    "material": ("preferences", "material"),
    "color": ("preferences", "color"),
    "preferred": ("timeline", "preferred"),
    "date": ("timeline", "date"),
    "terms_accepted": ("timeline", "terms_accepted"),
}


@dataclass
class ContactInfo:
    name: str = ""
    email: str = ""
    phone: str = ""
    address: str = ""


@dataclass
class Preferences:
    material: str = ""
    color: str = ""


@dataclass
class Timeline:
    preferred: str = ""
    date: str = ""
    terms_accepted: bool = False


@dataclass
class QuoteDraft:
    contact: ContactInfo = field(default_factory=ContactInfo)
    project_types: Set[str] = field(default_factory=set)
    preferences: Preferences = field(default_factory=Preferences)
    notes: str = ""
    timeline: Timeline = field(default_factory=Timeline)
    current_step: int = FIRST_STEP

    def get_value(self, name: str) -> object:
        if name == "notes":
            return self.notes
        if name == "project_types":
            return set(self.project_types)
        path = _FIELD_PATHS.get(name)
        if path is None:
            raise QuoteWizardError(f"unknown draft field {name!r}")
        section, attr = path
        return getattr(getattr(self, section), attr)

    def set_value(self, name: str, value: object) -> None:
        if name == "notes":
            self.notes = str(value or "")
            return
        path = _FIELD_PATHS.get(name)
        if path is None:
            raise QuoteWizardError(f"unknown draft field {name!r}")
        section, attr = path
        coerced: object = value is True if name == "terms_accepted" else str(value or "")
        setattr(getattr(self, section), attr, coerced)

    def is_empty(self) -> bool:
        return self == QuoteDraft()

    def to_dict(self) -> dict[str, Any]:
        """
        Serialize to the storage shape used by the site's quote modal.

        Keys mirror the browser draft so a stored draft reads the same from either side.
        """
        return {
            "contact": {
                "name": self.contact.name,
                "email": self.contact.email,
                "phone": self.contact.phone,
                "address": self.contact.address,
            },
            "project": {"types": sorted(self.project_types)},
            "preferences": {
                "material": self.preferences.material,
                "color": self.preferences.color,
            },
            "measurements": {"notes": self.notes},
            "timeline": {
                "preferred": self.timeline.preferred,
                "date": self.timeline.date,
                "terms": bool(self.timeline.terms_accepted),
            },
            "currentStep": int(self.current_step),
        }

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "QuoteDraft":
        """
        Best-effort restore of a stored draft.

        Missing sections become empty values; unknown project tags are dropped and the step
        is clamped into range. Old or partial drafts never raise.
        """
        contact = _section(raw, "contact")
        project = _section(raw, "project")
        prefs = _section(raw, "preferences")
        measurements = _section(raw, "measurements")
        timeline = _section(raw, "timeline")

        types_raw = project.get("types")
        types: Set[str] = set()
        if isinstance(types_raw, (list, tuple, set)):
            types = {str(t) for t in types_raw if str(t) in PROJECT_TYPES}

        material = _str(prefs.get("material"))
        if material not in MATERIALS:
            material = ""

        return cls(
            contact=ContactInfo(
                name=_str(contact.get("name")),
                email=_str(contact.get("email")),
                phone=_str(contact.get("phone")),
                address=_str(contact.get("address")),
            ),
            project_types=types,
            preferences=Preferences(material=material, color=_str(prefs.get("color"))),
            notes=_str(measurements.get("notes")),
            timeline=Timeline(
                preferred=_str(timeline.get("preferred")),
                date=_str(timeline.get("date")),
                terms_accepted=timeline.get("terms") is True,
            ),
            current_step=clamp_step(raw.get("currentStep")),
        )


def clamp_step(value: object) -> int:
    try:
        step = int(value)  # type: ignore[arg-type]
    except OverflowError:
        # +/-Infinity is valid JSON; clamp it like any other out-of-range step.
        return LAST_STEP if value > 0 else FIRST_STEP  # type: ignore[operator]
    except (TypeError, ValueError):
        return FIRST_STEP
    return max(FIRST_STEP, min(LAST_STEP, step))


def _section(raw: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    value = raw.get(key)
    return value if isinstance(value, Mapping) else {}


def _str(value: Optional[object]) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)
