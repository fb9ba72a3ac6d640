from __future__ import annotations

import logging
import re
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Literal, Optional, TypedDict

import ai_intent
from form_validation import is_valid_email, is_valid_phone
from notifications import AnalyticsTracker


logger = logging.getLogger(__name__)

# Checked in order; the first group with a matching keyword wins.
INTENT_KEYWORDS: dict[str, tuple[str, ...]] = {
    "offerte_aanvragen": ("offerte", "prijs", "kosten", "wat kost", "quote", "prijsopgave"),
    "informatie_producten": ("ramen", "deuren", "kunststof", "aluminium", "hout", "glas", "isolatie", "materiaal"),
    "informatie_diensten": ("plaatsing", "montage", "installatie", "service", "onderhoud", "reparatie"),
    "contact": ("contact", "telefoon", "adres", "openingstijden", "bereikbaar"),
    "garantie": ("garantie", "verzekering", "nazorg"),
    "proces": ("hoe lang", "doorlooptijd", "stappen", "proces", "wanneer"),
    "technisch": ("afmetingen", "maten", "specificaties", "technische details", "u-waarde"),
    "afspraak_maken": ("afspraak", "bezoek", "inmeten", "advies", "langskomen"),
}
FALLBACK_INTENT = "algemeen"

CATEGORY_KEYWORDS: dict[str, tuple[str, ...]] = {
    "commercieel": ("offerte", "prijs", "kosten", "koop", "bestel"),
    "technisch": ("technisch", "specificatie", "maat", "afmeting", "materiaal"),
    "service": ("service", "klantenservice", "help", "ondersteuning", "probleem"),
    "informatief": ("informatie", "weet", "vertel", "leg uit", "wat is"),
}

_POSITIVE_WORDS = ("goed", "prima", "tevreden", "fijn", "mooi", "perfect", "uitstekend")
_NEGATIVE_WORDS = ("slecht", "teleurgesteld", "probleem", "klacht", "fout", "niet tevreden")
_URGENT_WORDS = ("spoed", "dringend", "zo snel mogelijk", "direct", "meteen", "urgent")

_QUOTE_INDICATORS = (
    "ik wil graag",
    "ik ben geïnteresseerd",
    "ik heb nodig",
    "ramen vervangen",
    "deuren vervangen",
    "nieuwe ramen",
    "nieuwe deuren",
    "centimeter",
    "vierkante meter",
    "m²",
    "kunststof",
    "aluminium",
    "dubbel glas",
    "triple glas",
    "hr++",
    "isolatieglas",
    "schuifdeur",
    "schuifpui",
)

_MATERIALS = ("kunststof", "aluminium", "hout", "staal")
_GLASS_TYPES = ("enkelglas", "dubbelglas", "dubbel glas", "hr++", "triple glas", "zonwerend")

_EMAIL_IN_TEXT_RE = re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}")
_PHONE_IN_TEXT_RE = re.compile(r"(?<![\w+])\+?\d[\d\s\-()]{8,}\d")
_DIMENSIONS_RE = re.compile(r"(\d+)\s*(?:x|×|bij)\s*(\d+)", re.IGNORECASE)
_QUANTITY_RE = re.compile(r"(\d+)\s*(?:ramen|deuren|stuks|stuk)\b", re.IGNORECASE)
_CM_RE = re.compile(r"\d+\s*(?:cm|m)\b", re.IGNORECASE)

# wizard project-type tag -> pattern in free text
_PROJECT_TYPE_PATTERNS: dict[str, re.Pattern[str]] = {
    "ramen": re.compile(r"\b(?:raam|ramen)\b", re.IGNORECASE),
    "deuren": re.compile(r"\b(?:deur|deuren|voordeur|achterdeur)\b", re.IGNORECASE),
    "schuifdeuren": re.compile(r"\b(?:schuifdeur|schuifdeuren|schuifpui)\b", re.IGNORECASE),
    "garagedeuren": re.compile(r"\b(?:garagedeur|garagedeuren)\b", re.IGNORECASE),
    "renovatie": re.compile(r"\brenovatie\b", re.IGNORECASE),
}

CONTACT_PHONE = "+32 (0)477 28 10 28"
CONTACT_EMAIL = "info@yannovabouw.ai"

WELCOME_MESSAGE = (
    "Hallo! Ik ben de Yannova assistent. Ik help u graag met vragen over ramen en deuren, "
    "offertes of een afspraak."
)
QUOTE_REQUEST_RESPONSE = (
    "Ik heb uw gegevens overgenomen in het offerteformulier. "
    "Vul de ontbrekende velden aan en verstuur uw aanvraag."
)

RESPONSES: dict[str, str] = {
    "offerte_aanvragen": (
        "Ik begrijp dat u een offerte wilt aanvragen. Laat ons weten hoeveel ramen en/of deuren "
        "u nodig heeft, de afmetingen (breedte x hoogte), het gewenste materiaal (kunststof, "
        "aluminium of hout) en het type glas. U kunt ook direct het offerteformulier invullen "
        f"of bellen naar {CONTACT_PHONE}."
    ),
    "informatie_producten": (
        "Wij leveren ramen en deuren in kunststof (onderhoudsarm), aluminium (modern en duurzaam) "
        "en hout (klassiek en isolerend), met dubbelglas, HR++ of triple glas. "
        "Alle producten hebben 10 jaar garantie. Waar bent u specifiek naar op zoek?"
    ),
    "informatie_diensten": (
        "Ons team van gecertificeerde vakmensen verzorgt plaatsing, montage en onderhoud. "
        "We werken snel en netjes volgens planning."
    ),
    "contact": (
        f"U kunt ons bereiken via {CONTACT_PHONE} of {CONTACT_EMAIL}. "
        "Openingstijden: ma-vr 8:00-18:00, za 9:00-16:00, zo gesloten."
    ),
    "garantie": (
        "Wij bieden 10 jaar garantie op materialen en montage, met een servicedienst die binnen "
        "48 uur reageert. Verlengde garantie tot 15 jaar is mogelijk."
    ),
    "proces": (
        "Na een gratis adviesgesprek meten we in en ontvangt u binnen 3 dagen een offerte. "
        "Productie duurt 4-6 weken, montage 1-3 dagen. Reken op 6-8 weken van bestelling tot oplevering."
    ),
    "technisch": (
        "Voor exacte afmetingen en specificaties komen we graag vrijblijvend inmeten. "
        "Geef gerust alvast de breedte x hoogte door."
    ),
    "afspraak_maken": (
        "Graag plannen we een afspraak voor advies of inmeten bij u thuis. "
        f"Bel {CONTACT_PHONE} of laat uw gegevens achter in het offerteformulier."
    ),
    FALLBACK_INTENT: (
        "Ik help u graag verder! Ik kan u helpen met offertes, productinformatie, advies over "
        "materialen en het inplannen van een afspraak. Waar wilt u meer over weten?"
    ),
}

SUGGESTIONS: dict[str, tuple[str, ...]] = {
    "offerte_aanvragen": ("Direct offerte aanvragen", "Inmeten afspraak maken", "Showroom bezoeken"),
    "informatie_producten": ("Kunststof ramen", "Aluminium deuren", "HR++ glas"),
    "contact": ("Telefoonnummer", "Adres en route", "Afspraak maken"),
    "garantie": ("Garantievoorwaarden", "Service contract", "Onderhoudsbeurt"),
}
DEFAULT_SUGGESTIONS = ("Offerte aanvragen", "Product informatie", "Contact opnemen")

QUICK_ACTIONS: dict[str, str] = {
    "offerte": RESPONSES["offerte_aanvragen"],
    "contact": RESPONSES["contact"],
    "openingstijden": "Ma-Vr: 8:00-18:00, Za: 9:00-16:00, Zo: gesloten.",
}


@dataclass(frozen=True)
class MessageAnalysis:
    intent: str
    entities: dict[str, Any]
    sentiment: str
    urgency: str
    category: str
    quote_request: bool


@dataclass(frozen=True)
class ChatReply:
    response: str
    analysis: MessageAnalysis
    suggestions: tuple[str, ...]
    prefill: dict[str, Any] = field(default_factory=dict)
    source: Literal["rules", "ai"] = "rules"


class ChatMessage(TypedDict):
    role: Literal["assistant", "user"]
    content: str
    created_at_ms: int


def detect_intent(message: str) -> str:
    lower = (message or "").lower()
    for intent, keywords in INTENT_KEYWORDS.items():
        if any(k in lower for k in keywords):
            return intent
    return FALLBACK_INTENT


def categorize_message(message: str) -> str:
    lower = (message or "").lower()
    for category, keywords in CATEGORY_KEYWORDS.items():
        if any(k in lower for k in keywords):
            return category
    return FALLBACK_INTENT


def detect_sentiment(message: str) -> str:
    lower = (message or "").lower()
    # "niet tevreden" contains "tevreden"; negative phrases must win.
    if any(w in lower for w in _NEGATIVE_WORDS):
        return "negatief"
    if any(w in lower for w in _POSITIVE_WORDS):
        return "positief"
    return "neutraal"


def detect_urgency(message: str) -> str:
    lower = (message or "").lower()
    if any(w in lower for w in _URGENT_WORDS):
        return "hoog"
    return "normaal"


def extract_entities(message: str) -> dict[str, Any]:
    text = message or ""
    lower = text.lower()
    entities: dict[str, Any] = {}

    email = _EMAIL_IN_TEXT_RE.search(text)
    if email:
        entities["email"] = email.group(0)
        text_wo_email = text.replace(email.group(0), " ")
    else:
        text_wo_email = text

    for m in _PHONE_IN_TEXT_RE.finditer(text_wo_email):
        candidate = m.group(0).strip()
        if is_valid_phone(candidate):
            entities["telefoon"] = candidate
            break

    dims = _DIMENSIONS_RE.search(text)
    if dims:
        entities["afmetingen"] = {"breedte": int(dims.group(1)), "hoogte": int(dims.group(2))}

    material = next((m for m in _MATERIALS if m in lower), None)
    if material:
        entities["materiaal"] = material

    glass = next((g for g in _GLASS_TYPES if g in lower), None)
    if glass:
        entities["glas"] = glass

    qty = _QUANTITY_RE.search(text)
    if qty:
        entities["aantal"] = int(qty.group(1))

    project_types = sorted(tag for tag, pattern in _PROJECT_TYPE_PATTERNS.items() if pattern.search(text))
    if project_types:
        entities["project_types"] = project_types
    return entities


def is_quote_request(message: str) -> bool:
    lower = (message or "").lower()
    if any(i in lower for i in _QUOTE_INDICATORS):
        return True
    return bool(_DIMENSIONS_RE.search(lower) or _CM_RE.search(lower))


def analyze_message(message: str) -> MessageAnalysis:
    return MessageAnalysis(
        intent=detect_intent(message),
        entities=extract_entities(message),
        sentiment=detect_sentiment(message),
        urgency=detect_urgency(message),
        category=categorize_message(message),
        quote_request=is_quote_request(message),
    )


def prefill_from_entities(entities: dict[str, Any]) -> dict[str, Any]:
    """
    Translate chat entities to quote-wizard field values.
    """
    prefill: dict[str, Any] = {}
    email = str(entities.get("email") or "")
    if email and is_valid_email(email):
        prefill["email"] = email
    phone = str(entities.get("telefoon") or "")
    if phone and is_valid_phone(phone):
        prefill["phone"] = phone
    material = entities.get("materiaal")
    if material in ("kunststof", "aluminium", "hout"):
        prefill["material"] = material
    if entities.get("project_types"):
        prefill["project_types"] = list(entities["project_types"])
    return prefill


def _now_ms() -> int:
    return int(time.time() * 1000)


class ChatAssistant:
    """
    The site's chat widget: keyword rules first, OpenAI only for messages the rules
    could not place (and only when enabled).
    """

    def __init__(
        self,
        *,
        analytics: Optional[AnalyticsTracker] = None,
        ai_enabled: Callable[[], bool] = ai_intent.ai_chat_enabled,
        max_history: int = 50,
        clock: Callable[[], int] = _now_ms,
    ) -> None:
        self._analytics = analytics
        self._ai_enabled = ai_enabled
        self._max_history = max(2, int(max_history))
        self._clock = clock
        self.history: list[ChatMessage] = []
        self._add("assistant", WELCOME_MESSAGE)

    def reply(self, message: str) -> Optional[ChatReply]:
        clean = (message or "").strip()
        if not clean:
            return None
        self._add("user", clean)

        analysis = analyze_message(clean)
        response = RESPONSES.get(analysis.intent, RESPONSES[FALLBACK_INTENT])
        prefill: dict[str, Any] = {}
        source: Literal["rules", "ai"] = "rules"

        if analysis.quote_request:
            prefill = prefill_from_entities(analysis.entities)
            response = QUOTE_REQUEST_RESPONSE
            self._track(
                "chatbot_quote_request",
                {
                    "messageLength": len(clean),
                    "hasDimensions": "afmetingen" in analysis.entities,
                    "hasMaterial": "materiaal" in analysis.entities,
                },
            )
        elif analysis.intent == FALLBACK_INTENT and self._ai_enabled():
            ai = ai_intent.recognize_chat_intent(user_text=clean, history=self.history[:-1])
            if ai is not None:
                response = ai.reply
                source = "ai"
                analysis = MessageAnalysis(
                    intent=ai.intent,
                    entities=analysis.entities,
                    sentiment=analysis.sentiment,
                    urgency=analysis.urgency,
                    category=analysis.category,
                    quote_request=analysis.quote_request,
                )

        suggestions = SUGGESTIONS.get(analysis.intent, DEFAULT_SUGGESTIONS)
        self._add("assistant", response)
        self._track("chatbot_message", {"intent": analysis.intent, "source": source})
        return ChatReply(
            response=response,
            analysis=analysis,
            suggestions=suggestions,
            prefill=prefill,
            source=source,
        )

    def quick_action(self, action: str) -> Optional[str]:
        response = QUICK_ACTIONS.get(action)
        if response is None:
            return None
        self._add("assistant", response)
        self._track("chatbot_quick_action", {"action": action})
        return response

    def _add(self, role: Literal["assistant", "user"], content: str) -> None:
        self.history.append({"role": role, "content": content, "created_at_ms": self._clock()})
        if len(self.history) > self._max_history:
            del self.history[: len(self.history) - self._max_history]

    def _track(self, event_type: str, data: dict[str, Any]) -> None:
        if self._analytics is None:
            return
        try:
            self._analytics.track(event_type, data)
        except Exception:
            logger.warning("Chat analytics failed for %s", event_type, exc_info=True)
