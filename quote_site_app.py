from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import MutableMapping

import streamlit as st

from app_config import Settings, export_openai_env, load_settings
from chat_intent import ChatAssistant
from draft_store import DraftStore, JsonFileDraftStore, SessionStateDraftStore
from logging_config import setup_logging
from notifications import AnalyticsTracker, Notifier
from quote_draft import FIELD_RULES, MATERIALS, PROJECT_TYPES, TIMELINE_OPTIONS, QuoteDraft
from quote_estimate import estimate_rows
from quote_pdf import build_request_artifact, make_quote_request_pdf_bytes
from quote_submission import QuoteSubmitter
from quote_wizard import QuoteWizard


logger = logging.getLogger(__name__)

_SERVICES_KEY = "_yannova_services"
_CONFIRMATION_KEY = "_quote_confirmation_visible"
_WIDGET_PREFIX = "quote_field_"

# Draft fields rendered as widgets, in draft order.
_WIDGET_FIELDS: tuple[str, ...] = (
    "name",
    "email",
    "phone",
    "address",
    "project_types",
    "material",
    "color",
    "notes",
    "preferred",
    "date",
    "terms_accepted",
)


@dataclass
class AppServices:
    settings: Settings
    wizard: QuoteWizard
    chat: ChatAssistant
    notifier: Notifier
    analytics: AnalyticsTracker


def build_services(settings: Settings, state: MutableMapping[str, object]) -> AppServices:
    """
    Construct the application root for one browser session.

    Everything is wired explicitly here; nothing below this point reaches for globals.
    """
    store: DraftStore
    if settings.draft_path is not None:
        store = JsonFileDraftStore(settings.draft_path)
    else:
        store = SessionStateDraftStore(state)
    analytics = AnalyticsTracker(
        settings.api_base_url,
        enabled=settings.analytics_enabled,
        timeout_s=settings.request_timeout_s,
    )
    notifier = Notifier()
    wizard = QuoteWizard(
        store=store,
        submitter=QuoteSubmitter(settings.api_base_url, timeout_s=settings.request_timeout_s),
        notifier=notifier,
        analytics=analytics,
    )
    chat = ChatAssistant(analytics=analytics)
    return AppServices(settings=settings, wizard=wizard, chat=chat, notifier=notifier, analytics=analytics)


def widget_key(name: str) -> str:
    return f"{_WIDGET_PREFIX}{name}"


def widget_values_from_draft(draft: QuoteDraft) -> dict[str, object]:
    """
    Draft values in the shape each widget expects (None for "nothing selected").
    """
    values: dict[str, object] = {}
    for name in _WIDGET_FIELDS:
        raw = draft.get_value(name)
        if name == "project_types":
            values[name] = sorted(raw)  # type: ignore[arg-type]
        elif name in ("material", "preferred"):
            values[name] = raw or None
        elif name == "date":
            try:
                values[name] = date.fromisoformat(str(raw)) if raw else None
            except ValueError:
                values[name] = None
        else:
            values[name] = raw
    return values


def draft_value_from_widget(name: str, value: object) -> object:
    if name == "date":
        return value.isoformat() if isinstance(value, date) else ""
    if name == "terms_accepted":
        return bool(value)
    if name == "project_types":
        return list(value or [])  # type: ignore[call-overload]
    return "" if value is None else value


def sync_widgets_from_draft(state: MutableMapping[str, object], draft: QuoteDraft) -> list[str]:
    """
    Seed widget keys that Streamlit does not currently hold.

    Streamlit drops widget keys for widgets that were not rendered in the previous run;
    the wizard draft is the source of truth, so missing keys are refilled from it.
    """
    seeded: list[str] = []
    for name, value in widget_values_from_draft(draft).items():
        key = widget_key(name)
        if key not in state:
            state[key] = value
            seeded.append(name)
    return seeded


def clear_widget_keys(state: MutableMapping[str, object]) -> None:
    for name in _WIDGET_FIELDS:
        state.pop(widget_key(name), None)


def _services() -> AppServices:
    services = st.session_state.get(_SERVICES_KEY)
    if not isinstance(services, AppServices):
        settings = load_settings(secrets=st.secrets)
        _configure_logging(settings.log_level, settings.log_json)
        export_openai_env(settings)
        services = build_services(settings, st.session_state)
        st.session_state[_SERVICES_KEY] = services
        logger.info("Quote site session started (api=%s)", settings.api_base_url)
    return services


@st.cache_resource
def _configure_logging(level: str, json_logs: bool) -> bool:
    setup_logging(level=level, json_logs=json_logs)
    return True


# -- callbacks (run before the script reruns) ---------------------------------------------


def _on_field_change(name: str) -> None:
    wizard = _services().wizard
    value = draft_value_from_widget(name, st.session_state.get(widget_key(name)))
    if name == "project_types":
        wizard.set_project_types(value)  # type: ignore[arg-type]
    else:
        wizard.set_field(name, value)


def _on_open() -> None:
    st.session_state[_CONFIRMATION_KEY] = False
    _services().wizard.open()


def _on_close() -> None:
    _services().wizard.close()


def _on_next() -> None:
    _services().wizard.next_step()


def _on_prev() -> None:
    _services().wizard.prev_step()


def _on_reset() -> None:
    _services().wizard.reset()
    clear_widget_keys(st.session_state)


def _on_submit() -> None:
    result = _services().wizard.submit()
    if result is not None and result.success:
        clear_widget_keys(st.session_state)
        st.session_state[_CONFIRMATION_KEY] = True


def _on_dismiss(notification_id: int) -> None:
    _services().notifier.dismiss(notification_id)


def _on_quick_action(action: str) -> None:
    _services().chat.quick_action(action)


# -- rendering ------------------------------------------------------------------------------


def _label(name: str) -> str:
    rule = FIELD_RULES[name]
    return f"{rule.label} *" if rule.required else rule.label


def _render_field_error(wizard: QuoteWizard, name: str) -> None:
    message = wizard.errors.get(name)
    if message:
        st.error(message)


def _render_text(wizard: QuoteWizard, name: str, *, placeholder: str = "") -> None:
    st.text_input(
        _label(name),
        key=widget_key(name),
        placeholder=placeholder,
        on_change=_on_field_change,
        args=(name,),
    )
    _render_field_error(wizard, name)


def _render_step_contact(wizard: QuoteWizard) -> None:
    _render_text(wizard, "name", placeholder="Jan Jansen")
    _render_text(wizard, "email", placeholder="naam@voorbeeld.nl")
    _render_text(wizard, "phone", placeholder="+31 6 12345678")
    _render_text(wizard, "address", placeholder="Straat, huisnummer, plaats")


def _render_step_project(wizard: QuoteWizard) -> None:
    st.multiselect(
        "Waar gaat uw project over? *",
        options=list(PROJECT_TYPES.keys()),
        format_func=lambda tag: PROJECT_TYPES.get(tag, tag),
        key=widget_key("project_types"),
        on_change=_on_field_change,
        args=("project_types",),
    )
    _render_field_error(wizard, "project_types")


def _render_step_preferences(wizard: QuoteWizard) -> None:
    st.radio(
        _label("material"),
        options=list(MATERIALS.keys()),
        format_func=lambda key: MATERIALS.get(key, key),
        key=widget_key("material"),
        on_change=_on_field_change,
        args=("material",),
        horizontal=True,
    )
    _render_field_error(wizard, "material")
    _render_text(wizard, "color", placeholder="Bijv. antraciet, wit, eiken")


def _render_step_details(wizard: QuoteWizard) -> None:
    st.text_area(
        _label("notes"),
        key=widget_key("notes"),
        height=160,
        placeholder="Beschrijf uw project: aantal ramen/deuren, afmetingen, glas, ...",
        on_change=_on_field_change,
        args=("notes",),
    )
    _render_field_error(wizard, "notes")


def _render_step_timeline(wizard: QuoteWizard) -> None:
    st.radio(
        _label("preferred"),
        options=list(TIMELINE_OPTIONS.keys()),
        format_func=lambda key: TIMELINE_OPTIONS.get(key, key),
        key=widget_key("preferred"),
        on_change=_on_field_change,
        args=("preferred",),
    )
    _render_field_error(wizard, "preferred")
    st.date_input(
        _label("date"),
        key=widget_key("date"),
        format="YYYY-MM-DD",
        on_change=_on_field_change,
        args=("date",),
    )
    _render_field_error(wizard, "date")


def _render_step_summary(wizard: QuoteWizard) -> None:
    st.markdown("#### Overzicht van uw aanvraag")
    for item in wizard.summary():
        st.markdown(f"**{item.label}:** {item.value}")
    estimate = wizard.estimate()
    if estimate is not None:
        st.markdown("#### Indicatieve prijs")
        st.table([{"Omschrijving": label, "Bedrag": amount} for label, amount in estimate_rows(estimate)])
        st.caption(f"Geldig tot {estimate.valid_until.isoformat()}. " + " ".join(estimate.notes))
    st.checkbox(
        "Ik ga akkoord met de privacyvoorwaarden *",
        key=widget_key("terms_accepted"),
        on_change=_on_field_change,
        args=("terms_accepted",),
    )
    _render_field_error(wizard, "terms_accepted")


_STEP_RENDERERS = {
    "contact": _render_step_contact,
    "project": _render_step_project,
    "preferences": _render_step_preferences,
    "details": _render_step_details,
    "timeline": _render_step_timeline,
    "summary": _render_step_summary,
}


def _render_notifications(notifier: Notifier) -> None:
    for n in notifier.active():
        left, right = st.columns([8, 1])
        with left:
            if n.kind == "success":
                st.success(n.message)
            elif n.kind == "error":
                st.error(n.message)
            else:
                st.info(n.message)
        with right:
            if n.dismissible:
                st.button("✕", key=f"dismiss_{n.id}", on_click=_on_dismiss, args=(n.id,))


def _render_confirmation(wizard: QuoteWizard) -> None:
    submitted = wizard.last_submission
    if submitted is None:
        return
    st.markdown("### Bedankt voor uw aanvraag")
    name = submitted.draft.contact.name.strip() or "u"
    email = submitted.draft.contact.email.strip() or "het opgegeven e-mailadres"
    st.write(f"We nemen zo snel mogelijk contact op met **{name}** via **{email}**.")
    try:
        artifact = build_request_artifact(
            submitted.draft,
            request_id=submitted.result.id,
            request_date=date.today(),
        )
        pdf_bytes = make_quote_request_pdf_bytes(artifact)
    except Exception:
        # The confirmation must still render when the PDF cannot be built.
        logger.warning("Could not build quote request PDF", exc_info=True)
        return
    st.download_button(
        "Download uw aanvraag (PDF)",
        data=pdf_bytes,
        file_name=f"offerteaanvraag-{submitted.result.id or 'yannova'}.pdf",
        mime="application/pdf",
        use_container_width=True,
    )


def _render_wizard(wizard: QuoteWizard) -> None:
    st.progress(wizard.progress, text=wizard.progress_label)
    st.subheader(wizard.step.title)

    sync_widgets_from_draft(st.session_state, wizard.draft)
    _STEP_RENDERERS[wizard.step.key](wizard)

    st.divider()
    col_back, col_next, col_close, col_reset = st.columns(4)
    if wizard.can_go_back:
        col_back.button("Vorige", key="quote_prev", on_click=_on_prev, use_container_width=True)
    if wizard.shows_summary:
        col_next.button(
            "Versturen",
            key="quote_submit",
            type="primary",
            on_click=_on_submit,
            disabled=wizard.is_submitting,
            use_container_width=True,
        )
    else:
        col_next.button("Volgende", key="quote_next", type="primary", on_click=_on_next, use_container_width=True)
    col_close.button("Sluiten", key="quote_close", on_click=_on_close, use_container_width=True)
    col_reset.button("Opnieuw beginnen", key="quote_reset", on_click=_on_reset, use_container_width=True)


def _render_quote_tab(services: AppServices) -> None:
    wizard = services.wizard
    _render_notifications(services.notifier)
    if wizard.is_open:
        _render_wizard(wizard)
        return
    if bool(st.session_state.get(_CONFIRMATION_KEY)):
        _render_confirmation(wizard)
    st.markdown(
        "Nieuwe ramen of deuren nodig? Vraag in zes korte stappen een vrijblijvende offerte aan."
    )
    label = "Verder met uw aanvraag" if not wizard.draft.is_empty() else "Offerte aanvragen"
    st.button(label, key="quote_open", type="primary", on_click=_on_open)


def _render_chat_tab(services: AppServices) -> None:
    chat = services.chat
    cols = st.columns(3)
    for col, (action, label) in zip(
        cols,
        (("offerte", "Offerte aanvragen"), ("contact", "Contact opnemen"), ("openingstijden", "Openingstijden")),
    ):
        col.button(label, key=f"chat_quick_{action}", on_click=_on_quick_action, args=(action,), use_container_width=True)

    prompt = st.chat_input("Stel uw vraag...", max_chars=500)
    if prompt:
        reply = chat.reply(prompt)
        if reply is not None and reply.prefill:
            applied = services.wizard.apply_prefill(reply.prefill)
            if applied:
                # Widgets in the quote tab render after this point, so refilling them is safe.
                for name in applied:
                    st.session_state.pop(widget_key(name), None)

    for message in chat.history:
        with st.chat_message(message["role"]):
            st.markdown(message["content"])


def main() -> None:
    st.set_page_config(page_title="Yannova Ramen en Deuren - Offerte", layout="centered")
    services = _services()

    st.title("Yannova Ramen en Deuren")

    tab_quote, tab_chat = st.tabs(["Offerte aanvragen", "Chat met ons"])
    # Chat first: it may pre-fill quote widgets, which must happen before they are created.
    with tab_chat:
        _render_chat_tab(services)
    with tab_quote:
        _render_quote_tab(services)


if __name__ == "__main__":
    main()
