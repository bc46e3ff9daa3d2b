"""Prompt Customizer -- optimize, fill and run prompt templates with Gemini."""

import logging
import os
from pathlib import Path

import markdown as md_lib
import streamlit as st
import bleach
from dotenv import load_dotenv

from completion import GeminiCompletion
from pipeline import MIN_TEMPLATE_LENGTH, handle_customize_prompt
from prompts import DEFAULT_PRESET, PRESETS, ROLES

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

# Load .env from the app directory; override=True so .env wins over system/shell env vars
load_dotenv(Path(__file__).resolve().parent / ".env", override=True)

CUSTOM_ROLE_OPTION = "Custom..."
NO_ROLE_OPTION = "(no role)"

# Allowed tags when sanitizing LLM markdown→HTML (prevents XSS).
ALLOWED_TAGS = [
    "p", "br", "strong", "em", "b", "i", "u", "code", "pre",
    "h1", "h2", "h3", "h4", "ul", "ol", "li", "a", "hr",
    "table", "thead", "tbody", "tr", "td", "th", "blockquote",
]
ALLOWED_ATTRS = {"a": ["href", "title"]}

RESULT_BORDER_COLOR = "#3F51B5"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def variables_from_rows(rows) -> dict[str, str]:
    """Turn variable editor rows ({"key": ..., "value": ...}) into a mapping.

    Accepts a list of dicts or the DataFrame st.data_editor hands back. Rows with
    neither key nor value are dropped; keys are stripped. A later row with the same
    key wins. Half-filled rows are kept so validation can reject them.
    """
    if hasattr(rows, "to_dict"):
        rows = rows.to_dict("records")
    variables = {}
    for row in rows or []:
        key = row.get("key")
        key = key.strip() if isinstance(key, str) else ""
        value = row.get("value")
        # New editor rows come back as None/NaN
        value = value if isinstance(value, str) else ""
        if not key and not value:
            continue
        variables[key] = value
    return variables


def markdown_to_safe_html(markdown_text: str) -> str:
    """Convert markdown to HTML and sanitize so it is safe for unsafe_allow_html=True."""
    html = md_lib.markdown(
        markdown_text,
        extensions=["tables", "fenced_code", "nl2br"],
    )
    return bleach.clean(html, tags=ALLOWED_TAGS, attributes=ALLOWED_ATTRS, strip=True)


def friendly_error(error_msg: str) -> str:
    """Map common Gemini API failures to something a user can act on."""
    if "API_KEY" in error_msg.upper() or "403" in error_msg:
        return (
            "Invalid API key. Please check your Google AI API key "
            "and try again. [Get a free key here.](https://ai.google.dev)"
        )
    if "429" in error_msg or "RESOURCE_EXHAUSTED" in error_msg.upper() or "quota" in error_msg.lower():
        return (
            "Rate limit or quota hit. The free tier has limits per minute. "
            "Wait 60 seconds and try again."
        )
    return error_msg


def _resolve_api_key() -> str:
    api_key = (os.getenv("GOOGLE_API_KEY") or "").strip()

    # Allow override via Streamlit secrets (for deployed version)
    if not api_key and hasattr(st, "secrets") and "GOOGLE_API_KEY" in st.secrets:
        api_key = st.secrets["GOOGLE_API_KEY"]

    # If still no key, let the user paste one
    if not api_key:
        api_key = st.text_input(
            "Google AI API Key",
            type="password",
            help="Get a free key at https://ai.google.dev",
        )
    return (api_key or "").strip()


def _load_preset(name: str | None = None) -> None:
    """Seed the template and variable rows from a preset (the selected one by default)."""
    preset = PRESETS[name or st.session_state["preset"]]
    st.session_state["prompt_template"] = preset["template"]
    st.session_state["variable_rows"] = [
        {"key": k, "value": v} for k, v in preset["variables"].items()
    ]
    # The data editor keeps its own edits under its key; reset it with the preset.
    st.session_state.pop("variables_editor", None)


def render_result(result: str, degraded: bool = False) -> None:
    """Show the model's answer as a styled card, plus a raw copy with Streamlit's copy button."""
    st.markdown("### AI Response")
    if degraded:
        st.caption(
            "The prompt optimizer could not refine this template, "
            "so it was run as written."
        )
    st.markdown(
        f"""
        <style>
        .result-card {{
            border-left: 4px solid {RESULT_BORDER_COLOR};
            padding: 1rem 1.5rem;
            margin: 1.25rem 0;
            border-radius: 0 8px 8px 0;
            background-color: rgba(255,255,255,0.05);
        }}
        </style>
        """,
        unsafe_allow_html=True,
    )
    safe_html = markdown_to_safe_html(result)
    st.markdown(f'<div class="result-card">{safe_html}</div>', unsafe_allow_html=True)
    with st.expander("Copy response"):
        st.code(result, language=None)


# ---------------------------------------------------------------------------
# Streamlit UI
# ---------------------------------------------------------------------------


def main():
    logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO").upper())

    st.set_page_config(
        page_title="Prompt Customizer",
        page_icon="🪄",
        layout="centered",
    )
    st.title("Customize AI Prompt")
    st.markdown(
        "Pick a role and a template, fill in the `{{variables}}`, and let Gemini "
        "optimize the prompt before running it."
    )

    api_key = _resolve_api_key()
    if not api_key:
        st.info(
            "Enter your Google AI API key above to get started. "
            "[Get a free key here.](https://ai.google.dev)"
        )

    st.divider()

    if "preset" not in st.session_state:
        st.session_state["preset"] = DEFAULT_PRESET
        _load_preset(DEFAULT_PRESET)

    col1, col2 = st.columns(2)
    with col1:
        st.selectbox(
            "Load Preset Configuration",
            list(PRESETS),
            key="preset",
            on_change=_load_preset,
        )
    with col2:
        role_choice = st.selectbox("AI Role", ROLES + [CUSTOM_ROLE_OPTION, NO_ROLE_OPTION])

    role = role_choice
    if role_choice == CUSTOM_ROLE_OPTION:
        role = st.text_input("Custom role", placeholder="e.g. Data Scientist")
    elif role_choice == NO_ROLE_OPTION:
        role = None

    template = st.text_area(
        "Prompt Template",
        key="prompt_template",
        height=160,
        placeholder="Enter your prompt template with {{variables}}...",
        help=f"At least {MIN_TEMPLATE_LENGTH} characters.",
    )

    st.markdown("**Template Variables**")
    rows = st.data_editor(
        st.session_state["variable_rows"],
        key="variables_editor",
        num_rows="dynamic",
        use_container_width=True,
        column_config={
            "key": st.column_config.TextColumn("Variable Key"),
            "value": st.column_config.TextColumn("Variable Value"),
        },
    )

    submitted = st.button("Generate with AI", type="primary", use_container_width=True)

    st.divider()

    if submitted:
        if not api_key:
            st.error(
                "Enter your Google AI API key above to run a prompt. "
                "[Get a free key here.](https://ai.google.dev)"
            )
        else:
            payload = {
                "promptTemplate": template,
                "variables": variables_from_rows(rows),
                "role": role,
            }
            with st.spinner("Optimizing and running your prompt..."):
                try:
                    client = GeminiCompletion(api_key)
                except ValueError as e:
                    st.error(str(e))
                    st.stop()
                outcome = handle_customize_prompt(payload, client)

            if "error" in outcome:
                st.session_state.pop("last_result", None)
                st.error(friendly_error(outcome["error"]))
                st.stop()
            st.session_state["last_result"] = outcome["result"]
            st.session_state["last_degraded"] = outcome["optimizerDegraded"]

    # Display results (persists across reruns)
    if "last_result" in st.session_state:
        render_result(
            st.session_state["last_result"],
            degraded=st.session_state.get("last_degraded", False),
        )

    st.divider()
    st.caption("Powered by Google Gemini")


if __name__ == "__main__":
    main()
