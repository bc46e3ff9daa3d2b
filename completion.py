"""Gemini-backed text completion used by both pipeline calls."""

import logging
import os
import threading
from dataclasses import dataclass, field
from typing import Mapping, Protocol

import google.generativeai as genai

logger = logging.getLogger(__name__)

# genai.configure() replaces the SDK's global client; see GeminiCompletion.
_SDK_LOCK = threading.Lock()

# gemini-2.5-flash is available on the free tier; override with GEMINI_MODEL.
DEFAULT_MODEL = "gemini-2.5-flash"

DEFAULT_SAFETY_SETTINGS = {
    "HARM_CATEGORY_HATE_SPEECH": "BLOCK_ONLY_HIGH",
    "HARM_CATEGORY_DANGEROUS_CONTENT": "BLOCK_NONE",
    "HARM_CATEGORY_HARASSMENT": "BLOCK_MEDIUM_AND_ABOVE",
    "HARM_CATEGORY_SEXUALLY_EXPLICIT": "BLOCK_LOW_AND_ABOVE",
}


@dataclass(frozen=True)
class CompletionConfig:
    """Generation settings for a single completion call."""

    temperature: float
    top_p: float | None = None
    safety_settings: Mapping[str, str] = field(
        default_factory=lambda: dict(DEFAULT_SAFETY_SETTINGS)
    )


# The optimizer runs a little cooler than the final execution for consistency.
OPTIMIZER_CONFIG = CompletionConfig(temperature=0.4)
EXECUTION_CONFIG = CompletionConfig(temperature=0.7, top_p=0.9)


class CompletionClient(Protocol):
    def complete(self, prompt_text: str, config: CompletionConfig) -> str:
        """Return the model's reply, or an empty string when there is no usable text."""
        ...


def default_model_name() -> str:
    return (os.getenv("GEMINI_MODEL") or "").strip() or DEFAULT_MODEL


class GeminiCompletion:
    """Completion client for Google Gemini.

    google.generativeai keeps its API key in process-wide state, and Streamlit
    serves every session from the same process. Each instance therefore keeps its
    own key and re-configures the SDK under _SDK_LOCK for the whole call, so a
    request never goes out with another session's key. Calls from different
    sessions are serialized while the lock is held.
    Transport and authentication errors from the SDK are not caught here.
    """

    def __init__(self, api_key: str, model_name: str | None = None):
        if not api_key or not api_key.strip():
            raise ValueError("API key cannot be empty.")
        self._api_key = api_key.strip()
        self.model_name = model_name or default_model_name()

    def complete(self, prompt_text: str, config: CompletionConfig) -> str:
        generation_config = genai.types.GenerationConfig(
            temperature=config.temperature,
            top_p=config.top_p,
        )
        with _SDK_LOCK:
            genai.configure(api_key=self._api_key)
            model = genai.GenerativeModel(model_name=self.model_name)
            response = model.generate_content(
                prompt_text,
                generation_config=generation_config,
                safety_settings=dict(config.safety_settings),
            )

        try:
            text = response.text
        except ValueError:
            # Blocked or empty candidates: no text to return.
            reason = None
            if response.candidates and response.candidates[0].finish_reason:
                reason = str(response.candidates[0].finish_reason)
            logger.debug(
                "Gemini returned no text (model=%s, finish_reason=%s)",
                self.model_name,
                reason,
            )
            return ""
        return (text or "").strip()
