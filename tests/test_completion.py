"""Tests for the Gemini completion client."""

from __future__ import annotations

import time
from concurrent.futures import ThreadPoolExecutor
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest

import completion
from completion import (
    DEFAULT_MODEL,
    DEFAULT_SAFETY_SETTINGS,
    EXECUTION_CONFIG,
    OPTIMIZER_CONFIG,
    GeminiCompletion,
)


class _BlockedResponse:
    def __init__(self, finish_reason="SAFETY"):
        self.candidates = [SimpleNamespace(finish_reason=finish_reason)]

    @property
    def text(self):
        raise ValueError("response.text requires a valid Part")


@pytest.fixture
def genai_mock():
    with patch.object(completion, "genai") as mock:
        yield mock


def _model(genai_mock) -> MagicMock:
    return genai_mock.GenerativeModel.return_value


def test_configs() -> None:
    assert OPTIMIZER_CONFIG.temperature == 0.4
    assert OPTIMIZER_CONFIG.top_p is None
    assert EXECUTION_CONFIG.temperature == 0.7
    assert EXECUTION_CONFIG.top_p == 0.9
    assert dict(EXECUTION_CONFIG.safety_settings) == DEFAULT_SAFETY_SETTINGS
    assert DEFAULT_SAFETY_SETTINGS["HARM_CATEGORY_DANGEROUS_CONTENT"] == "BLOCK_NONE"


@pytest.mark.parametrize("api_key", ["", "   "])
def test_empty_api_key_rejected(genai_mock, api_key: str) -> None:
    with pytest.raises(ValueError, match="API key cannot be empty"):
        GeminiCompletion(api_key)
    genai_mock.configure.assert_not_called()


def test_construction_leaves_sdk_untouched(genai_mock) -> None:
    GeminiCompletion(" secret ")
    genai_mock.configure.assert_not_called()


def test_configures_api_key_per_call(genai_mock) -> None:
    _model(genai_mock).generate_content.return_value = SimpleNamespace(text="ok")
    GeminiCompletion(" secret ").complete("prompt", OPTIMIZER_CONFIG)
    genai_mock.configure.assert_called_once_with(api_key="secret")


def _key_echoing_sdk(genai_mock, delay: float = 0.0) -> None:
    """Make generate_content reply with whichever key is currently configured."""
    state = {}

    def configure(api_key):
        state["key"] = api_key

    def generate_content(*args, **kwargs):
        key = state["key"]
        time.sleep(delay)
        # A key swapped in mid-call by another client shows up as a mismatch.
        return SimpleNamespace(text=key if state["key"] == key else "clobbered")

    genai_mock.configure.side_effect = configure
    _model(genai_mock).generate_content.side_effect = generate_content


def test_each_client_calls_with_its_own_key(genai_mock) -> None:
    _key_echoing_sdk(genai_mock)
    client_a = GeminiCompletion("key-A")
    client_b = GeminiCompletion("key-B")

    assert client_a.complete("prompt", EXECUTION_CONFIG) == "key-A"
    assert client_b.complete("prompt", EXECUTION_CONFIG) == "key-B"
    assert client_a.complete("prompt", EXECUTION_CONFIG) == "key-A"


def test_concurrent_clients_do_not_share_keys(genai_mock) -> None:
    _key_echoing_sdk(genai_mock, delay=0.01)
    clients = [GeminiCompletion(f"key-{i}") for i in range(8)]

    with ThreadPoolExecutor(max_workers=8) as pool:
        replies = list(pool.map(lambda c: c.complete("prompt", EXECUTION_CONFIG), clients))

    assert replies == [f"key-{i}" for i in range(8)]


def test_model_name_from_env(genai_mock, monkeypatch) -> None:
    monkeypatch.setenv("GEMINI_MODEL", "gemini-2.5-pro")
    assert GeminiCompletion("k").model_name == "gemini-2.5-pro"
    monkeypatch.delenv("GEMINI_MODEL")
    assert GeminiCompletion("k").model_name == DEFAULT_MODEL


def test_complete_passes_settings(genai_mock) -> None:
    _model(genai_mock).generate_content.return_value = SimpleNamespace(text="  hello \n")
    client = GeminiCompletion("k", model_name="gemini-test")

    assert client.complete("prompt", EXECUTION_CONFIG) == "hello"

    genai_mock.GenerativeModel.assert_called_once_with(model_name="gemini-test")
    genai_mock.types.GenerationConfig.assert_called_once_with(temperature=0.7, top_p=0.9)
    _, kwargs = _model(genai_mock).generate_content.call_args
    assert kwargs["generation_config"] is genai_mock.types.GenerationConfig.return_value
    assert kwargs["safety_settings"] == DEFAULT_SAFETY_SETTINGS


def test_blocked_response_returns_empty(genai_mock) -> None:
    _model(genai_mock).generate_content.return_value = _BlockedResponse()
    assert GeminiCompletion("k").complete("prompt", OPTIMIZER_CONFIG) == ""


def test_no_candidates_returns_empty(genai_mock) -> None:
    response = _BlockedResponse()
    response.candidates = []
    _model(genai_mock).generate_content.return_value = response
    assert GeminiCompletion("k").complete("prompt", OPTIMIZER_CONFIG) == ""


def test_transport_errors_propagate(genai_mock) -> None:
    _model(genai_mock).generate_content.side_effect = RuntimeError("429 RESOURCE_EXHAUSTED")
    with pytest.raises(RuntimeError, match="RESOURCE_EXHAUSTED"):
        GeminiCompletion("k").complete("prompt", EXECUTION_CONFIG)
