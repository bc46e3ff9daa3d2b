"""Pytest fixtures for Prompt Customizer tests."""

from __future__ import annotations

import pytest

from completion import CompletionConfig


class FakeCompletion:
    """Completion client that replays canned replies and records every call."""

    def __init__(self, *replies: str) -> None:
        self.replies = list(replies)
        self.calls: list[tuple[str, CompletionConfig]] = []

    def complete(self, prompt_text: str, config: CompletionConfig) -> str:
        self.calls.append((prompt_text, config))
        if not self.replies:
            return ""
        return self.replies.pop(0)

    @property
    def prompts(self) -> list[str]:
        return [prompt for prompt, _ in self.calls]


@pytest.fixture
def fake_completion():
    """Factory: fake_completion("optimized", "final") -> FakeCompletion."""
    return FakeCompletion
