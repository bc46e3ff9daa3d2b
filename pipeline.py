"""Optimize -> substitute -> execute pipeline behind the Prompt Customizer."""

import logging
import re
from dataclasses import dataclass
from typing import Any, Mapping

from completion import EXECUTION_CONFIG, OPTIMIZER_CONFIG, CompletionClient
from prompts import build_execution_prompt, build_optimizer_prompt

logger = logging.getLogger(__name__)

MIN_TEMPLATE_LENGTH = 10

COMPLETION_UNAVAILABLE_MESSAGE = "Failed to get a result from the final prompt execution."
UNKNOWN_ERROR_MESSAGE = "An unknown error occurred during prompt customization."

PLACEHOLDER_RE = re.compile(r"\{\{\s*([^{}]*?)\s*\}\}")


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------

class PromptPipelineError(Exception):
    """Base class for failures surfaced to the caller."""


class ValidationFailed(PromptPipelineError, ValueError):
    """Request rejected before any completion call was made."""


class CompletionUnavailable(PromptPipelineError):
    """The final execution call produced no usable text."""

    def __init__(self, message: str = COMPLETION_UNAVAILABLE_MESSAGE):
        super().__init__(message)


# ---------------------------------------------------------------------------
# Data model
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class PromptRequest:
    template: str
    variables: Mapping[str, str] | None = None
    role: str | None = None


@dataclass(frozen=True)
class RefinedTemplate:
    body: str
    # True when the optimizer output was unusable and the raw template was kept.
    degraded: bool = False


@dataclass(frozen=True)
class FilledBody:
    body: str


@dataclass(frozen=True)
class ExecutionResult:
    text: str
    optimizer_degraded: bool = False


# ---------------------------------------------------------------------------
# Stages
# ---------------------------------------------------------------------------

def find_placeholders(text: str) -> set[str]:
    """Return the names of all {{ name }} tokens in text."""
    return {name for name in PLACEHOLDER_RE.findall(text) if name}


def optimize(raw_template: str, role: str | None, client: CompletionClient) -> RefinedTemplate:
    """Rewrite the raw template into a stronger prompt body.

    Single best-effort call. If the model returns nothing, or drops or renames a
    placeholder, the raw template is used unchanged and the result is marked degraded.
    """
    if not raw_template or not raw_template.strip():
        raise ValidationFailed("Prompt template cannot be empty.")

    refined = client.complete(build_optimizer_prompt(raw_template, role), OPTIMIZER_CONFIG)
    refined = (refined or "").strip()
    if not refined:
        logger.warning("Prompt optimizer did not return refined body, using raw template.")
        return RefinedTemplate(body=raw_template, degraded=True)

    missing = find_placeholders(raw_template) - find_placeholders(refined)
    if missing:
        logger.warning(
            "Prompt optimizer dropped placeholders %s, using raw template.",
            ", ".join(sorted(missing)),
        )
        return RefinedTemplate(body=raw_template, degraded=True)

    return RefinedTemplate(body=refined)


def substitute(body: str, variables: Mapping[str, str] | None) -> str:
    """Replace {{ key }} tokens with their values in one simultaneous pass.

    Values are inserted literally and never re-scanned, so a value containing
    another key's placeholder is left as-is. Unknown placeholders are untouched.
    """
    if not variables:
        return body
    # Longest first so that a key which prefixes another cannot shadow it.
    keys = sorted(variables, key=len, reverse=True)
    pattern = re.compile(
        r"\{\{\s*(" + "|".join(re.escape(key) for key in keys) + r")\s*\}\}"
    )
    return pattern.sub(lambda match: variables[match.group(1)], body)


def execute(filled_body: str, role: str | None, client: CompletionClient) -> ExecutionResult:
    """Send the filled body, with its role header, for the final answer."""
    reply = client.complete(build_execution_prompt(filled_body, role), EXECUTION_CONFIG)
    if not reply or not reply.strip():
        raise CompletionUnavailable()
    return ExecutionResult(text=reply)


# ---------------------------------------------------------------------------
# Orchestration
# ---------------------------------------------------------------------------

def validate_request(request: PromptRequest) -> None:
    if len((request.template or "").strip()) < MIN_TEMPLATE_LENGTH:
        raise ValidationFailed(
            f"Prompt template must be at least {MIN_TEMPLATE_LENGTH} characters."
        )
    if request.role is not None and not request.role.strip():
        raise ValidationFailed("Please select a role.")
    for key, value in (request.variables or {}).items():
        if not isinstance(key, str) or not isinstance(value, str):
            raise ValidationFailed("Variable keys and values must be text.")
        if not key.strip():
            raise ValidationFailed("Variable key cannot be empty.")
        if not value:
            raise ValidationFailed("Variable value cannot be empty.")


def run(request: PromptRequest, client: CompletionClient) -> ExecutionResult:
    validate_request(request)
    role = request.role.strip() if request.role else None

    refined = optimize(request.template, role, client)
    filled = FilledBody(body=substitute(refined.body, request.variables))
    result = execute(filled.body, role, client)

    if refined.degraded:
        return ExecutionResult(text=result.text, optimizer_degraded=True)
    return result


def handle_customize_prompt(payload: Mapping[str, Any], client: CompletionClient) -> dict:
    """Entry point for the UI: returns {"result": ...} or {"error": ...}, never raises."""
    try:
        request = PromptRequest(
            template=payload.get("promptTemplate") or "",
            variables=payload.get("variables") or None,
            role=payload.get("role"),
        )
        result = run(request, client)
    except Exception as e:
        logger.exception("Error customizing prompt")
        return {"error": str(e) or UNKNOWN_ERROR_MESSAGE}
    return {"result": result.text, "optimizerDegraded": result.optimizer_degraded}
