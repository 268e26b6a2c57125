from __future__ import annotations

"""Gemini API client for AI task breakdowns.

A thin wrapper with retries + backoff around the generateContent endpoint.
``breakdown_task`` never raises: whatever the model or the network does is
normalized into ``BreakdownOk`` or ``BreakdownFailed`` before it reaches the
rest of the package.

Network calls are kept minimal; tests mock HTTP transport.
"""

from dataclasses import dataclass
import json
import logging
import re
import time
from typing import Optional, Union

import httpx

from .adaptation import compute_adaptation, default_adaptation
from .models import BrainState

logger = logging.getLogger(__name__)

GEMINI_ENDPOINT = "https://generativelanguage.googleapis.com/v1beta/models/gemini-1.5-flash:generateContent"

MAX_STEPS = 10
MAX_STEP_CHARS = 200

# ui level -> (step count hint, step size hint)
STEP_HINTS: dict[str, tuple[str, str]] = {
    "low": ("3 to 4", "very small, each doable in under 5 minutes"),
    "medium": ("4 to 6", "small and concrete"),
    "high": ("5 to 8", "concrete"),
}

_LIST_MARKER = re.compile(r"^\s*(?:[-*•]|\d+[.)]|step\s+\d+[:.)]?)\s*", re.IGNORECASE)


class GeminiError(Exception):
    def __init__(self, message: str, kind: str = "unavailable", retryable: bool = True):
        super().__init__(message)
        self.kind = kind
        self.retryable = retryable


@dataclass(slots=True)
class GeminiClientConfig:
    api_key: str
    timeout: float = 10.0
    max_retries: int = 3
    backoff_base: float = 0.75


@dataclass(slots=True, frozen=True)
class BreakdownOk:
    steps: tuple[str, ...]


@dataclass(slots=True, frozen=True)
class BreakdownFailed:
    kind: str  # unavailable, rate_limited, missing_key or invalid_response


BreakdownResult = Union[BreakdownOk, BreakdownFailed]


def parse_steps(text: str) -> list[str]:
    """Pull a list of step strings out of free-form model output.

    Accepts a JSON array of strings, a JSON object with a ``steps`` array, or
    plain numbered/bulleted lines.
    """
    raw: list = []
    start = text.find("[")
    end = text.rfind("]")
    obj_start = text.find("{")
    if obj_start != -1 and (start == -1 or obj_start < start):
        obj_end = text.rfind("}")
        try:
            obj = json.loads(text[obj_start : obj_end + 1])
            if isinstance(obj, dict) and isinstance(obj.get("steps"), list):
                raw = obj["steps"]
        except json.JSONDecodeError:
            logger.debug("no JSON object in breakdown response")
    if not raw and start != -1 and end > start:
        try:
            data = json.loads(text[start : end + 1])
            if isinstance(data, list):
                raw = data
        except json.JSONDecodeError:
            logger.debug("no JSON array in breakdown response")
    if not raw:
        raw = [
            _LIST_MARKER.sub("", line)
            for line in text.splitlines()
            if _LIST_MARKER.match(line)
        ]
    steps = []
    for item in raw:
        if isinstance(item, dict):
            item = item.get("step") or item.get("text") or ""
        if not isinstance(item, str):
            continue
        item = " ".join(item.split())
        if item:
            steps.append(item[:MAX_STEP_CHARS])
    return steps[:MAX_STEPS]


class GeminiClient:
    def __init__(self, config: GeminiClientConfig, transport: httpx.BaseTransport | None = None):
        self._config = config
        self._client = httpx.Client(timeout=config.timeout, transport=transport)

    def close(self) -> None:  # pragma: no cover simple
        self._client.close()

    # Public API ---------------------------------------------------------
    def generate(self, prompt: str) -> str:
        """Return the model's text output or raise GeminiError."""
        api_key = self._config.api_key
        if not api_key:
            raise GeminiError("API key missing", kind="missing_key")
        body = {"contents": [{"parts": [{"text": prompt}]}]}
        params = {"key": api_key}
        attempt = 0
        while True:
            try:
                resp = self._client.post(GEMINI_ENDPOINT, params=params, json=body)
                if resp.status_code == 429:
                    raise GeminiError("rate_limited", kind="rate_limited")
                if resp.status_code >= 500:
                    raise GeminiError(f"HTTP {resp.status_code}: {resp.text[:200]}")
                if resp.status_code >= 400:
                    # client errors repeat on retry; 401/403 mean a bad or revoked key
                    kind = "missing_key" if resp.status_code in (401, 403) else "unavailable"
                    raise GeminiError(
                        f"HTTP {resp.status_code}: {resp.text[:200]}", kind=kind, retryable=False
                    )
                data = resp.json()
                text_blocks = []
                for c in data.get("candidates", []):
                    for part in c.get("content", {}).get("parts", []):
                        t = part.get("text")
                        if t:
                            text_blocks.append(t)
                return "\n".join(text_blocks)
            except GeminiError as e:
                attempt += 1
                if not e.retryable or attempt > self._config.max_retries:
                    raise
                time.sleep(self._config.backoff_base * (2 ** (attempt - 1)))
            except (httpx.HTTPError, ValueError) as e:  # network or JSON
                attempt += 1
                if attempt > self._config.max_retries:
                    raise GeminiError(str(e)) from e
                time.sleep(self._config.backoff_base * (2 ** (attempt - 1)))

    def breakdown_task(self, title: str, brain_state: Optional[BrainState]) -> BreakdownResult:
        if brain_state is None:
            adaptation = default_adaptation()
        else:
            adaptation = compute_adaptation(brain_state.energy, brain_state.focus)
        count, size = STEP_HINTS[adaptation.ui_level]
        prompt = (
            f"Break the task '{title}' into {count} steps that are {size}. "
            "Use a warm, encouraging tone and no judgement. "
            'Return only JSON of the form {"steps": ["..."]}.'
        )
        try:
            text = self.generate(prompt)
        except GeminiError as e:
            logger.warning("breakdown request failed: %s", e, extra={"_json_kind": e.kind})
            return BreakdownFailed(kind=e.kind)
        steps = parse_steps(text)
        if not steps:
            logger.warning("breakdown response had no steps")
            return BreakdownFailed(kind="invalid_response")
        return BreakdownOk(steps=tuple(steps))


__all__ = [
    "GeminiClient",
    "GeminiClientConfig",
    "GeminiError",
    "BreakdownOk",
    "BreakdownFailed",
    "BreakdownResult",
    "parse_steps",
]
