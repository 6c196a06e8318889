"""OpenAI wrapper.

Settings are read from the Flask config once, when the app is created. The
first request builds the SDK client from that snapshot and later requests
reuse it along with its connection pool.
"""
from __future__ import annotations

import base64
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from flask import current_app
from openai import APIConnectionError, APIStatusError, APITimeoutError, OpenAI

from paperbrief.errors import ConfigMissing, UpstreamOverloaded

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are a JSON API. Return ONLY valid JSON with no markdown formatting, "
    "no code fences, no explanations. Start your response with { and end with }."
)


@dataclass(frozen=True)
class AISettings:
    api_key: str
    model: str
    timeout: float = 120.0
    max_retries: int = 3
    overload_backoff: float = 1.2
    network_backoff: float = 0.8

    @classmethod
    def from_config(cls, cfg) -> "AISettings":
        return cls(
            api_key=(cfg.get("OPENAI_API_KEY") or "").strip(),
            model=(cfg.get("OPENAI_MODEL") or "").strip() or "gpt-4.1",
            timeout=float(cfg.get("OPENAI_TIMEOUT", 120)),
            max_retries=int(cfg.get("AI_MAX_RETRIES", 3)),
            overload_backoff=float(cfg.get("AI_OVERLOAD_BACKOFF", 1.2)),
            network_backoff=float(cfg.get("AI_NETWORK_BACKOFF", 0.8)),
        )


def text_part(text: str) -> Dict[str, Any]:
    return {"type": "text", "text": text}


def image_part(mime: str, data: bytes) -> Dict[str, Any]:
    b64 = base64.b64encode(data).decode("ascii")
    return {"type": "image_url", "image_url": {"url": f"data:{mime};base64,{b64}"}}


class AIClient:
    """One chat-completion call per ``generate``, retried on 503 and dropped connections."""

    def __init__(self, settings: AISettings, sdk: Optional[Any] = None, sleep: Callable[[float], None] = time.sleep):
        if not settings.api_key:
            raise ConfigMissing("OPENAI_API_KEY")
        self.settings = settings
        # Retries are handled here so the backoff schedule stays ours
        self.sdk = sdk or OpenAI(api_key=settings.api_key, timeout=settings.timeout, max_retries=0)
        self.sleep = sleep

    def _complete(self, parts: List[Dict[str, Any]], temperature: float) -> str:
        res = self.sdk.chat.completions.create(
            model=self.settings.model,
            messages=[
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": parts},
            ],
            temperature=temperature,
        )
        return (res.choices[0].message.content or "").strip()

    def generate(self, parts: List[Dict[str, Any]], temperature: float = 0.2) -> str:
        attempt = 0
        while True:
            try:
                return self._complete(parts, temperature)
            except APITimeoutError:
                raise
            except APIStatusError as e:
                if e.status_code != 503:
                    raise
                if attempt >= self.settings.max_retries:
                    logger.error("Model endpoint still overloaded after %d attempts", attempt + 1)
                    raise UpstreamOverloaded(attempt + 1) from e
                delay = self.settings.overload_backoff * (2 ** attempt)
                logger.warning("Model endpoint returned 503, retrying in %.1fs", delay)
            except APIConnectionError as e:
                if attempt >= self.settings.max_retries:
                    raise
                delay = self.settings.network_backoff * (2 ** attempt)
                logger.warning("Model request failed (%s), retrying in %.1fs", e, delay)
            attempt += 1
            self.sleep(delay)


def get_ai_client() -> AIClient:
    """The app's shared client, rebuilt only when its settings are replaced."""
    settings = current_app.extensions["paperbrief.ai"]
    client = current_app.extensions.get("paperbrief.ai_client")
    if client is None or client.settings is not settings:
        client = AIClient(settings)
        current_app.extensions["paperbrief.ai_client"] = client
    return client
