from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, Tuple

import requests

from sitebuilder import config
from sitebuilder.config import ProviderDescriptor
from sitebuilder.errors import ProviderCallError, ProviderNotImplementedError

log = logging.getLogger(__name__)

SYSTEM_INSTRUCTION = """You generate a small website.
Return strictly valid JSON with keys: html, css, js.
- html must be a complete page body fragment (not doctype) and reference style.css and script.js.
- css is stylesheet content.
- js is vanilla JS.
Do not include markdown fences."""

ANTHROPIC_VERSION = "2023-06-01"
ANTHROPIC_MAX_TOKENS = 1800

# (headers, query params, JSON body)
RequestParts = Tuple[Dict[str, str], Dict[str, str], Dict[str, Any]]


def _user_message(prompt: str) -> str:
    return f"Build a website for: {prompt}"


class ProviderClient(ABC):
    """Request/response shape for one provider family.

    Subclasses only describe how to authenticate, what body to send and where
    the reply text lives; `call` does the HTTP round trip and error mapping.
    """

    provider_id = ""

    @abstractmethod
    def build_request(self, provider: ProviderDescriptor, api_key: str, prompt: str) -> RequestParts:
        """Return (headers, query params, JSON body)."""

    @abstractmethod
    def extract_text(self, data: Any) -> Optional[str]:
        """Return the reply text from a decoded response body, or None if absent."""

    def call(self, provider: ProviderDescriptor, api_key: str, prompt: str) -> str:
        headers, params, body = self.build_request(provider, api_key, prompt)
        headers = {"Content-Type": "application/json", **headers}
        try:
            resp = requests.post(
                provider.endpoint,
                headers=headers,
                params=params or None,
                json=body,
                timeout=config.LLM_TIMEOUT_SECS,
            )
        except requests.RequestException as e:
            log.warning("%s request error: %r", provider.id, e)
            raise ProviderCallError(f"{provider.id} request failed: {e}") from e

        if not 200 <= resp.status_code < 300:
            msg = (resp.text or "")[:400]
            log.warning("%s HTTP %s: %s", provider.id, resp.status_code, msg)
            raise ProviderCallError(f"{provider.id} returned HTTP {resp.status_code}: {msg}")

        try:
            data = resp.json()
        except ValueError as e:
            log.warning("%s: non-JSON HTTP body", provider.id)
            raise ProviderCallError(f"{provider.id} returned a non-JSON body") from e

        text = self.extract_text(data)
        if not text or not isinstance(text, str):
            log.warning("%s: empty response text", provider.id)
            raise ProviderCallError(f"{provider.id} response did not contain generated text")
        return text


class OpenAIClient(ProviderClient):
    provider_id = "openai"

    def build_request(self, provider: ProviderDescriptor, api_key: str, prompt: str) -> RequestParts:
        headers = {"Authorization": f"Bearer {api_key}"}
        body = {
            "model": provider.model,
            "input": [
                {"role": "system", "content": SYSTEM_INSTRUCTION},
                {"role": "user", "content": _user_message(prompt)},
            ],
        }
        return headers, {}, body

    def extract_text(self, data: Any) -> Optional[str]:
        if not isinstance(data, dict):
            return None
        text = data.get("output_text")
        if isinstance(text, str) and text:
            return text
        # Raw Responses API payloads carry the text inside output[].content[]
        for item in data.get("output") or []:
            if not isinstance(item, dict):
                continue
            for part in item.get("content") or []:
                if isinstance(part, dict) and part.get("type") == "output_text":
                    return part.get("text")
        return None


class AnthropicClient(ProviderClient):
    provider_id = "anthropic"

    def build_request(self, provider: ProviderDescriptor, api_key: str, prompt: str) -> RequestParts:
        headers = {"x-api-key": api_key, "anthropic-version": ANTHROPIC_VERSION}
        body = {
            "model": provider.model,
            "max_tokens": ANTHROPIC_MAX_TOKENS,
            "system": SYSTEM_INSTRUCTION,
            "messages": [{"role": "user", "content": _user_message(prompt)}],
        }
        return headers, {}, body

    def extract_text(self, data: Any) -> Optional[str]:
        try:
            return data["content"][0]["text"]
        except (KeyError, IndexError, TypeError):
            return None


class GeminiClient(ProviderClient):
    provider_id = "gemini"

    def build_request(self, provider: ProviderDescriptor, api_key: str, prompt: str) -> RequestParts:
        body = {
            "contents": [
                {
                    "role": "user",
                    "parts": [{"text": f"{SYSTEM_INSTRUCTION}\n{_user_message(prompt)}"}],
                }
            ]
        }
        return {}, {"key": api_key}, body

    def extract_text(self, data: Any) -> Optional[str]:
        try:
            return data["candidates"][0]["content"]["parts"][0]["text"]
        except (KeyError, IndexError, TypeError):
            return None


PROVIDER_CLIENTS: Dict[str, ProviderClient] = {
    client.provider_id: client for client in (OpenAIClient(), AnthropicClient(), GeminiClient())
}


def dispatch(provider: ProviderDescriptor, credential: str, prompt: str) -> str:
    """Call `provider` and return its raw reply text, unparsed."""
    client = PROVIDER_CLIENTS.get(provider.id)
    if client is None:
        raise ProviderNotImplementedError(f"Provider not implemented: {provider.id}")
    log.info("llm dispatch provider=%s model=%s", provider.id, provider.model)
    return client.call(provider, credential, prompt)
