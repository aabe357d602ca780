"""Client for OpenAI-compatible chat completion APIs."""

from __future__ import annotations

import json
import os
import socket
from dataclasses import dataclass
from typing import Callable, Optional, Sequence
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

from ..config import ConfigError, LLMConfig
from ..logging import get_logger
from ..models import PromptPair


class GenerationUnavailableError(RuntimeError):
    """Raised when the upstream model call fails or returns no usable content."""


@dataclass
class LLMRequest:
    """Represents a single chat completion request."""

    system: str
    prompt: str
    model: str
    temperature: Optional[float]
    max_tokens: Optional[int]
    base_url: str
    api_key: str
    request_timeout: Optional[float]


class LLMRunner:
    """Sends prompt pairs to a generative text model and returns raw text."""

    DEFAULT_MODEL = "gpt-4"
    DEFAULT_BASE_URL = "https://api.openai.com/v1"
    DEFAULT_TEMPERATURE = 0.2
    DEFAULT_MAX_TOKENS = 2048
    ENV_MODEL_KEYS = ("PIPEGEN_LLM_MODEL", "OPENAI_MODEL")
    ENV_BASE_URL_KEYS = ("PIPEGEN_LLM_BASE_URL", "OPENAI_BASE_URL")
    ENV_API_KEY_KEYS = ("PIPEGEN_LLM_API_KEY", "OPENAI_API_KEY")

    def __init__(
        self,
        model: str | None = None,
        *,
        api_key: str | None = None,
        base_url: str | None = None,
        temperature: Optional[float] = DEFAULT_TEMPERATURE,
        max_tokens: Optional[int] = DEFAULT_MAX_TOKENS,
        request_timeout: Optional[float] = 60.0,
        api_key_env: str | None = None,
        transport: Callable[[LLMRequest], str] | None = None,
    ) -> None:
        self.model = model or self._first_env_value(self.ENV_MODEL_KEYS) or self.DEFAULT_MODEL
        self.base_url = (
            base_url or self._first_env_value(self.ENV_BASE_URL_KEYS) or self.DEFAULT_BASE_URL
        ).rstrip("/")
        self.api_key = self._resolve_api_key(api_key, api_key_env)
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.request_timeout = request_timeout
        self._transport = transport or self._http_transport
        self.logger = get_logger("llm")

    @classmethod
    def from_config(
        cls,
        config: LLMConfig | None,
        *,
        transport: Callable[[LLMRequest], str] | None = None,
    ) -> "LLMRunner":
        """Build a runner from the llm section of .pipegen.yml."""
        if config is None:
            return cls(transport=transport)
        return cls(
            config.model,
            base_url=config.base_url,
            temperature=config.temperature if config.temperature is not None else cls.DEFAULT_TEMPERATURE,
            max_tokens=config.max_tokens if config.max_tokens is not None else cls.DEFAULT_MAX_TOKENS,
            request_timeout=config.request_timeout if config.request_timeout is not None else 60.0,
            api_key_env=config.api_key_env,
            transport=transport,
        )

    def generate(
        self,
        prompts: PromptPair,
        *,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> str:
        """Return the raw model text for the prompt pair."""
        request = LLMRequest(
            system=prompts.system_prompt,
            prompt=prompts.user_prompt,
            model=self.model,
            temperature=temperature if temperature is not None else self.temperature,
            max_tokens=max_tokens if max_tokens is not None else self.max_tokens,
            base_url=self.base_url,
            api_key=self.api_key,
            request_timeout=self.request_timeout,
        )
        self.logger.debug(
            "Requesting completion from %s (model=%s, max_tokens=%s)",
            request.base_url,
            request.model,
            request.max_tokens,
        )
        content = self._transport(request)
        if not content or not content.strip():
            raise GenerationUnavailableError("Model returned an empty response")
        return content.strip()

    @staticmethod
    def _http_transport(request: LLMRequest) -> str:
        endpoint = f"{request.base_url}/chat/completions"
        payload: dict[str, object] = {
            "model": request.model,
            "messages": LLMRunner._build_messages(request.system, request.prompt),
        }
        if request.temperature is not None:
            payload["temperature"] = request.temperature
        if request.max_tokens is not None:
            payload["max_tokens"] = request.max_tokens

        data = json.dumps(payload).encode("utf-8")
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {request.api_key}",
        }
        http_request = Request(endpoint, data=data, headers=headers, method="POST")
        timeout = request.request_timeout or 60.0

        try:
            with urlopen(http_request, timeout=timeout) as response:
                raw = response.read()
        except HTTPError as exc:
            detail = exc.read().decode("utf-8", errors="ignore") if hasattr(exc, "read") else ""
            message = detail.strip() or exc.reason
            raise GenerationUnavailableError(
                f"Model API failed with status {exc.code}: {message}"
            ) from exc
        except URLError as exc:
            raise GenerationUnavailableError(f"Model API unreachable: {exc.reason}") from exc
        except (socket.timeout, TimeoutError) as exc:
            raise GenerationUnavailableError(f"Model API timed out after {timeout}s") from exc

        try:
            response_payload = json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise GenerationUnavailableError("Model API returned invalid JSON") from exc

        content = LLMRunner._extract_content(response_payload)
        if not content:
            raise GenerationUnavailableError("Model API returned no choices")
        return content

    @staticmethod
    def _build_messages(system: str, prompt: str) -> list[dict[str, str]]:
        messages: list[dict[str, str]] = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})
        return messages

    @staticmethod
    def _extract_content(payload: object) -> str:
        if not isinstance(payload, dict):
            return ""
        choices = payload.get("choices")
        if not isinstance(choices, list) or not choices:
            return ""
        first = choices[0]
        if not isinstance(first, dict):
            return ""
        message = first.get("message")
        if isinstance(message, dict):
            content = message.get("content")
            if isinstance(content, str):
                return content
        text = first.get("text")
        if isinstance(text, str):
            return text
        return ""

    def _resolve_api_key(self, api_key: str | None, api_key_env: str | None) -> str:
        if api_key:
            return api_key
        keys: Sequence[str] = (api_key_env,) if api_key_env else self.ENV_API_KEY_KEYS
        value = self._first_env_value(keys)
        if not value:
            names = ", ".join(keys)
            raise ConfigError(f"No model API key configured. Set one of: {names}")
        return value

    @staticmethod
    def _first_env_value(keys: Sequence[str]) -> str | None:
        for key in keys:
            value = os.getenv(key)
            if value:
                return value
        return None


__all__ = ["GenerationUnavailableError", "LLMRequest", "LLMRunner"]
