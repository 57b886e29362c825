"""
LLM completion clients.

Supports:
- Ollama backend (/api/generate)
- VLLM backend (OpenAI compatible /v1/chat/completions)

Every failure (timeout, transport error, bad status, malformed or empty
body) surfaces as CompletionError so callers can retry on one type.
"""
import time
from abc import ABC, abstractmethod
from typing import Optional

import requests

from doc_summarizer.config import (
    LLM_BACKEND,
    OLLAMA_URL,
    VLLM_URL,
    SUMMARY_MODEL,
    SUMMARY_TIMEOUT,
    LLM_TEMPERATURE,
    LLM_MAX_TOKENS,
)
from doc_summarizer.errors import CompletionError
from doc_summarizer.logging_config import get_summarization_logger

logger = get_summarization_logger()


class LLMClient(ABC):
    """Text-in/text-out completion service."""

    def __init__(
        self,
        base_url: str,
        model: str = SUMMARY_MODEL,
        temperature: float = LLM_TEMPERATURE,
        max_tokens: int = LLM_MAX_TOKENS,
        timeout: float = SUMMARY_TIMEOUT,
        session: Optional[requests.Session] = None
    ):
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout = timeout
        self.session = session or requests.Session()

    @property
    @abstractmethod
    def endpoint(self) -> str:
        ...

    @abstractmethod
    def _build_payload(self, prompt: str) -> dict:
        ...

    @abstractmethod
    def _parse_response(self, data: dict) -> str:
        ...

    def complete(self, prompt: str, context: str = "unknown") -> str:
        """Send one prompt and return the raw completion text."""
        url = f"{self.base_url}{self.endpoint}"
        logger.debug(f"[LLM] {context} | url={url} | model={self.model} | prompt_chars={len(prompt)}")

        start_time = time.time()
        try:
            response = self.session.post(url, json=self._build_payload(prompt), timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except requests.exceptions.Timeout:
            elapsed = time.time() - start_time
            logger.error(f"[LLM] {context} | TIMEOUT after {elapsed:.2f}s | timeout_limit={self.timeout}s")
            raise CompletionError(f"LLM timeout after {self.timeout}s")
        except requests.exceptions.RequestException as e:
            elapsed = time.time() - start_time
            logger.error(f"[LLM] {context} | REQUEST_ERROR after {elapsed:.2f}s | error={e}")
            raise CompletionError(f"LLM request failed: {e}")
        except ValueError as e:
            logger.error(f"[LLM] {context} | INVALID_JSON | error={e}")
            raise CompletionError(f"LLM returned invalid JSON: {e}")

        try:
            text = self._parse_response(data)
        except (KeyError, IndexError, TypeError) as e:
            logger.error(f"[LLM] {context} | MALFORMED_RESPONSE | error={e}")
            raise CompletionError(f"LLM response missing content: {e}")

        text = (text or "").strip()
        if not text:
            logger.error(f"[LLM] {context} | EMPTY_RESPONSE")
            raise CompletionError("LLM returned an empty completion")

        elapsed = time.time() - start_time
        logger.info(f"[LLM] {context} | SUCCESS | elapsed={elapsed:.2f}s | response_chars={len(text)}")
        return text


class OllamaClient(LLMClient):

    def __init__(self, base_url: str = OLLAMA_URL, **kwargs):
        super().__init__(base_url, **kwargs)

    @property
    def endpoint(self) -> str:
        return "/api/generate"

    def _build_payload(self, prompt: str) -> dict:
        return {
            "model": self.model,
            "prompt": prompt,
            "stream": False,
            "options": {
                "temperature": self.temperature,
                "num_predict": self.max_tokens
            }
        }

    def _parse_response(self, data: dict) -> str:
        if "eval_count" in data:
            logger.debug(f"[LLM] Ollama tokens | eval_count={data.get('eval_count')}")
        return data["response"]


class VllmClient(LLMClient):

    def __init__(self, base_url: str = VLLM_URL, **kwargs):
        super().__init__(base_url, **kwargs)

    @property
    def endpoint(self) -> str:
        return "/v1/chat/completions"

    def _build_payload(self, prompt: str) -> dict:
        return {
            "model": self.model,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": self.temperature,
            "max_tokens": self.max_tokens
        }

    def _parse_response(self, data: dict) -> str:
        usage = data.get("usage") or {}
        if usage:
            logger.debug(
                f"[LLM] VLLM tokens | prompt={usage.get('prompt_tokens')} | "
                f"completion={usage.get('completion_tokens')}"
            )
        return data["choices"][0]["message"]["content"]


def create_llm_client(backend: str = LLM_BACKEND, **kwargs) -> LLMClient:
    """Build the client for the configured backend."""
    if backend == "vllm":
        return VllmClient(**kwargs)
    if backend == "ollama":
        return OllamaClient(**kwargs)
    raise ValueError(f"Unknown LLM backend: {backend}")
