"""OpenAI-compatible chat-completions adapter.

Posts the prompt as a single user message with ``requests`` and a bounded
timeout. Every failure (network, HTTP status, malformed body) surfaces as
CompletionError so the pipeline can treat it as "no additional fields".
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import requests

from ...config import LLMConfig, get_config
from ...domain.errors import CompletionError


@dataclass
class HttpCompletionAdapter:
    """Chat-completions client.

    This adapter implements CompletionPort.

    Attributes:
        config: Endpoint, key, model and sampling settings
        session: HTTP session (injectable for tests)
    """

    config: LLMConfig = field(default_factory=lambda: get_config().llm)
    session: requests.Session = field(default_factory=requests.Session, repr=False)
    _logger: logging.Logger = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._logger = logging.getLogger(__name__)

    def is_available(self) -> bool:
        return bool(self.config.enabled and self.config.api_key and self.config.endpoint)

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.config.api_key is not None:
            headers["Authorization"] = f"Bearer {self.config.api_key.get_secret_value()}"
        return headers

    def complete(self, prompt: str, timeout: Optional[float] = None) -> str:
        """Send a prompt and return the completion text.

        Args:
            prompt: Prompt text.
            timeout: Seconds before giving up; defaults to the config value.

        Returns:
            The stripped completion text.

        Raises:
            CompletionError: On timeout, HTTP error or an empty reply.
        """
        if not prompt or not prompt.strip():
            raise CompletionError("Prompt must be non-empty")
        if not self.is_available():
            raise CompletionError("Completion endpoint is not configured")

        body: Dict[str, Any] = {
            "model": self.config.model,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": self.config.temperature,
            "max_tokens": self.config.max_tokens,
        }
        timeout = timeout if timeout is not None else self.config.timeout_seconds

        try:
            response = self.session.post(
                self.config.endpoint,
                json=body,
                headers=self._headers(),
                timeout=timeout,
            )
        except requests.Timeout as e:
            raise CompletionError(f"Completion timed out after {timeout}s", cause=e)
        except requests.RequestException as e:
            raise CompletionError("Completion request failed", cause=e)

        if response.status_code >= 400:
            self._logger.warning(
                "Completion endpoint returned an error",
                extra={"status_code": response.status_code},
            )
            raise CompletionError(
                f"Completion endpoint returned HTTP {response.status_code}",
                status_code=response.status_code,
            )

        try:
            data = response.json()
            text = data["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise CompletionError("Malformed completion response", cause=e)

        if not isinstance(text, str) or not text.strip():
            raise CompletionError("Completion endpoint returned an empty response")

        self._logger.debug(
            "Completion received",
            extra={"model": self.config.model, "chars": len(text)},
        )
        return text.strip()
