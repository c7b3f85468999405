"""Chat-completions transport for the AI collaborator."""

import logging
from dataclasses import dataclass
from typing import Protocol

import httpx

from devtrack.config import AiConfig
from devtrack.errors import AiCollaboratorError

logger = logging.getLogger(__name__)


@dataclass
class ChatMessage:
    role: str
    content: str


class ChatTransport(Protocol):
    """Anything that turns a system prompt and a conversation into reply text."""

    def chat(self, system_prompt: str, messages: list[ChatMessage]) -> str:
        ...


class ChatClient:
    """OpenAI-compatible /chat/completions client."""

    def __init__(self, config: AiConfig, http_client: httpx.Client | None = None) -> None:
        self.config = config
        self._http = http_client or httpx.Client(timeout=config.timeout)

    @property
    def has_api_key(self) -> bool:
        return bool(self.config.api_key)

    def chat(self, system_prompt: str, messages: list[ChatMessage]) -> str:
        if not self.has_api_key:
            raise AiCollaboratorError("AI API key not configured")

        payload = {
            "model": self.config.model,
            "messages": [{"role": "system", "content": system_prompt}]
            + [{"role": m.role, "content": m.content} for m in messages],
            "temperature": self.config.temperature,
            "max_tokens": self.config.max_tokens,
        }
        url = self.config.base_url.rstrip("/") + "/chat/completions"

        try:
            response = self._http.post(
                url,
                json=payload,
                headers={"Authorization": f"Bearer {self.config.api_key}"},
            )
        except httpx.HTTPError as e:
            raise AiCollaboratorError(f"Request failed: {e}") from e

        if response.is_error:
            raise AiCollaboratorError(f"API error {response.status_code}: {response.text[:500]}")

        try:
            data = response.json()
            content = data["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise AiCollaboratorError(f"Unexpected response from AI provider: {e}") from e

        if not isinstance(content, str):
            raise AiCollaboratorError(
                f"Unexpected response from AI provider: content is {type(content).__name__}"
            )
        return content

    def close(self) -> None:
        self._http.close()
