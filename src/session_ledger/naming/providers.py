"""Session-name providers.

Uses an OpenAI-compatible chat completions API, so it works with Ollama,
LM Studio, vLLM, OpenAI and similar servers.
"""

import logging
from typing import Any

import httpx

from session_ledger.config import NamingConfig
from session_ledger.constants import (
    DEFAULT_NAMING_BASE_URL,
    DEFAULT_NAMING_TIMEOUT,
    MAX_NAMING_CONTEXT_CHARS,
    MAX_SESSION_NAME_LENGTH,
)
from session_ledger.exceptions import NamingError
from session_ledger.naming.base import BaseSessionNamer
from session_ledger.store.models import Conversation

logger = logging.getLogger(__name__)

PROVIDER_NAME = "openai_compat"

NAMING_PROMPT = """Write a short title (at most 6 words) for the conversation below.
Reply with the title only: no quotes, no punctuation at the end, no explanation.

{conversation}"""


def _message_text(content: Any) -> str:
    """Pull the text parts out of an opaque message payload."""
    if isinstance(content, str):
        return content
    if isinstance(content, dict):
        text = content.get("text")
        return text if isinstance(text, str) else ""
    if isinstance(content, list):
        return " ".join(part for part in (_message_text(item) for item in content) if part)
    return ""


def render_conversation(conversation: Conversation, limit: int = MAX_NAMING_CONTEXT_CHARS) -> str:
    """Render a conversation as ``role: text`` lines, truncated to ``limit`` chars."""
    lines = []
    for message in conversation:
        text = _message_text(message.content).strip()
        if text:
            lines.append(f"{message.role.value}: {text}")
    return "\n".join(lines)[:limit]


def clean_session_name(raw: str) -> str:
    """Reduce an LLM reply to a single short line."""
    for line in raw.splitlines():
        name = line.strip().strip("\"'`").strip()
        if name:
            return name[:MAX_SESSION_NAME_LENGTH].rstrip()
    return ""


class OpenAICompatSessionNamer(BaseSessionNamer):
    """Session namer using an OpenAI-compatible API."""

    def __init__(
        self,
        base_url: str = DEFAULT_NAMING_BASE_URL,
        model: str = "",
        api_key: str | None = None,
        timeout: float = DEFAULT_NAMING_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize the namer.

        Args:
            base_url: API base URL (e.g., http://localhost:11434/v1 for Ollama).
            model: Model name/identifier.
            api_key: API key (optional for local servers).
            timeout: Request timeout in seconds.
            transport: Optional httpx transport (tests use httpx.MockTransport).
        """
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.api_key = api_key
        self.timeout = timeout
        self._transport = transport

    def _get_headers(self) -> dict[str, str]:
        """Get request headers with optional auth."""
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    async def generate_session_name(self, conversation: Conversation) -> str:
        """Ask the model for a short session title.

        Raises:
            NamingError: On transport failures, non-200 responses, or replies
                without usable text.
        """
        prompt = NAMING_PROMPT.format(conversation=render_conversation(conversation))

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self._transport
            ) as client:
                response = await client.post(
                    f"{self.base_url}/chat/completions",
                    json={
                        "model": self.model,
                        "messages": [{"role": "user", "content": prompt}],
                        "temperature": 0.3,
                        "max_tokens": 30,
                    },
                    headers=self._get_headers(),
                )
        except httpx.TimeoutException as e:
            raise NamingError("Session naming timed out", provider=PROVIDER_NAME, cause=e) from e
        except httpx.HTTPError as e:
            raise NamingError(
                f"Session naming request failed: {e}", provider=PROVIDER_NAME, cause=e
            ) from e

        if response.status_code != 200:
            logger.debug(f"Response body: {response.text[:500]}")
            raise NamingError(f"API returned {response.status_code}", provider=PROVIDER_NAME)

        try:
            data = response.json()
            raw = data["choices"][0]["message"]["content"] or ""
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise NamingError(
                "Malformed chat completion response", provider=PROVIDER_NAME, cause=e
            ) from e

        name = clean_session_name(raw)
        if not name:
            raise NamingError("Model returned an empty session name", provider=PROVIDER_NAME)
        return name


def create_namer_from_config(config: NamingConfig) -> BaseSessionNamer | None:
    """Create a session namer from NamingConfig.

    Returns:
        Configured namer, or None when naming is disabled or no model is set.
    """
    if not config.enabled:
        logger.debug("Session naming is disabled in config")
        return None
    if not config.model:
        logger.debug("Session naming model not configured - skipping namer creation")
        return None

    return OpenAICompatSessionNamer(
        base_url=config.base_url,
        model=config.model,
        api_key=config.api_key,
        timeout=config.timeout,
    )
