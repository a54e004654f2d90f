"""
Minimal async client for the Groq OpenAI-compatible API.

One call, one outbound request: no retry, no pooling across calls.
"""

from dataclasses import dataclass
from typing import Any, Optional

import httpx

from logging_config import get_logger

logger = get_logger("mathsolver.groq")

GROQ_BASE_URL = "https://api.groq.com"
MODELS_PATH = "/openai/v1/models"
CHAT_COMPLETIONS_PATH = "/openai/v1/chat/completions"
UPSTREAM_TIMEOUT = 120.0


class UpstreamError(Exception):
    """The request to Groq could not be completed."""


class MissingAPIKeyError(UpstreamError):
    def __init__(self):
        super().__init__(
            "GROQ_API_KEY environment variable is not set. "
            "Start the server with: GROQ_API_KEY=your_key math-solver-ai"
        )


class UpstreamTimeoutError(UpstreamError):
    pass


class UpstreamTransportError(UpstreamError):
    pass


@dataclass(frozen=True)
class UpstreamResponse:
    status_code: int
    text: str


class GroqClient:
    def __init__(
        self,
        api_key: str,
        base_url: str = GROQ_BASE_URL,
        timeout: float = UPSTREAM_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    async def call(self, method: str, path: str, json_body: Optional[Any] = None) -> UpstreamResponse:
        """
        Send one request and return the raw status and body.

        Raises MissingAPIKeyError before touching the network when no key is
        configured, UpstreamTimeoutError when the 120s budget runs out and
        UpstreamTransportError for any other transport failure.
        """
        if not self.api_key:
            raise MissingAPIKeyError()

        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        url = f"{self.base_url}{path}"

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                if json_body is None:
                    r = await client.request(method, url, headers=headers)
                else:
                    r = await client.request(method, url, headers=headers, json=json_body)
        except httpx.TimeoutException as e:
            raise UpstreamTimeoutError("Groq request timed out") from e
        except httpx.HTTPError as e:
            raise UpstreamTransportError(str(e) or type(e).__name__) from e

        logger.debug(f"Groq {method} {path} -> {r.status_code}")
        return UpstreamResponse(status_code=r.status_code, text=r.text)
