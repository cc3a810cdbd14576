from __future__ import annotations

import asyncio
import logging
from typing import List, Optional

import httpx
from pydantic import ValidationError

from chat_relay.config import Settings
from chat_relay.errors import (
    ConfigurationError,
    UpstreamProtocolError,
    UpstreamTimeoutError,
    UpstreamTransportError,
)
from chat_relay.schemas import ChatMessage, UpstreamRequest, UpstreamResponse

logger = logging.getLogger(__name__)

API_KEY_HEADER = "x-litellm-api-key"


class RelayService:
    """Forwards a single prompt to an OpenAI-compatible chat-completion API."""

    def __init__(
        self,
        settings: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._settings = settings
        self._transport = transport
        self._timeout = settings.upstream_timeout_seconds
        self._default_headers = {"Content-Type": "application/json"}

    def build_upstream_request(self, prompt: str) -> UpstreamRequest:
        """Wrap the prompt in the persona system message, when one is set."""
        messages: List[ChatMessage] = []
        if self._settings.system_prompt:
            messages.append(
                ChatMessage(role="system", content=self._settings.system_prompt)
            )
        messages.append(ChatMessage(role="user", content=prompt))
        return UpstreamRequest(messages=messages, model=self._settings.upstream_model)

    def extract_text(self, completion: UpstreamResponse) -> str:
        """Return the first choice's content, or the fallback when there is none."""
        if completion.choices:
            choice = completion.choices[0]
            if choice is None or choice.message is None:
                return ""
            return choice.message.content or ""
        logger.warning("Upstream returned no choices, using fallback response")
        return self._settings.fallback_response

    async def _post(self, payload: dict, api_key: str) -> httpx.Response:
        headers = {**self._default_headers, API_KEY_HEADER: api_key}
        async with httpx.AsyncClient(
            timeout=self._timeout, transport=self._transport
        ) as client:
            return await client.post(
                self._settings.upstream_url, json=payload, headers=headers
            )

    async def complete(self, prompt: str) -> str:
        """Relay ``prompt`` upstream and return the model's answer text."""
        try:
            api_key = self._settings.require_api_key()
        except ConfigurationError:
            logger.warning("LITELLM_API_KEY is not set, refusing to relay")
            raise
        payload = self.build_upstream_request(prompt).model_dump(exclude_none=True)

        # httpx bounds each phase; wait_for bounds the whole exchange.
        try:
            response = await asyncio.wait_for(
                self._post(payload, api_key), timeout=self._timeout
            )
        except (httpx.TimeoutException, asyncio.TimeoutError) as exc:
            logger.error("Upstream API timed out after %gs", self._timeout)
            raise UpstreamTimeoutError(
                f"Upstream API timed out after {self._timeout:g}s"
            ) from exc
        except httpx.HTTPError as exc:
            logger.error("Upstream API request failed: %s", exc)
            raise UpstreamTransportError(
                f"Error sending request to API: {exc}"
            ) from exc

        if response.status_code != httpx.codes.OK:
            logger.error(
                "API returned an error (%d): %s", response.status_code, response.text
            )
            raise UpstreamProtocolError(
                f"API returned non-200 status: {response.text}"
            )

        try:
            completion = UpstreamResponse.model_validate_json(response.content)
        except ValidationError as exc:
            raise UpstreamProtocolError(
                f"Error unmarshalling API response: {exc}"
            ) from exc

        return self.extract_text(completion)
