"""Anthropic Messages API client."""

import logging
from typing import Any, Dict, List, Tuple

from ai_gateway.services.ai_clients.base import AIClient
from ai_gateway.services.ai_clients.types import (
    ChatMessage,
    CompletionOptions,
    CompletionResult,
    ProviderIdentity,
)
from ai_gateway.services.errors import VendorError

logger = logging.getLogger(__name__)

ANTHROPIC_VERSION = "2023-06-01"


class AnthropicClient(AIClient):
    """Client for Anthropic's Messages API.

    Anthropic takes system instructions in a top-level ``system`` field rather
    than as messages, and answers with a list of content blocks.
    """

    provider = ProviderIdentity.ANTHROPIC
    display_name = "Anthropic"
    default_base_url = "https://api.anthropic.com/v1"
    default_model = "claude-3-opus-20240229"
    probe_model = "claude-3-haiku-20240307"

    def _default_headers(self) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "x-api-key": self._api_key,
            "anthropic-version": ANTHROPIC_VERSION,
        }

    async def _probe(self) -> None:
        # No cheap listing endpoint is relied on; a 1-token message proves the key works
        await self._request(
            "POST",
            "/messages",
            json_data={
                "model": self.probe_model,
                "max_tokens": 1,
                "messages": [{"role": "user", "content": "test"}],
            },
        )

    def _build_chat_request(
        self,
        model: str,
        messages: List[ChatMessage],
        options: CompletionOptions,
    ) -> Tuple[str, Dict[str, Any]]:
        system_parts = [message.content for message in messages if message.role == "system"]
        turns = [message for message in messages if message.role != "system"]

        # The Messages API requires the first turn to come from the user
        leading = 0
        while leading < len(turns) and turns[leading].role != "user":
            leading += 1
        if leading:
            logger.debug(f"Dropping {leading} assistant message(s) ahead of the first user turn")

        body: Dict[str, Any] = {
            "model": model,
            "messages": [message.to_dict() for message in turns[leading:]],
            "max_tokens": options.max_tokens,
            "temperature": options.temperature,
        }
        if system_parts:
            body["system"] = "\n\n".join(system_parts)
        return "/messages", body

    def _parse_chat_response(self, data: Dict[str, Any]) -> CompletionResult:
        blocks = data.get("content")
        if not isinstance(blocks, list):
            raise VendorError(
                "Anthropic API returned no content",
                provider=self.provider.value,
            )

        text = "".join(
            block.get("text", "")
            for block in blocks
            if isinstance(block, dict) and block.get("type") == "text"
        )
        usage = data.get("usage") or {}
        return CompletionResult(
            content=text,
            model=data.get("model"),
            finish_reason=data.get("stop_reason"),
            usage={
                "input_tokens": usage.get("input_tokens", 0),
                "output_tokens": usage.get("output_tokens", 0),
            },
        )
