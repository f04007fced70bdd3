"""Clients for vendors speaking the OpenAI chat completions wire format."""

import logging
from typing import Any, Dict, List, Tuple

from ai_gateway.config import settings
from ai_gateway.services.ai_clients.base import AIClient
from ai_gateway.services.ai_clients.types import (
    ChatMessage,
    CompletionOptions,
    CompletionResult,
    ProviderIdentity,
)
from ai_gateway.services.errors import VendorError

logger = logging.getLogger(__name__)


class OpenAICompatibleClient(AIClient):
    """Client for ``/chat/completions`` style APIs.

    Request: ``{"model", "messages": [{"role", "content"}], "temperature", "max_tokens"}``
    Response: ``{"choices": [{"message": {"content"}, "finish_reason"}], "usage": {...}}``
    """

    supports_model_listing = True

    async def _probe(self) -> None:
        await self._request("GET", "/models")

    async def list_models(self) -> List[str]:
        """List model identifiers available to this API key.

        Returns:
            Model identifiers in the order the vendor returns them.
        """
        data = await self._request("GET", "/models")
        models = data.get("data") if isinstance(data, dict) else None
        if not isinstance(models, list):
            logger.warning(f"Unexpected models response format from {self.base_url}")
            return []

        model_ids = [model["id"] for model in models if isinstance(model, dict) and "id" in model]
        logger.info(f"Fetched {len(model_ids)} models from {self.display_name}")
        return model_ids

    def _build_chat_request(
        self,
        model: str,
        messages: List[ChatMessage],
        options: CompletionOptions,
    ) -> Tuple[str, Dict[str, Any]]:
        body = {
            "model": model,
            "messages": [message.to_dict() for message in messages],
            "temperature": options.temperature,
            "max_tokens": options.max_tokens,
        }
        return "/chat/completions", body

    def _parse_chat_response(self, data: Dict[str, Any]) -> CompletionResult:
        choices = data.get("choices")
        if not choices:
            raise VendorError(
                f"{self.display_name} API returned no choices",
                provider=self.provider.value,
            )

        choice = choices[0]
        message = choice.get("message") or {}
        usage = data.get("usage") or {}
        return CompletionResult(
            content=message.get("content") or "",
            model=data.get("model"),
            finish_reason=choice.get("finish_reason"),
            usage={
                "input_tokens": usage.get("prompt_tokens", 0),
                "output_tokens": usage.get("completion_tokens", 0),
            },
        )


class OpenAIClient(OpenAICompatibleClient):
    """Client for OpenAI's API."""

    provider = ProviderIdentity.OPENAI
    display_name = "OpenAI"
    default_base_url = "https://api.openai.com/v1"
    default_model = "gpt-4o"


class OpenRouterClient(OpenAICompatibleClient):
    """Client for OpenRouter.

    OpenRouter model identifiers carry the upstream vendor (``openai/gpt-4o``);
    only the ``openrouter/`` namespace is stripped.
    """

    provider = ProviderIdentity.OPENROUTER
    display_name = "OpenRouter"
    default_base_url = "https://openrouter.ai/api/v1"
    default_model = "google/gemini-flash-1.5-8b-exp"

    def _default_headers(self) -> Dict[str, str]:
        headers = super()._default_headers()
        headers["HTTP-Referer"] = settings.app_public_url
        headers["X-Title"] = settings.app_title
        return headers


class DeepSeekClient(OpenAICompatibleClient):
    """Client for DeepSeek's API."""

    provider = ProviderIdentity.DEEPSEEK
    display_name = "DeepSeek"
    default_base_url = "https://api.deepseek.com/v1"
    default_model = "deepseek-chat"
