"""Google AI (Gemini) client."""

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

# Gemini calls the assistant role "model"
ROLE_MAP = {"user": "user", "assistant": "model"}


class GoogleAIClient(AIClient):
    """Client for the Gemini ``generateContent`` API."""

    provider = ProviderIdentity.GOOGLE
    display_name = "Google AI"
    default_base_url = "https://generativelanguage.googleapis.com/v1beta"
    default_model = "gemini-pro"
    supports_model_listing = True

    def _default_headers(self) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "x-goog-api-key": self._api_key,
        }

    def strip_model_namespace(self, model_id: str) -> str:
        model = super().strip_model_namespace(model_id)
        if model.startswith("models/"):
            model = model[len("models/"):]
        return model

    async def _probe(self) -> None:
        await self._request("GET", "/models")

    async def list_models(self) -> List[str]:
        """List Gemini models that support ``generateContent``."""
        data = await self._request("GET", "/models")
        models = data.get("models") if isinstance(data, dict) else None
        if not isinstance(models, list):
            logger.warning(f"Unexpected models response format from {self.base_url}")
            return []

        model_ids = []
        for model in models:
            if not isinstance(model, dict) or "name" not in model:
                continue
            methods = model.get("supportedGenerationMethods")
            if methods is not None and "generateContent" not in methods:
                continue
            model_ids.append(self.strip_model_namespace(model["name"]))

        logger.info(f"Fetched {len(model_ids)} models from Google AI")
        return model_ids

    def _build_chat_request(
        self,
        model: str,
        messages: List[ChatMessage],
        options: CompletionOptions,
    ) -> Tuple[str, Dict[str, Any]]:
        system_parts = [{"text": message.content} for message in messages if message.role == "system"]
        body: Dict[str, Any] = {
            "contents": [
                {"role": ROLE_MAP[message.role], "parts": [{"text": message.content}]}
                for message in messages
                if message.role != "system"
            ],
            "generationConfig": {
                "temperature": options.temperature,
                "maxOutputTokens": options.max_tokens,
            },
        }
        if system_parts:
            body["systemInstruction"] = {"parts": system_parts}
        return f"/models/{model}:generateContent", body

    def _parse_chat_response(self, data: Dict[str, Any]) -> CompletionResult:
        candidates = data.get("candidates")
        if not candidates:
            feedback = data.get("promptFeedback") or {}
            reason = feedback.get("blockReason")
            message = f"Google AI returned no candidates (blocked: {reason})" if reason else "Google AI returned no candidates"
            raise VendorError(message, provider=self.provider.value)

        candidate = candidates[0]
        parts = (candidate.get("content") or {}).get("parts") or []
        usage = data.get("usageMetadata") or {}
        return CompletionResult(
            content="".join(part.get("text", "") for part in parts if isinstance(part, dict)),
            model=data.get("modelVersion"),
            finish_reason=candidate.get("finishReason"),
            usage={
                "input_tokens": usage.get("promptTokenCount", 0),
                "output_tokens": usage.get("candidatesTokenCount", 0),
            },
        )
