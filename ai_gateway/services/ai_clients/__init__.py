"""AI provider clients."""

from ai_gateway.services.ai_clients.anthropic_client import AnthropicClient
from ai_gateway.services.ai_clients.base import AIClient
from ai_gateway.services.ai_clients.factory import ADAPTERS, create_ai_client, get_adapter_class
from ai_gateway.services.ai_clients.google_client import GoogleAIClient
from ai_gateway.services.ai_clients.openai_compatible import (
    DeepSeekClient,
    OpenAIClient,
    OpenAICompatibleClient,
    OpenRouterClient,
)
from ai_gateway.services.ai_clients.types import (
    ChatMessage,
    CompletionOptions,
    CompletionResult,
    ConnectionTestResult,
    ProviderIdentity,
)

__all__ = [
    "ADAPTERS",
    "AIClient",
    "AnthropicClient",
    "ChatMessage",
    "CompletionOptions",
    "CompletionResult",
    "ConnectionTestResult",
    "DeepSeekClient",
    "GoogleAIClient",
    "OpenAIClient",
    "OpenAICompatibleClient",
    "OpenRouterClient",
    "ProviderIdentity",
    "create_ai_client",
    "get_adapter_class",
]
