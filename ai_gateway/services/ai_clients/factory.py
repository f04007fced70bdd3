"""Factory turning a stored configuration into a live AI client."""

import logging
from typing import Dict, Optional, Type

from ai_gateway.services.ai_clients.anthropic_client import AnthropicClient
from ai_gateway.services.ai_clients.base import AIClient
from ai_gateway.services.ai_clients.google_client import GoogleAIClient
from ai_gateway.services.ai_clients.openai_compatible import (
    DeepSeekClient,
    OpenAIClient,
    OpenRouterClient,
)
from ai_gateway.services.ai_clients.types import ProviderIdentity
from ai_gateway.services.credential_vault import CredentialVault

logger = logging.getLogger(__name__)

ADAPTERS: Dict[ProviderIdentity, Type[AIClient]] = {
    ProviderIdentity.OPENAI: OpenAIClient,
    ProviderIdentity.ANTHROPIC: AnthropicClient,
    ProviderIdentity.OPENROUTER: OpenRouterClient,
    ProviderIdentity.GOOGLE: GoogleAIClient,
    ProviderIdentity.DEEPSEEK: DeepSeekClient,
}


def get_adapter_class(provider: "str | ProviderIdentity") -> Type[AIClient]:
    """Resolve the client class for a provider.

    Raises:
        UnsupportedProvider: If the provider is unknown.
    """
    return ADAPTERS[ProviderIdentity.parse(provider)]


def create_ai_client(
    provider: "str | ProviderIdentity",
    encrypted_api_key: str,
    vault: Optional[CredentialVault] = None,
    timeout: Optional[float] = None,
) -> AIClient:
    """Create a client for a provider from an encrypted API key.

    A new client is built on every call; credentials may be rotated between
    calls, so instances are never cached.

    Args:
        provider: Provider identifier.
        encrypted_api_key: Vault blob holding the API key.
        vault: Vault used for decryption (defaults to one built from settings).
        timeout: Request timeout override in seconds.

    Returns:
        An unopened client; use it as an async context manager.

    Raises:
        UnsupportedProvider: If the provider is unknown. Raised before decryption.
        MalformedBlob: If the encrypted key is corrupt.
        AuthenticationFailure: If the encrypted key fails authentication.
    """
    adapter_class = get_adapter_class(provider)

    vault = vault or CredentialVault()
    api_key = vault.decrypt(encrypted_api_key)

    logger.info(f"Created {adapter_class.display_name} client")
    return adapter_class(api_key, timeout=timeout)
