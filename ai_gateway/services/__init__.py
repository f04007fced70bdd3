"""Services package."""

from ai_gateway.services.credential_vault import CredentialVault
from ai_gateway.services.configuration_service import ConfigurationService
from ai_gateway.services.chat_service import ChatService, ChatAvailability, ChatTurn, Conversation

__all__ = [
    "CredentialVault",
    "ConfigurationService",
    "ChatService",
    "ChatAvailability",
    "ChatTurn",
    "Conversation",
]
