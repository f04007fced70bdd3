"""Chat and analysis orchestration over the tenant's configured AI provider."""

import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional, Sequence

from sqlalchemy.orm import Session

from ai_gateway.config import settings
from ai_gateway.models.ai_configuration import AIConfiguration
from ai_gateway.services.ai_clients import (
    AIClient,
    ChatMessage,
    ConnectionTestResult,
    create_ai_client,
    get_adapter_class,
)
from ai_gateway.services.ai_clients.prompts import CHAT_SYSTEM_PROMPT
from ai_gateway.services.configuration_service import ConfigurationService
from ai_gateway.services.credential_vault import CredentialVault
from ai_gateway.services.errors import CapabilityNotSupported, ConfigurationNotFound
from ai_gateway.services.interaction_service import InteractionService

logger = logging.getLogger(__name__)


def default_model_for(provider: str) -> str:
    """Model used for a provider when the configuration does not name one.

    Raises:
        UnsupportedProvider: If the provider is unknown.
    """
    return get_adapter_class(provider).default_model


@dataclass
class Conversation:
    """An ordered, append-only conversation.

    ``system_prompt`` is sent ahead of the messages on every vendor call but is
    not part of the message sequence itself.
    """

    conversation_id: str
    messages: List[ChatMessage] = field(default_factory=list)
    system_prompt: Optional[str] = None
    is_new: bool = False

    def append(self, message: ChatMessage) -> None:
        self.messages.append(message)

    def outbound_messages(self) -> List[ChatMessage]:
        """Messages as forwarded to the vendor."""
        if self.system_prompt and not any(message.role == "system" for message in self.messages):
            return [ChatMessage(role="system", content=self.system_prompt)] + self.messages
        return list(self.messages)


@dataclass
class ChatTurn:
    """Result of one chat turn."""

    message: ChatMessage
    conversation_id: str
    is_new_conversation: bool
    interaction_id: Optional[int] = None


@dataclass
class ChatAvailability:
    """Whether chat can be offered to a tenant, and with what."""

    is_available: bool
    provider: Optional[str]
    model: Optional[str]


class ChatService:
    """Drives interactive chat and data analysis for a tenant.

    Every call resolves a fresh client from the tenant's active configuration;
    nothing is shared between requests.
    """

    def __init__(
        self,
        vault: CredentialVault,
        configuration_service: Optional[ConfigurationService] = None,
        client_factory: Callable[..., AIClient] = create_ai_client,
        interaction_service: Optional[InteractionService] = None,
    ):
        """Initialize chat service.

        Args:
            vault: Vault used to decrypt stored API keys.
            configuration_service: Lookup for tenant configurations.
            client_factory: Builds a client from (provider, encrypted key, vault).
            interaction_service: Log for chat turns.
        """
        self.vault = vault
        self.configuration_service = configuration_service or ConfigurationService(vault)
        self.client_factory = client_factory
        self.interaction_service = interaction_service or InteractionService()

    def get_availability(self, db: Session, tenant_id: int) -> ChatAvailability:
        """Report whether chat is available for the tenant.

        This only reads configuration; it never contacts a vendor. When nothing
        is active, the provider and model that would be used are reported.
        """
        configuration = self.configuration_service.get_active_configuration(db, tenant_id)
        if configuration:
            return ChatAvailability(
                is_available=True,
                provider=configuration.provider,
                model=self._model_for(configuration),
            )

        latest = self.configuration_service.get_latest_configuration(db, tenant_id)
        if latest:
            logger.info(f"AI not available for tenant {tenant_id}: configuration {latest.id} is inactive")
            return ChatAvailability(
                is_available=False,
                provider=latest.provider,
                model=self._model_for(latest),
            )

        logger.info(f"AI not available for tenant {tenant_id}: no configuration")
        return ChatAvailability(
            is_available=False,
            provider=settings.ai_default_provider,
            model=settings.ai_default_model or default_model_for(settings.ai_default_provider),
        )

    def start_conversation(
        self,
        conversation_id: Optional[str] = None,
        history: Optional[Sequence[ChatMessage]] = None,
        system_prompt: Optional[str] = CHAT_SYSTEM_PROMPT,
    ) -> Conversation:
        """Create or resume a conversation.

        Args:
            conversation_id: Existing identifier; a new one is generated when omitted.
            history: Messages exchanged so far, in order.
            system_prompt: Sent ahead of the conversation unless the history
                already carries a system message.
        """
        messages = list(history or [])

        if conversation_id:
            return Conversation(conversation_id=conversation_id, messages=messages, system_prompt=system_prompt)
        return Conversation(
            conversation_id=f"chat-{uuid.uuid4().hex}",
            messages=messages,
            system_prompt=system_prompt,
            is_new=True,
        )

    async def send_message(
        self,
        db: Session,
        tenant_id: int,
        conversation: Conversation,
        content: str,
        user_id: Optional[int] = None,
    ) -> ChatTurn:
        """Run one chat turn.

        The user message is appended, the whole conversation is sent, and the
        assistant's reply is appended before it is returned. If the vendor call
        fails, the user message is removed again so the conversation is left
        exactly as it was and the turn can be retried on it.

        Every turn that reaches the vendor is recorded in the interaction log,
        successful or not.

        Raises:
            ConfigurationError: If the tenant's configuration is missing or unusable.
            VendorError: If the vendor call fails.
        """
        configuration = self._require_active_configuration(db, tenant_id)
        model = self._model_for(configuration)
        started = time.monotonic()

        conversation.append(ChatMessage(role="user", content=content))
        try:
            async with self._client_for(configuration) as client:
                result = await client.create_chat_completion(model, conversation.outbound_messages())
        except Exception as e:
            conversation.messages.pop()
            self.interaction_service.log_interaction(
                db,
                tenant_id=tenant_id,
                user_id=user_id,
                conversation_id=conversation.conversation_id,
                user_query=content,
                ai_response=f"Error: {e}",
                provider=configuration.provider,
                model_id=model,
                processing_time_ms=self._elapsed_ms(started),
                succeeded=False,
            )
            raise

        reply = result.to_message()
        conversation.append(reply)
        interaction = self.interaction_service.log_interaction(
            db,
            tenant_id=tenant_id,
            user_id=user_id,
            conversation_id=conversation.conversation_id,
            user_query=content,
            ai_response=reply.content,
            provider=configuration.provider,
            model_id=model,
            processing_time_ms=self._elapsed_ms(started),
        )
        logger.info(
            f"Chat turn completed for tenant {tenant_id}, conversation {conversation.conversation_id} "
            f"({len(conversation.messages)} messages)"
        )
        return ChatTurn(
            message=reply,
            conversation_id=conversation.conversation_id,
            is_new_conversation=conversation.is_new,
            interaction_id=interaction.id if interaction else None,
        )

    async def analyze(
        self,
        db: Session,
        tenant_id: int,
        data: Any,
        query: str,
        model_id: Optional[str] = None,
    ) -> str:
        """Run a single-shot financial analysis over a data snapshot.

        Returns:
            The assistant's analysis text.
        """
        configuration = self._require_active_configuration(db, tenant_id)
        async with self._client_for(configuration) as client:
            content = await client.analyze_data(model_id or self._model_for(configuration), data, query)

        logger.info(f"Analysis completed for tenant {tenant_id} via {configuration.provider}")
        return content

    async def test_configuration(self, db: Session, tenant_id: int, configuration_id: int) -> ConnectionTestResult:
        """Test a stored configuration against its vendor."""
        configuration = self._require_configuration(db, tenant_id, configuration_id)
        async with self._client_for(configuration) as client:
            return await client.test_connection()

    async def list_models(self, db: Session, tenant_id: int, configuration_id: int) -> List[str]:
        """List the models available to a stored configuration.

        Raises:
            CapabilityNotSupported: If the provider cannot list models.
        """
        configuration = self._require_configuration(db, tenant_id, configuration_id)
        client = self._client_for(configuration)
        if not client.supports_model_listing:
            raise CapabilityNotSupported(configuration.provider, "model listing")

        async with client:
            return await client.list_models()

    def _client_for(self, configuration: AIConfiguration) -> AIClient:
        return self.client_factory(
            configuration.provider,
            configuration.api_key_encrypted,
            vault=self.vault,
        )

    @staticmethod
    def _model_for(configuration: AIConfiguration) -> str:
        return configuration.model_id or default_model_for(configuration.provider)

    @staticmethod
    def _elapsed_ms(started: float) -> int:
        return int((time.monotonic() - started) * 1000)

    def _require_active_configuration(self, db: Session, tenant_id: int) -> AIConfiguration:
        configuration = self.configuration_service.get_active_configuration(db, tenant_id)
        if not configuration:
            raise ConfigurationNotFound(f"AI is not configured or enabled for tenant {tenant_id}")
        return configuration

    def _require_configuration(self, db: Session, tenant_id: int, configuration_id: int) -> AIConfiguration:
        configuration = self.configuration_service.get_configuration(db, tenant_id, configuration_id)
        if not configuration:
            raise ConfigurationNotFound(f"AI configuration {configuration_id} not found")
        return configuration
