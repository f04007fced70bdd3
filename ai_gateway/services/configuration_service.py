"""Configuration service for managing per-tenant AI provider settings."""

import logging
from typing import List, Optional
from datetime import datetime
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError

from ai_gateway.models.ai_configuration import AIConfiguration
from ai_gateway.services.ai_clients import ConnectionTestResult, ProviderIdentity, get_adapter_class
from ai_gateway.services.credential_vault import CredentialVault, mask_secret
from ai_gateway.services.errors import ConfigurationError

logger = logging.getLogger(__name__)


class ConfigurationService:
    """Service for storing and looking up tenant AI configurations."""

    def __init__(self, vault: CredentialVault):
        """Initialize configuration service.

        Args:
            vault: Vault for encrypting/decrypting API keys.
        """
        self.vault = vault

    async def add_configuration(
        self,
        db: Session,
        tenant_id: int,
        provider: str,
        api_key: str,
        model_id: Optional[str] = None,
        activate: bool = True,
        validate: bool = True,
    ) -> AIConfiguration:
        """Add a configuration, optionally validating the key first.

        Args:
            db: Database session.
            tenant_id: Owning tenant.
            provider: Provider identifier.
            api_key: Provider API key (will be encrypted).
            model_id: Default model for this configuration.
            activate: Make this the tenant's active configuration for the provider.
            validate: Test the key against the vendor before storing it.

        Returns:
            The created AIConfiguration instance.

        Raises:
            UnsupportedProvider: If the provider is unknown.
            ValueError: If validation fails or the row conflicts with an existing one.
        """
        identity = ProviderIdentity.parse(provider)

        if validate:
            result = await self.test_credentials(identity, api_key)
            if not result.ok:
                raise ValueError(f"Provider credential validation failed: {result.message}")

        configuration = AIConfiguration(
            tenant_id=tenant_id,
            provider=identity.value,
            api_key_encrypted=self.vault.encrypt(api_key),
            model_id=model_id,
            is_active=activate,
        )

        try:
            if activate:
                self._deactivate_others(db, tenant_id, identity.value)
            db.add(configuration)
            db.commit()
            db.refresh(configuration)
            logger.info(f"AI configuration for tenant {tenant_id} ({identity.value}) added successfully")
            return configuration
        except IntegrityError as e:
            db.rollback()
            logger.error(f"Failed to add AI configuration for tenant {tenant_id}: {e}")
            raise ValueError(f"An active {identity.value} configuration already exists for tenant {tenant_id}")

    async def test_credentials(self, provider: str, api_key: str) -> ConnectionTestResult:
        """Test a plaintext API key before it is stored.

        Args:
            provider: Provider identifier.
            api_key: Provider API key.

        Returns:
            The connection test result.
        """
        adapter_class = get_adapter_class(provider)
        async with adapter_class(api_key) as client:
            return await client.test_connection()

    def list_configurations(self, db: Session, tenant_id: int) -> List[dict]:
        """List a tenant's configurations with masked API keys.

        Args:
            db: Database session.
            tenant_id: Owning tenant.

        Returns:
            List of configuration dictionaries with masked API keys.
        """
        configurations = (
            db.query(AIConfiguration)
            .filter(AIConfiguration.tenant_id == tenant_id)
            .order_by(AIConfiguration.id)
            .all()
        )

        result = []
        for configuration in configurations:
            configuration_dict = {
                "id": configuration.id,
                "tenant_id": configuration.tenant_id,
                "provider": configuration.provider,
                "model_id": configuration.model_id,
                "is_active": configuration.is_active,
                "created_at": configuration.created_at,
                "updated_at": configuration.updated_at,
            }

            try:
                configuration_dict["api_key_masked"] = mask_secret(
                    self.vault.decrypt(configuration.api_key_encrypted)
                )
            except ConfigurationError as e:
                logger.error(f"Failed to decrypt API key for AI configuration {configuration.id}: {e}")
                configuration_dict["api_key_masked"] = "***ERROR***"

            result.append(configuration_dict)

        return result

    def get_configuration(self, db: Session, tenant_id: int, configuration_id: int) -> Optional[AIConfiguration]:
        """Get one of a tenant's configurations by ID.

        Returns:
            AIConfiguration instance or None if not found.
        """
        return (
            db.query(AIConfiguration)
            .filter(AIConfiguration.id == configuration_id, AIConfiguration.tenant_id == tenant_id)
            .first()
        )

    def get_active_configuration(
        self,
        db: Session,
        tenant_id: int,
        provider: Optional[str] = None,
    ) -> Optional[AIConfiguration]:
        """Get the tenant's active configuration, most recently updated first.

        Args:
            db: Database session.
            tenant_id: Owning tenant.
            provider: Restrict to one provider (optional).
        """
        query = db.query(AIConfiguration).filter(
            AIConfiguration.tenant_id == tenant_id,
            AIConfiguration.is_active == True,  # noqa: E712
        )
        if provider:
            query = query.filter(AIConfiguration.provider == ProviderIdentity.parse(provider).value)
        return query.order_by(AIConfiguration.updated_at.desc(), AIConfiguration.id.desc()).first()

    def get_latest_configuration(self, db: Session, tenant_id: int) -> Optional[AIConfiguration]:
        """Get the tenant's most recently updated configuration, active or not."""
        return (
            db.query(AIConfiguration)
            .filter(AIConfiguration.tenant_id == tenant_id)
            .order_by(AIConfiguration.updated_at.desc(), AIConfiguration.id.desc())
            .first()
        )

    def set_active(self, db: Session, tenant_id: int, configuration_id: int) -> Optional[AIConfiguration]:
        """Make a configuration the active one for its provider.

        Returns:
            Updated AIConfiguration instance or None if not found.
        """
        configuration = self.get_configuration(db, tenant_id, configuration_id)
        if not configuration:
            return None

        try:
            self._deactivate_others(db, tenant_id, configuration.provider, exclude_id=configuration.id)
            configuration.is_active = True
            configuration.updated_at = datetime.utcnow()
            db.commit()
            db.refresh(configuration)
            logger.info(f"AI configuration {configuration_id} activated for tenant {tenant_id}")
            return configuration
        except IntegrityError as e:
            db.rollback()
            logger.error(f"Failed to activate AI configuration {configuration_id}: {e}")
            raise ValueError(f"Could not activate AI configuration {configuration_id}")

    def delete_configuration(self, db: Session, tenant_id: int, configuration_id: int) -> bool:
        """Delete a configuration.

        Returns:
            True if deleted, False if not found.
        """
        configuration = self.get_configuration(db, tenant_id, configuration_id)
        if not configuration:
            return False

        try:
            db.delete(configuration)
            db.commit()
            logger.info(f"AI configuration {configuration_id} deleted for tenant {tenant_id}")
            return True
        except Exception as e:
            db.rollback()
            logger.error(f"Failed to delete AI configuration {configuration_id}: {e}")
            raise

    def _deactivate_others(
        self,
        db: Session,
        tenant_id: int,
        provider: str,
        exclude_id: Optional[int] = None,
    ) -> None:
        query = db.query(AIConfiguration).filter(
            AIConfiguration.tenant_id == tenant_id,
            AIConfiguration.provider == provider,
            AIConfiguration.is_active == True,  # noqa: E712
        )
        if exclude_id is not None:
            query = query.filter(AIConfiguration.id != exclude_id)

        for other in query.all():
            other.is_active = False
            other.updated_at = datetime.utcnow()
        # Flush so the partial unique index sees the deactivation before the insert
        db.flush()
