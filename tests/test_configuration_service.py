"""Tests for the configuration service."""

from datetime import datetime, timedelta
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy.exc import IntegrityError

from ai_gateway.models.ai_configuration import AIConfiguration
from ai_gateway.services.ai_clients import ConnectionTestResult, OpenAIClient
from ai_gateway.services.configuration_service import ConfigurationService
from ai_gateway.services.errors import UnsupportedProvider


@pytest.fixture
def service(vault):
    return ConfigurationService(vault)


async def _add(service, db, tenant_id=1, provider="openai", api_key="sk-test-key-1234567890", **kwargs):
    kwargs.setdefault("validate", False)
    return await service.add_configuration(db, tenant_id, provider, api_key, **kwargs)


class TestAddConfiguration:
    """Storing configurations."""

    async def test_key_stored_encrypted(self, service, test_db, vault):
        """Test that the API key is never stored in plaintext."""
        configuration = await _add(service, test_db, model_id="gpt-4o")

        assert configuration.id is not None
        assert configuration.provider == "openai"
        assert configuration.model_id == "gpt-4o"
        assert configuration.is_active is True
        assert configuration.api_key_encrypted != "sk-test-key-1234567890"
        assert vault.decrypt(configuration.api_key_encrypted) == "sk-test-key-1234567890"

    async def test_provider_normalized(self, service, test_db):
        configuration = await _add(service, test_db, provider="OpenRouter")
        assert configuration.provider == "openrouter"

    async def test_unknown_provider(self, service, test_db):
        with pytest.raises(UnsupportedProvider):
            await _add(service, test_db, provider="mistral")

        assert test_db.query(AIConfiguration).count() == 0

    async def test_validation_success(self, service, test_db):
        result = ConnectionTestResult(ok=True, message="Successfully connected to OpenAI API")
        with patch.object(service, "test_credentials", new=AsyncMock(return_value=result)) as mock_test:
            configuration = await _add(service, test_db, validate=True)

        mock_test.assert_awaited_once()
        assert configuration.id is not None

    async def test_validation_failure_stores_nothing(self, service, test_db):
        result = ConnectionTestResult(ok=False, message="Incorrect API key provided")
        with patch.object(service, "test_credentials", new=AsyncMock(return_value=result)):
            with pytest.raises(ValueError, match="Incorrect API key provided"):
                await _add(service, test_db, validate=True)

        assert test_db.query(AIConfiguration).count() == 0

    async def test_activation_replaces_previous(self, service, test_db):
        """Test that at most one configuration per provider is active."""
        first = await _add(service, test_db, api_key="sk-first-key-000000")
        second = await _add(service, test_db, api_key="sk-second-key-00000")

        test_db.refresh(first)
        assert first.is_active is False
        assert second.is_active is True

    async def test_other_providers_unaffected(self, service, test_db):
        openai = await _add(service, test_db, provider="openai")
        await _add(service, test_db, provider="anthropic", api_key="sk-ant-test-key-123")

        test_db.refresh(openai)
        assert openai.is_active is True

    async def test_inactive_add(self, service, test_db):
        first = await _add(service, test_db)
        second = await _add(service, test_db, activate=False)

        test_db.refresh(first)
        assert first.is_active is True
        assert second.is_active is False

    async def test_active_uniqueness_enforced_by_database(self, service, test_db, vault):
        """Test that the partial unique index rejects two active rows."""
        await _add(service, test_db)

        test_db.add(
            AIConfiguration(
                tenant_id=1,
                provider="openai",
                api_key_encrypted=vault.encrypt("sk-other"),
                is_active=True,
            )
        )
        with pytest.raises(IntegrityError):
            test_db.commit()
        test_db.rollback()


class TestCredentialCheck:
    """Testing plaintext keys before storage."""

    async def test_uses_provider_client(self, service):
        result = ConnectionTestResult(ok=True, message="Successfully connected to OpenAI API")
        with patch.object(OpenAIClient, "test_connection", new=AsyncMock(return_value=result)) as mock_test:
            assert await service.test_credentials("openai", "sk-test") == result

        mock_test.assert_awaited_once()

    async def test_unknown_provider(self, service):
        with pytest.raises(UnsupportedProvider):
            await service.test_credentials("mistral", "sk-test")


class TestLookup:
    """Reading configurations."""

    async def test_list_masks_keys(self, service, test_db):
        await _add(service, test_db, api_key="sk-provider1-key-1234567890")

        configurations = service.list_configurations(test_db, 1)

        assert len(configurations) == 1
        assert configurations[0]["api_key_masked"] == "sk-" + "*" * 15 + "7890"
        assert "api_key_encrypted" not in configurations[0]

    async def test_list_reports_corrupt_key(self, service, test_db):
        configuration = await _add(service, test_db)
        configuration.api_key_encrypted = "corrupt"
        test_db.commit()

        configurations = service.list_configurations(test_db, 1)

        assert configurations[0]["api_key_masked"] == "***ERROR***"

    async def test_tenant_isolation(self, service, test_db):
        """Test that tenants never see each other's configurations."""
        mine = await _add(service, test_db, tenant_id=1)
        await _add(service, test_db, tenant_id=2)

        assert [c["id"] for c in service.list_configurations(test_db, 1)] == [mine.id]
        assert service.get_configuration(test_db, 2, mine.id) is None
        assert service.get_active_configuration(test_db, 3) is None

    async def test_active_configuration_most_recent_first(self, service, test_db):
        openai = await _add(service, test_db, provider="openai")
        anthropic = await _add(service, test_db, provider="anthropic", api_key="sk-ant-test-key-123")
        openai.updated_at = datetime.utcnow() + timedelta(minutes=5)
        test_db.commit()

        assert service.get_active_configuration(test_db, 1).id == openai.id
        assert service.get_active_configuration(test_db, 1, provider="anthropic").id == anthropic.id

    async def test_latest_includes_inactive(self, service, test_db):
        configuration = await _add(service, test_db, activate=False)

        assert service.get_active_configuration(test_db, 1) is None
        assert service.get_latest_configuration(test_db, 1).id == configuration.id


class TestMutations:
    """Activating and deleting configurations."""

    async def test_set_active(self, service, test_db):
        first = await _add(service, test_db)
        second = await _add(service, test_db, activate=False)

        activated = service.set_active(test_db, 1, second.id)

        test_db.refresh(first)
        assert activated.id == second.id
        assert activated.is_active is True
        assert first.is_active is False

    async def test_set_active_already_active(self, service, test_db):
        configuration = await _add(service, test_db)
        assert service.set_active(test_db, 1, configuration.id).is_active is True

    async def test_set_active_other_tenant(self, service, test_db):
        configuration = await _add(service, test_db, tenant_id=1)
        assert service.set_active(test_db, 2, configuration.id) is None

    async def test_delete(self, service, test_db):
        configuration = await _add(service, test_db)

        assert service.delete_configuration(test_db, 1, configuration.id) is True
        assert service.get_configuration(test_db, 1, configuration.id) is None
        assert service.delete_configuration(test_db, 1, configuration.id) is False
