"""Shared test fixtures."""

import os

# Settings are read at import time, so the environment must be set first
os.environ.setdefault("ENCRYPTION_KEY", "test-vault-passphrase")
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

from unittest.mock import AsyncMock, MagicMock  # noqa: E402

import httpx  # noqa: E402
import pytest  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from ai_gateway.database.database import Base  # noqa: E402
from ai_gateway.models import AIConfiguration, AIInteraction  # noqa: E402,F401
from ai_gateway.services.credential_vault import CredentialVault  # noqa: E402


@pytest.fixture
def vault():
    """Create a credential vault with a test passphrase."""
    return CredentialVault(passphrase="test-vault-passphrase", salt="salt")


@pytest.fixture
def test_db():
    """Create an in-memory test database."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    TestingSessionLocal = sessionmaker(bind=engine)
    db = TestingSessionLocal()
    yield db
    db.close()


@pytest.fixture
def mock_httpx_client():
    """Create a mock httpx client."""
    return AsyncMock(spec=httpx.AsyncClient)


def make_response(status_code: int = 200, json_data=None) -> MagicMock:
    """Build a mock httpx response."""
    response = MagicMock()
    response.status_code = status_code
    if isinstance(json_data, Exception):
        response.json.side_effect = json_data
    else:
        response.json.return_value = json_data
    return response
