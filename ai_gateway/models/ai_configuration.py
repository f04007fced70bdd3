"""AI configuration database model."""

from datetime import datetime
from sqlalchemy import Column, Integer, String, Boolean, DateTime, Index, text
from ai_gateway.database.database import Base


class AIConfiguration(Base):
    """Per-tenant AI provider configuration with an encrypted API key."""

    __tablename__ = "ai_configurations"

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, nullable=False, index=True)
    provider = Column(String, nullable=False)
    api_key_encrypted = Column(String, nullable=False)
    model_id = Column(String, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # At most one active configuration per tenant and provider
    __table_args__ = (
        Index(
            "uq_ai_configurations_active_provider",
            "tenant_id",
            "provider",
            unique=True,
            sqlite_where=text("is_active = 1"),
            postgresql_where=text("is_active"),
        ),
    )
