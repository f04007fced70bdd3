"""AI chat interaction log model."""

from datetime import datetime
from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, Index
from ai_gateway.database.database import Base


class AIInteraction(Base):
    """One logged chat turn, successful or failed, with optional feedback."""

    __tablename__ = "ai_interactions"

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, nullable=False)
    user_id = Column(Integer, nullable=True)
    conversation_id = Column(String, nullable=True)
    user_query = Column(Text, nullable=False)
    ai_response = Column(Text, nullable=False)
    provider = Column(String, nullable=False)
    model_id = Column(String, nullable=False)
    succeeded = Column(Boolean, nullable=False, default=True)
    processing_time_ms = Column(Integer, nullable=False)
    feedback_rating = Column(Integer, nullable=True)
    feedback_comment = Column(Text, nullable=True)
    timestamp = Column(DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        Index("ix_ai_interactions_tenant_user_timestamp", "tenant_id", "user_id", "timestamp"),
    )
