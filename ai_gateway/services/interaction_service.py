"""Interaction log for chat turns and user feedback."""

import logging
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ai_gateway.models.ai_interaction import AIInteraction

logger = logging.getLogger(__name__)

HISTORY_LIMIT = 20
MIN_RATING = 1
MAX_RATING = 5


class InteractionService:
    """Service for recording chat turns and the feedback given on them."""

    def log_interaction(
        self,
        db: Session,
        tenant_id: int,
        user_query: str,
        ai_response: str,
        provider: str,
        model_id: str,
        processing_time_ms: int,
        succeeded: bool = True,
        user_id: Optional[int] = None,
        conversation_id: Optional[str] = None,
    ) -> Optional[AIInteraction]:
        """Record one chat turn.

        Logging is best effort: a database failure is logged and rolled back,
        and the chat turn it describes is unaffected.

        Returns:
            The stored AIInteraction, or None if it could not be stored.
        """
        interaction = AIInteraction(
            tenant_id=tenant_id,
            user_id=user_id,
            conversation_id=conversation_id,
            user_query=user_query,
            ai_response=ai_response,
            provider=provider,
            model_id=model_id,
            succeeded=succeeded,
            processing_time_ms=processing_time_ms,
        )

        try:
            db.add(interaction)
            db.commit()
            db.refresh(interaction)
            return interaction
        except SQLAlchemyError as e:
            db.rollback()
            logger.warning(f"Could not log AI interaction for tenant {tenant_id}: {e}")
            return None

    def submit_feedback(
        self,
        db: Session,
        tenant_id: int,
        interaction_id: int,
        rating: int,
        comment: Optional[str] = None,
    ) -> Optional[AIInteraction]:
        """Attach a rating and optional comment to a logged interaction.

        Returns:
            Updated AIInteraction or None if it does not exist for the tenant.

        Raises:
            ValueError: If the rating is outside 1-5.
        """
        if not MIN_RATING <= rating <= MAX_RATING:
            raise ValueError(f"Rating must be between {MIN_RATING} and {MAX_RATING}")

        interaction = (
            db.query(AIInteraction)
            .filter(AIInteraction.id == interaction_id, AIInteraction.tenant_id == tenant_id)
            .first()
        )
        if not interaction:
            return None

        interaction.feedback_rating = rating
        interaction.feedback_comment = comment or None
        db.commit()
        db.refresh(interaction)
        logger.info(f"Feedback {rating}/{MAX_RATING} recorded for AI interaction {interaction_id}")
        return interaction

    def get_history(
        self,
        db: Session,
        tenant_id: int,
        user_id: Optional[int] = None,
        limit: int = HISTORY_LIMIT,
    ) -> List[AIInteraction]:
        """Get the most recent interactions, newest first.

        Args:
            db: Database session.
            tenant_id: Owning tenant.
            user_id: Restrict to one user (optional).
            limit: Maximum number of interactions.
        """
        query = db.query(AIInteraction).filter(AIInteraction.tenant_id == tenant_id)
        if user_id is not None:
            query = query.filter(AIInteraction.user_id == user_id)
        return query.order_by(AIInteraction.timestamp.desc(), AIInteraction.id.desc()).limit(limit).all()
