"""Tests for the interaction log."""

from datetime import datetime, timedelta
from unittest.mock import patch

import pytest
from sqlalchemy.exc import OperationalError

from ai_gateway.models import AIInteraction
from ai_gateway.services.interaction_service import HISTORY_LIMIT, InteractionService


@pytest.fixture
def service():
    return InteractionService()


def _log(service, db, tenant_id=1, user_id=None, query="What is EBITDA?"):
    return service.log_interaction(
        db,
        tenant_id=tenant_id,
        user_id=user_id,
        user_query=query,
        ai_response="Here is your answer.",
        provider="openrouter",
        model_id="openai/gpt-4o",
        processing_time_ms=120,
    )


class TestLogInteraction:
    """Recording chat turns."""

    def test_log_interaction(self, service, test_db):
        interaction = _log(service, test_db, user_id=7)

        assert interaction.id is not None
        assert interaction.user_id == 7
        assert interaction.succeeded is True
        assert interaction.timestamp is not None
        assert test_db.query(AIInteraction).count() == 1

    def test_database_failure_returns_none(self, service, test_db):
        error = OperationalError("INSERT INTO ai_interactions", {}, Exception("database is locked"))

        with patch.object(test_db, "commit", side_effect=error):
            assert _log(service, test_db) is None

        assert test_db.query(AIInteraction).count() == 0


class TestSubmitFeedback:
    """Ratings and comments on logged interactions."""

    def test_submit_feedback(self, service, test_db):
        interaction = _log(service, test_db)

        updated = service.submit_feedback(test_db, 1, interaction.id, 4, comment="Clear and correct")

        assert updated.feedback_rating == 4
        assert updated.feedback_comment == "Clear and correct"

    def test_feedback_replaces_previous(self, service, test_db):
        interaction = _log(service, test_db)
        service.submit_feedback(test_db, 1, interaction.id, 2, comment="Too vague")

        updated = service.submit_feedback(test_db, 1, interaction.id, 5)

        assert updated.feedback_rating == 5
        assert updated.feedback_comment is None

    @pytest.mark.parametrize("rating", [0, 6, -1])
    def test_rating_out_of_range(self, service, test_db, rating):
        interaction = _log(service, test_db)

        with pytest.raises(ValueError, match="between 1 and 5"):
            service.submit_feedback(test_db, 1, interaction.id, rating)

        test_db.refresh(interaction)
        assert interaction.feedback_rating is None

    def test_other_tenant(self, service, test_db):
        """Test that a tenant cannot rate another tenant's interaction."""
        interaction = _log(service, test_db, tenant_id=1)

        assert service.submit_feedback(test_db, 2, interaction.id, 5) is None

        test_db.refresh(interaction)
        assert interaction.feedback_rating is None

    def test_missing_interaction(self, service, test_db):
        assert service.submit_feedback(test_db, 1, 999, 3) is None


class TestGetHistory:
    """Recent interaction history."""

    def test_newest_first(self, service, test_db):
        base = datetime(2024, 1, 1, 12, 0, 0)
        for minutes, query in [(0, "first"), (10, "third"), (5, "second")]:
            interaction = _log(service, test_db, query=query)
            interaction.timestamp = base + timedelta(minutes=minutes)
        test_db.commit()

        history = service.get_history(test_db, 1)

        assert [interaction.user_query for interaction in history] == ["third", "second", "first"]

    def test_limited_to_recent(self, service, test_db):
        for index in range(HISTORY_LIMIT + 5):
            _log(service, test_db, query=f"question {index}")

        history = service.get_history(test_db, 1)

        assert len(history) == HISTORY_LIMIT
        assert history[0].user_query == f"question {HISTORY_LIMIT + 4}"

    def test_scoped_to_tenant_and_user(self, service, test_db):
        _log(service, test_db, tenant_id=1, user_id=7, query="mine")
        _log(service, test_db, tenant_id=1, user_id=8, query="colleague")
        _log(service, test_db, tenant_id=2, user_id=7, query="other tenant")

        assert [i.user_query for i in service.get_history(test_db, 1, user_id=7)] == ["mine"]
        assert {i.user_query for i in service.get_history(test_db, 1)} == {"mine", "colleague"}
