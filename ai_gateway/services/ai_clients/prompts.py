"""Prompt construction shared by every AI client."""

import json
from typing import Any, List

from ai_gateway.services.ai_clients.types import ChatMessage

ANALYSIS_SYSTEM_PROMPT = (
    "You are an expert accounting and financial analysis AI assistant. "
    "Analyze the provided accounting data and respond to the user's query with insights, "
    "patterns, and recommendations. Focus on accuracy, clarity, and actionable insights. "
    "Use accounting terminology appropriately."
)

CHAT_SYSTEM_PROMPT = (
    "You are an AI assistant for an accounting firm management platform. "
    "Answer questions about accounting, finance, taxation and the firm's work clearly "
    "and accurately. Format financial figures with currency symbols and two decimal places. "
    "If you do not have the information needed to answer, say so instead of guessing."
)


def build_analysis_messages(data: Any, query: str) -> List[ChatMessage]:
    """Build the two-message prompt used for financial data analysis.

    The data snapshot is embedded as indented JSON ahead of the query.
    """
    snapshot = json.dumps(data, indent=2, default=str)
    user_prompt = (
        "Here is the accounting data to analyze:\n"
        f"{snapshot}\n\n"
        f"My question/request is: {query}"
    )
    return [
        ChatMessage(role="system", content=ANALYSIS_SYSTEM_PROMPT),
        ChatMessage(role="user", content=user_prompt),
    ]
