"""AI chat and analysis API endpoints."""

from datetime import datetime
from typing import Any, List, Literal, Optional
from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from ai_gateway.api.dependencies import (
    get_chat_service,
    get_interaction_service,
    get_tenant_id,
    get_user_id,
    raise_http_error,
    run_until_disconnected,
)
from ai_gateway.database.database import get_db
from ai_gateway.services.ai_clients import ChatMessage
from ai_gateway.services.chat_service import ChatService
from ai_gateway.services.errors import GatewayError
from ai_gateway.services.interaction_service import MAX_RATING, MIN_RATING, InteractionService

router = APIRouter(prefix="/api/v1/ai", tags=["ai"])


class ChatMessageSchema(BaseModel):
    """Chat message."""

    role: Literal["system", "user", "assistant"]
    content: str


class ChatRequest(BaseModel):
    """Chat request; the last message is the new user message."""

    messages: List[ChatMessageSchema]
    conversation_id: Optional[str] = None


class ChatResponse(BaseModel):
    """Chat response."""

    message: ChatMessageSchema
    conversation_id: str
    interaction_id: Optional[int] = None


class ChatStatusResponse(BaseModel):
    """Chat availability response."""

    is_available: bool
    provider: Optional[str] = None
    model: Optional[str] = None


class FeedbackRequest(BaseModel):
    """Feedback on a logged chat interaction."""

    interaction_id: int
    rating: int = Field(..., ge=MIN_RATING, le=MAX_RATING)
    comment: Optional[str] = None


class InteractionFeedbackSchema(BaseModel):
    """Feedback state of an interaction."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    timestamp: datetime
    feedback_rating: Optional[int] = None
    feedback_comment: Optional[str] = None


class FeedbackResponse(BaseModel):
    """Feedback submission response."""

    success: bool
    message: str
    interaction: InteractionFeedbackSchema


class InteractionSchema(BaseModel):
    """Logged chat interaction."""

    model_config = ConfigDict(from_attributes=True, protected_namespaces=())

    id: int
    timestamp: datetime
    user_query: str
    ai_response: str
    provider: str
    model_id: str
    succeeded: bool
    processing_time_ms: int
    feedback_rating: Optional[int] = None


class ChatHistoryResponse(BaseModel):
    """Recent chat interactions, newest first."""

    history: List[InteractionSchema]


class AnalyzeRequest(BaseModel):
    """Financial analysis request."""

    data: Any
    query: str
    model: Optional[str] = None


class AnalyzeResponse(BaseModel):
    """Financial analysis response."""

    content: str


@router.get("/chat/status", response_model=ChatStatusResponse)
async def get_chat_status(
    tenant_id: int = Depends(get_tenant_id),
    db: Session = Depends(get_db),
    service: ChatService = Depends(get_chat_service),
):
    """Report whether chat is available for the tenant.

    Reads configuration only; no vendor is contacted.
    """
    try:
        availability = service.get_availability(db, tenant_id)
    except GatewayError as e:
        raise_http_error(e)

    return ChatStatusResponse(
        is_available=availability.is_available,
        provider=availability.provider,
        model=availability.model,
    )


@router.post("/chat", response_model=ChatResponse)
async def chat(
    chat_request: ChatRequest,
    request: Request,
    tenant_id: int = Depends(get_tenant_id),
    user_id: Optional[int] = Depends(get_user_id),
    db: Session = Depends(get_db),
    service: ChatService = Depends(get_chat_service),
):
    """Send the next user message of a conversation."""
    if not chat_request.messages or chat_request.messages[-1].role != "user":
        raise HTTPException(status_code=400, detail="Last message must be from the user")

    *history, latest = chat_request.messages
    conversation = service.start_conversation(
        conversation_id=chat_request.conversation_id,
        history=[ChatMessage(role=m.role, content=m.content) for m in history],
    )

    try:
        turn = await run_until_disconnected(
            request,
            service.send_message(db, tenant_id, conversation, latest.content, user_id=user_id),
        )
    except GatewayError as e:
        raise_http_error(e)

    return ChatResponse(
        message=ChatMessageSchema(role=turn.message.role, content=turn.message.content),
        conversation_id=turn.conversation_id,
        interaction_id=turn.interaction_id,
    )


@router.post("/chat/feedback", response_model=FeedbackResponse)
async def submit_chat_feedback(
    feedback: FeedbackRequest,
    tenant_id: int = Depends(get_tenant_id),
    db: Session = Depends(get_db),
    service: InteractionService = Depends(get_interaction_service),
):
    """Rate a chat interaction from 1 to 5, with an optional comment."""
    interaction = service.submit_feedback(
        db,
        tenant_id,
        feedback.interaction_id,
        feedback.rating,
        comment=feedback.comment,
    )
    if not interaction:
        raise HTTPException(status_code=404, detail="Interaction not found")

    return FeedbackResponse(
        success=True,
        message="Feedback recorded",
        interaction=InteractionFeedbackSchema.model_validate(interaction),
    )


@router.get("/chat/history", response_model=ChatHistoryResponse)
async def get_chat_history(
    tenant_id: int = Depends(get_tenant_id),
    user_id: Optional[int] = Depends(get_user_id),
    db: Session = Depends(get_db),
    service: InteractionService = Depends(get_interaction_service),
):
    """Get the most recent chat interactions of the tenant, or of the calling user."""
    interactions = service.get_history(db, tenant_id, user_id=user_id)
    return ChatHistoryResponse(
        history=[InteractionSchema.model_validate(interaction) for interaction in interactions]
    )


@router.post("/analyze", response_model=AnalyzeResponse)
async def analyze(
    analyze_request: AnalyzeRequest,
    request: Request,
    tenant_id: int = Depends(get_tenant_id),
    db: Session = Depends(get_db),
    service: ChatService = Depends(get_chat_service),
):
    """Analyze a financial data snapshot with the tenant's configured model."""
    try:
        content = await run_until_disconnected(
            request,
            service.analyze(
                db,
                tenant_id,
                analyze_request.data,
                analyze_request.query,
                model_id=analyze_request.model,
            ),
        )
    except GatewayError as e:
        raise_http_error(e)

    return AnalyzeResponse(content=content)
