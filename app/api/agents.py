"""API endpoints for persona agents and their conversations."""

import asyncio
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query

from app.chains.chat_agent import run_chat_turn
from app.core.auth_middleware import AuthContext, require_auth
from app.core.config import Settings, get_settings
from app.core.llm import ChatGateway, GatewayError, get_gateway
from app.core.logging import get_logger
from app.core.rate_limiter import RateLimitExceeded, check_chat_rate_limit
from app.core.schemas_agents import (
    AGENT_PERSONAS,
    AgentPersona,
    AgentType,
    ChatMessage,
    ChatTurnResponse,
    ConversationResponse,
    MessageResponse,
    SendMessageRequest,
    resolve_agent_type,
)
from app.db.agent_conversations import (
    add_message,
    create_conversation,
    get_conversation,
    list_conversations,
    list_messages,
)

logger = get_logger(__name__)

router = APIRouter()


@router.get("", response_model=list[AgentPersona])
async def list_agents() -> list[AgentPersona]:
    """List the available personas."""
    return list(AGENT_PERSONAS.values())


@router.post("/{agent_type}/conversations", response_model=ConversationResponse)
async def start_conversation(
    agent_type: AgentType,
    auth: AuthContext = Depends(require_auth),
) -> ConversationResponse:
    """Start a new conversation with a persona."""
    persona = AGENT_PERSONAS[agent_type]
    try:
        conversation = await asyncio.to_thread(
            create_conversation, auth.user_id, agent_type.value, f"{persona.name} Chat"
        )
    except Exception:
        logger.exception(f"Failed to create {agent_type.value} conversation")
        raise HTTPException(status_code=500, detail="Failed to create conversation")

    return ConversationResponse(**conversation)


@router.get("/conversations", response_model=list[ConversationResponse])
async def get_recent_conversations(
    agent_type: AgentType | None = Query(default=None),
    limit: int = Query(default=20, ge=1, le=100),
    auth: AuthContext = Depends(require_auth),
) -> list[ConversationResponse]:
    """List the caller's recent conversations, optionally for one persona."""
    rows = await asyncio.to_thread(
        list_conversations,
        auth.user_id,
        agent_type.value if agent_type else None,
        limit,
    )
    return [ConversationResponse(**row) for row in rows]


async def _load_conversation(conversation_id: UUID, auth: AuthContext) -> dict:
    conversation = await asyncio.to_thread(get_conversation, conversation_id, auth.user_id)
    if not conversation:
        raise HTTPException(status_code=404, detail="Conversation not found")
    return conversation


@router.get("/conversations/{conversation_id}/messages", response_model=list[MessageResponse])
async def get_conversation_messages(
    conversation_id: UUID,
    auth: AuthContext = Depends(require_auth),
) -> list[MessageResponse]:
    """Messages of one conversation, oldest first."""
    await _load_conversation(conversation_id, auth)
    rows = await asyncio.to_thread(list_messages, conversation_id)
    return [MessageResponse(**row) for row in rows]


@router.post("/conversations/{conversation_id}/messages", response_model=ChatTurnResponse)
async def send_message(
    conversation_id: UUID,
    request: SendMessageRequest,
    auth: AuthContext = Depends(require_auth),
    gateway: ChatGateway = Depends(get_gateway),
    settings: Settings = Depends(get_settings),
) -> ChatTurnResponse:
    """
    Send a message and get the persona's reply.

    This endpoint:
    1. Stores the user message
    2. Replays the conversation history into one chat turn
    3. Stores and returns the assistant reply

    Raises:
        HTTPException 404: If the conversation does not belong to the caller
        HTTPException 429/402: Rate limit or gateway credits
        HTTPException 500: If the chat turn fails
    """
    content = request.content.strip()
    if not content:
        raise HTTPException(status_code=400, detail="Message is empty")

    conversation = await _load_conversation(conversation_id, auth)

    try:
        check_chat_rate_limit(auth.user_id)
    except RateLimitExceeded as e:
        raise HTTPException(
            status_code=429,
            detail=str(e),
            headers={"Retry-After": str(e.retry_after)},
        )

    user_message = await asyncio.to_thread(add_message, conversation_id, "user", content)

    history = await asyncio.to_thread(list_messages, conversation_id)
    messages = [
        ChatMessage(role=row["role"], content=row["content"])
        for row in history
        if row.get("role") in ("user", "assistant") and row.get("content")
    ]

    try:
        reply = await asyncio.to_thread(
            run_chat_turn,
            messages,
            resolve_agent_type(conversation["agent_type"]),
            gateway=gateway,
            settings=settings,
        )
    except GatewayError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)

    assistant_message = await asyncio.to_thread(add_message, conversation_id, "assistant", reply)

    return ChatTurnResponse(
        user_message=MessageResponse(**user_message),
        assistant_message=MessageResponse(**assistant_message),
    )
