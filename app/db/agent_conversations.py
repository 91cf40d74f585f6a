"""Database operations for persona chat conversations and messages."""

from typing import Any
from uuid import UUID

from app.core.logging import get_logger
from app.db.supabase_client import get_supabase

logger = get_logger(__name__)


def create_conversation(user_id: UUID, agent_type: str, title: str | None = None) -> dict[str, Any]:
    """
    Create a conversation with a persona.

    Raises:
        ValueError: If no row is returned
    """
    supabase = get_supabase()

    response = (
        supabase.table("agent_conversations")
        .insert({"user_id": str(user_id), "agent_type": agent_type, "title": title})
        .execute()
    )

    if not response.data:
        raise ValueError("Failed to create conversation")

    conversation = response.data[0]
    logger.info(
        f"Created {agent_type} conversation {conversation['id']}",
        extra={"user_id": str(user_id)},
    )
    return conversation


def get_conversation(conversation_id: UUID, user_id: UUID) -> dict[str, Any] | None:
    """Get a conversation owned by the user."""
    supabase = get_supabase()

    response = (
        supabase.table("agent_conversations")
        .select("*")
        .eq("id", str(conversation_id))
        .eq("user_id", str(user_id))
        .execute()
    )
    return response.data[0] if response.data else None


def list_conversations(
    user_id: UUID,
    agent_type: str | None = None,
    limit: int = 20,
) -> list[dict[str, Any]]:
    """List a user's conversations, most recently active first."""
    supabase = get_supabase()

    query = supabase.table("agent_conversations").select("*").eq("user_id", str(user_id))
    if agent_type:
        query = query.eq("agent_type", agent_type)

    response = query.order("updated_at", desc=True).limit(limit).execute()
    return response.data or []


def list_messages(conversation_id: UUID) -> list[dict[str, Any]]:
    """List messages of a conversation, oldest first."""
    supabase = get_supabase()

    response = (
        supabase.table("agent_messages")
        .select("*")
        .eq("conversation_id", str(conversation_id))
        .order("created_at", desc=False)
        .execute()
    )
    return response.data or []


def add_message(conversation_id: UUID, role: str, content: str) -> dict[str, Any]:
    """
    Append a message to a conversation.

    Raises:
        ValueError: If no row is returned
    """
    supabase = get_supabase()

    response = (
        supabase.table("agent_messages")
        .insert({"conversation_id": str(conversation_id), "role": role, "content": content})
        .execute()
    )

    if not response.data:
        raise ValueError("Failed to store message")
    return response.data[0]
