"""LLM chain for persona chat turns."""

from app.core.config import Settings
from app.core.llm import ChatGateway, GatewayError
from app.core.logging import get_logger
from app.core.schemas_agents import AGENT_PERSONAS, AgentType, ChatMessage

logger = get_logger(__name__)

CHAT_FAILED_MESSAGE = "AI chat failed"


def build_persona_prompt(agent_type: AgentType) -> str:
    """System prompt for one persona."""
    persona = AGENT_PERSONAS[agent_type]
    return (
        f"You are the {persona.name}, part of a human-AI partnership platform. "
        f"Your role: {persona.description.lower()}. "
        f"You specialise in {persona.focus}.\n\n"
        "Guidelines:\n"
        "- Be concise and specific; use short paragraphs or bullet points.\n"
        "- Ask a clarifying question when the request is ambiguous.\n"
        "- Never invent facts about the user's business; say what you would need to know.\n"
        "- End with one concrete next step when it helps."
    )


def run_chat_turn(
    messages: list[ChatMessage],
    agent_type: AgentType,
    *,
    gateway: ChatGateway,
    settings: Settings,
) -> str:
    """
    Produce the persona's reply to a conversation.

    Args:
        messages: Conversation so far, oldest first, ending with the user turn
        agent_type: Persona to answer as
        gateway: Chat-completion gateway
        settings: Application settings

    Returns:
        Assistant reply text

    Raises:
        ValueError: If there are no messages
        GatewayError: If the gateway call fails or returns nothing
    """
    if not messages:
        raise ValueError("At least one message is required")

    history = messages[-settings.CHAT_HISTORY_LIMIT :]

    logger.info(
        f"Chat turn for {agent_type.value}",
        extra={"agent_type": agent_type.value, "history": len(history)},
    )

    reply = gateway.complete(
        model=settings.CHAT_MODEL,
        messages=[
            {"role": "system", "content": build_persona_prompt(agent_type)},
            *({"role": m.role, "content": m.content} for m in history),
        ],
        failure_message=CHAT_FAILED_MESSAGE,
    )

    reply = reply.strip()
    if not reply:
        raise GatewayError(CHAT_FAILED_MESSAGE)
    return reply
