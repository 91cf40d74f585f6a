"""Pydantic schemas for persona chat agents."""

from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class AgentType(str, Enum):
    """Persona an assistant speaks as."""

    CO_FOUNDER = "co_founder"
    CO_INVESTOR = "co_investor"
    CO_LENDER = "co_lender"
    CO_BUILDER = "co_builder"


class AgentPersona(BaseModel):
    """Display and prompt configuration for one persona."""

    type: AgentType
    name: str
    description: str
    color: str
    focus: str


AGENT_PERSONAS: dict[AgentType, AgentPersona] = {
    AgentType.CO_FOUNDER: AgentPersona(
        type=AgentType.CO_FOUNDER,
        name="Co-Founder Agent",
        description="Strategic partner for business planning and growth",
        color="primary",
        focus=(
            "business strategy, planning, positioning, hiring and growth. Challenge "
            "assumptions the way a committed co-founder would and push toward concrete next steps"
        ),
    ),
    AgentType.CO_INVESTOR: AgentPersona(
        type=AgentType.CO_INVESTOR,
        name="Co-Investor Agent",
        description="Investment analysis and portfolio management",
        color="success",
        focus=(
            "investment analysis, valuation, deal terms, due diligence and portfolio "
            "construction. Think like an experienced investor weighing risk against return"
        ),
    ),
    AgentType.CO_LENDER: AgentPersona(
        type=AgentType.CO_LENDER,
        name="Co-Lender Agent",
        description="Credit assessment and lending insights",
        color="warning",
        focus=(
            "credit assessment, cash flow coverage, collateral, loan structuring and "
            "lender expectations. Be precise about repayment capacity and risk"
        ),
    ),
    AgentType.CO_BUILDER: AgentPersona(
        type=AgentType.CO_BUILDER,
        name="Co-Builder Agent",
        description="Technical guidance and product development",
        color="warm-accent",
        focus=(
            "product development, technical architecture, build-vs-buy decisions and "
            "delivery planning. Give practical engineering guidance"
        ),
    ),
}

DEFAULT_AGENT_TYPE = AgentType.CO_FOUNDER


def resolve_agent_type(agent_type: str | None) -> AgentType:
    """Known persona for a raw agent type; unknown values fall back to the co-founder."""
    try:
        return AgentType(agent_type)
    except ValueError:
        return DEFAULT_AGENT_TYPE


class ChatMessage(BaseModel):
    """A single chat message."""

    role: Literal["user", "assistant"]
    content: str


class ChatAgentRequest(BaseModel):
    """Body of the chat-agent function."""

    messages: list[ChatMessage] = Field(default_factory=list)
    agent_type: str | None = Field(default=None, alias="agentType")

    model_config = ConfigDict(populate_by_name=True)


class ChatAgentResponse(BaseModel):
    message: str


class SendMessageRequest(BaseModel):
    content: str = Field(..., min_length=1)


class ConversationResponse(BaseModel):
    id: str
    agent_type: str
    title: str | None = None
    created_at: str | None = None
    updated_at: str | None = None


class MessageResponse(BaseModel):
    id: str | None = None
    role: str
    content: str
    created_at: str | None = None


class ChatTurnResponse(BaseModel):
    """Stored user turn plus the assistant reply."""

    user_message: MessageResponse
    assistant_message: MessageResponse
