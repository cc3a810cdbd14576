from typing import Literal

from pydantic import BaseModel, Field


class ChatMessage(BaseModel):
    """A single chat-completion message."""

    role: Literal["system", "user", "assistant"] = Field(
        ..., description="Role of the speaker for this message."
    )
    content: str = Field(default="", description="Message text.")


class ChatRequest(BaseModel):
    """Payload posted by the frontend."""

    prompt: str = Field(default="", description="User input to forward upstream.")


class ChatResponse(BaseModel):
    """Payload returned to the frontend."""

    response: str = Field(..., description="Text of the model's answer.")


class UpstreamRequest(BaseModel):
    """Body of the OpenAI-compatible chat-completion call."""

    messages: list[ChatMessage]
    model: str | None = None


class UpstreamMessage(BaseModel):
    role: str | None = None
    content: str | None = None


class UpstreamChoice(BaseModel):
    message: UpstreamMessage | None = None


class UpstreamResponse(BaseModel):
    """The subset of a chat-completion response the relay reads."""

    choices: list[UpstreamChoice | None] | None = Field(default_factory=list)
