"""Wire shapes for the chat-completion endpoint."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class ChatMessage(BaseModel):
    model_config = ConfigDict(frozen=True)

    role: str
    content: str


class ChatCompletionRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    model: str
    messages: list[ChatMessage]


class ResponseMessage(BaseModel):
    # a null content (tool-call only replies) does not validate
    content: str


class ResponseChoice(BaseModel):
    message: ResponseMessage


class ChatCompletionResponse(BaseModel):
    """The subset of a successful completion body the client reads."""

    choices: list[ResponseChoice] = Field(min_length=1)

    @property
    def answer(self) -> str:
        return self.choices[0].message.content


class ProviderErrorDetail(BaseModel):
    message: str


class ProviderErrorBody(BaseModel):
    error: ProviderErrorDetail | str
