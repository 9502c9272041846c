from typing import List

from pydantic import BaseModel


class GenerateRequest(BaseModel):
    prompt: str
    system: str


class GenerateResponse(BaseModel):
    response: str


class ChatMessage(BaseModel):
    role: str  # system | user
    content: str


class ChatCompletionRequest(BaseModel):
    model: str
    messages: List[ChatMessage]


class ChatCompletionResult(BaseModel):
    """上游每個 choice 的 message content，順序與上游相同。"""

    choices: List[str] = []
