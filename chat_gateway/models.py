"""
Request and response models for the Chat Gateway.

Only transient DTOs live here; nothing outlives a request.
"""

from datetime import datetime, timezone
from typing import Optional, List, Dict, Any, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ChatMessage(BaseModel):
    """A single chat message. Extra keys (name, tool_call_id, ...) pass through."""
    model_config = ConfigDict(extra="allow")

    role: str
    content: Union[str, List[Any]]

    @field_validator("role")
    @classmethod
    def _role_not_empty(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("role must not be empty")
        return value

    @field_validator("content")
    @classmethod
    def _content_not_empty(cls, value):
        if isinstance(value, str) and not value.strip():
            raise ValueError("content must not be empty")
        if isinstance(value, list) and not value:
            raise ValueError("content must not be empty")
        return value


class ChatRequest(BaseModel):
    """
    Inbound chat-completion request.

    ``model`` and ``max_completion_tokens`` fall back to configured defaults.
    Any other top-level field is forwarded to the upstream verbatim.
    """
    model_config = ConfigDict(extra="allow")

    model: Optional[str] = None
    messages: List[ChatMessage] = Field(..., min_length=1)
    max_completion_tokens: Optional[int] = None

    def to_upstream(self, default_model: str, default_max_completion_tokens: int) -> Dict[str, Any]:
        """Build the upstream body: caller fields merged over defaults."""
        body = self.model_dump()
        if body.get("model") is None:
            body["model"] = default_model
        if body.get("max_completion_tokens") is None:
            body["max_completion_tokens"] = default_max_completion_tokens
        return body


class ErrorDetail(BaseModel):
    message: str
    type: str
    code: Optional[str] = None


class ErrorEnvelope(BaseModel):
    """Shape of every failure response."""
    error: ErrorDetail

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)


class HealthResponse(BaseModel):
    status: str = "OK"
    timestamp: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    service: str
