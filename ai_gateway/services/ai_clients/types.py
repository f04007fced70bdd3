"""Provider-neutral types shared by every AI client."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional

from ai_gateway.config import settings
from ai_gateway.services.errors import UnsupportedProvider

CHAT_ROLES = ("system", "user", "assistant")


class ProviderIdentity(str, Enum):
    """Supported upstream AI vendors."""

    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    OPENROUTER = "openrouter"
    GOOGLE = "google"
    DEEPSEEK = "deepseek"

    @classmethod
    def parse(cls, value: "str | ProviderIdentity") -> "ProviderIdentity":
        """Resolve a provider identifier, case-insensitively.

        Raises:
            UnsupportedProvider: If the identifier is unknown.
        """
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise UnsupportedProvider(str(value))


@dataclass
class ChatMessage:
    """One message of a conversation."""

    role: str
    content: str

    def __post_init__(self):
        if self.role not in CHAT_ROLES:
            raise ValueError(f"Invalid chat role '{self.role}', expected one of {CHAT_ROLES}")

    def to_dict(self) -> Dict[str, str]:
        return {"role": self.role, "content": self.content}


@dataclass
class CompletionOptions:
    """Sampling options forwarded to the vendor."""

    temperature: float = field(default_factory=lambda: settings.ai_default_temperature)
    max_tokens: int = field(default_factory=lambda: settings.ai_default_max_tokens)


@dataclass
class CompletionResult:
    """Normalized chat completion, identical for every vendor."""

    content: str
    model: Optional[str] = None
    finish_reason: Optional[str] = None
    usage: Dict[str, int] = field(default_factory=dict)

    def to_message(self) -> ChatMessage:
        return ChatMessage(role="assistant", content=self.content)


@dataclass
class ConnectionTestResult:
    """Outcome of a connection test."""

    ok: bool
    message: str

    def to_dict(self) -> Dict[str, Any]:
        return {"ok": self.ok, "message": self.message}
