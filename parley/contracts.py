from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple


class ParleyError(Exception):
    """Base class for errors raised by parley."""


class TranslationError(ParleyError):
    """The translation backend failed for one request."""


class InvalidLanguagePairError(ParleyError, ValueError):
    """An explicitly selected pair has identical source and target codes."""


@dataclass(frozen=True)
class Language:
    # Equality is by code only; the display name is informational.
    code: str
    name: str = field(default="", compare=False)

    def __str__(self) -> str:
        return self.code


@dataclass(frozen=True)
class TranslationRequest:
    text: str
    source_lang: str
    target_lang: str
    requested_at: float = 0.0


@dataclass(frozen=True)
class TranslationResult:
    source_text: str
    translated_text: str
    provider: str


@dataclass(frozen=True)
class FunctionCall:
    """A tool call the model emitted inside `response.done`; `arguments` is the decoded JSON object."""
    name: str
    arguments: Dict[str, Any]
    call_id: Optional[str] = None


@dataclass(frozen=True)
class TranscriptEvent:
    """
    The fields of a realtime server event the session core consumes.
    role: "user" for microphone transcriptions, "assistant" for model output.
    """
    event_type: str
    item_id: Optional[str]
    text: str
    is_final: bool = True
    role: str = "user"
    speaker_hint: Optional[str] = None
    session_id: Optional[str] = None
    function_calls: Tuple[FunctionCall, ...] = ()


@dataclass(frozen=True)
class TranscriptMessage:
    id: str
    role: str  # "user" | "assistant"
    content: str
    is_streaming: bool = False
