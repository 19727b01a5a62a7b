"""Data models for rulekeeper hook events and outcomes."""

from dataclasses import dataclass, field
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

# Kinds of per-session flag records kept by the state store
FlagKind = Literal["question", "commit"]
FLAG_KINDS: tuple[FlagKind, ...] = ("question", "commit")

UNKNOWN_SESSION = "unknown"


def check_session_id(session_id: str) -> str:
    """Reject ids that cannot be used as a file name inside the state dir."""
    if not session_id or "/" in session_id or "\\" in session_id or session_id in (".", ".."):
        raise ValueError(f"Invalid session id: {session_id!r}")
    return session_id


# Hook event names understood by the dispatcher
USER_PROMPT_SUBMIT = "UserPromptSubmit"
PRE_TOOL_USE = "PreToolUse"
SESSION_BOUNDARY_EVENTS = frozenset({"Stop", "SessionEnd", "SessionStart"})

# Older clients sent these instead of tool_name / tool_input
LEGACY_ALIASES = {
    "tool_name": ("tool",),
    "tool_input": ("params", "parameters"),
}


def _is_empty(value: Any) -> bool:
    """Missing, null, "", 0 or false. Empty objects and lists still count as given."""
    if value is None or value is False:
        return True
    return isinstance(value, (str, int, float)) and not value


class HookEvent(BaseModel):
    """One event delivered by the assistant on stdin."""

    model_config = ConfigDict(extra="allow")

    session_id: str = Field(default=UNKNOWN_SESSION, description="Opaque session identifier")
    hook_event_name: str | None = Field(None, description="Event kind, e.g. PreToolUse")
    prompt: str | None = Field(None, description="User prompt (UserPromptSubmit only)")
    tool_name: str | None = Field(None, description="Proposed tool (PreToolUse only)")
    tool_input: Any = Field(None, description="Proposed tool parameters (PreToolUse only)")

    @model_validator(mode="before")
    @classmethod
    def _legacy_tool_fields(cls, data: Any) -> Any:
        """Fill tool_name / tool_input from older field names when empty."""
        if not isinstance(data, dict):
            return data
        data = dict(data)
        for name, aliases in LEGACY_ALIASES.items():
            if _is_empty(data.get(name)):
                for alias in aliases:
                    if not _is_empty(data.get(alias)):
                        data[name] = data[alias]
                        break
        return data

    @field_validator("prompt", "tool_name", mode="before")
    @classmethod
    def _text_or_none(cls, value: Any) -> str | None:
        # Non-string values never match a marker or a tool name
        return value if isinstance(value, str) else None

    @field_validator("session_id", mode="before")
    @classmethod
    def _default_session(cls, value: Any) -> str:
        if value is None or value == "":
            return UNKNOWN_SESSION
        return str(value)


class PromptClassification(BaseModel):
    """Result of matching a prompt against the marker conventions."""

    is_question: bool = False
    is_commit_approved: bool = False
    question_text: str | None = Field(None, description="Prompt with the question marker stripped")
    commit_text: str | None = Field(None, description="Prompt with the commit marker stripped")
    residual: str = Field("", description="Prompt with every matched marker stripped")


# Tagged outcomes. Exit codes are assigned only at the process boundary.

@dataclass(frozen=True)
class Allow:
    """The action may proceed."""


@dataclass(frozen=True)
class Block:
    """Deliberate policy refusal."""

    message: str


@dataclass(frozen=True)
class Fault:
    """Internal failure: malformed input or an unexpected exception."""

    message: str


Decision = Allow | Block
Outcome = Allow | Block | Fault

EXIT_OK = 0
EXIT_FAULT = 1
EXIT_BLOCK = 2


@dataclass
class HookResponse:
    """The single JSON object a hook invocation emits, plus its exit signal."""

    body: dict[str, Any] = field(default_factory=dict)
    exit_code: int = EXIT_OK
    stream: Literal["stdout", "stderr"] = "stdout"

    @classmethod
    def neutral(cls, body: dict[str, Any] | None = None) -> "HookResponse":
        return cls(body=body or {})

    @classmethod
    def from_outcome(cls, outcome: Outcome) -> "HookResponse":
        """Translate a tagged outcome into the hook protocol."""
        if isinstance(outcome, Block):
            return cls(body={"error": outcome.message}, exit_code=EXIT_BLOCK, stream="stderr")
        if isinstance(outcome, Fault):
            return cls(body={"error": outcome.message}, exit_code=EXIT_FAULT, stream="stderr")
        return cls.neutral()
