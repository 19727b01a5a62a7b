"""Tool-use policy: decides Allow/Block for a proposed tool call.

Rules, in order:
1. A pending question blocks every tool outside the read-only allow-list.
2. A shell ``git commit`` is blocked unless the session approved commits.
3. Everything else is allowed.

The defaults can be overridden with a YAML file:

    read_only_tools: [Read, Grep, Glob]
    shell_tool: Bash
    question_message: "..."
    commit_message: "..."
"""

import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .logging_config import get_logger
from .models import Allow, Block, Decision

logger = get_logger("policy")

# Tools that are safe while a question is pending (read-only operations)
DEFAULT_READ_ONLY_TOOLS: tuple[str, ...] = (
    "Read",
    "Grep",
    "Glob",
    "LS",
    "WebFetch",
    "WebSearch",
    "ListMcpResourcesTool",
    "ReadMcpResourceTool",
    "TodoRead",
)

DEFAULT_SHELL_TOOL = "Bash"

DEFAULT_QUESTION_MESSAGE = (
    "THE USER ASKED A QUESTION. You must answer the question before performing any actions. "
    "You may use these tools to help answer: {tools}."
)

DEFAULT_COMMIT_MESSAGE = (
    "Committing without user's review and approval is OFFENSIVE, RUDE, and INAPPROPRIATE."
)

# git commit, with or without flags between git and the subcommand
# (e.g. git -c user.name=foo commit)
GIT_COMMIT_PATTERNS = [
    re.compile(r"\bgit\s+commit\b"),
    re.compile(r"\bgit\s+.*\s+commit\b"),
]


def is_git_commit(command: str) -> bool:
    """Check whether a shell command invokes git commit."""
    return any(pattern.search(command) for pattern in GIT_COMMIT_PATTERNS)


def _shell_command(tool_input: Any) -> str | None:
    if isinstance(tool_input, Mapping):
        command = tool_input.get("command")
        if isinstance(command, str) and command:
            return command
    return None


@dataclass(frozen=True)
class PolicyConfig:
    """Policy settings handed to the evaluator."""

    read_only_tools: tuple[str, ...] = DEFAULT_READ_ONLY_TOOLS
    shell_tool: str = DEFAULT_SHELL_TOOL
    question_message: str = DEFAULT_QUESTION_MESSAGE
    commit_message: str = DEFAULT_COMMIT_MESSAGE
    _read_only_set: frozenset[str] = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        object.__setattr__(self, "read_only_tools", tuple(self.read_only_tools))
        object.__setattr__(self, "_read_only_set", frozenset(self.read_only_tools))

    def is_read_only(self, tool_name: str | None) -> bool:
        return tool_name in self._read_only_set

    def question_block_message(self) -> str:
        return self.question_message.replace("{tools}", ", ".join(self.read_only_tools))


class PolicyEvaluator:
    """Applies a PolicyConfig to proposed tool calls."""

    def __init__(self, config: PolicyConfig | None = None):
        self.config = config or PolicyConfig()

    def evaluate(
        self,
        tool_name: str | None,
        tool_input: Any,
        question_pending: bool,
        commit_approved: bool,
    ) -> Decision:
        """Decide whether a tool call may proceed.

        Args:
            tool_name: Name of the proposed tool
            tool_input: Tool parameters, any JSON value
            question_pending: Whether the session has an unanswered question
            commit_approved: Whether the session approved git commits

        Returns:
            Allow() or Block(message)
        """
        if question_pending and not self.config.is_read_only(tool_name):
            return Block(self.config.question_block_message())

        if tool_name == self.config.shell_tool:
            command = _shell_command(tool_input)
            if command and is_git_commit(command) and not commit_approved:
                return Block(self.config.commit_message)

        return Allow()

    def is_commit_command(self, tool_name: str | None, tool_input: Any) -> bool:
        """Whether the call is a shell git commit, regardless of approval."""
        if tool_name != self.config.shell_tool:
            return False
        command = _shell_command(tool_input)
        return bool(command) and is_git_commit(command)


def _parse_policy(data: dict) -> PolicyConfig:
    """Parse a policy dict from YAML into a PolicyConfig."""
    kwargs: dict[str, Any] = {}

    tools = data.get("read_only_tools")
    if tools is not None:
        if not isinstance(tools, (list, tuple)):
            raise ValueError("read_only_tools must be a list of tool names")
        kwargs["read_only_tools"] = tuple(str(t) for t in tools)

    for key in ("shell_tool", "question_message", "commit_message"):
        value = data.get(key)
        if value is not None:
            if not isinstance(value, str):
                raise ValueError(f"{key} must be a string")
            kwargs[key] = value

    return PolicyConfig(**kwargs)


def load_policy(path: Path | str | None) -> PolicyConfig:
    """Load a policy override file, falling back to defaults if absent.

    Raises:
        ValueError: If the file exists but is not a valid policy
    """
    if path is None:
        return PolicyConfig()

    path = Path(path)
    if not path.is_file():
        return PolicyConfig()

    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid policy file {path}: {e}") from e

    if not isinstance(data, dict):
        raise ValueError(f"Invalid policy file {path}: expected a mapping")

    logger.debug(f"Loaded policy overrides from {path}")
    return _parse_policy(data)
