"""Runtime configuration for the rulekeeper hook.

Everything is resolved from the environment at invocation time, since each
hook event runs in a fresh process:

- RULEKEEPER_STATE_DIR: where flag records and audit logs live
  (default: ~/.claude/hook-state)
- RULEKEEPER_LOG: set to 1/true/yes/on to enable the per-session audit log
  (the hook's --log flag does the same)
- RULEKEEPER_POLICY_FILE: optional YAML policy override
  (default: <state dir>/policy.yaml)
- RULEKEEPER_DEBUG: set to enable the diagnostic log under <state dir>/logs
"""

import os
from dataclasses import dataclass
from pathlib import Path

DEFAULT_STATE_DIR = "~/.claude/hook-state"
POLICY_FILE_NAME = "policy.yaml"

_TRUTHY = {"1", "true", "yes", "on"}


def _env_flag(name: str) -> bool:
    return os.environ.get(name, "").strip().lower() in _TRUTHY


@dataclass
class RuntimeConfig:
    """Resolved settings for one hook invocation."""

    state_dir: Path
    audit_enabled: bool = False
    policy_file: Path | None = None
    debug: bool = False


def get_state_dir() -> Path:
    """Get the state directory from environment or default."""
    return Path(os.path.expanduser(os.environ.get("RULEKEEPER_STATE_DIR", DEFAULT_STATE_DIR)))


def load_config(log_flag: bool = False) -> RuntimeConfig:
    """Build the runtime config from the environment.

    Args:
        log_flag: True when the hook was invoked with --log

    Returns:
        RuntimeConfig for this process
    """
    state_dir = get_state_dir()
    policy_env = os.environ.get("RULEKEEPER_POLICY_FILE")
    policy_file = Path(os.path.expanduser(policy_env)) if policy_env else state_dir / POLICY_FILE_NAME

    return RuntimeConfig(
        state_dir=state_dir,
        audit_enabled=log_flag or _env_flag("RULEKEEPER_LOG"),
        policy_file=policy_file,
        debug=_env_flag("RULEKEEPER_DEBUG"),
    )
