"""Pytest configuration for rulekeeper tests.

Every test gets its own state directory; nothing touches ~/.claude.
"""

import pytest

from rulekeeper.audit import AuditLogger
from rulekeeper.dispatcher import HookDispatcher
from rulekeeper.logging_config import reset_logging
from rulekeeper.session_state import SessionStateStore


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch):
    """Point the state directory at a temp dir and clear rulekeeper env vars."""
    state_dir = tmp_path / "hook-state"
    monkeypatch.setenv("RULEKEEPER_STATE_DIR", str(state_dir))
    for name in ("RULEKEEPER_LOG", "RULEKEEPER_POLICY_FILE", "RULEKEEPER_DEBUG"):
        monkeypatch.delenv(name, raising=False)
    yield state_dir
    reset_logging()


@pytest.fixture
def state_dir(isolated_env):
    return isolated_env


@pytest.fixture
def store(state_dir):
    return SessionStateStore(state_dir)


@pytest.fixture
def audit(state_dir):
    return AuditLogger(state_dir, enabled=True)


@pytest.fixture
def dispatcher(store, audit):
    return HookDispatcher(store, audit=audit)
