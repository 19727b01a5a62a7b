"""Tests for event routing and the end-to-end flag lifecycle."""

import json

import pytest

from rulekeeper.dispatcher import QUESTION_CONTEXT, HookDispatcher
from rulekeeper.models import EXIT_BLOCK, EXIT_FAULT, EXIT_OK, HookEvent
from rulekeeper.policy import PolicyConfig, PolicyEvaluator


def prompt_event(session_id, prompt):
    return {"session_id": session_id, "hook_event_name": "UserPromptSubmit", "prompt": prompt}


def tool_event(session_id, tool_name, tool_input=None):
    return {
        "session_id": session_id,
        "hook_event_name": "PreToolUse",
        "tool_name": tool_name,
        "tool_input": tool_input or {},
    }


def lifecycle_event(session_id, name):
    return {"session_id": session_id, "hook_event_name": name}


def send(dispatcher, event):
    return dispatcher.handle_raw(json.dumps(event))


class TestPromptSubmit:
    """UserPromptSubmit stores flags and never blocks."""

    def test_question_sets_flag_and_context(self, dispatcher, store):
        response = send(dispatcher, prompt_event("s1", "Q: what is x?"))

        assert response.exit_code == EXIT_OK
        assert response.stream == "stdout"
        assert response.body["hookSpecificOutput"]["additionalContext"] == QUESTION_CONTEXT
        assert response.body["hookSpecificOutput"]["hookEventName"] == "UserPromptSubmit"
        assert store.get("s1", "question") == "what is x?"
        assert store.has("s1", "commit") is False

    def test_commit_sets_flag_without_context(self, dispatcher, store):
        response = send(dispatcher, prompt_event("s2", "commit! fix bug"))

        assert response.exit_code == EXIT_OK
        assert response.body == {}
        assert store.get("s2", "commit") == "fix bug"
        assert store.has("s2", "question") is False

    def test_plain_prompt_changes_nothing(self, dispatcher, store):
        store.set("s1", "commit", "earlier approval")
        response = send(dispatcher, prompt_event("s1", "refactor the parser"))

        assert response.body == {}
        assert response.exit_code == EXIT_OK
        assert store.flags("s1") == {"commit": "earlier approval"}

    def test_plain_prompt_creates_no_records(self, dispatcher, store, state_dir):
        send(dispatcher, prompt_event("fresh", "hello"))
        assert store.flags("fresh") == {}
        assert store.sessions() == []

    def test_missing_prompt(self, dispatcher, store):
        response = send(dispatcher, {"session_id": "s1", "hook_event_name": "UserPromptSubmit"})
        assert response.exit_code == EXIT_OK
        assert store.flags("s1") == {}

    @pytest.mark.parametrize("prompt", [{"a": 1}, 42, ["Q: x"], True])
    def test_non_string_prompt_is_no_match(self, dispatcher, store, prompt):
        response = send(dispatcher, prompt_event("s1", prompt))
        assert response.exit_code == EXIT_OK
        assert response.body == {}
        assert store.flags("s1") == {}


class TestPreToolUse:
    """PreToolUse applies the policy to stored flags."""

    def test_no_flags_allows(self, dispatcher):
        response = send(dispatcher, tool_event("s1", "Write", {"file_path": "a.py"}))
        assert response.exit_code == EXIT_OK
        assert response.body == {}
        assert response.stream == "stdout"

    def test_question_blocks_write(self, dispatcher, store):
        store.set("s1", "question", "why?")
        response = send(dispatcher, tool_event("s1", "Edit"))

        assert response.exit_code == EXIT_BLOCK
        assert response.stream == "stderr"
        assert "THE USER ASKED A QUESTION" in response.body["error"]

    def test_question_allows_read(self, dispatcher, store):
        store.set("s1", "question", "why?")
        response = send(dispatcher, tool_event("s1", "Grep", {"pattern": "x"}))
        assert response.exit_code == EXIT_OK

    def test_pre_tool_use_does_not_clear_question(self, dispatcher, store):
        store.set("s1", "question", "why?")
        send(dispatcher, tool_event("s1", "Read"))
        send(dispatcher, tool_event("s1", "Write"))
        assert store.has("s1", "question") is True

    def test_legacy_field_names(self, dispatcher):
        event = {
            "session_id": "s3",
            "hook_event_name": "PreToolUse",
            "tool": "Bash",
            "params": {"command": "git commit -m x"},
        }
        response = send(dispatcher, event)
        assert response.exit_code == EXIT_BLOCK

    def test_parameters_alias(self, dispatcher):
        event = {
            "session_id": "s3",
            "hook_event_name": "PreToolUse",
            "tool_name": "Bash",
            "parameters": {"command": "git commit -m x"},
        }
        assert send(dispatcher, event).exit_code == EXIT_BLOCK

    def test_empty_tool_input_is_not_replaced_by_alias(self, dispatcher):
        event = {
            "session_id": "s3",
            "hook_event_name": "PreToolUse",
            "tool_name": "Bash",
            "tool_input": {},
            "params": {"command": "git commit -m x"},
        }
        assert send(dispatcher, event).exit_code == EXIT_OK

    def test_null_tool_input_falls_back_to_alias(self, dispatcher):
        event = {
            "session_id": "s3",
            "hook_event_name": "PreToolUse",
            "tool_name": "Bash",
            "tool_input": None,
            "params": {"command": "git commit -m x"},
        }
        assert send(dispatcher, event).exit_code == EXIT_BLOCK

    def test_non_string_tool_name(self, dispatcher, store):
        event = tool_event("s1", {"name": "Read"}, {"file_path": "a.py"})
        assert send(dispatcher, event).exit_code == EXIT_OK

        store.set("s1", "question", "why?")
        assert send(dispatcher, event).exit_code == EXIT_BLOCK

    def test_substituted_policy(self, store):
        evaluator = PolicyEvaluator(PolicyConfig(read_only_tools=("Read",)))
        dispatcher = HookDispatcher(store, evaluator)
        store.set("s1", "question", "why?")
        assert send(dispatcher, tool_event("s1", "Grep")).exit_code == EXIT_BLOCK
        assert send(dispatcher, tool_event("s1", "Read")).exit_code == EXIT_OK


class TestSessionBoundary:
    """Session end and start both clear all flags."""

    @pytest.mark.parametrize("name", ["Stop", "SessionEnd", "SessionStart"])
    def test_clears_all_flags(self, dispatcher, store, name):
        store.set("s1", "question", "x")
        store.set("s1", "commit", "y")
        response = send(dispatcher, lifecycle_event("s1", name))

        assert response.exit_code == EXIT_OK
        assert response.body == {}
        assert store.flags("s1") == {}

    @pytest.mark.parametrize("name", ["Stop", "SessionEnd", "SessionStart"])
    def test_clear_without_flags(self, dispatcher, store, name):
        response = send(dispatcher, lifecycle_event("empty", name))
        assert response.exit_code == EXIT_OK


class TestPassthrough:
    """Unknown events are passed through without touching state."""

    @pytest.mark.parametrize("name", ["PostToolUse", "Notification", "PreCompact", None])
    def test_passthrough(self, dispatcher, store, name):
        store.set("s1", "question", "x")
        response = send(dispatcher, lifecycle_event("s1", name))

        assert response.exit_code == EXIT_OK
        assert response.body == {}
        assert store.get("s1", "question") == "x"


class TestFaults:
    """Malformed input is an internal fault, exit code 1."""

    @pytest.mark.parametrize("raw", ["", "not json", "{", "[1, 2]", '"text"', "null"])
    def test_malformed_input(self, dispatcher, raw):
        response = dispatcher.handle_raw(raw)
        assert response.exit_code == EXIT_FAULT
        assert response.stream == "stderr"
        assert response.body["error"].startswith("Hook handler error:")

    def test_path_like_session_id(self, dispatcher, state_dir):
        response = send(dispatcher, prompt_event("../outside", "Q: escape?"))
        assert response.exit_code == EXIT_FAULT
        assert not (state_dir.parent / "outside.question.txt").exists()

    def test_unexpected_exception(self, store, monkeypatch):
        dispatcher = HookDispatcher(store)

        def explode(*args, **kwargs):
            raise RuntimeError("disk on fire")

        monkeypatch.setattr(store, "has", explode)
        response = send(dispatcher, tool_event("s1", "Read"))
        assert response.exit_code == EXIT_FAULT
        assert "disk on fire" in response.body["error"]


class TestSessionId:
    """Missing session ids fall back to 'unknown'."""

    def test_missing_session_id(self, dispatcher, store):
        send(dispatcher, {"hook_event_name": "UserPromptSubmit", "prompt": "Q: who?"})
        assert store.get("unknown", "question") == "who?"

    def test_empty_session_id(self, dispatcher, store):
        send(dispatcher, {"session_id": "", "hook_event_name": "UserPromptSubmit", "prompt": "Q: who?"})
        assert store.has("unknown", "question") is True

    def test_model_default(self):
        assert HookEvent.model_validate({"session_id": None}).session_id == "unknown"


class TestScenarios:
    """Full sequences across independent invocations."""

    def test_question_lifecycle(self, state_dir, store):
        def fresh():
            # A new dispatcher per event, as each hook runs in its own process
            from rulekeeper.session_state import SessionStateStore

            return HookDispatcher(SessionStateStore(state_dir))

        send(fresh(), prompt_event("s1", "Q: what is x?"))
        assert store.get("s1", "question") == "what is x?"

        assert send(fresh(), tool_event("s1", "Write", {"file_path": "x"})).exit_code == EXIT_BLOCK
        assert send(fresh(), tool_event("s1", "Read", {"file_path": "x"})).exit_code == EXIT_OK

        send(fresh(), lifecycle_event("s1", "SessionEnd"))
        assert store.flags("s1") == {}

        assert send(fresh(), tool_event("s1", "Write", {"file_path": "x"})).exit_code == EXIT_OK

    def test_commit_approval(self, dispatcher, store):
        commit = {"command": 'git commit -m "x"'}

        send(dispatcher, prompt_event("s2", "commit! fix bug"))
        assert store.has("s2", "commit") is True
        assert send(dispatcher, tool_event("s2", "Bash", commit)).exit_code == EXIT_OK

        response = send(dispatcher, tool_event("s3", "Bash", commit))
        assert response.exit_code == EXIT_BLOCK
        assert "OFFENSIVE" in response.body["error"]

    def test_commit_approval_persists_until_boundary(self, dispatcher, store):
        commit = {"command": "git -c user.name=bot commit -m wip"}

        assert send(dispatcher, tool_event("s4", "Bash", commit)).exit_code == EXIT_BLOCK
        send(dispatcher, prompt_event("s4", "COMMIT!"))
        for _ in range(3):
            assert send(dispatcher, tool_event("s4", "Bash", commit)).exit_code == EXIT_OK

        send(dispatcher, prompt_event("s4", "carry on"))
        assert send(dispatcher, tool_event("s4", "Bash", commit)).exit_code == EXIT_OK

        send(dispatcher, lifecycle_event("s4", "Stop"))
        assert send(dispatcher, tool_event("s4", "Bash", commit)).exit_code == EXIT_BLOCK

    def test_question_overrides_commit_approval(self, dispatcher):
        send(dispatcher, prompt_event("s5", "commit! ship it"))
        send(dispatcher, prompt_event("s5", "Q: wait, is it tested?"))
        response = send(dispatcher, tool_event("s5", "Bash", {"command": "git commit"}))
        assert response.exit_code == EXIT_BLOCK
        assert "QUESTION" in response.body["error"]


class TestAuditTrail:
    """The audit trail records each step without affecting outcomes."""

    def test_records_steps_in_order(self, dispatcher, audit):
        send(dispatcher, prompt_event("s1", "Q: what is x?"))
        send(dispatcher, tool_event("s1", "Write"))
        send(dispatcher, lifecycle_event("s1", "Stop"))

        events = [r["event"] for r in audit.read("s1")]
        assert events == [
            "hook_received", "question_detected", "response",
            "hook_received", "pretooluse_check", "blocking_tool",
            "hook_received", "session_cleanup",
        ]

    def test_commit_records(self, dispatcher, audit):
        commit = {"command": "git commit -m x"}
        send(dispatcher, tool_event("s2", "Bash", commit))
        send(dispatcher, prompt_event("s2", "commit! ok"))
        send(dispatcher, tool_event("s2", "Bash", commit))

        records = audit.read("s2")
        events = [r["event"] for r in records]
        assert "blocking_git_commit" in events
        assert "commit_allowed" in events
        assert events[-2:] == ["allowing_git_commit", "allowing_tool"]
        blocked = next(r for r in records if r["event"] == "blocking_git_commit")
        assert blocked["exit_code"] == 2
        assert blocked["command"] == "git commit -m x"

    def test_survives_session_cleanup(self, dispatcher, audit):
        send(dispatcher, prompt_event("s1", "Q: x?"))
        send(dispatcher, lifecycle_event("s1", "SessionStart"))
        assert len(audit.read("s1")) >= 4

    def test_fault_is_recorded(self, dispatcher, audit):
        dispatcher.handle_raw("not json")
        assert audit.read("unknown")[-1]["event"] == "error"

    def test_broken_audit_does_not_change_decision(self, store, tmp_path):
        from rulekeeper.audit import AuditLogger

        blocker = tmp_path / "blocker"
        blocker.write_text("")
        dispatcher = HookDispatcher(store, audit=AuditLogger(blocker, enabled=True))
        store.set("s1", "question", "x")
        assert send(dispatcher, tool_event("s1", "Write")).exit_code == EXIT_BLOCK
        assert send(dispatcher, tool_event("s1", "Read")).exit_code == EXIT_OK
