"""Routes one hook event to its handler and produces the hook response.

Handlers by hook_event_name:
- UserPromptSubmit: store question / commit-approval flags from prompt markers
- PreToolUse: apply the tool policy; a refusal exits with code 2
- Stop, SessionEnd, SessionStart: clear every flag for the session
- anything else: pass through untouched

Every handler resolves to a tagged outcome; exit codes are assigned only
when the outcome becomes a HookResponse.
"""

import json

from .audit import AuditLogger
from .classifier import classify_prompt
from .logging_config import get_logger
from .models import (
    PRE_TOOL_USE,
    SESSION_BOUNDARY_EVENTS,
    UNKNOWN_SESSION,
    USER_PROMPT_SUBMIT,
    Allow,
    Block,
    Fault,
    HookEvent,
    HookResponse,
)
from .policy import PolicyEvaluator
from .session_state import SessionStateStore

logger = get_logger("dispatcher")

QUESTION_CONTEXT = (
    "USER ASKED A QUESTION: You must answer it before doing anything else. "
    "DO NOT use tools. DO NOT perform actions. ONLY provide the answer."
)


class HookDispatcher:
    """Entry point for a single hook event."""

    def __init__(
        self,
        store: SessionStateStore,
        evaluator: PolicyEvaluator | None = None,
        audit: AuditLogger | None = None,
    ):
        self.store = store
        self.evaluator = evaluator or PolicyEvaluator()
        self.audit = audit or AuditLogger(store.state_dir, enabled=False)

    def handle_raw(self, raw: str) -> HookResponse:
        """Parse a complete stdin payload and dispatch it.

        Malformed input and unexpected exceptions become a fault response
        (exit code 1); nothing escapes this method.
        """
        session_id = UNKNOWN_SESSION
        try:
            data = json.loads(raw)
            if not isinstance(data, dict):
                raise ValueError(f"expected a JSON object, got {type(data).__name__}")
            event = HookEvent.model_validate(data)
            session_id = event.session_id
            return self.dispatch(event)
        except ValueError as e:
            return self._fault(session_id, e)
        except Exception as e:
            logger.exception("Unexpected error while handling hook event")
            return self._fault(session_id, e)

    def dispatch(self, event: HookEvent) -> HookResponse:
        """Route a parsed event to its handler."""
        name = event.hook_event_name
        self.audit.log(
            event.session_id,
            "hook_received",
            hook_event_name=name,
            hookData=event.model_dump(mode="json", by_alias=True),
        )
        logger.debug(f"{name} for session {event.session_id}")

        if name == USER_PROMPT_SUBMIT:
            return self.on_prompt_submit(event)
        if name == PRE_TOOL_USE:
            return self.on_pre_tool_use(event)
        if name in SESSION_BOUNDARY_EVENTS:
            return self.on_session_boundary(event)
        return self.on_passthrough(event)

    def on_prompt_submit(self, event: HookEvent) -> HookResponse:
        """Persist flags for matched prompt markers. Never blocks."""
        session_id = event.session_id
        result = classify_prompt(event.prompt)

        if result.is_question:
            self.store.set(session_id, "question", result.question_text)
            self.audit.log(
                session_id, "question_detected", prompt=event.prompt, actualPrompt=result.question_text
            )

        if result.is_commit_approved:
            self.store.set(session_id, "commit", result.commit_text)
            self.audit.log(
                session_id, "commit_allowed", prompt=event.prompt, actualPrompt=result.commit_text
            )

        if result.is_question:
            response = HookResponse.neutral({
                "hookSpecificOutput": {
                    "hookEventName": USER_PROMPT_SUBMIT,
                    "additionalContext": QUESTION_CONTEXT,
                }
            })
            action = "adding_context"
        else:
            response = HookResponse.neutral()
            action = "no_context_needed"

        self.audit.log(session_id, "response", response=response.body, action=action)
        return response

    def on_pre_tool_use(self, event: HookEvent) -> HookResponse:
        """Apply the tool policy to a proposed tool call."""
        session_id = event.session_id
        tool_name = event.tool_name
        question_pending = self.store.has(session_id, "question")
        commit_approved = self.store.has(session_id, "commit")

        self.audit.log(
            session_id,
            "pretooluse_check",
            hasQuestion=question_pending,
            hasCommitApproval=commit_approved,
            tool=tool_name,
            params=event.tool_input,
        )

        decision = self.evaluator.evaluate(
            tool_name, event.tool_input, question_pending, commit_approved
        )
        is_commit = self.evaluator.is_commit_command(tool_name, event.tool_input)
        response = HookResponse.from_outcome(decision)

        if isinstance(decision, Block):
            if question_pending and not self.evaluator.config.is_read_only(tool_name):
                self.audit.log(
                    session_id,
                    "blocking_tool",
                    response=response.body,
                    tool=tool_name,
                    reason="question_pending_unsafe_tool",
                    exit_code=response.exit_code,
                )
            else:
                self.audit.log(
                    session_id,
                    "blocking_git_commit",
                    response=response.body,
                    command=event.tool_input.get("command"),
                    exit_code=response.exit_code,
                )
            logger.info(f"Blocked {tool_name} for session {session_id}")
            return response

        if is_commit:
            self.audit.log(session_id, "allowing_git_commit", command=event.tool_input.get("command"))

        self.audit.log(
            session_id,
            "allowing_tool",
            tool=tool_name,
            reason="safe_tool_allowed" if question_pending else "no_restriction",
        )
        return response

    def on_session_boundary(self, event: HookEvent) -> HookResponse:
        """Clear all flags. Session start and end share the same cleanup."""
        self.audit.log(event.session_id, "session_cleanup", hook_event_name=event.hook_event_name)
        self.store.clear_all(event.session_id)
        return HookResponse.from_outcome(Allow())

    def on_passthrough(self, event: HookEvent) -> HookResponse:
        self.audit.log(event.session_id, "passthrough", hook_event_name=event.hook_event_name)
        return HookResponse.neutral()

    def _fault(self, session_id: str, error: Exception) -> HookResponse:
        self.audit.log(session_id, "error", error=str(error), error_type=type(error).__name__)
        return HookResponse.from_outcome(Fault(f"Hook handler error: {error}"))
