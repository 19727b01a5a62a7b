#!/usr/bin/env python3
"""Hook handler entry point.

Register as the command for UserPromptSubmit, PreToolUse, Stop and
SessionStart hooks:

    rulekeeper-hook          # decisions only
    rulekeeper-hook --log    # also append a JSONL audit trail per session

Reads one JSON event from stdin and writes one JSON object:
stdout with exit 0 when the action may proceed, stderr with exit 2 on a
policy refusal, stderr with exit 1 on an internal fault.
"""

import argparse
import json
import sys
from typing import TextIO

from .audit import AuditLogger
from .config import RuntimeConfig, load_config
from .dispatcher import HookDispatcher
from .logging_config import configure_logging, get_logger
from .models import EXIT_FAULT, Fault, HookResponse
from .policy import PolicyEvaluator, load_policy
from .session_state import SessionStateStore

logger = get_logger("hook")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="rulekeeper-hook",
        description="Session policy hook: reads one hook event as JSON from stdin",
    )
    parser.add_argument(
        "-log", "--log",
        dest="log",
        action="store_true",
        help="Append a JSONL audit trail per session to the state directory",
    )
    return parser


def build_dispatcher(config: RuntimeConfig) -> HookDispatcher:
    """Wire the store, policy and audit trail for one invocation."""
    store = SessionStateStore(config.state_dir)
    evaluator = PolicyEvaluator(load_policy(config.policy_file))
    audit = AuditLogger(config.state_dir, enabled=config.audit_enabled)
    return HookDispatcher(store, evaluator, audit)


def emit(response: HookResponse, stdout: TextIO, stderr: TextIO) -> int:
    """Write the response body to its stream and return the exit code."""
    stream = stderr if response.stream == "stderr" else stdout
    print(json.dumps(response.body), file=stream)
    stream.flush()
    return response.exit_code


def run(
    argv: list[str] | None = None,
    stdin: TextIO | None = None,
    stdout: TextIO | None = None,
    stderr: TextIO | None = None,
) -> int:
    """Handle one event and return the process exit code."""
    stdin = stdin or sys.stdin
    stdout = stdout or sys.stdout
    stderr = stderr or sys.stderr

    try:
        # Unknown arguments are ignored so a newer settings.json cannot break the hook
        args, _ = build_parser().parse_known_args(argv)
        config = load_config(log_flag=args.log)
        if config.debug:
            configure_logging(config.state_dir / "logs")

        # Drain stdin completely before parsing anything
        raw = stdin.read()

        try:
            dispatcher = build_dispatcher(config)
        except ValueError as e:
            logger.error(f"Could not load policy: {e}")
            return emit(HookResponse.from_outcome(Fault(f"Hook handler error: {e}")), stdout, stderr)

        return emit(dispatcher.handle_raw(raw), stdout, stderr)
    except Exception as e:
        logger.exception("Fatal error in hook handler")
        print(json.dumps({"error": f"Fatal error: {e}"}), file=stderr)
        return EXIT_FAULT


def main():
    sys.exit(run())


if __name__ == "__main__":
    main()
