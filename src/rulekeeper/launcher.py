"""Unified command line for rulekeeper."""

import argparse
import sys

from .audit import AuditLogger
from .config import load_config
from .session_state import SessionStateStore


def show_status(session_id: str | None = None) -> int:
    """Print the state directory and the flags each session holds."""
    config = load_config()
    store = SessionStateStore(config.state_dir)
    audit = AuditLogger(config.state_dir)

    print("\n" + "=" * 50)
    print("  rulekeeper status")
    print("=" * 50 + "\n")

    print(f"  State directory: {config.state_dir}")
    print(f"  Exists: {config.state_dir.exists()}")
    policy_note = "" if config.policy_file and config.policy_file.is_file() else " (not present, using defaults)"
    print(f"  Policy file: {config.policy_file}{policy_note}")
    print(f"  Audit log: {'enabled' if config.audit_enabled else 'disabled'}")

    sessions = [session_id] if session_id else store.sessions()
    print(f"\n  Sessions with flags: {len(store.sessions())}")

    for sid in sessions:
        try:
            flags = store.flags(sid)
        except ValueError as e:
            print(f"  {sid}: ERROR - {e}")
            return 1
        print(f"\n  {sid}")
        if not flags:
            print("    (no flags set)")
        for kind, text in flags.items():
            print(f"    {kind}: {text!r}")
        records = audit.read(sid)
        if records:
            print(f"    audit records: {len(records)} (last: {records[-1].get('event')})")

    print("\n" + "=" * 50 + "\n")
    return 0


def clear_session(session_id: str) -> int:
    """Remove every flag for a session, as a session boundary event would."""
    store = SessionStateStore(load_config().state_dir)
    try:
        store.clear_all(session_id)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    print(f"Cleared flags for session {session_id}")
    return 0


def main(argv: list[str] | None = None):
    """Main entry point for the launcher."""
    parser = argparse.ArgumentParser(
        prog="rulekeeper",
        description="rulekeeper - session policy hook for AI coding assistants",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Commands:
  hook       Handle one hook event from stdin (default)
  status     Show sessions and their flags
  clear      Remove all flags for a session

Examples:
  rulekeeper hook --log < event.json
  rulekeeper status --session abc123
  rulekeeper clear abc123
        """,
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    hook_parser = subparsers.add_parser("hook", help="Handle one hook event from stdin")
    hook_parser.add_argument("-log", "--log", dest="log", action="store_true", help="Write audit trail")

    status_parser = subparsers.add_parser("status", help="Show sessions and their flags")
    status_parser.add_argument("--session", help="Only show this session")

    clear_parser = subparsers.add_parser("clear", help="Remove all flags for a session")
    clear_parser.add_argument("session_id", help="Session to clear")

    args = parser.parse_args(argv)

    if args.command is None:
        # Default to handling a hook event
        args.command = "hook"
        args.log = False

    if args.command == "hook":
        from .hook import run
        sys.exit(run(["--log"] if args.log else []))

    elif args.command == "status":
        sys.exit(show_status(args.session))

    elif args.command == "clear":
        sys.exit(clear_session(args.session_id))


if __name__ == "__main__":
    main()
