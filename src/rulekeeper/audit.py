"""Per-session audit trail.

When enabled, each significant step of a hook invocation is appended as one
JSON line to ``<state_dir>/<session_id>.jsonl``:

    {"timestamp": "2026-01-01T12:00:00+00:00", "event": "pretooluse_check", ...}

The trail is observational. A failure to write it never changes a decision
or the exit code.
"""

import json
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from .logging_config import get_logger
from .models import check_session_id

logger = get_logger("audit")


class AuditLogger:
    """Append-only JSONL trail, one file per session."""

    def __init__(self, state_dir: Path | str, enabled: bool = False):
        self.state_dir = Path(state_dir)
        self.enabled = enabled

    def log_path(self, session_id: str) -> Path:
        check_session_id(session_id)
        return self.state_dir / f"{session_id}.jsonl"

    def log(self, session_id: str, event: str, **fields: Any) -> None:
        """Append one record. Does nothing when disabled; never raises."""
        if not self.enabled:
            return

        entry = {"timestamp": datetime.now(UTC).isoformat(), "event": event, **fields}
        try:
            line = json.dumps(entry, default=str)
            self.state_dir.mkdir(parents=True, exist_ok=True)
            with open(self.log_path(session_id), "a", encoding="utf-8") as f:
                f.write(line + "\n")
        except Exception as e:
            logger.debug(f"Audit write failed for session {session_id}: {e}")

    def read(self, session_id: str) -> list[dict]:
        """Load a session's records, skipping lines that fail to parse."""
        path = self.log_path(session_id)
        if not path.exists():
            return []

        records = []
        with open(path, encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                if not line:
                    continue
                try:
                    records.append(json.loads(line))
                except json.JSONDecodeError:
                    continue
        return records
