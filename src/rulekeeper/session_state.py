"""File-backed session flags.

Each hook event runs in its own short-lived process, so flags are kept on
disk rather than in memory. One record per (session_id, kind):

    <state_dir>/<session_id>.question.txt
    <state_dir>/<session_id>.commit.txt

A flag is set when its file exists; the file content is the prompt text
with the marker stripped.

There is no locking. Two events for the same session arriving at once race
on these files; callers are expected to deliver one session's events
sequentially.
"""

from pathlib import Path

from .logging_config import get_logger
from .models import FLAG_KINDS, FlagKind, check_session_id

logger = get_logger("session_state")

_SUFFIX = ".txt"


class SessionStateStore:
    """Existence flags per session, stored as marker files."""

    def __init__(self, state_dir: Path | str):
        self.state_dir = Path(state_dir)

    def _path(self, session_id: str, kind: FlagKind) -> Path:
        if kind not in FLAG_KINDS:
            raise ValueError(f"Unknown flag kind: {kind}")
        check_session_id(session_id)
        return self.state_dir / f"{session_id}.{kind}{_SUFFIX}"

    def has(self, session_id: str, kind: FlagKind) -> bool:
        """Check whether a flag is set. Absence is the normal state."""
        return self._path(session_id, kind).is_file()

    def get(self, session_id: str, kind: FlagKind) -> str | None:
        """Return the stored text for a flag, or None if it is not set."""
        path = self._path(session_id, kind)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None

    def set(self, session_id: str, kind: FlagKind, text: str = "") -> None:
        """Set a flag, overwriting any text already stored."""
        path = self._path(session_id, kind)
        self.state_dir.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
        logger.debug(f"Set {kind} flag for session {session_id}")

    def clear(self, session_id: str, kind: FlagKind) -> None:
        """Remove a flag. Missing or undeletable records count as cleared."""
        path = self._path(session_id, kind)
        try:
            path.unlink()
            logger.debug(f"Cleared {kind} flag for session {session_id}")
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.debug(f"Could not remove {path}: {e}")

    def clear_all(self, session_id: str) -> None:
        """Remove every flag kind for a session."""
        for kind in FLAG_KINDS:
            self.clear(session_id, kind)

    def flags(self, session_id: str) -> dict[str, str]:
        """Map of set flag kinds to their stored text."""
        result = {}
        for kind in FLAG_KINDS:
            text = self.get(session_id, kind)
            if text is not None:
                result[kind] = text
        return result

    def sessions(self) -> list[str]:
        """Session ids that currently have at least one flag set."""
        if not self.state_dir.is_dir():
            return []
        found = set()
        for kind in FLAG_KINDS:
            suffix = f".{kind}{_SUFFIX}"
            for path in self.state_dir.glob(f"*{suffix}"):
                found.add(path.name[: -len(suffix)])
        return sorted(found)
