"""
Bounded linear undo/redo history.

Each document owns one History: a sequence of content snapshots plus a cursor
pointing at the snapshot currently shown in the editor.
"""

from typing import List, Optional, Tuple

DEFAULT_HISTORY_LIMIT = 50


class History:
    """
    Linear snapshot history with a cursor.

    Invariants:
        - 0 <= cursor < len(snapshots)
        - len(snapshots) <= limit; on overflow the oldest snapshot is evicted
          and the cursor shifts with it, so it keeps pointing at the same edit
        - pushing while the cursor is behind the end discards the redo branch
        - pushing the snapshot already under the cursor is a no-op
    """

    def __init__(self, initial: str = "", limit: int = DEFAULT_HISTORY_LIMIT):
        if limit < 1:
            raise ValueError(f"History limit must be at least 1, got: {limit}")
        self.limit = limit
        self._snapshots: List[str] = [initial]
        self._cursor = 0

    def __len__(self) -> int:
        return len(self._snapshots)

    @property
    def cursor(self) -> int:
        return self._cursor

    @property
    def current(self) -> str:
        """Snapshot under the cursor."""
        return self._snapshots[self._cursor]

    @property
    def snapshots(self) -> Tuple[str, ...]:
        return tuple(self._snapshots)

    def push(self, content: str) -> bool:
        """
        Append a snapshot after the cursor.

        Args:
            content: New document content

        Returns:
            True if a snapshot was appended, False if content matched the current snapshot
        """
        if content == self._snapshots[self._cursor]:
            return False

        # Drop the redo branch
        del self._snapshots[self._cursor + 1 :]
        self._snapshots.append(content)
        self._cursor += 1

        while len(self._snapshots) > self.limit:
            self._snapshots.pop(0)
            self._cursor -= 1

        return True

    def can_undo(self) -> bool:
        return self._cursor > 0

    def can_redo(self) -> bool:
        return self._cursor < len(self._snapshots) - 1

    def undo(self) -> Optional[str]:
        """Step back one snapshot. Returns None at the oldest snapshot."""
        if not self.can_undo():
            return None
        self._cursor -= 1
        return self._snapshots[self._cursor]

    def redo(self) -> Optional[str]:
        """Step forward one snapshot. Returns None at the newest snapshot."""
        if not self.can_redo():
            return None
        self._cursor += 1
        return self._snapshots[self._cursor]
