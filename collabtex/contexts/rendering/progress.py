"""
Compilation progress log.

The observability sink handed to the UI: an append-only list of timestamped,
leveled lines describing orchestration progress. Every line is mirrored to
loguru with the [render] prefix.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Callable, Iterator, List, Optional

from collabtex.contexts.rendering.logger import _log_error, _log_info, _log_success, _log_warning
from collabtex.utils.timestamp import clock_time


class ProgressLevel(str, Enum):
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


_MIRRORS = {
    ProgressLevel.INFO: _log_info,
    ProgressLevel.SUCCESS: _log_success,
    ProgressLevel.WARNING: _log_warning,
    ProgressLevel.ERROR: _log_error,
}


@dataclass(frozen=True)
class ProgressLine:
    timestamp: datetime
    level: ProgressLevel
    message: str

    def __str__(self) -> str:
        return f"[{clock_time(self.timestamp)}] {self.message}"


ProgressListener = Callable[[ProgressLine], None]


@dataclass
class ProgressLog:
    """
    Append-only progress lines.

    Attributes:
        listeners: Callables notified with each new line (e.g., a UI log panel)
    """

    listeners: List[ProgressListener] = field(default_factory=list)
    _lines: List[ProgressLine] = field(default_factory=list, init=False, repr=False)

    def __iter__(self) -> Iterator[ProgressLine]:
        return iter(list(self._lines))

    def __len__(self) -> int:
        return len(self._lines)

    @property
    def lines(self) -> List[ProgressLine]:
        return list(self._lines)

    def add(self, message: str, level: ProgressLevel = ProgressLevel.INFO) -> ProgressLine:
        line = ProgressLine(timestamp=datetime.now(), level=ProgressLevel(level), message=message)
        self._lines.append(line)
        _MIRRORS[line.level](message)
        for listener in self.listeners:
            listener(line)
        return line

    def info(self, message: str) -> ProgressLine:
        return self.add(message, ProgressLevel.INFO)

    def success(self, message: str) -> ProgressLine:
        return self.add(message, ProgressLevel.SUCCESS)

    def warning(self, message: str) -> ProgressLine:
        return self.add(message, ProgressLevel.WARNING)

    def error(self, message: str) -> ProgressLine:
        return self.add(message, ProgressLevel.ERROR)

    def messages(self, level: Optional[ProgressLevel] = None) -> List[str]:
        """Messages in order, optionally only those of one level."""
        return [line.message for line in self._lines if level is None or line.level == level]

    def render(self) -> str:
        """All lines as text, one per line."""
        return "\n".join(str(line) for line in self._lines)
