"""
Compile event logging.

Appends one JSON object per line to the file named by COLLABTEX_EVENTS_FILE.
This is an observability trail for finished compilations, not document
persistence; when the variable is unset, logging is a no-op.

Usage:
    from collabtex.utils.event_logging import log_compile_event

    log_compile_event(
        event_type="compile_finished",
        entry="main.tex",
        source="orchestrator",
        status="fell_back",
        elapsed_s=0.42,
    )
"""

import json
import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from collabtex.utils.timestamp import now_exact

load_dotenv()


def get_events_file() -> Optional[Path]:
    """Return the configured event log path, or None if event logging is disabled."""
    events_file = os.getenv("COLLABTEX_EVENTS_FILE")
    return Path(events_file) if events_file else None


def log_compile_event(event_type: str, entry: str, source: str, **extra_fields) -> bool:
    """
    Log an event to the compile event log (JSON Lines).

    Args:
        event_type: Type of event (e.g., "compile_finished", "backend_load_failed")
        entry: Entry document of the compilation
        source: Event source (e.g., "orchestrator", "cli")
        **extra_fields: Additional event-specific fields

    Returns:
        True if the event was written, False if event logging is disabled
    """
    events_file = get_events_file()
    if events_file is None:
        return False

    events_file.parent.mkdir(parents=True, exist_ok=True)

    event = {
        "timestamp": now_exact(),
        "event_type": event_type,
        "entry": entry,
        "source": source,
        **extra_fields,
    }

    with open(events_file, "a", encoding="utf-8") as f:
        f.write(json.dumps(event) + "\n")

    return True


def get_recent_events(n: int = 10, event_type: Optional[str] = None) -> list[dict]:
    """
    Get the last n events from the compile event log, optionally filtered.

    Args:
        n: Number of recent events to return (default: 10)
        event_type: Filter to only events of this type (optional)

    Returns:
        List of event dicts (most recent last)
    """
    events_file = get_events_file()
    if events_file is None or not events_file.exists():
        return []

    events = []
    with open(events_file, "r", encoding="utf-8") as f:
        for line in f:
            try:
                events.append(json.loads(line.strip()))
            except json.JSONDecodeError:
                # Skip malformed lines
                continue

    if event_type:
        events = [e for e in events if e.get("event_type") == event_type]

    return events[-n:] if len(events) > n else events
