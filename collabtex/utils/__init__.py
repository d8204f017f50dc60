"""
Shared utilities for collabtex.

Common functionality used across contexts:
- Settings loading
- Logger setup
- LaTeX and text helpers
- Timestamps and compile event logging
"""

from collabtex.utils.config import load_settings
from collabtex.utils.timestamp import clock_time, now, now_exact, today

__all__ = ["load_settings", "clock_time", "now", "now_exact", "today"]
