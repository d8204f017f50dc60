"""
Text processing utilities for parsing and display.
"""

import re
from typing import NamedTuple, Tuple


class WordCount(NamedTuple):
    words: int
    characters: int


def extract_balanced_delimiters(
    text: str,
    start_pos: int,
    open_char: str = '{',
    close_char: str = '}',
    escape_char: str = '\\'
) -> Tuple[str, int]:
    """
    Extract content between balanced delimiters, handling escaped characters.

    Assumes start_pos is right AFTER an opening delimiter. Counts nested delimiters
    to find the matching closing delimiter, skipping escaped characters.

    Args:
        text: Text containing delimited content
        start_pos: Position right after the opening delimiter
        open_char: Opening delimiter character (default: '{')
        close_char: Closing delimiter character (default: '}')
        escape_char: Character used for escaping (default: '\\')

    Returns:
        (content, end_pos) where:
        - content: Text between the delimiters (excluding delimiters themselves)
        - end_pos: Position after the closing delimiter

    Raises:
        ValueError: If delimiters are unmatched

    Example:
        >>> text = "foo {bar {nested} baz} qux"
        >>> content, end = extract_balanced_delimiters(text, 5)
        >>> content
        'bar {nested} baz'
    """
    depth = 1  # Start at 1 (already inside opening delimiter)
    pos = start_pos

    while pos < len(text) and depth > 0:
        if text[pos] == escape_char:
            # Skip escaped character
            pos += 2
            continue
        elif text[pos] == open_char:
            depth += 1
        elif text[pos] == close_char:
            depth -= 1
        pos += 1

    if depth != 0:
        raise ValueError(
            f"Unmatched {open_char}{close_char} delimiters starting at position {start_pos}"
        )

    content = text[start_pos:pos - 1]
    return content, pos


def truncate_display(text: str, max_len: int) -> str:
    """Truncate text for display, appending '...' when shortened."""
    text = text.strip()
    if len(text) <= max_len:
        return text
    return text[:max_len] + "..."


def count_words(text: str) -> WordCount:
    """
    Count whitespace-separated words and raw characters.

    Example:
        >>> count_words("Hello  LaTeX\\nworld")
        WordCount(words=3, characters=18)
    """
    words = [word for word in re.split(r"\s+", text) if word]
    return WordCount(words=len(words), characters=len(text))


def collapse_whitespace(text: str) -> str:
    """Collapse runs of whitespace (including newlines) to single spaces."""
    return re.sub(r"\s+", " ", text)
