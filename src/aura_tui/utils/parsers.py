"""
Command line parsing for the interactive loop.
"""

import shlex
from typing import List, Optional, Tuple


def parse_command(user_input: str) -> Tuple[str, List[str]]:
    """
    Split user input into a lowercase command and its arguments.

    Quoted arguments stay together (``playlist rename "Old Name" "New"``).
    Unbalanced quotes fall back to plain whitespace splitting.

    Args:
        user_input: Raw user input string

    Returns:
        Tuple of (command, args)
    """
    text = user_input.strip().lstrip("/")
    try:
        parts = shlex.split(text)
    except ValueError:
        parts = text.split()

    if not parts:
        return "", []
    return parts[0].lower(), parts[1:]


def parse_index(value: str, size: int) -> Optional[int]:
    """Convert a 1-based user index into a 0-based one, or None if out of range."""
    try:
        index = int(value) - 1
    except (TypeError, ValueError):
        return None
    if 0 <= index < size:
        return index
    return None


def parse_signed_number(value: str) -> Tuple[Optional[float], bool]:
    """
    Parse ``"10"``, ``"+10"`` or ``"-10"``.

    Returns:
        (number, relative) where relative is True for an explicit sign;
        number is None when unparseable
    """
    value = value.strip()
    relative = value[:1] in ("+", "-")
    try:
        return float(value), relative
    except ValueError:
        return None, relative
