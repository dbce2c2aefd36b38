"""Cross-cutting helpers with no domain dependencies."""

from .parsers import parse_command, parse_index, parse_signed_number

__all__ = ["parse_command", "parse_index", "parse_signed_number"]
