"""CLI output formatters."""

from collections.abc import Sequence
from enum import Enum

from reconscan.cli.formatters.json_fmt import format_json, to_dicts
from reconscan.cli.formatters.text_fmt import format_text
from reconscan.models.base import ResultRecord


class OutputFormat(str, Enum):
    json = "json"
    txt = "txt"


def render(records: Sequence[ResultRecord], output_format: OutputFormat) -> str:
    """Render records in the requested format."""
    if output_format is OutputFormat.txt:
        return format_text(records)
    return format_json(records)


__all__ = ["OutputFormat", "format_json", "format_text", "render", "to_dicts"]
