"""Plain-text formatter: one primary field per line."""

from collections.abc import Sequence

from reconscan.models.base import ResultRecord


def format_text(records: Sequence[ResultRecord]) -> str:
    return "\n".join(record.to_text() for record in records)
