"""JSON formatter for CLI output."""

import json
from collections.abc import Sequence
from typing import Any

from reconscan.models.base import ResultRecord


def to_dicts(records: Sequence[ResultRecord]) -> list[dict[str, Any]]:
    """Convert result records to JSON-ready dictionaries."""
    return [record.to_json_dict() for record in records]


def format_json(records: Sequence[ResultRecord]) -> str:
    """Render records as a JSON array."""
    return json.dumps(to_dicts(records), indent=2, ensure_ascii=False)
