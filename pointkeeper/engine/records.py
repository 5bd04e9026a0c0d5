"""
pointkeeper.engine.records — Record Codec
==========================================

Every durable record is a single line ``<key> - <value>``:

* ledger records (bot-authored, users channel): ``<user_id> - <balance>``
* catalog records (human-authored, tasks/rewards channels):
  ``<description> - <points>``, keyed by the post's own message id

Parsing is strict; bootstrap treats any mismatch as corruption.
"""

from __future__ import annotations

import re

from pointkeeper.constants import MAX_POINTS, RECORD_SEPARATOR
from pointkeeper.engine.errors import MalformedRecord

__all__ = ["format_record", "parse_catalog_record", "parse_ledger_record"]

_LEDGER_RE = re.compile(r"(?P<key>\d+) - (?P<value>\d+)", re.ASCII)
# Greedy label: the value is whatever follows the LAST separator.
_CATALOG_RE = re.compile(r"(?P<label>.*\S) - (?P<value>\d+)", re.ASCII)


def _bounded(content: str, raw: str, what: str) -> int:
    value = int(raw)
    if value > MAX_POINTS:
        raise MalformedRecord(content, f"{what} exceeds {MAX_POINTS}")
    return value


def format_record(key: int | str, value: int) -> str:
    """Render a record line, e.g. ``format_record(42, 7) == "42 - 7"``."""
    if value < 0:
        raise ValueError(f"Record value must be non-negative, got {value}")
    return f"{key}{RECORD_SEPARATOR}{value}"


def parse_ledger_record(content: str) -> tuple[int, int]:
    """Parse ``<user_id> - <balance>`` into ``(user_id, balance)``.

    Raises
    ------
    MalformedRecord
        If the content is not exactly one such line.
    """
    match = _LEDGER_RE.fullmatch(content.strip())
    if match is None:
        raise MalformedRecord(content, "expected '<user_id> - <balance>'")
    return int(match["key"]), _bounded(content, match["value"], "balance")


def parse_catalog_record(content: str) -> tuple[str, int]:
    """Parse ``<description> - <points>`` into ``(description, points)``."""
    match = _CATALOG_RE.fullmatch(content.strip())
    if match is None:
        raise MalformedRecord(content, "expected '<description> - <points>' on one line")
    return match["label"].strip(), _bounded(content, match["value"], "points")
