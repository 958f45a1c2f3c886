"""Hashing helpers for cache fingerprints."""
from __future__ import annotations

from typing import Any, Iterable, Mapping, Optional, Sequence

from shared.logging.logger import get_logger

log = get_logger("shared.utils.hashing")

_MASK_32 = 0xFFFFFFFF

STAT_FINGERPRINT_FIELDS = ("id", "quarter", "position", "goals_for", "goals_against")


def rolling_hash(text: str, seed: int = 0) -> int:
    """31-multiplier rolling hash truncated to 32 bits."""

    value = seed
    for ch in text:
        value = (value * 31 + ord(ch)) & _MASK_32
    return value


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


def _field(record: Any, name: str) -> Any:
    # Raw API payloads use camelCase keys
    if isinstance(record, Mapping):
        value = record.get(name)
        return value if value is not None else record.get(_camel(name))
    return getattr(record, name, None)


def stable_hash_for_records(
    records: Optional[Iterable[Any]],
    fields: Sequence[str] = STAT_FINGERPRINT_FIELDS,
) -> str:
    """Compute a deterministic fingerprint for a collection of records.

    Records are ordered by their ``id`` field (the first entry of ``fields``)
    before hashing, so the same set in any order yields the same value. Each
    record contributes a ``a-b-c`` token built from ``fields``; missing fields
    contribute an empty segment. ``None`` and an empty collection both map to
    ``"empty"``.
    """

    if records is None:
        return "empty"

    tokens = []
    for record in records:
        parts = ["" if _field(record, name) is None else str(_field(record, name)) for name in fields]
        tokens.append((_field(record, fields[0]), "-".join(parts)))

    if not tokens:
        return "empty"

    def _order(item):
        record_id, token = item
        if isinstance(record_id, (int, float)):
            return (0, record_id, token)
        return (1, 0, token)

    tokens.sort(key=_order)

    value = 0
    for _, token in tokens:
        value = rolling_hash(token + "|", seed=value)

    fingerprint = f"{value:08x}"
    log.debug(f"Fingerprinted {len(tokens)} record(s) -> {fingerprint}")
    return fingerprint
