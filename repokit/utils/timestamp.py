"""
Timestamp utilities for repokit.

Provides the clock used for automatic timestamp columns and the pure
helper that stamps a field mapping.
"""

from datetime import datetime, timezone
from typing import Any, Iterable, Mapping, Optional


def utc_now() -> datetime:
    """Get the current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def with_timestamps(
    fields: Optional[Mapping[str, Any]],
    columns: Iterable[Optional[str]],
    now: Optional[datetime] = None,
) -> dict[str, Any]:
    """
    Return a copy of ``fields`` with each timestamp column filled in.

    A column is only written when the caller did not supply a value for it
    (missing key or ``None``). ``None`` entries in ``columns`` are skipped so
    a disabled event can be passed straight through.

    Args:
        fields: Column values supplied by the caller (never mutated)
        columns: Physical timestamp column names to fill
        now: Timestamp to write, defaults to ``utc_now()``

    Returns:
        New dictionary with the timestamp columns set
    """
    stamped = dict(fields or {})

    if now is None:
        now = utc_now()

    for column in columns:
        if column and stamped.get(column) is None:
            stamped[column] = now

    return stamped
