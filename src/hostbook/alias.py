"""Host alias sanitizing and lookup."""

import re
from collections import Counter
from collections.abc import Iterable

from hostbook.types import WILDCARD_ALIAS, HostRecord

PLACEHOLDER_ALIAS = "host"

# Whitespace, comment marker, quotes, pattern characters and separators that
# ssh_config treats specially in a Host line.
_UNSAFE_RUN = re.compile(r"[\s#\"'`*?!,=\\\x00-\x1f\x7f]+")
_EDGE_CHARS = "-."


def sanitize_alias(name: str) -> str:
    """Turn a display name into a bare Host token.

    >>> sanitize_alias("My Server #2")
    'My-Server-2'
    """
    stripped = name.strip()
    if stripped == WILDCARD_ALIAS:
        return WILDCARD_ALIAS

    alias = _UNSAFE_RUN.sub("-", stripped).strip(_EDGE_CHARS)
    return alias or PLACEHOLDER_ALIAS


def unique_alias(alias: str, taken: Iterable[str]) -> str:
    """Append -2, -3, ... to alias until it is not in taken."""
    taken_set = set(taken)
    if alias not in taken_set:
        return alias

    n = 2
    while f"{alias}-{n}" in taken_set:
        n += 1
    return f"{alias}-{n}"


def find_record(records: Iterable[HostRecord], alias: str) -> HostRecord | None:
    """Return the record an alias refers to.

    When several blocks share the alias the last one wins, so edits go to
    the block that was written most recently.
    """
    found = None
    for record in records:
        if record.host == alias:
            found = record
    return found


def duplicate_aliases(records: Iterable[HostRecord]) -> list[str]:
    """Aliases used by more than one record, in first-seen order."""
    counts = Counter(r.host for r in records if r.host)
    return [alias for alias, count in counts.items() if count > 1]
