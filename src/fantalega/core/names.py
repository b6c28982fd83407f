"""Player/team name canonicalization and lineup entry extraction.

Lineup entries and player results are joined on the normalized name, so both
sides must go through ``normalize_name``. An empty normalized name means the
entry is absent and is dropped from every aggregation.
"""

from __future__ import annotations


def format_name(name: object) -> str:
    """Display form of a name: surrounding whitespace removed, case kept."""
    return name.strip() if isinstance(name, str) else ""


def normalize_name(name: object) -> str:
    """Join key for a name: trimmed and lowercased. Non-strings are absent."""
    return format_name(name).lower()


def _stringify(value: object) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


def extract_entries(raw: object) -> list[str]:
    """Flatten a stored lineup into its ordered list of entry strings.

    Two storage shapes are readable: a plain list of names, and an object
    wrapping that list under ``items``. Any other shape yields no entries.
    ``None`` elements become empty strings; other values are stringified.
    """
    if isinstance(raw, (list, tuple)):
        items = raw
    elif isinstance(raw, dict) and isinstance(raw.get("items"), (list, tuple)):
        items = raw["items"]
    else:
        return []
    return [_stringify(item) for item in items]


def distinct_players(entries: list[str]) -> set[str]:
    """Normalized, non-empty, de-duplicated player keys of a lineup."""
    return {key for key in (normalize_name(e) for e in entries) if key}
