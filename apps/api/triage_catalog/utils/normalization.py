"""Data normalization utilities for symptoms, codes, and names."""

import re
from typing import Iterable, Optional


# Leading tag markers ("#insomnia") and separator underscores left over
# after collapsing; stripping them together keeps normalization idempotent.
_LEADING_MARKERS = re.compile(r"^[#_]+")
_SEPARATORS = re.compile(r"[\s_\-]+")
_LIST_DELIMITERS = re.compile(r"[,;]")


# =============================================================================
# Symptoms
# =============================================================================

def normalize_symptom(raw: Optional[str]) -> str:
    """
    Canonicalize a raw symptom token into a stable key.

    - Lowercase
    - Runs of whitespace, hyphens and underscores become one underscore
    - Leading tag markers ("#") are removed
    - Trailing underscores are removed

    "#Depressed_Mood", "depressed mood" and "Depressed-Mood" all become
    "depressed_mood". Empty or marker-only input returns "", which callers
    must discard.
    """
    if not raw:
        return ""
    collapsed = _SEPARATORS.sub("_", raw.lower())
    return _LEADING_MARKERS.sub("", collapsed).rstrip("_")


def normalize_symptoms(raws: Iterable[Optional[str]]) -> list[str]:
    """Normalize a list of symptoms, dropping empties and duplicates (first seen wins)."""
    seen: set[str] = set()
    result: list[str] = []
    for raw in raws:
        token = normalize_symptom(raw)
        if token and token not in seen:
            seen.add(token)
            result.append(token)
    return result


def symptoms_overlap(first: str, second: str) -> bool:
    """Bidirectional substring test between two normalized tokens."""
    if not first or not second:
        return False
    return first in second or second in first


def collapse_similar(tokens: list[str]) -> list[str]:
    """
    Group tokens that overlap each other and keep the first of each group.

    "anxiety" and "anxiety_or_tension" describe one sign, so an input
    carrying both is counted once.
    """
    groups: list[list[str]] = []
    for token in tokens:
        for group in groups:
            if any(symptoms_overlap(token, member) for member in group):
                group.append(token)
                break
        else:
            groups.append([token])
    return [group[0] for group in groups]


def prettify_symptom(token: str) -> str:
    """Display form of a normalized token: "depressed_mood" -> "Depressed mood"."""
    words = token.replace("_", " ").strip()
    if not words:
        return ""
    return f"{words[0].upper()}{words[1:]}"


def parse_symptom_field(value: object) -> list[str]:
    """
    Accept a symptom list or a ","/";" separated string (spreadsheet cells).

    Returns normalized, de-duplicated tokens.
    """
    if value is None:
        return []
    if isinstance(value, str):
        return normalize_symptoms(_LIST_DELIMITERS.split(value))
    if isinstance(value, (list, tuple)):
        return normalize_symptoms(str(item) for item in value if item is not None)
    return []


# =============================================================================
# Codes and names
# =============================================================================

def normalize_code(code: Optional[str]) -> Optional[str]:
    """
    Normalize a diagnostic code ("F32.1", "296.23").

    Strips surrounding whitespace; blank codes become None so they never
    take part in uniqueness checks.
    """
    if code is None:
        return None
    cleaned = str(code).strip()
    return cleaned or None


def normalize_name(name: Optional[str]) -> Optional[str]:
    """
    Normalize name by stripping whitespace and collapsing multiple spaces.

    Args:
        name: Raw name input

    Returns:
        Cleaned name or None if empty
    """
    if not name:
        return None
    collapsed = " ".join(name.split())
    return collapsed or None
