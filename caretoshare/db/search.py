"""
search.py

Substring matching for the search endpoints.

User input is matched literally: LIKE wildcards (% and _) and the escape
character are escaped, so "100%" only matches the text "100%".
"""

from typing import Any


LIKE_ESCAPE = "\\"


def like_pattern(term: str) -> str:
    escaped = (
        term.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", LIKE_ESCAPE + "%")
        .replace("_", LIKE_ESCAPE + "_")
    )
    return f"%{escaped}%"


def icontains(column: Any, term: str):
    """Case-insensitive literal substring match on a column."""
    return column.ilike(like_pattern(term), escape=LIKE_ESCAPE)
