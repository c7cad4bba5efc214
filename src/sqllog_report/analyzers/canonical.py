"""SQL text canonicalization.

Structurally identical queries that differ only in literal values collapse
to one pattern. The steps run in a fixed order and every literal becomes the
same placeholder, which makes the pipeline idempotent.
"""

import re

PLACEHOLDER = "?"

CANONICALIZATION_STEPS: tuple[tuple[str, re.Pattern[str], str], ...] = (
    ("string_literal", re.compile(r"'(?:[^']|'')*'"), PLACEHOLDER),
    (
        "uuid",
        re.compile(
            r"\b[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}\b",
            re.IGNORECASE,
        ),
        PLACEHOLDER,
    ),
    (
        "datetime",
        re.compile(
            r"\b[0-9]{4}-[0-9]{2}-[0-9]{2}(?:[\sTt][0-9]{2}:[0-9]{2}:[0-9]{2}(?:\.[0-9]+)?)?\b"
        ),
        PLACEHOLDER,
    ),
    ("number", re.compile(r"\b[0-9]+(?:\.[0-9]+)?\b"), PLACEHOLDER),
    ("whitespace", re.compile(r"\s+"), " "),
)


def canonicalize(sql: str) -> str:
    """Return the canonical pattern of a SQL statement."""
    text = sql.lower()
    for _name, pattern, replacement in CANONICALIZATION_STEPS:
        text = pattern.sub(replacement, text)
    return text.strip()
