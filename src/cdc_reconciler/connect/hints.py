"""Best-effort triage of Kafka Connect error bodies into actionable hints.

This is substring matching on free-form error text, not an error parser.
"""

from __future__ import annotations

from enum import StrEnum


class FailureCategory(StrEnum):
    AUTHENTICATION = "authentication"
    CONNECTION = "connection"
    DATABASE = "database"
    UNKNOWN = "unknown"


# Checked in order; the first keyword found wins.
_KEYWORDS: tuple[tuple[str, FailureCategory], ...] = (
    ("authentication", FailureCategory.AUTHENTICATION),
    ("login failed", FailureCategory.AUTHENTICATION),
    ("connection", FailureCategory.CONNECTION),
    ("database", FailureCategory.DATABASE),
)

_HINTS: dict[FailureCategory, str] = {
    FailureCategory.AUTHENTICATION: (
        "Check the database username and password (database.user / "
        "database.password) in the connector config"
    ),
    FailureCategory.CONNECTION: (
        "Check database server connectivity from the Kafka Connect container"
    ),
    FailureCategory.DATABASE: (
        "Check the database name and that CDC is enabled on the database "
        "and the captured tables"
    ),
}


def classify_failure(body: str) -> FailureCategory:
    text = body.lower()
    for keyword, category in _KEYWORDS:
        if keyword in text:
            return category
    return FailureCategory.UNKNOWN


def hint_for(category: FailureCategory) -> str | None:
    return _HINTS.get(category)
