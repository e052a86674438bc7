"""
Query Intent Classification

An ordered decision list of (intent, pattern) pairs evaluated top to
bottom over the lowercased question; the first match wins.
"""

import re
from dataclasses import dataclass, field
from typing import Any, Optional

from core.coercion import safe_int

MATCH_CONFIDENCE = 0.8
UNKNOWN_CONFIDENCE = 0.1

INTENT_PATTERNS: tuple[tuple[str, re.Pattern], ...] = (
    ("top_products", re.compile(r"(?:top|best|most|popular).+(?:product|item|milk)")),
    ("sales_period", re.compile(r"(?:sales|revenue|orders).+(?:last|this|yesterday|today|week|month|year)")),
    ("customer_insights", re.compile(r"(?:customer|client|buyer).+(?:most|best|frequent|loyal)")),
    ("revenue_analysis", re.compile(r"(?:revenue|money|earnings|income|profit|trending|trend)")),
    ("forecast", re.compile(r"(?:predict|forecast|estimate|expect|future|next)")),
)

# Checked in order; "this week" must be tested before "last week"
PERIOD_PHRASES: tuple[tuple[str, str], ...] = (
    ("yesterday", "yesterday"),
    ("today", "today"),
    ("this week", "week"),
    ("last week", "lastWeek"),
    ("this month", "month"),
    ("last month", "lastMonth"),
)

NUMBER_PATTERN = re.compile(r"\d+")


@dataclass
class Intent:
    """Classified question."""

    type: str
    confidence: float
    params: dict[str, Any] = field(default_factory=dict)

    @property
    def period(self) -> Optional[str]:
        return self.params.get("period")

    @property
    def number(self) -> Optional[int]:
        return self.params.get("number")


def normalize_query(text: str) -> str:
    return text.strip().lower()


def extract_parameters(query: str) -> dict[str, Any]:
    """Time period phrase and the first integer in a normalized question."""
    params: dict[str, Any] = {}
    for phrase, period in PERIOD_PHRASES:
        if phrase in query:
            params["period"] = period
            break

    match = NUMBER_PATTERN.search(query)
    if match:
        params["number"] = safe_int(match.group())
    return params


def classify_intent(query: str) -> Intent:
    """Classify a question. Confidence is a fixed label, not a probability."""
    query = normalize_query(query)
    for intent_type, pattern in INTENT_PATTERNS:
        if pattern.search(query):
            return Intent(
                type=intent_type,
                confidence=MATCH_CONFIDENCE,
                params=extract_parameters(query),
            )
    return Intent(type="unknown", confidence=UNKNOWN_CONFIDENCE)
