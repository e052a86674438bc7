"""
Predefined questions offered to users, grouped by category.
"""

import random
import zlib

QUERY_CATEGORIES: dict[str, list[str]] = {
    "Sales Analytics": [
        "What were my sales this week?",
        "Show me sales for today",
        "How much revenue did I make this month?",
        "Show me sales for last week",
        "How much money did I make this month?",
        "Show me revenue trends",
    ],
    "Product Insights": [
        "Which are my top selling products?",
        "What were my top products this month?",
        "Show me the top 10 products last month",
        "What's my best performing milk type?",
    ],
    "Customer Analytics": [
        "Which customers are the most loyal?",
        "Which customers order most frequently?",
        "Which customers spend the most this month?",
    ],
    "Forecasting": [
        "Predict next week's sales",
        "Forecast demand for next month",
        "What should I expect in the future?",
    ],
}

QUICK_ACTIONS: list[dict[str, str]] = [
    {"text": "Sales Today", "query": "Show me sales for today"},
    {"text": "Top Products", "query": "Which are my top selling products this week?"},
    {"text": "Best Customers", "query": "Which customers order most frequently?"},
    {"text": "Weekly Revenue", "query": "How much revenue did I make this week?"},
    {"text": "Sales Forecast", "query": "Predict next week's sales"},
]


def all_queries() -> list[str]:
    return [q for queries in QUERY_CATEGORIES.values() for q in queries]


def pick_suggestions(seed_text: str, count: int = 5) -> list[str]:
    """
    Choose example questions for a help answer.

    Selection is seeded by the question text, so the same question always
    gets the same suggestions.
    """
    queries = all_queries()
    rng = random.Random(zlib.crc32(seed_text.encode("utf-8")))
    return rng.sample(queries, min(count, len(queries)))
