"""
API Request Schemas

Pydantic models for API request validation.
"""

from typing import Any

from pydantic import BaseModel, Field


class OrdersUpload(BaseModel):
    """Raw order snapshot upload."""

    orders: list[Any] = Field(
        ...,
        description="Raw order records, legacy or multi-item shape"
    )
    source: str = Field(
        default="upload",
        max_length=200,
        description="Free-form label for where the snapshot came from"
    )


class QueryRequest(BaseModel):
    """Business question request."""

    # Length is checked by the query engine so it can answer with a message
    question: Any = Field(
        ...,
        description="Free-text question about sales, products or customers"
    )
