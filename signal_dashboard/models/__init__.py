"""Data models for signal dashboard."""

from .sample import Sample
from .query import Query, QueryTarget, ResponseFormat, SearchRequest, TimeRange

__all__ = [
    "Sample",
    "Query",
    "QueryTarget",
    "ResponseFormat",
    "SearchRequest",
    "TimeRange",
]
