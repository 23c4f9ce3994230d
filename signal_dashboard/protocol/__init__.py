"""SimpleJson protocol adapter."""

from .adapter import SimpleJsonAdapter, table_response, timeseries_response

__all__ = ["SimpleJsonAdapter", "table_response", "timeseries_response"]
