"""SimpleJson request structures.

Field names follow the JSON the Grafana SimpleJson datasource sends; only
the fields this server acts on are modeled, everything else is ignored.
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ResponseFormat(str, Enum):
    """Response shapes a target can request."""
    TIMESERIE = "timeserie"
    TABLE = "table"


class TimeRange(BaseModel):
    """Dashboard time range of a query."""
    model_config = ConfigDict(populate_by_name=True)

    start: Optional[datetime] = Field(default=None, alias="from")
    end: Optional[datetime] = Field(default=None, alias="to")


class QueryTarget(BaseModel):
    """One requested series. ``type`` is validated by the adapter."""
    model_config = ConfigDict(populate_by_name=True)

    target: str
    type: str = ResponseFormat.TIMESERIE.value
    ref_id: Optional[str] = Field(default=None, alias="refId")


class Query(BaseModel):
    """Body of a ``/query`` request."""
    model_config = ConfigDict(populate_by_name=True)

    targets: List[QueryTarget]
    time_range: Optional[TimeRange] = Field(default=None, alias="range")
    interval: Optional[str] = None
    interval_ms: Optional[int] = Field(default=None, alias="intervalMs")
    max_data_points: Optional[int] = Field(default=None, alias="maxDataPoints")


class SearchRequest(BaseModel):
    """Body of a ``/search`` request."""
    target: Optional[str] = None
