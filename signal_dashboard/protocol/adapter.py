"""SimpleJson datasource protocol on top of the metric registry."""

import json
import logging
import time
from typing import Any, Dict, List, Optional, Sequence

from pydantic import ValidationError

from ..errors import MalformedRequest, QueryCancelled, SerializationFailure, UnsupportedFormat
from ..models.query import Query, QueryTarget, ResponseFormat, SearchRequest
from ..models.sample import Sample
from ..storage.metrics_store import MetricRegistry


logger = logging.getLogger(__name__)

# Grafana's metric picker sends this before the user types anything
PLACEHOLDER_TARGET = "select metric"

TABLE_COLUMNS = [
    {"text": "Name", "type": "string"},
    {"text": "Value", "type": "number"},
    {"text": "Time", "type": "time"},
]


def timeseries_response(name: str, samples: Sequence[Sample]) -> Dict[str, Any]:
    """Series shape: ``[value, epoch_ms]`` pairs, oldest first."""
    return {
        "target": name,
        "datapoints": [[s.value, s.epoch_ms] for s in samples],
    }


def table_response(name: str, samples: Sequence[Sample]) -> Dict[str, Any]:
    """Table shape: one ``[name, value, epoch_ms]`` row per sample."""
    return {
        "columns": [dict(column) for column in TABLE_COLUMNS],
        "rows": [[name, s.value, s.epoch_ms] for s in samples],
        "type": "table",
    }


class SimpleJsonAdapter:
    """
    Translates SimpleJson discovery and query requests into registry reads.

    Parsing, querying and encoding are separate steps so the transport can
    check for cancellation between them.
    """

    def __init__(self, registry: MetricRegistry):
        self.registry = registry

    # Discovery

    def parse_search(self, body: bytes) -> SearchRequest:
        """Parse a ``/search`` body. An empty body means no filter."""
        if not body or not body.strip():
            return SearchRequest()
        try:
            return SearchRequest.model_validate_json(body)
        except ValidationError as e:
            raise MalformedRequest(str(e))

    def search(self, request: SearchRequest) -> List[str]:
        """Registered metric names matching the request's target filter."""
        names = self.registry.names()
        term = (request.target or "").strip().lower()

        if not term or term == PLACEHOLDER_TARGET:
            return names
        return [name for name in names if term in name.lower()]

    # Query

    def parse_query(self, body: bytes) -> Query:
        """Parse a ``/query`` body."""
        if not body or not body.strip():
            raise MalformedRequest("request body is empty")
        try:
            return Query.model_validate_json(body)
        except ValidationError as e:
            raise MalformedRequest(str(e))

    def query(self, query: Query, deadline: Optional[float] = None) -> List[Dict[str, Any]]:
        """
        Build the response payload for every target, in request order.

        All targets are resolved before any buffer is read, so an unknown
        target or unsupported format fails the whole request.

        Args:
            query: Parsed request.
            deadline: ``time.monotonic()`` value after which the query is
                abandoned with QueryCancelled.
        """
        resolved = [
            (target, self.registry.get(target.target), self._format_of(target))
            for target in query.targets
        ]

        results = []
        for target, metric, fmt in resolved:
            _check_deadline(deadline)
            samples = metric.snapshot(query.max_data_points)

            if fmt is ResponseFormat.TABLE:
                results.append(table_response(metric.name, samples))
            else:
                results.append(timeseries_response(metric.name, samples))

            logger.debug(
                "Prepared %s response for %s (%d samples)", fmt.value, target.target, len(samples)
            )

        _check_deadline(deadline)
        return results

    def _format_of(self, target: QueryTarget) -> ResponseFormat:
        try:
            return ResponseFormat(target.type)
        except ValueError:
            raise UnsupportedFormat(target.type, target.target)

    # Encoding

    def render(self, payload: Any) -> bytes:
        """Encode a payload as strict JSON."""
        try:
            return json.dumps(payload, allow_nan=False, separators=(",", ":")).encode("utf-8")
        except (TypeError, ValueError) as e:
            raise SerializationFailure(str(e))


def _check_deadline(deadline: Optional[float]) -> None:
    if deadline is not None and time.monotonic() >= deadline:
        raise QueryCancelled("request deadline exceeded")
