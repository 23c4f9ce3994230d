"""Error taxonomy for metric storage and the SimpleJson protocol."""


class DashboardError(Exception):
    """Base error. Renders as ``"<context>: <detail>"``."""

    status_code = 500

    def __init__(self, context: str, detail: str):
        self.context = context
        self.detail = detail
        super().__init__(f"{context}: {detail}")

    def to_dict(self) -> dict:
        """Error envelope expected by the SimpleJson datasource."""
        return {"error": str(self)}


# Setup-time errors

class DuplicateMetric(DashboardError):
    """A metric with this name is already registered."""

    def __init__(self, name: str):
        self.name = name
        super().__init__("duplicate metric", name)


class InvalidCapacity(DashboardError):
    """Capacity (or the retention/interval it is derived from) is not positive."""

    def __init__(self, detail: str):
        super().__init__("invalid capacity", detail)


class ConfigError(DashboardError):
    """Configuration file has an invalid structure."""

    def __init__(self, detail: str):
        super().__init__("invalid configuration", detail)


# Per-request errors

class ProtocolError(DashboardError):
    """Caller-side fault while handling a protocol request."""

    status_code = 400


class UnknownMetric(ProtocolError):
    """Requested target is not registered."""

    def __init__(self, name: str):
        self.name = name
        super().__init__("unknown target", name)


class UnsupportedFormat(ProtocolError):
    """Requested response format is neither timeserie nor table."""

    def __init__(self, fmt: str, target: str):
        self.format = fmt
        self.target = target
        super().__init__(
            "unsupported format", f"{fmt!r} requested for target {target}"
        )


class MalformedRequest(ProtocolError):
    """Request body is empty or does not have the expected structure."""

    def __init__(self, detail: str, context: str = "cannot unmarshal request body"):
        super().__init__(context, detail)


class QueryCancelled(DashboardError):
    """Deadline passed or client went away before the response was encoded."""

    status_code = 408

    def __init__(self, detail: str):
        super().__init__("query cancelled", detail)


class SerializationFailure(DashboardError):
    """Response payload cannot be encoded as JSON."""

    status_code = 500

    def __init__(self, detail: str):
        super().__init__("cannot marshal response", detail)
