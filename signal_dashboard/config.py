"""Configuration management for signal dashboard."""

from dataclasses import dataclass, field
from typing import List, Optional, Dict, Any
from pathlib import Path
import os

import yaml

from .errors import ConfigError


SOURCE_KINDS = ("random_walk", "cpu")


@dataclass
class ServerConfig:
    """HTTP server configuration."""
    host: str = "0.0.0.0"
    port: int = 3001
    request_timeout: float = 5.0  # seconds, 0 = no deadline
    cors_origins: List[str] = field(default_factory=lambda: ["*"])


@dataclass
class LoggingConfig:
    """Logging configuration."""
    level: str = "INFO"
    log_requests: bool = False


@dataclass
class SourceConfig:
    """Data source feeding a metric."""
    kind: str = "random_walk"  # random_walk, cpu
    period: float = 1.0  # seconds between samples
    maximum: float = 100.0
    volatility: float = 0.2
    core: Optional[int] = None  # None = all cores

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SourceConfig":
        kind = data.get("kind", "random_walk")
        if kind not in SOURCE_KINDS:
            raise ConfigError(f"unknown source kind {kind!r}, expected one of {', '.join(SOURCE_KINDS)}")

        return cls(
            kind=kind,
            period=float(data.get("period", 1.0)),
            maximum=float(data.get("max", 100.0)),
            volatility=float(data.get("volatility", 0.2)),
            core=data.get("core"),
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"kind": self.kind, "period": self.period}
        if self.kind == "random_walk":
            data["max"] = self.maximum
            data["volatility"] = self.volatility
        elif self.core is not None:
            data["core"] = self.core
        return data


@dataclass
class MetricConfig:
    """A metric to register at startup."""
    name: str
    capacity: Optional[int] = None
    retention: Optional[float] = None  # seconds
    interval: Optional[float] = None  # seconds
    source: Optional[SourceConfig] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MetricConfig":
        if not isinstance(data, dict) or not data.get("name"):
            raise ConfigError(f"metric entry needs a name: {data!r}")

        name = str(data["name"])
        capacity = data.get("capacity")
        retention = data.get("retention")
        interval = data.get("interval")

        if capacity is None and (retention is None or interval is None):
            raise ConfigError(f"metric {name} needs either capacity or retention and interval")
        if capacity is not None and retention is not None:
            raise ConfigError(f"metric {name} sets both capacity and retention")
        if capacity is not None and interval is not None:
            raise ConfigError(f"metric {name} sets both capacity and interval")

        source = None
        if data.get("source") is not None:
            if not isinstance(data["source"], dict):
                raise ConfigError(f"source of metric {name} must be a mapping")
            source = SourceConfig.from_dict(data["source"])

        return cls(
            name=name,
            capacity=int(capacity) if capacity is not None else None,
            retention=float(retention) if retention is not None else None,
            interval=float(interval) if interval is not None else None,
            source=source,
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"name": self.name}
        if self.capacity is not None:
            data["capacity"] = self.capacity
        else:
            data["retention"] = self.retention
            data["interval"] = self.interval
        if self.source is not None:
            data["source"] = self.source.to_dict()
        return data


def _default_metrics() -> List[MetricConfig]:
    # Two simulated CPU cores holding five minutes at one sample per second
    return [
        MetricConfig(
            name="CPU1",
            retention=300.0,
            interval=1.0,
            source=SourceConfig(kind="random_walk", maximum=100.0, volatility=0.2),
        ),
        MetricConfig(
            name="CPU2",
            capacity=300,
            source=SourceConfig(kind="random_walk", maximum=100.0, volatility=0.1),
        ),
    ]


@dataclass
class DashboardConfig:
    """Main configuration container."""
    server: ServerConfig = field(default_factory=ServerConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    metrics: List[MetricConfig] = field(default_factory=_default_metrics)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DashboardConfig":
        """Create config from dictionary."""
        if not isinstance(data, dict):
            raise ConfigError("top level must be a mapping")

        config = cls()

        if "server" in data:
            srv = data["server"] or {}
            origins = srv.get("cors_origins", ["*"])
            if isinstance(origins, str):
                origins = [o.strip() for o in origins.split(",")]
            config.server = ServerConfig(
                host=srv.get("host", "0.0.0.0"),
                port=int(srv.get("port", 3001)),
                request_timeout=float(srv.get("request_timeout", 5.0)),
                cors_origins=list(origins),
            )

        if "logging" in data:
            log = data["logging"] or {}
            config.logging = LoggingConfig(
                level=str(log.get("level", "INFO")).upper(),
                log_requests=bool(log.get("log_requests", False)),
            )

        if "metrics" in data:
            entries = data["metrics"] or []
            if not isinstance(entries, list):
                raise ConfigError("metrics must be a list")
            config.metrics = [MetricConfig.from_dict(m) for m in entries]

            names = [m.name for m in config.metrics]
            duplicates = sorted({n for n in names if names.count(n) > 1})
            if duplicates:
                raise ConfigError(f"duplicate metric names: {', '.join(duplicates)}")

        return config

    @classmethod
    def from_yaml(cls, path: str) -> "DashboardConfig":
        """Load config from YAML file."""
        with open(path, 'r') as f:
            try:
                data = yaml.safe_load(f)
            except yaml.YAMLError as e:
                raise ConfigError(f"{path}: {e}")
        return cls.from_dict(data or {})

    @classmethod
    def load(cls, path: Optional[str] = None) -> "DashboardConfig":
        """Load config from file or use defaults."""
        if path and not os.path.exists(path):
            raise ConfigError(f"config file not found: {path}")

        # Search paths
        search_paths = [
            path,
            "config.yaml",
            "config.yml",
            os.path.expanduser("~/.config/signal-dashboard/config.yaml"),
            "/etc/signal-dashboard/config.yaml",
        ]

        for config_path in search_paths:
            if config_path and os.path.exists(config_path):
                return cls.from_yaml(config_path)

        # Return defaults
        return cls()

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary."""
        return {
            "server": {
                "host": self.server.host,
                "port": self.server.port,
                "request_timeout": self.server.request_timeout,
                "cors_origins": self.server.cors_origins,
            },
            "logging": {
                "level": self.logging.level,
                "log_requests": self.logging.log_requests,
            },
            "metrics": [m.to_dict() for m in self.metrics],
        }

    def save_yaml(self, path: str) -> None:
        """Save config to YAML file."""
        Path(path).parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'w') as f:
            yaml.dump(self.to_dict(), f, default_flow_style=False, sort_keys=False)
