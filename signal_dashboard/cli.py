"""Command-line interface for signal dashboard."""

import argparse
import logging
import sys
from typing import List, Optional

from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table
from rich import box

from . import __version__
from .config import DashboardConfig, MetricConfig
from .errors import DashboardError
from .feeds.feed import FeedSupervisor
from .feeds.sources import source_from_config
from .storage.metrics_store import Metric, MetricRegistry


console = Console()


def setup_logging(level: str = "INFO") -> None:
    """Route all log records through rich."""
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=False)],
        force=True,
    )


class DashboardApp:
    """Main application coordinator."""

    def __init__(self, config: Optional[DashboardConfig] = None):
        self.config = config or DashboardConfig()
        self.registry = MetricRegistry()
        self.supervisor = FeedSupervisor()

    def initialize(self) -> List[Metric]:
        """
        Register every configured metric and its feed.

        Raises DuplicateMetric or InvalidCapacity for a bad metric entry;
        nothing is retried or renamed.
        """
        metrics = []
        for entry in self.config.metrics:
            metric = self._create_metric(entry)
            if entry.source is not None:
                source = source_from_config(entry.source)
                self.supervisor.add(metric, source, period=entry.source.period)
            metrics.append(metric)
        return metrics

    def _create_metric(self, entry: MetricConfig) -> Metric:
        if entry.capacity is not None:
            return self.registry.create_metric_with_capacity(entry.name, entry.capacity)
        return self.registry.create_metric(entry.name, entry.retention, entry.interval)

    def create_server(self):
        """FastAPI app that runs this app's feeds for its lifetime."""
        from .server.app import create_app
        return create_app(self.registry, config=self.config, supervisor=self.supervisor)

    def get_metrics_table(self) -> Table:
        """Create Rich table describing the registered metrics."""
        table = Table(
            title="Metrics",
            box=box.ROUNDED,
            show_header=True,
            header_style="bold cyan",
        )

        table.add_column("Name", style="bold")
        table.add_column("Capacity", justify="right")
        table.add_column("Window", justify="right")
        table.add_column("Source")

        sources = {entry.name: entry.source for entry in self.config.metrics}
        for item in self.registry.summary():
            source = sources.get(item["name"])
            if source is None:
                window = "-"
                label = "[dim]none[/dim]"
            else:
                window = _format_window(item["capacity"] * source.period)
                label = _describe_source(source)
            table.add_row(item["name"], f"{item['capacity']:,}", window, label)

        return table


def _format_window(seconds: float) -> str:
    if seconds >= 3600:
        return f"{seconds / 3600:.1f}h"
    if seconds >= 60:
        return f"{seconds / 60:.1f}m"
    return f"{seconds:.0f}s"


def _describe_source(source) -> str:
    if source.kind == "cpu":
        core = "all cores" if source.core is None else f"core {source.core}"
        return f"cpu ({core}) every {source.period:g}s"
    return f"random walk (max {source.maximum:g}, volatility {source.volatility:g}) every {source.period:g}s"


def _load_app(config_path: Optional[str]) -> DashboardApp:
    try:
        config = DashboardConfig.load(config_path)
        app = DashboardApp(config)
        app.initialize()
    except (DashboardError, ValueError, OSError) as e:
        console.print(f"[red]Cannot start: {e}[/red]")
        sys.exit(1)
    return app


def run_serve(args) -> None:
    """Run the SimpleJson server with the configured feeds."""
    import uvicorn

    app = _load_app(args.config)
    server = app.config.server

    host = args.host or server.host
    port = args.port or server.port
    level = args.log_level or app.config.logging.level
    setup_logging(level)

    console.print(app.get_metrics_table())
    console.print(f"[green]Serving SimpleJson datasource on http://{host}:{port}[/green]")
    console.print("[dim]Press Ctrl-C to stop.[/dim]")

    uvicorn.run(
        app.create_server(),
        host=host,
        port=port,
        log_level=level.lower(),
        log_config=None,
    )

    console.print("[yellow]Stopped.[/yellow]")


def run_metrics(args) -> None:
    """Print the configured metrics."""
    app = _load_app(args.config)
    console.print(app.get_metrics_table())


def run_init_config(args) -> None:
    """Write the default configuration file."""
    DashboardConfig().save_yaml(args.path)
    console.print(f"[green]Wrote default configuration to {args.path}[/green]")


def main() -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        prog="signal-dashboard",
        description="Expose in-process metrics to Grafana through the SimpleJson datasource.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # Serve command
    serve_parser = subparsers.add_parser("serve", help="Run the datasource server and feeds")
    serve_parser.add_argument(
        "-c", "--config",
        help="Path to configuration file",
    )
    serve_parser.add_argument(
        "--host",
        help="Interface to bind (overrides config)",
    )
    serve_parser.add_argument(
        "-p", "--port",
        type=int,
        help="Port to listen on (overrides config)",
    )
    serve_parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        type=str.upper,
        help="Log level (overrides config)",
    )

    # Metrics command
    metrics_parser = subparsers.add_parser("metrics", help="List configured metrics")
    metrics_parser.add_argument(
        "-c", "--config",
        help="Path to configuration file",
    )

    # Init-config command
    init_parser = subparsers.add_parser("init-config", help="Write the default configuration file")
    init_parser.add_argument(
        "path",
        nargs="?",
        default="config.yaml",
        help="Output path (default: config.yaml)",
    )

    args = parser.parse_args()

    if args.command == "serve":
        run_serve(args)
    elif args.command == "metrics":
        run_metrics(args)
    elif args.command == "init-config":
        run_init_config(args)
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
