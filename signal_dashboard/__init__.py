"""
Signal Dashboard - in-process metrics tap for Grafana

Collects timestamped numeric samples from inside a running Python process
into bounded ring buffers and serves them to Grafana through the
SimpleJson datasource protocol.
"""

__version__ = "1.0.0"
__author__ = "Observability Team"
