"""Telemetry module for logging, metrics, and reporting."""

from dexarb.telemetry.logger import AsyncLogger, setup_logging
from dexarb.telemetry.metrics import LatencyStats, MetricsCollector
from dexarb.telemetry.reporter import CLIReporter


__all__ = [
    "AsyncLogger",
    "CLIReporter",
    "LatencyStats",
    "MetricsCollector",
    "setup_logging",
]
