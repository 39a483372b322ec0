"""Execution module for dispatching detected cycles."""

from dexarb.execution.dispatcher import DispatcherConfig, ExecutionDispatcher


__all__ = [
    "DispatcherConfig",
    "ExecutionDispatcher",
]
