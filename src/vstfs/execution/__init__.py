"""Execution engine package."""

from vstfs.execution.base import CommandExecutor, ExecutionResult, OutputLimitExceeded
from vstfs.execution.local_exec import LocalExecutor

__all__ = ["CommandExecutor", "ExecutionResult", "LocalExecutor", "OutputLimitExceeded"]
