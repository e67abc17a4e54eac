"""In-process sandbox that evaluates and runs test files."""

from workspace_testing.sandbox.engine import ExecutionEngine, ResultCallback
from workspace_testing.sandbox.loader import AlternateModuleStyleError, ModuleStyle
from workspace_testing.sandbox.registry import RegisteredTest, TestRegistry

__all__ = [
    "AlternateModuleStyleError",
    "ExecutionEngine",
    "ModuleStyle",
    "RegisteredTest",
    "ResultCallback",
    "TestRegistry",
]
