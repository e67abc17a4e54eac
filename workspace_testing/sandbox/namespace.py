"""Isolated globals for evaluating a test file."""

import asyncio
import builtins
import functools
import sys
from collections.abc import Callable
from pathlib import Path
from types import SimpleNamespace
from typing import Any

from workspace_testing.assertions import AssertionFailure, expect
from workspace_testing.sandbox.registry import TestRegistry

TESTING_PACKAGE = "workspace_testing"


def set_timeout(
    callback: Callable[..., Any], delay_ms: float = 0, *args: Any
) -> asyncio.TimerHandle:
    """Schedule ``callback`` on the running loop after ``delay_ms``."""
    return asyncio.get_running_loop().call_later(delay_ms / 1000, callback, *args)


def clear_timeout(handle: asyncio.TimerHandle | None) -> None:
    """Cancel a handle returned by :func:`set_timeout`."""
    if handle is not None:
        handle.cancel()


def create_bindings(registry: TestRegistry) -> SimpleNamespace:
    """Objects a test file receives when it imports the testing package."""
    return SimpleNamespace(
        test=registry.register,
        expect=expect,
        AssertionFailure=AssertionFailure,
    )


def scoped_import(bindings: SimpleNamespace) -> Callable[..., Any]:
    """Build an ``__import__`` that resolves the testing package in-process."""

    def _import(
        name: str,
        globals: dict[str, Any] | None = None,
        locals: dict[str, Any] | None = None,
        fromlist: tuple[str, ...] = (),
        level: int = 0,
    ) -> Any:
        if level == 0 and name == TESTING_PACKAGE:
            return bindings
        return builtins.__import__(name, globals, locals, fromlist, level)

    return _import


def create_namespace(
    file: Path, registry: TestRegistry, module_name: str
) -> dict[str, Any]:
    """Globals for one evaluation: registration, assertions and host primitives."""
    bindings = create_bindings(registry)

    sandbox_builtins = dict(vars(builtins))
    sandbox_builtins["__import__"] = scoped_import(bindings)
    # stdout carries the event stream
    sandbox_builtins["print"] = functools.partial(builtins.print, file=sys.stderr)

    return {
        "__name__": module_name,
        "__file__": str(file),
        "__builtins__": sandbox_builtins,
        "test": bindings.test,
        "expect": bindings.expect,
        "sleep": asyncio.sleep,
        "set_timeout": set_timeout,
        "clear_timeout": clear_timeout,
    }
