"""Evaluation of test files as plain scripts or as async modules.

A file is first compiled as a plain module. When that fails only because the
file uses top-level ``await`` (it compiles into a coroutine code object once
top-level await is allowed), :class:`AlternateModuleStyleError` is raised and
the file is evaluated again with :class:`AsyncModuleStrategy`. Any other
error ends the evaluation.
"""

import ast
import inspect
import linecache
import logging
import time
from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path
from types import CodeType
from typing import Any, Protocol

from workspace_testing.sandbox.namespace import create_namespace
from workspace_testing.sandbox.registry import TestRegistry

log = logging.getLogger(__name__)


class ModuleStyle(StrEnum):
    """How a test file has to be evaluated."""

    SCRIPT = "script"
    ASYNC_MODULE = "async-module"


class AlternateModuleStyleError(SyntaxError):
    """Raised when a file only compiles as an async module."""


def compile_script(source: str, filename: str) -> CodeType:
    """Compile ``source`` as a plain module.

    Raises:
        AlternateModuleStyleError: If the source needs top-level await
        SyntaxError: For any other syntax problem

    """
    try:
        return compile(source, filename, "exec", dont_inherit=True)
    except SyntaxError as exc:
        if classify_source(source, filename) is ModuleStyle.ASYNC_MODULE:
            raise AlternateModuleStyleError(
                f"{filename} uses top-level await",
                (exc.filename, exc.lineno, exc.offset, exc.text),
            ) from exc
        raise


def compile_async_module(source: str, filename: str) -> CodeType:
    """Compile ``source`` with top-level await allowed."""
    return compile(
        source,
        filename,
        "exec",
        flags=ast.PyCF_ALLOW_TOP_LEVEL_AWAIT,
        dont_inherit=True,
    )


def classify_source(source: str, filename: str) -> ModuleStyle | None:
    """Return the style a source compiles under, or None if it never compiles."""
    try:
        compile(source, filename, "exec", dont_inherit=True)
    except SyntaxError:
        pass
    else:
        return ModuleStyle.SCRIPT

    try:
        code = compile_async_module(source, filename)
    except SyntaxError:
        return None
    if code.co_flags & inspect.CO_COROUTINE:
        return ModuleStyle.ASYNC_MODULE
    return None


def _module_name(path: Path) -> str:
    return path.name.removesuffix(".py").replace(".", "_")


class ModuleStrategy(Protocol):
    """One way of evaluating a test file into a namespace."""

    style: ModuleStyle

    def module_name(self, path: Path) -> str: ...

    async def evaluate(self, path: Path, namespace: dict[str, Any]) -> None: ...


@dataclass(frozen=True)
class ScriptStrategy:
    """Compile and ``exec`` the file synchronously."""

    style: ModuleStyle = ModuleStyle.SCRIPT

    def module_name(self, path: Path) -> str:
        return _module_name(path)

    async def evaluate(self, path: Path, namespace: dict[str, Any]) -> None:
        code = compile_script(path.read_text(encoding="utf-8"), str(path))
        exec(code, namespace)


@dataclass(frozen=True)
class AsyncModuleStrategy:
    """Re-read the file under a fresh module name and await its body."""

    style: ModuleStyle = ModuleStyle.ASYNC_MODULE

    def module_name(self, path: Path) -> str:
        return f"{_module_name(path)}_{time.time_ns()}"

    async def evaluate(self, path: Path, namespace: dict[str, Any]) -> None:
        linecache.checkcache(str(path))
        code = compile_async_module(path.read_text(encoding="utf-8"), str(path))
        outcome = eval(code, namespace)
        if inspect.iscoroutine(outcome):
            await outcome


SCRIPT_STRATEGY = ScriptStrategy()
ASYNC_MODULE_STRATEGY = AsyncModuleStrategy()


async def evaluate_with(strategy: ModuleStrategy, path: Path) -> TestRegistry:
    """Evaluate ``path`` into a fresh registry using one strategy."""
    registry = TestRegistry()
    namespace = create_namespace(path, registry, strategy.module_name(path))
    await strategy.evaluate(path, namespace)
    return registry


async def load_module(path: Path) -> TestRegistry:
    """Evaluate a test file and return the tests it declared."""
    try:
        return await evaluate_with(SCRIPT_STRATEGY, path)
    except AlternateModuleStyleError:
        log.debug("Evaluating %s as an async module", path)
        return await evaluate_with(ASYNC_MODULE_STRATEGY, path)
