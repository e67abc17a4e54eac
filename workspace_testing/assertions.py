"""Assertion helpers exposed to sandboxed test files as ``expect``."""

import json
from types import SimpleNamespace
from typing import Any, NoReturn


class AssertionFailure(AssertionError):
    """Raised by the ``expect`` helpers when a check does not hold."""


def fail(message: str) -> NoReturn:
    """Fail the current test unconditionally."""
    raise AssertionFailure(str(message))


def is_true(value: Any, message: str | None = None) -> None:
    """Fail unless ``value`` is truthy."""
    if value:
        return
    fail(message or f"Expected truthy value but received {value!r}")


def equal(expected: Any, actual: Any, message: str | None = None) -> None:
    """Fail unless ``expected == actual``."""
    if expected == actual:
        return
    fail(
        message
        or f"Expected {_stringify(expected)} but received {_stringify(actual)}"
    )


def _stringify(value: Any) -> str:
    try:
        return json.dumps(value)
    except (TypeError, ValueError):
        return repr(value)


expect = SimpleNamespace(fail=fail, is_true=is_true, equal=equal)
