"""Per-file registration of tests declared by a sandboxed module."""

import inspect
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Any, TypeAlias, overload

TestCallback: TypeAlias = Callable[..., Any]

_POSITIONAL_KINDS = frozenset(
    [
        inspect.Parameter.POSITIONAL_ONLY,
        inspect.Parameter.POSITIONAL_OR_KEYWORD,
        inspect.Parameter.VAR_POSITIONAL,
    ]
)


@dataclass(frozen=True, kw_only=True)
class RegisteredTest:
    """A test declared while its file was being evaluated."""

    __test__ = False

    name: str
    callback: TestCallback

    def invoke(self, context: Any = None) -> Any:
        """Call the test, passing ``context`` when it takes a positional argument."""
        if accepts_context(self.callback):
            return self.callback(context)
        return self.callback()


def accepts_context(callback: TestCallback) -> bool:
    """Check if a callback can receive the run context as first argument."""
    try:
        signature = inspect.signature(callback)
    except (TypeError, ValueError):
        return False
    return any(
        parameter.kind in _POSITIONAL_KINDS
        for parameter in signature.parameters.values()
    )


@dataclass(kw_only=True)
class TestRegistry:
    """Tests declared by one evaluation of one file, in declaration order.

    A registry is created right before a file is evaluated and handed to the
    execution step afterwards; it is never shared between files or runs.
    """

    __test__ = False

    _tests: list[RegisteredTest] = field(default_factory=list)

    @property
    def tests(self) -> Sequence[RegisteredTest]:
        return tuple(self._tests)

    @overload
    def register(self, name: TestCallback, callback: None = None) -> TestCallback: ...

    @overload
    def register(
        self, name: str, callback: None = None
    ) -> Callable[[TestCallback], TestCallback]: ...

    @overload
    def register(self, name: str, callback: TestCallback) -> TestCallback: ...

    def register(
        self, name: str | TestCallback, callback: TestCallback | None = None
    ) -> TestCallback | Callable[[TestCallback], TestCallback]:
        """Declare a test.

        Supports ``test("name", fn)``, ``@test("name")`` and bare ``@test``
        (the function name becomes the test name). ``test("name")`` alone
        declares a test that always passes until a function is attached.
        """
        if callable(name):
            self._add(name.__name__, name)
            return name

        if callback is not None:
            self._add(name, callback)
            return callback

        index = self._add(name, _no_op)

        def decorator(fn: TestCallback) -> TestCallback:
            self._tests[index] = RegisteredTest(name=str(name), callback=fn)
            return fn

        return decorator

    def _add(self, name: str, callback: TestCallback) -> int:
        self._tests.append(RegisteredTest(name=str(name), callback=callback))
        return len(self._tests) - 1


def _no_op() -> None:
    return None
