"""Test factories for generating test data."""

from polyfactory.factories.pydantic_factory import ModelFactory

from workspace_testing.models.manifest import TestModule
from workspace_testing.models.result import TestRunResult


class TestRunResultFactory(ModelFactory[TestRunResult]):
    """Factory for TestRunResult."""

    __test__ = False

    message = None


class TestModuleFactory(ModelFactory[TestModule]):
    """Factory for TestModule."""

    __test__ = False

    runtime = "frontend"
