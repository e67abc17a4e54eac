"""Lookup of the provider responsible for each runtime kind."""

import logging
import os
from collections.abc import Mapping
from pathlib import Path

from workspace_testing.models.manifest import RUNTIMES, TestRuntime
from workspace_testing.providers.base import TestProvider
from workspace_testing.providers.loading import load_provider_manifest

log = logging.getLogger(__name__)


class ProviderRegistry:
    """Maps runtime kinds to providers."""

    def __init__(self, providers: Mapping[TestRuntime, TestProvider]) -> None:
        self._providers = dict(providers)

    def get(self, runtime: TestRuntime) -> TestProvider | None:
        """Return the provider for ``runtime``, if one is registered."""
        return self._providers.get(runtime)

    @classmethod
    def from_entry_points(
        cls,
        workspace_root: Path,
        environ: Mapping[str, str] | None = None,
    ) -> "ProviderRegistry":
        """Build the default registry from the installed provider plugins."""
        env = os.environ if environ is None else environ
        providers: dict[TestRuntime, TestProvider] = {}
        for runtime in RUNTIMES:
            manifest = load_provider_manifest(runtime)
            providers[runtime] = manifest.provider_factory(workspace_root, env)
            log.debug("Loaded provider %s for %s", providers[runtime].id, runtime)
        return cls(providers)
