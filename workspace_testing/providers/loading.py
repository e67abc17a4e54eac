"""Resolve the provider plugin responsible for a runtime kind."""

import logging
from collections.abc import Sequence
from importlib.metadata import entry_points
from typing import Any

from workspace_testing.providers.manifest import ProviderManifest

log = logging.getLogger(__name__)

ENTRY_POINT_GROUP = "workspace_testing.providers"


class ProviderNotFoundError(Exception):
    """Raised when no plugin is registered for a runtime kind."""


class InvalidProviderError(Exception):
    """Raised when a plugin does not expose a manifest for its runtime kind."""


def available_providers() -> Sequence[str]:
    """Runtime kinds with a registered plugin, sorted."""
    return sorted({entry.name for entry in entry_points(group=ENTRY_POINT_GROUP)})


def load_provider_manifest(runtime: str) -> ProviderManifest[Any]:
    """Load the manifest registered under ``runtime``.

    Plugins register under the runtime kind they serve, e.g.::

        [project.entry-points."workspace_testing.providers"]
        backend = "my_package.provider:manifest"

    Raises:
        ProviderNotFoundError: If no plugin is registered under ``runtime``
        InvalidProviderError: If the entry point is not a manifest for ``runtime``

    """
    for entry in entry_points(group=ENTRY_POINT_GROUP).select(name=runtime):
        manifest = entry.load()
        if not isinstance(manifest, ProviderManifest):
            raise InvalidProviderError(
                f"Entry point '{entry.value}' is not a provider manifest"
            )
        if manifest.runtime != runtime:
            raise InvalidProviderError(
                f"Provider '{entry.value}' serves '{manifest.runtime}', "
                f"but is registered for '{runtime}'"
            )
        log.debug("Loaded provider manifest %s for %s", entry.value, runtime)
        return manifest

    raise ProviderNotFoundError(
        f"Provider '{runtime}' not found. Available providers: {available_providers()}"
    )
