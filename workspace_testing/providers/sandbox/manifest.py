"""Sandbox provider manifest."""

from workspace_testing.providers.manifest import ProviderManifest
from workspace_testing.providers.sandbox.provider import SandboxProvider

sandbox_manifest = ProviderManifest(
    runtime="frontend",
    provider_factory=SandboxProvider.from_env,
)
