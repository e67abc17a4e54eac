"""Backend provider manifest."""

from workspace_testing.providers.backend.provider import BackendProvider
from workspace_testing.providers.manifest import ProviderManifest

backend_manifest = ProviderManifest(
    runtime="backend",
    provider_factory=BackendProvider.from_env,
)
