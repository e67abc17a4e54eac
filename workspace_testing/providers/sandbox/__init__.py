"""Sandbox provider module."""

from workspace_testing.providers.sandbox.manifest import sandbox_manifest
from workspace_testing.providers.sandbox.provider import SandboxProvider

__all__ = ["SandboxProvider", "sandbox_manifest"]
