"""Tests for backend harness configuration."""

from pathlib import Path

import pytest

from workspace_testing.providers.backend.config import (
    DEFAULT_PORT,
    DEFAULT_READY_TEXT,
    BackendHarnessConfig,
    read_int,
)


@pytest.mark.parametrize(
    ("value", "expected"),
    [(None, 7), ("", 7), ("42", 42), (" 42 ", 42), ("0", 7), ("-3", 7), ("abc", 7)],
)
def test_read_int(value: str | None, expected: int) -> None:
    """Only positive integers are accepted."""
    assert read_int(value, 7) == expected


def test_defaults(tmp_path: Path) -> None:
    """Without variables, paths derive from the workspace root."""
    config = BackendHarnessConfig.from_env(tmp_path, {})

    assert config.build_root == tmp_path / "build" / "backend"
    assert config.entry == tmp_path / "build" / "backend" / "main.py"
    assert config.manifest_path == tmp_path / ".workspace" / "backend-manifest.json"
    assert config.ready_text == DEFAULT_READY_TEXT
    assert config.ready_timeout == 15.0
    assert config.port == DEFAULT_PORT
    assert config.enabled is True


def test_overrides(tmp_path: Path) -> None:
    """Every variable overrides its default."""
    config = BackendHarnessConfig.from_env(
        tmp_path,
        {
            "WORKSPACE_TEST_BACKEND_BUILD_ROOT": str(tmp_path / "out"),
            "WORKSPACE_TEST_BACKEND_MANIFEST": str(tmp_path / "manifest.json"),
            "WORKSPACE_TEST_BACKEND_READY": "listening | started",
            "WORKSPACE_TEST_BACKEND_READY_TIMEOUT": "2500",
            "WORKSPACE_TEST_BACKEND_PORT": "5000",
        },
    )

    assert config.entry == tmp_path / "out" / "main.py"
    assert config.manifest_path == tmp_path / "manifest.json"
    assert config.ready_markers == ("listening", "started")
    assert config.ready_timeout == 2.5
    assert config.port == 5000


def test_explicit_entry_wins(tmp_path: Path) -> None:
    """An explicit entry is used instead of the build root default."""
    config = BackendHarnessConfig.from_env(
        tmp_path, {"WORKSPACE_TEST_BACKEND_ENTRY": str(tmp_path / "server.py")}
    )

    assert config.entry == tmp_path / "server.py"


@pytest.mark.parametrize("value", ["off", "OFF", "skip", " false "])
def test_disabled_values(tmp_path: Path, value: str) -> None:
    """Bypass values disable the harness regardless of case and spacing."""
    config = BackendHarnessConfig.from_env(tmp_path, {"WORKSPACE_TEST_BACKEND": value})

    assert config.enabled is False


@pytest.mark.parametrize("value", ["on", "1", "yes"])
def test_other_values_keep_harness_enabled(tmp_path: Path, value: str) -> None:
    """Any other toggle value keeps the harness on."""
    config = BackendHarnessConfig.from_env(tmp_path, {"WORKSPACE_TEST_BACKEND": value})

    assert config.enabled is True


def test_invalid_numbers_fall_back(tmp_path: Path) -> None:
    """Invalid numbers fall back to the defaults."""
    config = BackendHarnessConfig.from_env(
        tmp_path,
        {
            "WORKSPACE_TEST_BACKEND_READY_TIMEOUT": "soon",
            "WORKSPACE_TEST_BACKEND_PORT": "-1",
        },
    )

    assert config.ready_timeout == 15.0
    assert config.port == DEFAULT_PORT
