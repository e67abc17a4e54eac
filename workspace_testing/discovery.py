"""Discover test modules in a workspace source tree."""

import asyncio
import logging
import os
from collections.abc import Sequence
from datetime import datetime, timezone
from pathlib import Path, PurePath

from workspace_testing.models.manifest import TestManifest, TestModule, TestRuntime

log = logging.getLogger(__name__)

SRC_FOLDER = "src"
TEST_FOLDER = "tests"
BUILD_FOLDER = "build"
BACKEND_FOLDER = "backend"
BUILD_EXTENSION = ".py"
EXCLUDED_DIRECTORIES = frozenset(
    ["node_modules", "build", "dist", ".git", "__pycache__", ".venv", "venv"]
)
TEST_FILE_SUFFIXES = (".test.py", "_test.py")


async def discover_test_manifest(workspace_root: Path) -> TestManifest:
    """Walk ``<workspace>/src`` and collect test modules sorted by id.

    A missing source directory is not an error: the manifest is simply empty.
    """
    absolute_root = workspace_root.resolve()
    src_root = absolute_root / SRC_FOLDER

    if not src_root.is_dir():
        log.info("Source directory %s does not exist", src_root)
        return TestManifest(
            workspace_root=absolute_root,
            generated_at=datetime.now(timezone.utc),
        )

    build_root = absolute_root / BUILD_FOLDER
    has_build = build_root.is_dir()

    modules: list[TestModule] = []
    for file_path in await walk_directory(src_root):
        relative = file_path.relative_to(src_root)
        if not is_under_tests_folder(relative) or not is_test_file(relative):
            continue

        modules.append(
            TestModule(
                id=normalize_module_id(relative),
                runtime=infer_runtime(relative),
                source_path=file_path,
                compiled_path=(
                    compute_compiled_path(build_root, relative) if has_build else None
                ),
            )
        )

    modules.sort(key=lambda module: module.id)
    log.info("Discovered %d test module(s) under %s", len(modules), src_root)

    return TestManifest(
        workspace_root=absolute_root,
        generated_at=datetime.now(timezone.utc),
        modules=tuple(modules),
    )


async def walk_directory(root: Path) -> Sequence[Path]:
    """List files below ``root``, descending into sub-directories concurrently."""
    entries = await asyncio.to_thread(_scan, root)

    files: list[Path] = []
    sub_walks = []
    for entry in entries:
        if entry.is_dir(follow_symlinks=False):
            if not is_excluded_directory(entry.name):
                sub_walks.append(walk_directory(Path(entry.path)))
        elif entry.is_file():
            files.append(Path(entry.path))

    for nested in await asyncio.gather(*sub_walks):
        files.extend(nested)
    return files


def _scan(root: Path) -> list[os.DirEntry[str]]:
    with os.scandir(root) as iterator:
        return list(iterator)


def is_excluded_directory(name: str) -> bool:
    """Check if a directory is hidden or holds build or dependency output."""
    return name.startswith(".") or name in EXCLUDED_DIRECTORIES


def is_test_file(relative: PurePath) -> bool:
    """Check if a file name carries a recognised test suffix."""
    return relative.name.endswith(TEST_FILE_SUFFIXES)


def is_under_tests_folder(relative: PurePath) -> bool:
    """Check if any parent directory of the file is named ``tests``."""
    return TEST_FOLDER in relative.parts[:-1]


def infer_runtime(relative: PurePath) -> TestRuntime:
    """Backend tests live under ``src/backend``, everything else is frontend."""
    parts = relative.parts
    if parts and parts[0] == BACKEND_FOLDER:
        return "backend"
    return "frontend"


def compute_compiled_path(build_root: Path, relative: PurePath) -> Path:
    """Re-root a source-relative path under the build directory."""
    return build_root / replace_extension(relative, BUILD_EXTENSION)


def replace_extension(relative: PurePath, extension: str) -> PurePath:
    """Swap the last suffix of a path, appending one when there is none."""
    if not relative.suffix:
        return relative.with_name(relative.name + extension)
    return relative.with_suffix(extension)


def normalize_module_id(relative: PurePath) -> str:
    """Module ids use forward slashes whatever the host platform."""
    return "/".join(relative.parts)
