"""Shared fixtures for the cargo-pod test suite."""

from __future__ import annotations

from pathlib import Path

import pytest
from pod_test_helpers import FakeToolchain, write_package

from cargo_pod.config import PodConfig
from cargo_pod.workspace import Library, Workspace


@pytest.fixture
def package_dir(tmp_path: Path) -> Path:
    """Create a package with one header and one Swift binding source."""
    return write_package(tmp_path)


@pytest.fixture
def workspace(tmp_path: Path, package_dir: Path) -> Workspace:
    """Describe a workspace exposing the ``foo-bar`` staticlib."""

    return Workspace(
        package_name="foo-bar",
        package_dir=package_dir,
        target_directory=tmp_path / "target",
        libraries=(Library("foo-bar", package_dir),),
        config=PodConfig(),
    )


@pytest.fixture
def library(workspace: Workspace) -> Library:
    """Return the single library of the ``workspace`` fixture."""
    return workspace.libraries[0]


@pytest.fixture
def toolchain(workspace: Workspace) -> FakeToolchain:
    """Provide a recording toolchain writing into the workspace target dir."""
    return FakeToolchain(workspace.target_directory)


@pytest.fixture
def dist_dir(tmp_path: Path) -> Path:
    """Return the output root used by pipeline tests."""
    return tmp_path / "dist"
