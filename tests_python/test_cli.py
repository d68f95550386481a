"""Behavioural tests for the ``cargo pod`` command-line interface."""

from __future__ import annotations

import logging
import sys
import tarfile
from pathlib import Path

import pytest
from pod_test_helpers import FakeToolchain, cargo_metadata_json, write_package

from cargo_pod import cli


@pytest.fixture
def fake_toolchain(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> FakeToolchain:
    """Install a fake toolchain for a pod repository with a ``crate/`` subtree."""

    package_dir = write_package(tmp_path)
    target_dir = tmp_path / "crate" / "target"
    fake = FakeToolchain(
        target_dir,
        metadata=cargo_metadata_json(
            package_dir, target_dir, pod={"macos-deployment-target": "10.15"}
        ),
    )
    monkeypatch.setattr(cli, "Toolchain", lambda: fake)
    monkeypatch.chdir(tmp_path)
    return fake


def test_build_macos_writes_into_subtree_dist(
    fake_toolchain: FakeToolchain,
    tmp_path: Path,
    capsys: pytest.CaptureFixture[str],
) -> None:
    """A ``crate/`` subtree builds into the repository's ``dist``."""

    cli.app(["build", "--macos", "--jobs", "2", "--", "--locked"])

    assert (tmp_path / "dist" / "FooBar.xcframework").is_dir()
    assert (tmp_path / "dist" / "FooBarFfi.xcframework").is_dir()
    assert fake_toolchain.called("cargo_metadata") == [
        ("cargo_metadata", tmp_path / "crate" / "Cargo.toml")
    ]
    for call in fake_toolchain.called("cargo_build"):
        assert call[2][0] == "--locked"
    assert "Built 2 XCFramework(s) for pod 'FooBar'" in capsys.readouterr().err


def test_build_applies_version_overrides(fake_toolchain: FakeToolchain) -> None:
    """Command-line versions override the manifest configuration."""

    cli.app(["build", "--ios", "--min-ios", "14.0"])

    deployments = {call[2] for call in fake_toolchain.called("swiftc")}
    assert deployments == {
        "arm64-apple-ios14.0",
        "arm64-apple-ios14.0-simulator",
        "x86_64-apple-ios14.0-simulator",
    }


def test_build_uses_manifest_configuration(fake_toolchain: FakeToolchain) -> None:
    """Manifest deployment targets apply when no override is given."""

    cli.app(["build", "--macos"])

    deployments = {call[2] for call in fake_toolchain.called("swiftc")}
    assert deployments == {"arm64-apple-macosx10.15", "x86_64-apple-macosx10.15"}


def test_build_reports_failures(
    fake_toolchain: FakeToolchain, capsys: pytest.CaptureFixture[str]
) -> None:
    """Pipeline errors print a single diagnostic and exit with status 1."""

    fake_toolchain.fail_triple = "x86_64-apple-darwin"

    with pytest.raises(SystemExit) as excinfo:
        cli.app(["build", "--macos"])

    assert excinfo.value.code == 1
    assert "cargo-pod: [compile] x86_64-apple-darwin: " in capsys.readouterr().err


def test_build_rejects_target_argument(
    fake_toolchain: FakeToolchain, capsys: pytest.CaptureFixture[str]
) -> None:
    """``--target`` in the forwarded cargo arguments is refused."""

    with pytest.raises(SystemExit):
        cli.app(["build", "--", "--target", "x86_64-apple-darwin"])

    assert "Do not pass --target" in capsys.readouterr().err
    assert fake_toolchain.called("cargo_build") == []


def test_bundle_archives_pod(
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
) -> None:
    """``bundle`` writes ``cargo-pod.tgz`` in the working directory."""

    (tmp_path / "FooBar.podspec").write_text("Pod::Spec.new", encoding="utf-8")
    (tmp_path / "dist").mkdir()
    (tmp_path / "dist" / "marker").write_text("x", encoding="utf-8")
    monkeypatch.chdir(tmp_path)

    cli.app(["bundle"])

    with tarfile.open(tmp_path / "cargo-pod.tgz") as archive:
        names = archive.getnames()
    assert "FooBar.podspec" in names
    assert "dist/marker" in names
    assert "Wrote 'cargo-pod.tgz'." in capsys.readouterr().err


def test_bundle_without_inputs_fails(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    """An empty directory has nothing to archive."""

    monkeypatch.chdir(tmp_path)

    with pytest.raises(SystemExit) as excinfo:
        cli.app(["bundle"])

    assert excinfo.value.code == 1


def test_run_requires_cargo(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    """The binary refuses to run outside of Cargo."""

    monkeypatch.delenv("CARGO", raising=False)

    with pytest.raises(SystemExit) as excinfo:
        cli.run()

    assert excinfo.value.code == 1
    assert "may only be called via `cargo pod`" in capsys.readouterr().err


def test_run_drops_subcommand_token(monkeypatch: pytest.MonkeyPatch) -> None:
    """Cargo's ``pod`` token is stripped before dispatch."""

    received: list[list[str]] = []
    monkeypatch.setenv("CARGO", "/usr/bin/cargo")
    monkeypatch.setattr(sys, "argv", ["cargo-pod", "pod", "build", "--macos"])
    monkeypatch.setattr(cli, "app", received.append)

    cli.run()

    assert received == [["build", "--macos"]]


@pytest.mark.parametrize(
    ("env", "verbose", "expected"),
    [
        (None, False, logging.INFO),
        ("debug", False, logging.DEBUG),
        ("warning", False, logging.WARNING),
        ("nonsense", False, logging.INFO),
        ("error", True, logging.DEBUG),
    ],
)
def test_log_level(
    monkeypatch: pytest.MonkeyPatch,
    env: str | None,
    verbose: bool,
    expected: int,
) -> None:
    """``--verbose`` wins over ``CARGO_POD_LOG``, which defaults to INFO."""

    if env is None:
        monkeypatch.delenv(cli.LOG_ENV_VAR, raising=False)
    else:
        monkeypatch.setenv(cli.LOG_ENV_VAR, env)

    assert cli.log_level(verbose) == expected
