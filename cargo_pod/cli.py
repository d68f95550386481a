"""Command-line entry point for ``cargo pod``.

Examples
--------
Build iOS and macOS XCFrameworks for the crate in the current directory,
forwarding extra arguments to ``cargo build``::

    cargo pod build -- --locked

Build the macOS frameworks only and package the pod for release::

    cargo pod build --macos
    cargo pod bundle
"""

from __future__ import annotations

import logging
import os
import sys
import typing as typ
from pathlib import Path

import cyclopts
from cyclopts import Parameter

from .archive import bundle_archive
from .errors import PodError
from .matrix import select
from .pipeline import BuildRequest, build_frameworks
from .toolchain import Toolchain
from .workspace import load_workspace, locate_manifest

__all__ = ["app", "build", "bundle", "configure_logging", "log_level", "run"]

LOG_ENV_VAR = "CARGO_POD_LOG"

app = cyclopts.App(
    name="cargo-pod",
    help="Build XCFrameworks for the staticlib targets of a Rust crate.",
)


def log_level(verbose: bool = False) -> int:
    """Return the level selected by ``--verbose`` or ``CARGO_POD_LOG``.

    Unknown level names fall back to ``INFO``.
    """
    if verbose:
        return logging.DEBUG
    level = logging.getLevelName(os.environ.get(LOG_ENV_VAR, "INFO").upper())
    return level if isinstance(level, int) else logging.INFO


def configure_logging(verbose: bool = False) -> None:
    """Send log records to stderr at the level from :func:`log_level`."""
    logging.basicConfig(
        level=log_level(verbose),
        format="%(levelname)s %(name)s: %(message)s",
    )


def _fail(exc: PodError) -> typ.NoReturn:
    print(f"cargo-pod: {exc}", file=sys.stderr)
    raise SystemExit(1) from exc


@app.command
def build(
    *cargo_args: str,
    ios: bool = False,
    macos: bool = False,
    manifest_path: Path | None = None,
    jobs: typ.Annotated[int | None, Parameter(name=["--jobs", "-j"])] = None,
    min_ios: str | None = None,
    min_macos: str | None = None,
    verbose: bool = False,
) -> None:
    """Build per-target, merged and XCFramework bundles.

    Parameters
    ----------
    cargo_args:
        Arguments forwarded to ``cargo build`` (pass them after ``--``).
    ios:
        Build iOS frameworks only.
    macos:
        Build macOS frameworks only.
    manifest_path:
        Path to ``Cargo.toml``; ignored when a ``crate/`` subtree exists.
    jobs:
        Maximum number of concurrent target builds.
    min_ios:
        Override the iOS deployment target.
    min_macos:
        Override the macOS deployment target.
    verbose:
        Log external commands and their output.
    """
    configure_logging(verbose)
    toolchain = Toolchain()
    try:
        manifest, forced_dist = locate_manifest(Path.cwd(), manifest_path)
        workspace = load_workspace(toolchain, manifest)
        dist_dir = forced_dist or workspace.target_directory.parent / "dist"
        config = workspace.config.with_min_versions(ios=min_ios, macos=min_macos)
        request = BuildRequest(
            dist_dir=dist_dir,
            selection=select(ios, macos),
            cargo_args=list(cargo_args),
            min_versions=config.min_versions,
            jobs=jobs,
        )
        result = build_frameworks(workspace, request, toolchain)
    except PodError as exc:
        _fail(exc)

    print(
        f"Built {len(result.xcframeworks)} XCFramework(s) for pod "
        f"'{workspace.pod_name}' into '{dist_dir}'.",
        file=sys.stderr,
    )


@app.command
def bundle(*, verbose: bool = False) -> None:
    """Archive the podspec, licence, README, ``src`` and ``dist`` for release.

    Parameters
    ----------
    verbose:
        Enable debug logging.
    """
    configure_logging(verbose)
    try:
        archive = bundle_archive(Path.cwd())
    except PodError as exc:
        _fail(exc)
    print(f"Wrote '{archive.name}'.", file=sys.stderr)


def run() -> None:
    """Console entry point used by Cargo as ``cargo-pod pod <command>``."""
    if not os.environ.get("CARGO"):
        print("This binary may only be called via `cargo pod`.", file=sys.stderr)
        raise SystemExit(1)
    tokens = sys.argv[1:]
    if tokens[:1] == ["pod"]:
        tokens = tokens[1:]
    app(tokens)


if __name__ == "__main__":
    app()
