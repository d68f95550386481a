"""Build each target with Cargo and collect its static libraries."""

from __future__ import annotations

import logging
import shutil
import typing as typ
from pathlib import Path

from .errors import BundleError, ConfigurationError, filesystem_step

if typ.TYPE_CHECKING:
    from .toolchain import Toolchain
    from .workspace import Workspace

__all__ = ["collect_target", "prepare_cargo_args", "profile_dir"]

logger = logging.getLogger(__name__)


def _has_flag(args: typ.Sequence[str], flag: str) -> bool:
    return any(arg == flag or arg.startswith(f"{flag}=") for arg in args)


def _is_release(args: typ.Sequence[str]) -> bool:
    return "-r" in args or _has_flag(args, "--release")


def prepare_cargo_args(
    cargo_args: typ.Sequence[str], features: typ.Sequence[str] = ()
) -> list[str]:
    """Return ``cargo build`` arguments with the pipeline defaults applied.

    Parameters
    ----------
    cargo_args : Sequence[str]
        Arguments supplied by the caller.
    features : Sequence[str], optional
        Features from ``[package.metadata.pod]``, used unless the caller
        passes ``--features`` explicitly.

    Returns
    -------
    list[str]
        Arguments including ``--release`` and ``--lib`` unless the caller
        already chose a profile or target kind.

    Raises
    ------
    ConfigurationError
        Raised when the caller passes ``--target``; targets come from the
        build matrix.

    Examples
    --------
    >>> prepare_cargo_args(["--locked"])
    ['--locked', '--release', '--lib']
    """

    if _has_flag(cargo_args, "--target"):
        message = "Do not pass --target to the cargo args, we handle that!"
        raise ConfigurationError(message)

    args = list(cargo_args)
    if not (_is_release(args) or _has_flag(args, "--profile")):
        args.append("--release")
    if "--lib" not in args:
        args.append("--lib")
    if features and not (
        _has_flag(args, "--features") or any(arg.startswith("-F") for arg in args)
    ):
        args.extend(["--features", ",".join(features)])
    return args


def profile_dir(cargo_args: typ.Sequence[str]) -> str:
    """Return the ``target/<triple>/<dir>`` component for ``cargo_args``.

    Examples
    --------
    >>> profile_dir(["--release", "--lib"])
    'release'
    >>> profile_dir(["--profile", "dev"])
    'debug'
    """

    profile: str | None = None
    for index, arg in enumerate(cargo_args):
        if arg == "--profile" and index + 1 < len(cargo_args):
            profile = cargo_args[index + 1]
        elif arg.startswith("--profile="):
            profile = arg.split("=", 1)[1]
    if profile is None:
        return "release" if _is_release(cargo_args) else "debug"
    if profile in {"dev", "test"}:
        return "debug"
    if profile == "bench":
        return "release"
    return profile


def collect_target(
    workspace: Workspace,
    triple: str,
    cargo_args: typ.Sequence[str],
    dist_dir: Path,
    toolchain: Toolchain,
) -> dict[str, Path]:
    """Build ``triple`` and copy each library into ``<dist>/<triple>/``.

    Parameters
    ----------
    workspace : Workspace
        Workspace whose libraries are built.
    triple : str
        Target triple to build.
    cargo_args : Sequence[str]
        Fully prepared ``cargo build`` arguments.
    dist_dir : Path
        Root of the output tree.
    toolchain : Toolchain
        Adapter used to run ``cargo build``.

    Returns
    -------
    dict[str, Path]
        Mapping of library name to the collected static library.

    Raises
    ------
    ToolError
        Raised when ``cargo build`` fails.
    BundleError
        Raised when a static library cannot be copied.
    """

    logger.info("Building for target '%s'...", triple)
    slot = dist_dir / triple
    with filesystem_step("collect", triple):
        slot.mkdir(parents=True, exist_ok=True)

    toolchain.cargo_build(
        workspace.package_dir,
        triple,
        cargo_args,
        nightly=workspace.config.nightly,
    )

    build_dir = workspace.target_directory / triple / profile_dir(cargo_args)
    collected: dict[str, Path] = {}
    for library in workspace.libraries:
        source = build_dir / library.static_lib_name
        destination = slot / library.static_lib_name
        try:
            shutil.copy2(source, destination)
        except OSError as exc:
            detail = f"Error copying {source} -> {destination}: {exc}"
            raise BundleError("collect", triple, detail) from exc
        collected[library.name] = destination
    return collected
