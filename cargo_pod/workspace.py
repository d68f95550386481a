"""Discover the libraries to package from ``cargo metadata``."""

from __future__ import annotations

import dataclasses
import json
import logging
import re
import typing as typ
from pathlib import Path

from .config import PodConfig, load_pod_config
from .errors import ConfigurationError

if typ.TYPE_CHECKING:
    from .toolchain import Toolchain

__all__ = [
    "Library",
    "Workspace",
    "camel_case",
    "load_workspace",
    "locate_manifest",
]

logger = logging.getLogger(__name__)

_WORD_RE = re.compile(r"[A-Z]+(?![a-z])|[A-Z]?[a-z0-9]+")


def camel_case(value: str) -> str:
    """Return ``value`` in UpperCamelCase.

    Words are split on ``_``, ``-``, whitespace and lower-to-upper case
    boundaries; each word keeps its first character upper-cased and the
    remainder lower-cased.

    Examples
    --------
    >>> camel_case("divvunspell_ffi")
    'DivvunspellFfi'
    >>> camel_case("box-drawing")
    'BoxDrawing'
    >>> camel_case("HTTPServer")
    'HttpServer'
    """

    words = [
        match.group(0)
        for part in re.split(r"[-_\s]+", value)
        for match in _WORD_RE.finditer(part)
    ]
    return "".join(word[:1].upper() + word[1:].lower() for word in words)


@dataclasses.dataclass(slots=True, frozen=True)
class Library:
    """A ``staticlib`` Cargo target packaged into frameworks.

    Attributes
    ----------
    name : str
        Cargo target name (may contain dashes).
    package_dir : Path
        Directory holding the package's ``Cargo.toml``.
    """

    name: str
    package_dir: Path

    @property
    def sys_name(self) -> str:
        """Target name with dashes replaced, as used in ``lib<name>.a``."""
        return self.name.replace("-", "_")

    @property
    def static_lib_name(self) -> str:
        """File name of the static library Cargo produces."""
        return f"lib{self.sys_name}.a"

    @property
    def ffi_module(self) -> str:
        """Module name of the low-level interface framework."""
        return camel_case(f"{self.sys_name}_ffi")

    @property
    def module(self) -> str:
        """Module name of the Swift wrapper framework."""
        return camel_case(self.sys_name)

    @property
    def header_name(self) -> str:
        """Umbrella C header referenced from the module maps."""
        return f"{self.sys_name}.h"

    @property
    def headers_dir(self) -> Path:
        """Directory of public C headers copied into the FFI framework."""
        return self.package_dir / "headers"

    @property
    def bindings_dir(self) -> Path:
        """Directory of Swift sources compiled into the wrapper framework."""
        return self.package_dir / "bindings"


@dataclasses.dataclass(slots=True, frozen=True)
class Workspace:
    """Packaging view of a Cargo workspace.

    Attributes
    ----------
    package_name : str
        Name of the package providing the libraries.
    package_dir : Path
        Directory of that package's manifest.
    target_directory : Path
        Cargo's build output root (``target/``).
    libraries : tuple[Library, ...]
        ``staticlib`` targets declared by the package.
    config : PodConfig
        Settings from ``[package.metadata.pod]``.
    """

    package_name: str
    package_dir: Path
    target_directory: Path
    libraries: tuple[Library, ...]
    config: PodConfig = dataclasses.field(default_factory=PodConfig)

    @property
    def pod_name(self) -> str:
        """Configured pod name or the CamelCase package name."""
        return self.config.name or camel_case(self.package_name)


def locate_manifest(
    cwd: Path, manifest_path: Path | None
) -> tuple[Path | None, Path | None]:
    """Return the manifest to inspect and a forced output directory.

    A ``crate/`` subtree inside ``cwd`` takes precedence over
    ``manifest_path``; its frameworks are written to ``cwd/dist``.

    Examples
    --------
    >>> locate_manifest(Path("/tmp/no-subtree"), None)
    (None, None)
    """

    subtree = cwd / "crate"
    if subtree.is_dir():
        return subtree / "Cargo.toml", cwd / "dist"
    return manifest_path, None


def load_workspace(
    toolchain: Toolchain, manifest_path: Path | None = None
) -> Workspace:
    """Query ``cargo metadata`` and select the package to package.

    The first workspace member declaring ``staticlib`` targets is used.

    Raises
    ------
    ConfigurationError
        Raised when the metadata is unreadable or no ``staticlib`` target is
        declared by any workspace member.
    """

    raw = toolchain.cargo_metadata(manifest_path)
    source = str(manifest_path or "Cargo.toml")
    try:
        metadata = json.loads(raw)
    except json.JSONDecodeError as exc:
        message = f"Failed to parse cargo metadata for {source}: {exc}"
        raise ConfigurationError(message) from exc

    members = set(metadata.get("workspace_members", []))
    packages = [
        package
        for package in metadata.get("packages", [])
        if package.get("id") in members
    ]
    logger.debug("Workspace members: %s", [pkg.get("name") for pkg in packages])

    for package in packages:
        lib_targets = [
            target
            for target in package.get("targets", [])
            if "staticlib" in target.get("kind", [])
        ]
        if not lib_targets:
            continue
        package_dir = Path(package["manifest_path"]).parent
        return Workspace(
            package_name=package["name"],
            package_dir=package_dir,
            target_directory=Path(metadata["target_directory"]),
            libraries=tuple(
                Library(target["name"], package_dir) for target in lib_targets
            ),
            config=load_pod_config(package.get("metadata"), package["manifest_path"]),
        )

    message = "No lib crates found!"
    raise ConfigurationError(message)
