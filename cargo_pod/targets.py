"""Apple target triples and their SDK/deployment-triple resolution.

Every Rust target triple the pipeline builds maps to exactly one Xcode SDK
name and one ``swiftc`` deployment triple. The deployment triple embeds the
minimum OS version for its platform family.

Usage
-----
Resolve the simulator slice for arm64 hosts::

    from cargo_pod.targets import MinVersions, resolve

    resolved = resolve("aarch64-apple-ios-sim", MinVersions(ios="13.0"))
    print(resolved.deployment_triple)  # arm64-apple-ios13.0-simulator
"""

from __future__ import annotations

import dataclasses
import enum

from .errors import ConfigurationError

__all__ = [
    "SUPPORTED_TARGETS",
    "MinVersions",
    "Platform",
    "ResolvedTarget",
    "Target",
    "get_target",
    "resolve",
]


class Platform(enum.Enum):
    """Platform family a target belongs to."""

    IOS = "ios"
    MACOS = "macos"


@dataclasses.dataclass(slots=True, frozen=True)
class MinVersions:
    """Minimum OS versions embedded into deployment triples."""

    ios: str = "10.0"
    macos: str = "10.10"


@dataclasses.dataclass(slots=True, frozen=True)
class Target:
    """Describe a Rust target triple the pipeline can build.

    Attributes
    ----------
    triple : str
        Rust target triple passed to ``cargo build --target``.
    family : Platform
        Platform family used by the build matrix.
    sdk : str
        Xcode SDK name understood by ``xcrun --sdk``.
    arch : str
        Apple architecture name used for ``.swiftmodule`` sidecar files.
    simulator : bool
        Whether the slice runs in the iOS simulator.
    """

    triple: str
    family: Platform
    sdk: str
    arch: str
    simulator: bool = False

    def deployment_triple(self, min_versions: MinVersions) -> str:
        """Return the ``swiftc -target`` value for this target."""
        if self.family is Platform.MACOS:
            return f"{self.arch}-apple-macosx{min_versions.macos}"
        suffix = "-simulator" if self.simulator else ""
        return f"{self.arch}-apple-ios{min_versions.ios}{suffix}"


@dataclasses.dataclass(slots=True, frozen=True)
class ResolvedTarget:
    """SDK name and deployment triple resolved for a target."""

    sdk: str
    deployment_triple: str


SUPPORTED_TARGETS: dict[str, Target] = {
    target.triple: target
    for target in (
        Target("aarch64-apple-ios", Platform.IOS, "iphoneos", "arm64"),
        Target(
            "aarch64-apple-ios-sim",
            Platform.IOS,
            "iphonesimulator",
            "arm64",
            simulator=True,
        ),
        Target(
            "x86_64-apple-ios",
            Platform.IOS,
            "iphonesimulator",
            "x86_64",
            simulator=True,
        ),
        Target("aarch64-apple-darwin", Platform.MACOS, "macosx", "arm64"),
        Target("x86_64-apple-darwin", Platform.MACOS, "macosx", "x86_64"),
    )
}


def get_target(triple: str) -> Target:
    """Return the :class:`Target` record for ``triple``.

    Raises
    ------
    ConfigurationError
        Raised when ``triple`` is not one of :data:`SUPPORTED_TARGETS`.
    """
    try:
        return SUPPORTED_TARGETS[triple]
    except KeyError as exc:
        message = f"unsupported target: {triple}"
        raise ConfigurationError(message) from exc


def resolve(triple: str, min_versions: MinVersions | None = None) -> ResolvedTarget:
    """Resolve ``triple`` into its SDK name and deployment triple.

    Parameters
    ----------
    triple : str
        Rust target triple such as ``"x86_64-apple-darwin"``.
    min_versions : MinVersions, optional
        Minimum OS versions; defaults to :class:`MinVersions` defaults.

    Returns
    -------
    ResolvedTarget
        SDK name and deployment triple for ``triple``.

    Raises
    ------
    ConfigurationError
        Raised when ``triple`` is unsupported.

    Examples
    --------
    >>> resolve("aarch64-apple-darwin")
    ResolvedTarget(sdk='macosx', deployment_triple='arm64-apple-macosx10.10')
    """
    target = get_target(triple)
    versions = min_versions or MinVersions()
    return ResolvedTarget(target.sdk, target.deployment_triple(versions))
