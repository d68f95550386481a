"""Package-level configuration read from ``[package.metadata.pod]``.

The table lives in the crate's ``Cargo.toml`` and reaches the pipeline through
the JSON emitted by ``cargo metadata``. All keys are optional.

Usage
-----
Configure deployment targets and extra features::

    [package.metadata.pod]
    name = "DivvunSpell"
    features = ["compression"]
    ios-deployment-target = "13.0"
    macos-deployment-target = "10.15"
"""

from __future__ import annotations

import dataclasses
import typing as typ

from .errors import ConfigurationError
from .targets import MinVersions

__all__ = ["PodConfig", "load_pod_config"]


@dataclasses.dataclass(slots=True)
class PodConfig:
    """Settings read from ``[package.metadata.pod]``.

    Parameters
    ----------
    name : str | None, optional
        Override for the pod name; defaults to the CamelCase package name.
    features : list[str], optional
        Cargo features enabled for every target build.
    nightly : bool, default=False
        Build with ``cargo +nightly`` and ``-Z build-std``.
    min_versions : MinVersions, optional
        Minimum OS versions embedded in Swift deployment triples.

    Examples
    --------
    >>> PodConfig().min_versions
    MinVersions(ios='10.0', macos='10.10')
    """

    name: str | None = None
    features: list[str] = dataclasses.field(default_factory=list)
    nightly: bool = False
    min_versions: MinVersions = dataclasses.field(default_factory=MinVersions)

    def with_min_versions(
        self, *, ios: str | None = None, macos: str | None = None
    ) -> PodConfig:
        """Return a copy with the given deployment targets overridden."""
        versions = dataclasses.replace(
            self.min_versions,
            **{
                key: value
                for key, value in (("ios", ios), ("macos", macos))
                if value
            },
        )
        return dataclasses.replace(self, min_versions=versions)


def load_pod_config(package_metadata: object, source: str) -> PodConfig:
    """Build a :class:`PodConfig` from a package's ``metadata`` value.

    Parameters
    ----------
    package_metadata : object
        The ``metadata`` field of a ``cargo metadata`` package entry; ``None``
        when the manifest has no ``[package.metadata]`` table.
    source : str
        Manifest path used in error messages.

    Returns
    -------
    PodConfig
        Parsed configuration with defaults for absent keys.

    Raises
    ------
    ConfigurationError
        Raised when ``[package.metadata.pod]`` has malformed entries.
    """

    if not isinstance(package_metadata, dict):
        return PodConfig()
    section = package_metadata.get("pod")
    if section is None:
        return PodConfig()
    if not isinstance(section, dict):
        message = f"[package.metadata.pod] must be a table in {source}"
        raise ConfigurationError(message)

    defaults = MinVersions()
    return PodConfig(
        name=_optional_string(section, "name", source),
        features=_string_list(section, "features", source),
        nightly=_boolean(section, "nightly", source),
        min_versions=MinVersions(
            ios=_optional_string(section, "ios-deployment-target", source)
            or defaults.ios,
            macos=_optional_string(section, "macos-deployment-target", source)
            or defaults.macos,
        ),
    )


def _optional_string(section: dict[str, typ.Any], key: str, source: str) -> str | None:
    value = section.get(key)
    if value is None:
        return None
    if not isinstance(value, str) or not value:
        message = f"pod.{key} must be a non-empty string in {source}"
        raise ConfigurationError(message)
    return value


def _string_list(section: dict[str, typ.Any], key: str, source: str) -> list[str]:
    """Return ``section[key]`` as a list of strings.

    Examples
    --------
    >>> _string_list({"features": ["a", "b"]}, "features", "Cargo.toml")
    ['a', 'b']
    """

    value = section.get(key, [])
    if not isinstance(value, list) or not all(
        isinstance(item, str) and item for item in value
    ):
        message = f"pod.{key} must be a list of strings in {source}"
        raise ConfigurationError(message)
    return list(value)


def _boolean(section: dict[str, typ.Any], key: str, source: str) -> bool:
    value = section.get(key, False)
    if not isinstance(value, bool):
        message = f"pod.{key} must be a boolean in {source}"
        raise ConfigurationError(message)
    return value
