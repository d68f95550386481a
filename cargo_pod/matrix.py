"""Build matrix: platform selection, targets and merged variants."""

from __future__ import annotations

import dataclasses
import enum

from .errors import ConfigurationError
from .targets import Platform, Target, get_target

__all__ = [
    "MERGED_VARIANTS",
    "MergedVariant",
    "PlatformSelection",
    "merged_variants",
    "select",
    "targets",
    "variant_for",
]


class PlatformSelection(enum.Enum):
    """Platform families requested for a build."""

    IOS = "ios"
    MACOS = "macos"
    BOTH = "both"

    def includes(self, family: Platform) -> bool:
        """Return ``True`` when ``family`` is in scope for this selection."""
        return self is PlatformSelection.BOTH or self.value == family.value


@dataclasses.dataclass(slots=True, frozen=True)
class MergedVariant:
    """Platform-level grouping whose target binaries become one binary.

    Attributes
    ----------
    name : str
        Directory name of the variant beneath the output tree.
    family : Platform
        Platform family every contributing target belongs to.
    triples : tuple[str, ...]
        Contributing target triples, in ``lipo`` input order.
    """

    name: str
    family: Platform
    triples: tuple[str, ...]

    @property
    def targets(self) -> tuple[Target, ...]:
        """Contributing :class:`Target` records."""
        return tuple(get_target(triple) for triple in self.triples)

    @property
    def is_degenerate(self) -> bool:
        """``True`` when the variant is a single-target copy."""
        return len(self.triples) == 1


# Device slices are single-architecture; simulator and desktop slices must
# cover both host architectures.
MERGED_VARIANTS: tuple[MergedVariant, ...] = (
    MergedVariant("aarch64-apple-ios", Platform.IOS, ("aarch64-apple-ios",)),
    MergedVariant(
        "ios-simulator",
        Platform.IOS,
        ("aarch64-apple-ios-sim", "x86_64-apple-ios"),
    ),
    MergedVariant(
        "macos-universal",
        Platform.MACOS,
        ("aarch64-apple-darwin", "x86_64-apple-darwin"),
    ),
)

_TARGET_ORDER: tuple[str, ...] = (
    "aarch64-apple-ios",
    "aarch64-apple-ios-sim",
    "x86_64-apple-ios",
    "aarch64-apple-darwin",
    "x86_64-apple-darwin",
)


def select(want_ios: bool, want_macos: bool) -> PlatformSelection:
    """Return the selection for the ``--ios``/``--macos`` flags.

    Examples
    --------
    >>> select(False, False)
    <PlatformSelection.BOTH: 'both'>
    >>> select(False, True)
    <PlatformSelection.MACOS: 'macos'>
    """
    if want_ios == want_macos:
        return PlatformSelection.BOTH
    return PlatformSelection.IOS if want_ios else PlatformSelection.MACOS


def targets(selection: PlatformSelection) -> tuple[Target, ...]:
    """Return the targets to build for ``selection``, iOS first."""
    return tuple(
        target
        for target in (get_target(triple) for triple in _TARGET_ORDER)
        if selection.includes(target.family)
    )


def merged_variants(selection: PlatformSelection) -> tuple[MergedVariant, ...]:
    """Return the merged variants produced for ``selection``."""
    return tuple(
        variant for variant in MERGED_VARIANTS if selection.includes(variant.family)
    )


def variant_for(triple: str) -> MergedVariant:
    """Return the variant ``triple`` contributes to.

    Raises
    ------
    ConfigurationError
        Raised when ``triple`` belongs to no variant.
    """
    for variant in MERGED_VARIANTS:
        if triple in variant.triples:
            return variant
    message = f"unsupported target: {triple}"
    raise ConfigurationError(message)
