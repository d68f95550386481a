"""Public interface for the XCFramework build pipeline."""

from .errors import (
    BundleError,
    ConfigurationError,
    ContentConflictError,
    PodError,
    ToolError,
)
from .frameworks import BundleKind, ConflictPolicy, compose_bundle, merge_variant
from .matrix import MergedVariant, PlatformSelection, merged_variants, select, targets
from .pipeline import BuildRequest, BuildResult, build_frameworks
from .targets import MinVersions, ResolvedTarget, Target, resolve
from .toolchain import ToolFailure, ToolOutcome, Toolchain
from .workspace import Library, Workspace, load_workspace

__all__ = [
    "BuildRequest",
    "BuildResult",
    "BundleError",
    "BundleKind",
    "ConfigurationError",
    "ConflictPolicy",
    "ContentConflictError",
    "Library",
    "MergedVariant",
    "MinVersions",
    "PlatformSelection",
    "PodError",
    "ResolvedTarget",
    "Target",
    "ToolError",
    "ToolFailure",
    "ToolOutcome",
    "Toolchain",
    "Workspace",
    "build_frameworks",
    "compose_bundle",
    "load_workspace",
    "merge_variant",
    "merged_variants",
    "resolve",
    "select",
    "targets",
]
