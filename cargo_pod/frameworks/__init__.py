"""Framework synthesis, composition and merging."""

from .compose import ConflictPolicy, compose_bundle
from .ffi import synthesize_ffi_framework
from .layout import BundleKind, framework_dir, xcframework_path
from .merge import merge_variant
from .wrapper import swift_sources, synthesize_wrapper_framework

__all__ = [
    "BundleKind",
    "ConflictPolicy",
    "compose_bundle",
    "framework_dir",
    "merge_variant",
    "swift_sources",
    "synthesize_ffi_framework",
    "synthesize_wrapper_framework",
    "xcframework_path",
]
