"""Naming and directory layout shared by every framework stage.

Downstream packaging relies on these paths byte-for-byte::

    <dist>/<slot>/lib<sys_name>.a
    <dist>/<slot>/<Module>.framework/<Module>
    <dist>/<slot>/<Module>.framework/{Headers,PrivateHeaders,Modules}/...
    <dist>/<Module>.xcframework/

``<slot>`` is a target triple for per-target frameworks and a merged variant
name for fat frameworks.
"""

from __future__ import annotations

import enum
import typing as typ
from pathlib import Path

if typ.TYPE_CHECKING:
    from ..workspace import Library

__all__ = [
    "HEADERS_DIR",
    "MODULES_DIR",
    "PRIVATE_HEADERS_DIR",
    "BundleKind",
    "ffi_modulemap",
    "framework_dir",
    "wrapper_modulemap",
    "wrapper_private_modulemap",
    "xcframework_path",
]

HEADERS_DIR = "Headers"
PRIVATE_HEADERS_DIR = "PrivateHeaders"
MODULES_DIR = "Modules"


class BundleKind(enum.Enum):
    """Framework flavours produced for each library."""

    FFI = "ffi"
    WRAPPER = "wrapper"

    def module_name(self, library: Library) -> str:
        """Return the module (and binary) name of this kind for ``library``."""
        return library.ffi_module if self is BundleKind.FFI else library.module


def framework_dir(dist_dir: Path, slot: str, module: str) -> Path:
    """Return ``<dist_dir>/<slot>/<module>.framework``.

    Examples
    --------
    >>> framework_dir(Path("dist"), "ios-simulator", "Foo").as_posix()
    'dist/ios-simulator/Foo.framework'
    """
    return dist_dir / slot / f"{module}.framework"


def xcframework_path(dist_dir: Path, module: str) -> Path:
    """Return the umbrella container path for ``module``."""
    return dist_dir / f"{module}.xcframework"


def ffi_modulemap(library: Library) -> str:
    """Public module map of the interface framework."""
    module = library.ffi_module
    return (
        f"framework module {module} {{\n"
        f'    header "{library.header_name}"\n'
        f'    link "{module}"\n'
        "}"
    )


def wrapper_modulemap(library: Library) -> str:
    """Empty public module map of the wrapper framework."""
    return f"framework module {library.module} {{\n}}"


def wrapper_private_modulemap(library: Library) -> str:
    """Private module map exposing the C header inside the wrapper."""
    module = library.module
    return (
        f"framework module {module}_Private {{\n"
        f'    header "{library.header_name}"\n'
        f'    link "{module}"\n'
        "}"
    )
