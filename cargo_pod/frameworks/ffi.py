"""Per-target interface frameworks wrapping the raw static library."""

from __future__ import annotations

import logging
import shutil
import typing as typ
from pathlib import Path

from ..errors import filesystem_step
from .layout import HEADERS_DIR, MODULES_DIR, ffi_modulemap, framework_dir

if typ.TYPE_CHECKING:
    from ..workspace import Library

__all__ = ["initialize_framework_dir", "synthesize_ffi_framework"]

logger = logging.getLogger(__name__)


def initialize_framework_dir(path: Path) -> None:
    """Create an empty framework directory, discarding previous contents.

    Examples
    --------
    >>> framework = Path("/tmp/dist/x86_64-apple-darwin/Foo.framework")
    >>> initialize_framework_dir(framework)
    >>> list(framework.iterdir())
    []
    """

    if path.exists():
        shutil.rmtree(path)
    path.mkdir(parents=True)


def synthesize_ffi_framework(library: Library, triple: str, dist_dir: Path) -> Path:
    """Build ``<dist>/<triple>/<FfiModule>.framework`` for ``library``.

    The framework contains a verbatim copy of the package's ``headers/``
    directory, a module map declaring the umbrella header and link name, and
    the collected ``lib<name>.a`` as its binary.

    Parameters
    ----------
    library : Library
        Library whose collected static library is wrapped.
    triple : str
        Target triple naming the per-target output slot.
    dist_dir : Path
        Root of the output tree.

    Returns
    -------
    Path
        The framework directory.

    Raises
    ------
    BundleError
        Raised when the headers, the static library or the destination cannot
        be read or written.
    """

    module = library.ffi_module
    fw_dir = framework_dir(dist_dir, triple, module)
    subject = f"{library.name} ({triple})"

    with filesystem_step("ffi-framework", subject):
        initialize_framework_dir(fw_dir)
        shutil.copytree(library.headers_dir, fw_dir / HEADERS_DIR)
        modules_dir = fw_dir / MODULES_DIR
        modules_dir.mkdir()
        (modules_dir / "module.modulemap").write_text(
            ffi_modulemap(library), encoding="utf-8"
        )
        shutil.copy2(dist_dir / triple / library.static_lib_name, fw_dir / module)

    logger.info("Created %s", fw_dir)
    return fw_dir
