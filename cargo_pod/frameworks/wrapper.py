"""Per-target Swift wrapper frameworks derived from the interface framework.

The wrapper reuses the interface framework's binary and headers, demotes the
headers to ``PrivateHeaders`` and links a Swift object compiled from the
package's ``bindings/`` sources into the binary. ``swiftc`` always runs in a
private temporary directory so the object file and stray sidecars never
outlive the step, whether it succeeds or fails.
"""

from __future__ import annotations

import logging
import shutil
import tempfile
import typing as typ
from pathlib import Path

from ..errors import ConfigurationError, filesystem_step
from ..targets import get_target
from ..toolchain import SWIFT_MODULE_EXTENSIONS
from .ffi import initialize_framework_dir
from .layout import (
    HEADERS_DIR,
    MODULES_DIR,
    PRIVATE_HEADERS_DIR,
    framework_dir,
    wrapper_modulemap,
    wrapper_private_modulemap,
)

if typ.TYPE_CHECKING:
    from ..targets import MinVersions
    from ..toolchain import Toolchain
    from ..workspace import Library

__all__ = ["swift_sources", "synthesize_wrapper_framework"]

logger = logging.getLogger(__name__)


def swift_sources(library: Library) -> list[Path]:
    """Return the sorted ``.swift`` files beneath ``library.bindings_dir``.

    Raises
    ------
    ConfigurationError
        Raised when the bindings directory holds no Swift sources.
    """

    sources = sorted(
        path for path in library.bindings_dir.rglob("*.swift") if path.is_file()
    )
    if not sources:
        message = f"No Swift sources found in {library.bindings_dir}"
        raise ConfigurationError(message)
    return sources


def synthesize_wrapper_framework(
    library: Library,
    triple: str,
    dist_dir: Path,
    toolchain: Toolchain,
    min_versions: MinVersions,
    sources: typ.Sequence[Path] | None = None,
) -> Path:
    """Build ``<dist>/<triple>/<Module>.framework`` for ``library``.

    Parameters
    ----------
    library : Library
        Library whose interface framework already exists for ``triple``.
    triple : str
        Target triple naming the per-target output slot.
    dist_dir : Path
        Root of the output tree; ``<dist_dir>/<triple>`` is passed to
        ``swiftc`` as an absolute ``-F`` search path.
    toolchain : Toolchain
        Adapter used for ``swiftc`` and ``ar``.
    min_versions : MinVersions
        Minimum OS versions for the Swift deployment triple.
    sources : Sequence[Path], optional
        Swift sources; defaults to :func:`swift_sources`.

    Returns
    -------
    Path
        The wrapper framework directory.

    Raises
    ------
    ToolError
        Raised when ``swiftc`` or ``ar`` fails.
    BundleError
        Raised when a copy, rename or write fails.
    """

    target = get_target(triple)
    module = library.module
    triple_dir = dist_dir / triple
    ffi_dir = framework_dir(dist_dir, triple, library.ffi_module)
    fw_dir = framework_dir(dist_dir, triple, module)
    modules_dir = fw_dir / MODULES_DIR
    binary = fw_dir / module
    subject = f"{library.name} ({triple})"
    swift_files = [
        path.resolve()
        for path in (sources if sources is not None else swift_sources(library))
    ]

    with filesystem_step("wrapper-framework", subject):
        initialize_framework_dir(fw_dir)
        shutil.copytree(ffi_dir, fw_dir, dirs_exist_ok=True)
        (fw_dir / HEADERS_DIR).rename(fw_dir / PRIVATE_HEADERS_DIR)
        (fw_dir / library.ffi_module).rename(binary)
        (modules_dir / "module.modulemap").write_text(
            wrapper_modulemap(library), encoding="utf-8"
        )
        (modules_dir / "module.private.modulemap").write_text(
            wrapper_private_modulemap(library), encoding="utf-8"
        )

    with tempfile.TemporaryDirectory(prefix=f"{module}-{triple}-") as scratch:
        workdir = Path(scratch)
        object_path = toolchain.swiftc(
            target=target,
            min_versions=min_versions,
            module_name=module,
            search_path=triple_dir.resolve(),
            sources=swift_files,
            workdir=workdir,
        )
        toolchain.ar_insert(binary, object_path, subject=triple)

        swiftmodule_dir = modules_dir / f"{module}.swiftmodule"
        with filesystem_step("wrapper-framework", subject):
            swiftmodule_dir.mkdir(parents=True, exist_ok=True)
            for ext in SWIFT_MODULE_EXTENSIONS:
                shutil.move(
                    workdir / f"{module}.{ext}",
                    swiftmodule_dir / f"{target.arch}.{ext}",
                )
        logger.debug("Discarding %s", object_path)

    logger.info("Created %s", fw_dir)
    return fw_dir
