"""Package the built frameworks and pod metadata into ``cargo-pod.tgz``."""

from __future__ import annotations

import logging
import tarfile
from pathlib import Path

from .errors import BundleError

__all__ = [
    "ARCHIVE_NAME",
    "METADATA_PATTERNS",
    "bundle_archive",
    "collect_members",
]

logger = logging.getLogger(__name__)

ARCHIVE_NAME = "cargo-pod.tgz"
METADATA_PATTERNS: tuple[str, ...] = ("*.podspec", "LICENSE*", "README*")
TREES: tuple[str, ...] = ("src", "dist")


def collect_members(root: Path) -> list[Path]:
    """Return the relative paths archived from ``root``.

    Top-level files matching :data:`METADATA_PATTERNS` come first (sorted),
    followed by the ``src`` and ``dist`` trees when they exist.
    """

    metadata = sorted(
        {
            path.relative_to(root)
            for pattern in METADATA_PATTERNS
            for path in root.glob(pattern)
            if path.is_file()
        }
    )
    trees: list[Path] = []
    for name in TREES:
        if (root / name).is_dir():
            trees.append(Path(name))
        else:
            logger.warning("Skipping missing directory '%s'", name)
    return [*metadata, *trees]


def bundle_archive(root: Path, output: Path | None = None) -> Path:
    """Write a gzip-compressed tarball of the pod sources and frameworks.

    Parameters
    ----------
    root : Path
        Pod repository root containing the podspec and ``dist/``.
    output : Path, optional
        Archive destination; defaults to ``<root>/cargo-pod.tgz``.

    Returns
    -------
    Path
        The written archive.

    Raises
    ------
    BundleError
        Raised when nothing can be archived or the archive cannot be written.
    """

    destination = output or root / ARCHIVE_NAME
    members = collect_members(root)
    if not members:
        raise BundleError("bundle", str(root), "nothing to archive")

    try:
        with tarfile.open(destination, "w:gz") as archive:
            for member in members:
                logger.info("a %s", member.as_posix())
                archive.add(root / member, arcname=member.as_posix())
    except OSError as exc:
        raise BundleError("bundle", str(destination), str(exc)) from exc
    return destination
