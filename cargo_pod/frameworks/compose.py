"""Union several framework trees into one destination tree."""

from __future__ import annotations

import enum
import filecmp
import logging
import shutil
import typing as typ
from pathlib import Path, PurePosixPath

from ..errors import ContentConflictError, filesystem_step

__all__ = ["ConflictPolicy", "compose_bundle"]

logger = logging.getLogger(__name__)


class ConflictPolicy(enum.Enum):
    """How :func:`compose_bundle` treats a path present in several sources."""

    MUST_MATCH = "must-match"
    LAST_WINS = "last-wins"
    FIRST_WINS = "first-wins"


def _iter_entries(root: Path) -> typ.Iterator[tuple[PurePosixPath, Path]]:
    """Yield every file and directory below ``root``, parents first."""
    for path in sorted(root.rglob("*")):
        yield PurePosixPath(path.relative_to(root).as_posix()), path


def compose_bundle(
    sources: typ.Sequence[Path],
    destination: Path,
    policy: ConflictPolicy = ConflictPolicy.MUST_MATCH,
    *,
    exclude: typ.Collection[str] = (),
    subject: str = "",
) -> dict[PurePosixPath, Path]:
    """Copy every file and directory of ``sources`` into ``destination``.

    Directories are mirrored even when empty.

    Parameters
    ----------
    sources : Sequence[Path]
        Directory trees to union, in precedence order.
    destination : Path
        Directory receiving the union; created when absent.
    policy : ConflictPolicy, default=ConflictPolicy.MUST_MATCH
        Resolution applied when two sources provide the same relative path
        with different bytes. Identical duplicates are always accepted.
    exclude : Collection[str], optional
        POSIX relative paths skipped in every source (for example the
        framework binary, which is combined separately).
    subject : str, optional
        Variant or library named in error messages.

    Returns
    -------
    dict[PurePosixPath, Path]
        Mapping of each written relative path to the source file kept.

    Raises
    ------
    ContentConflictError
        Raised under ``MUST_MATCH`` when sources disagree on a path.
    BundleError
        Raised when copying fails.
    """

    label = subject or destination.name
    excluded = {PurePosixPath(item) for item in exclude}
    chosen: dict[PurePosixPath, Path] = {}

    with filesystem_step("compose", label):
        destination.mkdir(parents=True, exist_ok=True)
    for source in sources:
        with filesystem_step("compose", label):
            entries = list(_iter_entries(source))
        for relative, path in entries:
            if relative in excluded:
                continue
            if path.is_dir():
                with filesystem_step("compose", label):
                    destination.joinpath(relative).mkdir(parents=True, exist_ok=True)
                continue
            previous = chosen.get(relative)
            if previous is not None and not _accept_duplicate(
                previous, path, relative, policy, label
            ):
                continue
            target = destination.joinpath(relative)
            with filesystem_step("compose", label):
                target.parent.mkdir(parents=True, exist_ok=True)
                shutil.copy2(path, target)
            chosen[relative] = path

    return chosen


def _accept_duplicate(
    previous: Path,
    candidate: Path,
    relative: PurePosixPath,
    policy: ConflictPolicy,
    label: str,
) -> bool:
    """Return ``True`` when ``candidate`` should replace ``previous``."""

    with filesystem_step("compose", label):
        identical = filecmp.cmp(previous, candidate, shallow=False)
    if identical:
        return False
    if policy is ConflictPolicy.MUST_MATCH:
        detail = (
            f"conflicting content for {relative}: "
            f"{previous} differs from {candidate}"
        )
        raise ContentConflictError("compose", label, detail)
    if policy is ConflictPolicy.FIRST_WINS:
        logger.warning("Keeping %s over divergent %s", previous, candidate)
        return False
    logger.warning("Overwriting %s with divergent %s", previous, candidate)
    return True
