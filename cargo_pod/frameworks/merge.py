"""Combine per-target frameworks into platform-level fat frameworks."""

from __future__ import annotations

import logging
import shutil
import typing as typ
from pathlib import Path

from ..errors import BundleError, filesystem_step
from .compose import ConflictPolicy, compose_bundle
from .ffi import initialize_framework_dir
from .layout import BundleKind, framework_dir

if typ.TYPE_CHECKING:
    from ..matrix import MergedVariant
    from ..toolchain import Toolchain
    from ..workspace import Library

__all__ = ["merge_variant"]

logger = logging.getLogger(__name__)


def merge_variant(
    library: Library,
    variant: MergedVariant,
    kind: BundleKind,
    dist_dir: Path,
    toolchain: Toolchain,
    policy: ConflictPolicy = ConflictPolicy.MUST_MATCH,
) -> Path:
    """Build ``<dist>/<variant>/<Module>.framework`` from its targets.

    Single-target variants are a plain copy of the target framework, or the
    target framework itself when the variant shares its slot name. Larger
    variants ``lipo`` the binaries together in the variant's target order and
    union every other file with :func:`compose_bundle`.

    Parameters
    ----------
    library : Library
        Library being merged.
    variant : MergedVariant
        Variant whose contributing target frameworks already exist.
    kind : BundleKind
        Framework flavour to merge.
    dist_dir : Path
        Root of the output tree.
    toolchain : Toolchain
        Adapter providing ``lipo``.
    policy : ConflictPolicy, default=ConflictPolicy.MUST_MATCH
        Resolution for divergent non-binary content.

    Returns
    -------
    Path
        The merged framework directory.

    Raises
    ------
    BundleError
        Raised when a contributing framework is missing, when sources conflict
        under ``MUST_MATCH`` or when copying fails.
    ToolError
        Raised when ``lipo`` fails.
    """

    module = kind.module_name(library)
    subject = f"{library.name} ({variant.name})"
    sources = [framework_dir(dist_dir, triple, module) for triple in variant.triples]
    if missing := [source for source in sources if not source.is_dir()]:
        joined = ", ".join(str(path) for path in missing)
        raise BundleError("merge", subject, f"missing target frameworks: {joined}")

    output = framework_dir(dist_dir, variant.name, module)
    if variant.is_degenerate and output == sources[0]:
        logger.debug("%s is already in place", output)
        return output

    with filesystem_step("merge", subject):
        initialize_framework_dir(output)
        if variant.is_degenerate:
            shutil.copytree(sources[0], output, dirs_exist_ok=True)

    if not variant.is_degenerate:
        toolchain.lipo(
            [source / module for source in sources],
            output / module,
            subject=variant.name,
        )
        compose_bundle(sources, output, policy, exclude=(module,), subject=subject)

    logger.info("Created %s", output)
    return output
