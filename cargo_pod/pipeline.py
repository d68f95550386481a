"""Task graph driving compilation, synthesis, merging and umbrella assembly.

Each phase fans out one task per key onto a bounded thread pool and fans the
results back into a mapping. Phases are barriers: no framework is synthesized
until every target compiled, no merge starts before every target framework
exists, and no XCFramework is assembled before every merged variant exists.
"""

from __future__ import annotations

import dataclasses
import functools
import logging
import os
import shutil
import typing as typ
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path

from . import matrix
from .collect import collect_target, prepare_cargo_args
from .errors import filesystem_step
from .frameworks import (
    BundleKind,
    ConflictPolicy,
    merge_variant,
    swift_sources,
    synthesize_ffi_framework,
    synthesize_wrapper_framework,
    xcframework_path,
)

if typ.TYPE_CHECKING:
    from .targets import MinVersions
    from .toolchain import Toolchain
    from .workspace import Library, Workspace

__all__ = ["BuildRequest", "BuildResult", "build_frameworks", "run_parallel"]

logger = logging.getLogger(__name__)

K = typ.TypeVar("K")
V = typ.TypeVar("V")


@dataclasses.dataclass(slots=True)
class BuildRequest:
    """Inputs for :func:`build_frameworks`.

    Attributes
    ----------
    dist_dir : Path
        Root of the output tree.
    selection : matrix.PlatformSelection
        Platform families to build.
    cargo_args : list[str]
        Caller-supplied ``cargo build`` arguments.
    min_versions : MinVersions | None
        Deployment target override; the workspace configuration applies when
        ``None``.
    jobs : int | None
        Worker pool size; defaults to the CPU count.
    policy : ConflictPolicy
        Conflict handling while unioning framework trees.
    """

    dist_dir: Path
    selection: matrix.PlatformSelection = matrix.PlatformSelection.BOTH
    cargo_args: list[str] = dataclasses.field(default_factory=list)
    min_versions: MinVersions | None = None
    jobs: int | None = None
    policy: ConflictPolicy = ConflictPolicy.MUST_MATCH


@dataclasses.dataclass(slots=True)
class BuildResult:
    """Paths produced by a successful run, keyed by graph node."""

    static_libs: dict[tuple[str, str], Path] = dataclasses.field(default_factory=dict)
    frameworks: dict[tuple[str, str, BundleKind], Path] = dataclasses.field(
        default_factory=dict
    )
    merged: dict[tuple[str, str, BundleKind], Path] = dataclasses.field(
        default_factory=dict
    )
    xcframeworks: dict[tuple[str, BundleKind], Path] = dataclasses.field(
        default_factory=dict
    )


def run_parallel(
    tasks: typ.Mapping[K, typ.Callable[[], V]], *, jobs: int | None = None
) -> dict[K, V]:
    """Run ``tasks`` on a thread pool and return their results by key.

    The first failure cancels every task that has not started yet; tasks
    already running are left to finish before the error propagates.

    Examples
    --------
    >>> run_parallel({"a": lambda: 1, "b": lambda: 2}, jobs=2)
    {'a': 1, 'b': 2}
    """

    results: dict[K, V] = {}
    with ThreadPoolExecutor(max_workers=jobs or os.cpu_count() or 1) as executor:
        futures = {executor.submit(task): key for key, task in tasks.items()}
        try:
            for future in as_completed(futures):
                results[futures[future]] = future.result()
        except BaseException:
            for future in futures:
                future.cancel()
            raise
    return {key: results[key] for key in tasks if key in results}


def build_frameworks(
    workspace: Workspace, request: BuildRequest, toolchain: Toolchain
) -> BuildResult:
    """Produce per-target, merged and umbrella frameworks for ``workspace``.

    Parameters
    ----------
    workspace : Workspace
        Libraries and configuration discovered from ``cargo metadata``.
    request : BuildRequest
        Output directory, platform selection and build options.
    toolchain : Toolchain
        Adapter for every external tool.

    Returns
    -------
    BuildResult
        Every produced path keyed by library, target, variant and kind.

    Raises
    ------
    PodError
        Raised for the first configuration, tool or filesystem failure; later
        phases never start.
    """

    dist_dir = request.dist_dir.resolve()
    min_versions = request.min_versions or workspace.config.min_versions
    cargo_args = prepare_cargo_args(request.cargo_args, workspace.config.features)
    triples = [target.triple for target in matrix.targets(request.selection)]
    variants = matrix.merged_variants(request.selection)
    libraries = workspace.libraries
    result = BuildResult()

    sources = {library.name: swift_sources(library) for library in libraries}
    with filesystem_step("collect", str(dist_dir)):
        dist_dir.mkdir(parents=True, exist_ok=True)

    collected = run_parallel(
        {
            triple: functools.partial(
                collect_target, workspace, triple, cargo_args, dist_dir, toolchain
            )
            for triple in triples
        },
        jobs=request.jobs,
    )
    for triple, libs in collected.items():
        for name, path in libs.items():
            result.static_libs[(name, triple)] = path

    def synthesize(library: Library, triple: str) -> dict[BundleKind, Path]:
        ffi = synthesize_ffi_framework(library, triple, dist_dir)
        wrapper = synthesize_wrapper_framework(
            library,
            triple,
            dist_dir,
            toolchain,
            min_versions,
            sources[library.name],
        )
        return {BundleKind.FFI: ffi, BundleKind.WRAPPER: wrapper}

    synthesized = run_parallel(
        {
            (library.name, triple): functools.partial(synthesize, library, triple)
            for library in libraries
            for triple in triples
        },
        jobs=request.jobs,
    )
    for (name, triple), paths in synthesized.items():
        for kind, path in paths.items():
            result.frameworks[(name, triple, kind)] = path

    merged = run_parallel(
        {
            (library.name, variant.name, kind): functools.partial(
                merge_variant,
                library,
                variant,
                kind,
                dist_dir,
                toolchain,
                request.policy,
            )
            for library in libraries
            for variant in variants
            for kind in BundleKind
        },
        jobs=request.jobs,
    )
    result.merged.update(merged)

    def assemble(library: Library, kind: BundleKind) -> Path:
        module = kind.module_name(library)
        output = xcframework_path(dist_dir, module)
        with filesystem_step("xcframework", module):
            if output.exists():
                shutil.rmtree(output)
        frameworks = [
            merged[(library.name, variant.name, kind)] for variant in variants
        ]
        path = toolchain.create_xcframework(module, frameworks, dist_dir)
        logger.info("Created %s", path)
        return path

    result.xcframeworks.update(
        run_parallel(
            {
                (library.name, kind): functools.partial(assemble, library, kind)
                for library in libraries
                for kind in BundleKind
            },
            jobs=request.jobs,
        )
    )
    return result
