"""Adapters for the external tools driven by the framework pipeline.

Each invocation returns a typed :class:`ToolOutcome` that distinguishes a
missing executable, a non-zero exit and an I/O failure while spawning. The
:class:`Toolchain` methods raise :class:`~cargo_pod.errors.ToolError` carrying
the pipeline stage and subject whenever an outcome is not successful.

Examples
--------
Resolve the simulator SDK path on a macOS host::

    from cargo_pod.toolchain import Toolchain

    print(Toolchain().sdk_path("iphonesimulator"))
"""

from __future__ import annotations

import dataclasses
import enum
import logging
import shlex
import threading
import typing as typ
from pathlib import Path

from plumbum import local
from plumbum.commands import CommandNotFound

from .errors import ToolError

if typ.TYPE_CHECKING:
    from .targets import MinVersions, Target

__all__ = [
    "SWIFT_MODULE_EXTENSIONS",
    "ToolFailure",
    "ToolOutcome",
    "Toolchain",
    "run_tool",
]

logger = logging.getLogger(__name__)

SWIFT_MODULE_EXTENSIONS: tuple[str, ...] = (
    "swiftdoc",
    "swiftmodule",
    "swiftsourceinfo",
    "abi.json",
    "swiftinterface",
)


class ToolFailure(enum.Enum):
    """Reason an external invocation did not succeed."""

    NOT_FOUND = "tool-not-found"
    NONZERO_EXIT = "nonzero-exit"
    IO_ERROR = "io-error"


@dataclasses.dataclass(slots=True, frozen=True)
class ToolOutcome:
    """Result of a single external tool invocation.

    Attributes
    ----------
    command : str
        Shell-quoted command line that was (or would have been) executed.
    retcode : int | None
        Exit status, or ``None`` when the process never ran.
    stdout : str
        Captured standard output.
    stderr : str
        Captured standard error.
    failure : ToolFailure | None
        Failure classification; ``None`` for a successful run.
    detail : str
        Extra context for failures that have no exit status.
    """

    command: str
    retcode: int | None = None
    stdout: str = ""
    stderr: str = ""
    failure: ToolFailure | None = None
    detail: str = ""

    @property
    def ok(self) -> bool:
        """``True`` when the tool ran and exited with status zero."""
        return self.failure is None

    def describe(self) -> str:
        """Return a one-line summary suitable for error messages."""
        if self.failure is None:
            return f"`{self.command}` succeeded"
        if self.failure is ToolFailure.NONZERO_EXIT:
            summary = (
                f"`{self.command}` failed "
                f"({self.failure.value}, status {self.retcode})"
            )
            tail = _last_line(self.stderr) or _last_line(self.stdout)
            return f"{summary}: {tail}" if tail else summary
        return f"`{self.command}` failed ({self.failure.value}): {self.detail}"


def _last_line(text: str) -> str:
    lines = [line for line in text.strip().splitlines() if line.strip()]
    return lines[-1].strip() if lines else ""


def run_tool(
    program: str,
    args: typ.Sequence[str | Path] = (),
    *,
    cwd: Path | None = None,
) -> ToolOutcome:
    """Run ``program`` with ``args`` and classify the result.

    Parameters
    ----------
    program : str
        Executable name resolved through ``PATH`` (or an absolute path).
    args : Sequence[str | Path]
        Arguments passed verbatim to the executable.
    cwd : Path, optional
        Working directory for the child process.

    Returns
    -------
    ToolOutcome
        Outcome of the invocation; this helper never raises for tool failures.
    """

    argv = [str(arg) for arg in args]
    rendered = shlex.join([program, *argv])
    logger.debug("Running %s", rendered)
    try:
        command = local[program]
    except CommandNotFound as exc:
        return ToolOutcome(rendered, failure=ToolFailure.NOT_FOUND, detail=str(exc))

    run_kwargs: dict[str, typ.Any] = {"retcode": None}
    if cwd is not None:
        run_kwargs["cwd"] = str(cwd)
    try:
        retcode, stdout, stderr = command[argv].run(**run_kwargs)
    except OSError as exc:
        return ToolOutcome(rendered, failure=ToolFailure.IO_ERROR, detail=str(exc))

    failure = ToolFailure.NONZERO_EXIT if retcode != 0 else None
    return ToolOutcome(rendered, retcode, stdout or "", stderr or "", failure)


class Toolchain:
    """Invoke Cargo, Xcode and binutils tools on behalf of the pipeline."""

    def __init__(self) -> None:
        self._sdk_paths: dict[str, str] = {}
        self._sdk_lock = threading.Lock()

    def run(
        self,
        stage: str,
        subject: str,
        program: str,
        args: typ.Sequence[str | Path],
        *,
        cwd: Path | None = None,
    ) -> ToolOutcome:
        """Run a tool and raise :class:`ToolError` unless it succeeds."""
        outcome = run_tool(program, args, cwd=cwd)
        if outcome.stdout.strip():
            logger.debug("%s stdout:\n%s", program, outcome.stdout.rstrip())
        if outcome.stderr.strip():
            logger.debug("%s stderr:\n%s", program, outcome.stderr.rstrip())
        if not outcome.ok:
            raise ToolError(stage, subject, outcome)
        return outcome

    def cargo_metadata(self, manifest_path: Path | None = None) -> str:
        """Return the JSON emitted by ``cargo metadata`` for the workspace."""
        args: list[str | Path] = ["metadata", "--format-version", "1", "--no-deps"]
        if manifest_path is not None:
            args.extend(["--manifest-path", manifest_path])
        subject = str(manifest_path) if manifest_path else "workspace"
        return self.run("metadata", subject, "cargo", args).stdout

    def cargo_build(
        self,
        package_dir: Path,
        triple: str,
        cargo_args: typ.Sequence[str],
        *,
        nightly: bool = False,
    ) -> None:
        """Build ``package_dir`` for ``triple`` with ``cargo build``."""
        args: list[str] = ["+nightly"] if nightly else []
        args.append("build")
        if nightly:
            args.extend(["-Z", "build-std"])
        args.extend([*cargo_args, "--target", triple])
        self.run("compile", triple, "cargo", args, cwd=package_dir)

    def sdk_path(self, sdk: str) -> str:
        """Return the absolute SDK path reported by ``xcrun`` (cached)."""
        with self._sdk_lock:
            if sdk not in self._sdk_paths:
                outcome = self.run(
                    "sdk", sdk, "xcrun", ["--show-sdk-path", "--sdk", sdk]
                )
                self._sdk_paths[sdk] = outcome.stdout.strip()
            return self._sdk_paths[sdk]

    def swiftc(
        self,
        *,
        target: Target,
        min_versions: MinVersions,
        module_name: str,
        search_path: Path,
        sources: typ.Sequence[Path],
        workdir: Path,
    ) -> Path:
        """Compile Swift ``sources`` into an object plus module sidecars.

        The object ``<module_name>.o`` and the ``<module_name>.<ext>`` sidecar
        files (see :data:`SWIFT_MODULE_EXTENSIONS`) are written to ``workdir``.

        Returns
        -------
        Path
            Path of the relocatable object inside ``workdir``.
        """
        sdk = self.sdk_path(target.sdk)
        deployment = target.deployment_triple(min_versions)
        object_name = f"{module_name}.o"
        common = [
            "-static",
            "-sdk",
            sdk,
            "-target",
            deployment,
            "-module-name",
            module_name,
            "-F",
            search_path,
        ]
        self.run(
            "swiftc",
            target.triple,
            "swiftc",
            [
                "-emit-library",
                "-emit-object",
                *common,
                "-o",
                object_name,
                *sources,
            ],
            cwd=workdir,
        )
        self.run(
            "swiftc",
            target.triple,
            "swiftc",
            [
                "-emit-module",
                "-enable-library-evolution",
                "-emit-parseable-module-interface",
                *common,
                *sources,
            ],
            cwd=workdir,
        )
        return workdir / object_name

    def ar_insert(self, archive: Path, object_path: Path, *, subject: str) -> None:
        """Append ``object_path`` to the static archive at ``archive``."""
        self.run("archive", subject, "ar", ["q", archive, object_path])

    def lipo(self, inputs: typ.Sequence[Path], output: Path, *, subject: str) -> None:
        """Combine per-architecture binaries into the universal ``output``."""
        self.run("lipo", subject, "lipo", ["-create", "-output", output, *inputs])

    def create_xcframework(
        self, module: str, frameworks: typ.Sequence[Path], output_dir: Path
    ) -> Path:
        """Assemble ``frameworks`` into ``<output_dir>/<module>.xcframework``."""
        output = output_dir / f"{module}.xcframework"
        args: list[str | Path] = ["-create-xcframework", "-output", output]
        for framework in frameworks:
            args.extend(["-framework", framework])
        self.run("xcframework", module, "xcodebuild", args)
        return output
