"""Shared helpers for the cargo-pod test suites."""

from __future__ import annotations

import json
import threading
import typing as typ
from pathlib import Path

from cargo_pod.collect import profile_dir
from cargo_pod.errors import ToolError
from cargo_pod.toolchain import (
    SWIFT_MODULE_EXTENSIONS,
    Toolchain,
    ToolFailure,
    ToolOutcome,
)

if typ.TYPE_CHECKING:
    from cargo_pod.targets import MinVersions, Target

__all__ = ["FakeToolchain", "cargo_metadata_json", "write_package"]


def cargo_metadata_json(
    package_dir: Path,
    target_directory: Path,
    *,
    name: str = "foo-bar",
    kinds: typ.Sequence[str] = ("staticlib",),
    pod: object = None,
) -> str:
    """Render a minimal ``cargo metadata`` document for one package.

    Parameters
    ----------
    package_dir : Path
        Directory containing the package manifest.
    target_directory : Path
        Cargo build output root reported by the metadata.
    name : str, optional
        Package and library target name.
    kinds : Sequence[str], optional
        ``kind`` list of the package's library target.
    pod : object, optional
        Value placed under ``metadata.pod``; omitted when ``None``.
    """

    package_id = f"{name} 0.1.0 (path+file://{package_dir})"
    package: dict[str, object] = {
        "id": package_id,
        "name": name,
        "manifest_path": str(package_dir / "Cargo.toml"),
        "targets": [{"name": name, "kind": list(kinds)}],
        "metadata": None if pod is None else {"pod": pod},
    }
    return json.dumps(
        {
            "packages": [package],
            "workspace_members": [package_id],
            "target_directory": str(target_directory),
        }
    )


def write_package(root: Path, sys_name: str = "foo_bar") -> Path:
    """Create a package with nested ``headers/`` and one ``bindings/`` source."""

    package_dir = root / "crate"
    (package_dir / "headers").mkdir(parents=True)
    (package_dir / "headers" / f"{sys_name}.h").write_text(
        "void foo_bar_hello(void);\n", encoding="utf-8"
    )
    (package_dir / "headers" / "sub").mkdir()
    (package_dir / "headers" / "sub" / "extra.h").write_text(
        "typedef int foo_bar_extra;\n", encoding="utf-8"
    )
    (package_dir / "bindings").mkdir()
    (package_dir / "bindings" / "Hello.swift").write_text(
        "public func hello() {}\n", encoding="utf-8"
    )
    (package_dir / "Cargo.toml").write_text(
        '[package]\nname = "foo-bar"\n', encoding="utf-8"
    )
    return package_dir


class FakeToolchain(Toolchain):
    """Toolchain double that records calls and fakes tool output on disk.

    Static libraries contain ``<triple>:<lib name>``, Swift objects contain
    ``object:<triple>`` and ``lipo`` concatenates its inputs in order, so
    tests can inspect exactly which bytes ended up in each binary.
    """

    def __init__(
        self,
        target_directory: Path,
        static_libs: typ.Sequence[str] = ("libfoo_bar.a",),
        *,
        metadata: str = "",
        fail_triple: str | None = None,
    ) -> None:
        super().__init__()
        self.target_directory = target_directory
        self.static_libs = tuple(static_libs)
        self.metadata = metadata
        self.fail_triple = fail_triple
        self.calls: list[tuple[object, ...]] = []
        self._lock = threading.Lock()

    def _record(self, *call: object) -> None:
        with self._lock:
            self.calls.append(call)

    def called(self, name: str) -> list[tuple[object, ...]]:
        """Return the recorded calls to ``name`` in invocation order."""
        return [call for call in self.calls if call[0] == name]

    def cargo_metadata(self, manifest_path: Path | None = None) -> str:
        self._record("cargo_metadata", manifest_path)
        return self.metadata

    def cargo_build(
        self,
        package_dir: Path,
        triple: str,
        cargo_args: typ.Sequence[str],
        *,
        nightly: bool = False,
    ) -> None:
        self._record("cargo_build", triple, tuple(cargo_args), nightly)
        if triple == self.fail_triple:
            outcome = ToolOutcome(
                f"cargo build --target {triple}",
                retcode=101,
                stderr="error: could not compile `foo-bar`",
                failure=ToolFailure.NONZERO_EXIT,
            )
            raise ToolError("compile", triple, outcome)
        out_dir = self.target_directory / triple / profile_dir(cargo_args)
        out_dir.mkdir(parents=True, exist_ok=True)
        for lib in self.static_libs:
            (out_dir / lib).write_bytes(f"{triple}:{lib}".encode())

    def sdk_path(self, sdk: str) -> str:
        return f"/sdk/{sdk}"

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
        self._record(
            "swiftc",
            target.triple,
            target.deployment_triple(min_versions),
            search_path,
        )
        object_path = workdir / f"{module_name}.o"
        object_path.write_bytes(f"object:{target.triple}".encode())
        for ext in SWIFT_MODULE_EXTENSIONS:
            (workdir / f"{module_name}.{ext}").write_text(
                f"{ext} for {target.triple}", encoding="utf-8"
            )
        return object_path

    def ar_insert(self, archive: Path, object_path: Path, *, subject: str) -> None:
        self._record("ar_insert", subject, archive.name)
        with archive.open("ab") as handle:
            handle.write(object_path.read_bytes())

    def lipo(self, inputs: typ.Sequence[Path], output: Path, *, subject: str) -> None:
        self._record("lipo", subject, tuple(inputs))
        output.write_bytes(b"".join(path.read_bytes() for path in inputs))

    def create_xcframework(
        self, module: str, frameworks: typ.Sequence[Path], output_dir: Path
    ) -> Path:
        self._record("create_xcframework", module, tuple(frameworks))
        output = output_dir / f"{module}.xcframework"
        output.mkdir()
        (output / "Info.plist").write_text(
            "\n".join(str(path) for path in frameworks), encoding="utf-8"
        )
        return output
