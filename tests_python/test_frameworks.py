"""Tests for per-target framework synthesis, composition and merging."""

from __future__ import annotations

import shutil
from pathlib import Path, PurePosixPath

import pytest
from pod_test_helpers import FakeToolchain

from cargo_pod.errors import BundleError, ConfigurationError, ContentConflictError
from cargo_pod.frameworks import (
    BundleKind,
    ConflictPolicy,
    compose_bundle,
    framework_dir,
    merge_variant,
    swift_sources,
    synthesize_ffi_framework,
    synthesize_wrapper_framework,
)
from cargo_pod.matrix import MergedVariant, variant_for
from cargo_pod.targets import MinVersions, Platform
from cargo_pod.workspace import Library

FFI_MODULEMAP = (
    "framework module FooBarFfi {\n"
    '    header "foo_bar.h"\n'
    '    link "FooBarFfi"\n'
    "}"
)
PRIVATE_MODULEMAP = (
    "framework module FooBar_Private {\n"
    '    header "foo_bar.h"\n'
    '    link "FooBar"\n'
    "}"
)


def _collected(dist_dir: Path, triple: str) -> Path:
    """Place a fake collected static library for ``triple``."""
    slot = dist_dir / triple
    slot.mkdir(parents=True, exist_ok=True)
    archive = slot / "libfoo_bar.a"
    archive.write_bytes(f"{triple}:libfoo_bar.a".encode())
    return archive


def _tree(root: Path) -> dict[str, bytes]:
    return {
        path.relative_to(root).as_posix(): path.read_bytes()
        for path in root.rglob("*")
        if path.is_file()
    }


def _synthesize(
    library: Library, triple: str, dist_dir: Path, toolchain: FakeToolchain
) -> None:
    _collected(dist_dir, triple)
    synthesize_ffi_framework(library, triple, dist_dir)
    synthesize_wrapper_framework(
        library, triple, dist_dir, toolchain, MinVersions()
    )


def test_ffi_framework_layout(library: Library, dist_dir: Path) -> None:
    """Headers, module map and binary are placed under the FFI module name."""

    _collected(dist_dir, "x86_64-apple-darwin")

    fw = synthesize_ffi_framework(library, "x86_64-apple-darwin", dist_dir)

    assert fw == dist_dir / "x86_64-apple-darwin" / "FooBarFfi.framework"
    assert (fw / "Headers" / "foo_bar.h").is_file()
    assert (fw / "Modules" / "module.modulemap").read_text() == FFI_MODULEMAP
    assert (fw / "FooBarFfi").read_bytes() == b"x86_64-apple-darwin:libfoo_bar.a"


def test_ffi_framework_reports_missing_headers(
    library: Library, dist_dir: Path
) -> None:
    """Missing inputs raise a bundle error naming the step and subject."""

    _collected(dist_dir, "aarch64-apple-ios")
    shutil.rmtree(library.headers_dir)

    with pytest.raises(BundleError, match=r"^\[ffi-framework\] foo-bar"):
        synthesize_ffi_framework(library, "aarch64-apple-ios", dist_dir)


def test_wrapper_framework_transforms_ffi_framework(
    library: Library, dist_dir: Path, toolchain: FakeToolchain
) -> None:
    """Renames preserve content and the Swift object is linked in."""

    _synthesize(library, "aarch64-apple-ios-sim", dist_dir, toolchain)

    fw = framework_dir(dist_dir, "aarch64-apple-ios-sim", "FooBar")
    ffi_fw = framework_dir(dist_dir, "aarch64-apple-ios-sim", "FooBarFfi")
    assert not (fw / "Headers").exists()
    assert not (fw / "FooBarFfi").exists()
    assert _tree(fw / "PrivateHeaders") == _tree(ffi_fw / "Headers")
    assert "sub/extra.h" in _tree(fw / "PrivateHeaders")
    renamed = {
        path.replace("Headers/", "PrivateHeaders/", 1).replace(
            "FooBarFfi", "FooBar"
        )
        for path in _tree(ffi_fw)
    }
    added = {
        "Modules/module.private.modulemap",
        *(
            f"Modules/FooBar.swiftmodule/arm64.{ext}"
            for ext in (
                "abi.json",
                "swiftdoc",
                "swiftinterface",
                "swiftmodule",
                "swiftsourceinfo",
            )
        ),
    }
    assert set(_tree(fw)) == renamed | added
    assert (fw / "FooBar").read_bytes() == (
        b"aarch64-apple-ios-sim:libfoo_bar.a" + b"object:aarch64-apple-ios-sim"
    )
    modules = fw / "Modules"
    assert (modules / "module.modulemap").read_text() == (
        "framework module FooBar {\n}"
    )
    assert (modules / "module.private.modulemap").read_text() == PRIVATE_MODULEMAP
    swiftmodule = modules / "FooBar.swiftmodule"
    assert sorted(path.name for path in swiftmodule.iterdir()) == [
        "arm64.abi.json",
        "arm64.swiftdoc",
        "arm64.swiftinterface",
        "arm64.swiftmodule",
        "arm64.swiftsourceinfo",
    ]


def test_wrapper_framework_compiles_with_deployment_triple(
    library: Library, dist_dir: Path, toolchain: FakeToolchain
) -> None:
    """``swiftc`` targets the deployment triple and searches the slot."""

    _collected(dist_dir, "x86_64-apple-ios")
    synthesize_ffi_framework(library, "x86_64-apple-ios", dist_dir)
    synthesize_wrapper_framework(
        library, "x86_64-apple-ios", dist_dir, toolchain, MinVersions(ios="13.0")
    )

    assert toolchain.called("swiftc") == [
        (
            "swiftc",
            "x86_64-apple-ios",
            "x86_64-apple-ios13.0-simulator",
            (dist_dir / "x86_64-apple-ios").resolve(),
        )
    ]
    assert not list((dist_dir / "x86_64-apple-ios").glob("*.o"))


def test_wrapper_framework_searches_absolute_slot_for_relative_output(
    library: Library,
    tmp_path: Path,
    toolchain: FakeToolchain,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    """A relative output root still gives ``swiftc`` an absolute search path."""

    monkeypatch.chdir(tmp_path)
    dist_dir = Path("dist")

    _synthesize(library, "x86_64-apple-darwin", dist_dir, toolchain)

    [(_, _, _, search_path)] = toolchain.called("swiftc")
    assert isinstance(search_path, Path)
    assert search_path.is_absolute()
    assert search_path == (tmp_path / "dist" / "x86_64-apple-darwin").resolve()


def test_swift_sources_requires_bindings(tmp_path: Path) -> None:
    """A library without Swift sources cannot produce a wrapper."""

    (tmp_path / "bindings").mkdir()

    with pytest.raises(ConfigurationError, match="No Swift sources found"):
        swift_sources(Library("empty", tmp_path))


def test_compose_bundle_unions_and_skips_identical(tmp_path: Path) -> None:
    """Identical duplicates are accepted and unique files are kept."""

    first = tmp_path / "first"
    second = tmp_path / "second"
    for root in (first, second):
        (root / "Headers").mkdir(parents=True)
        (root / "Headers" / "shared.h").write_text("same", encoding="utf-8")
    (first / "only-first.txt").write_text("1", encoding="utf-8")
    (second / "only-second.txt").write_text("2", encoding="utf-8")
    destination = tmp_path / "out"

    chosen = compose_bundle([first, second], destination)

    assert chosen[PurePosixPath("Headers/shared.h")] == first / "Headers" / "shared.h"
    assert sorted(
        path.relative_to(destination).as_posix()
        for path in destination.rglob("*")
        if path.is_file()
    ) == ["Headers/shared.h", "only-first.txt", "only-second.txt"]


@pytest.fixture
def divergent(tmp_path: Path) -> tuple[Path, Path]:
    """Two trees disagreeing on ``Info.plist``."""

    first = tmp_path / "first"
    second = tmp_path / "second"
    first.mkdir()
    second.mkdir()
    (first / "Info.plist").write_text("first", encoding="utf-8")
    (second / "Info.plist").write_text("second", encoding="utf-8")
    return first, second


def test_compose_bundle_rejects_conflicts_by_default(
    divergent: tuple[Path, Path], tmp_path: Path
) -> None:
    """Differing content is an error under the default policy."""

    with pytest.raises(
        ContentConflictError, match="conflicting content for Info.plist"
    ):
        compose_bundle(list(divergent), tmp_path / "out", subject="ios-simulator")


@pytest.mark.parametrize(
    ("policy", "expected"),
    [(ConflictPolicy.LAST_WINS, "second"), (ConflictPolicy.FIRST_WINS, "first")],
)
def test_compose_bundle_applies_explicit_policy(
    divergent: tuple[Path, Path],
    tmp_path: Path,
    policy: ConflictPolicy,
    expected: str,
) -> None:
    """Explicit policies pick a winner deterministically."""

    destination = tmp_path / "out"

    compose_bundle(list(divergent), destination, policy)

    assert (destination / "Info.plist").read_text(encoding="utf-8") == expected


def test_compose_bundle_honours_exclusions(tmp_path: Path) -> None:
    """Excluded paths are never copied."""

    source = tmp_path / "src"
    source.mkdir()
    (source / "Binary").write_bytes(b"x")
    (source / "keep").write_bytes(b"y")

    chosen = compose_bundle([source], tmp_path / "out", exclude=("Binary",))

    assert list(chosen) == [PurePosixPath("keep")]
    assert not (tmp_path / "out" / "Binary").exists()


def test_compose_bundle_mirrors_empty_directories(tmp_path: Path) -> None:
    """Directories without files are reproduced in the destination."""

    first = tmp_path / "first"
    second = tmp_path / "second"
    (first / "Headers").mkdir(parents=True)
    (second / "Resources" / "en.lproj").mkdir(parents=True)
    (second / "Info.plist").write_text("plist", encoding="utf-8")
    destination = tmp_path / "out"

    chosen = compose_bundle([first, second], destination)

    assert list(chosen) == [PurePosixPath("Info.plist")]
    assert (destination / "Headers").is_dir()
    assert (destination / "Resources" / "en.lproj").is_dir()


@pytest.mark.parametrize("kind", list(BundleKind))
def test_merge_fat_variant_lipos_in_order(
    library: Library,
    dist_dir: Path,
    toolchain: FakeToolchain,
    kind: BundleKind,
) -> None:
    """Binaries are combined in variant order and other files unioned."""

    variant = variant_for("aarch64-apple-darwin")
    for triple in variant.triples:
        _synthesize(library, triple, dist_dir, toolchain)

    merged = merge_variant(library, variant, kind, dist_dir, toolchain)

    module = kind.module_name(library)
    assert merged == dist_dir / "macos-universal" / f"{module}.framework"
    binary = (merged / module).read_bytes()
    assert binary.startswith(b"aarch64-apple-darwin:")
    assert binary.index(b"x86_64-apple-darwin:") > 0
    assert (merged / "Modules" / "module.modulemap").is_file()
    if kind is BundleKind.WRAPPER:
        swiftmodule = merged / "Modules" / "FooBar.swiftmodule"
        assert (swiftmodule / "arm64.swiftinterface").is_file()
        assert (swiftmodule / "x86_64.swiftinterface").is_file()


def test_merge_degenerate_variant_copies(
    library: Library, dist_dir: Path, toolchain: FakeToolchain
) -> None:
    """The device variant reuses its target framework without ``lipo``."""

    _synthesize(library, "aarch64-apple-ios", dist_dir, toolchain)
    variant = variant_for("aarch64-apple-ios")

    merged = merge_variant(library, variant, BundleKind.FFI, dist_dir, toolchain)

    assert merged == framework_dir(dist_dir, "aarch64-apple-ios", "FooBarFfi")
    assert (merged / "FooBarFfi").read_bytes() == b"aarch64-apple-ios:libfoo_bar.a"
    assert (merged / "Headers" / "foo_bar.h").is_file()
    assert toolchain.called("lipo") == []


def test_merge_single_target_variant_copies_into_own_slot(
    library: Library, dist_dir: Path, toolchain: FakeToolchain
) -> None:
    """A one-target variant with its own slot gets a full copy of the framework."""

    _synthesize(library, "x86_64-apple-darwin", dist_dir, toolchain)
    variant = MergedVariant("solo", Platform.MACOS, ("x86_64-apple-darwin",))
    source = framework_dir(dist_dir, "x86_64-apple-darwin", "FooBarFfi")

    merged = merge_variant(library, variant, BundleKind.FFI, dist_dir, toolchain)

    assert merged == dist_dir / "solo" / "FooBarFfi.framework"
    assert _tree(merged) == _tree(source)
    assert "Headers/sub/extra.h" in _tree(merged)
    assert toolchain.called("lipo") == []


def test_merge_is_idempotent(
    library: Library, dist_dir: Path, toolchain: FakeToolchain
) -> None:
    """Rerunning a merge replaces stale output with identical content."""

    variant = variant_for("x86_64-apple-ios")
    for triple in variant.triples:
        _synthesize(library, triple, dist_dir, toolchain)

    first = merge_variant(library, variant, BundleKind.WRAPPER, dist_dir, toolchain)
    snapshot = {
        path.relative_to(first): path.read_bytes()
        for path in first.rglob("*")
        if path.is_file()
    }
    (first / "stale.txt").write_text("old", encoding="utf-8")
    second = merge_variant(library, variant, BundleKind.WRAPPER, dist_dir, toolchain)

    assert {
        path.relative_to(second): path.read_bytes()
        for path in second.rglob("*")
        if path.is_file()
    } == snapshot


def test_merge_requires_target_frameworks(
    library: Library, dist_dir: Path, toolchain: FakeToolchain
) -> None:
    """Merging before synthesis reports the missing inputs."""

    variant = variant_for("x86_64-apple-darwin")

    with pytest.raises(BundleError, match="missing target frameworks"):
        merge_variant(library, variant, BundleKind.FFI, dist_dir, toolchain)


def test_merge_reports_conflicting_sidecars(
    library: Library, dist_dir: Path, toolchain: FakeToolchain
) -> None:
    """Divergent non-binary content stops the merge under the default policy."""

    variant = variant_for("x86_64-apple-darwin")
    for triple in variant.triples:
        _synthesize(library, triple, dist_dir, toolchain)
    header = (
        framework_dir(dist_dir, "x86_64-apple-darwin", "FooBarFfi")
        / "Headers"
        / "foo_bar.h"
    )
    header.write_text("void diverged(void);\n", encoding="utf-8")

    with pytest.raises(ContentConflictError, match=r"^\[compose\] foo-bar"):
        merge_variant(library, variant, BundleKind.FFI, dist_dir, toolchain)
