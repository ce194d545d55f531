import os
from pathlib import Path

import pytest

from conftest import OLD_MTIME
from fatframe.bundle.assembler import build_layout
from fatframe.config import BuildProduct
from fatframe.utils.fs import FilesystemError


def _snapshot(root: Path) -> dict:
    snapshot = {}
    for path in sorted(root.rglob("*")):
        relative = path.relative_to(root).as_posix()
        if path.is_symlink():
            snapshot[relative] = ("link", os.readlink(path))
        elif path.is_file():
            snapshot[relative] = ("file", path.read_bytes(), path.stat().st_mtime)
        else:
            snapshot[relative] = ("dir",)
    return snapshot


def test_build_layout_creates_versioned_skeleton(product: BuildProduct) -> None:
    layout = build_layout(product)
    root = product.built_products_dir / "Widget.framework"

    assert layout.root == root
    assert (root / "Versions" / "A" / "Headers").is_dir()
    assert os.readlink(root / "Versions" / "Current") == "A"
    assert os.readlink(root / "Headers") == "Versions/Current/Headers"
    assert os.readlink(root / "Widget") == "Versions/Current/Widget"
    assert (root / "Headers" / "Widget.h").read_text() == '#import "WGView.h"\n'
    assert (root / "Headers" / "Internal" / "WGMacros.h").is_file()


def test_build_layout_preserves_header_mtimes(product: BuildProduct) -> None:
    layout = build_layout(product)

    copied = sorted(layout.headers_dir.rglob("*.h"))
    assert len(copied) == 3
    for path in copied:
        assert path.stat().st_mtime == OLD_MTIME


def test_build_layout_is_idempotent(product: BuildProduct) -> None:
    layout = build_layout(product)
    first = _snapshot(layout.root)

    build_layout(product)

    assert _snapshot(layout.root) == first


def test_new_version_keeps_previous_headers(product: BuildProduct) -> None:
    layout_a = build_layout(product)
    before = _snapshot(layout_a.version_dir)

    layout_b = build_layout(product.model_copy(update={"version": "B"}))

    assert os.readlink(layout_b.current_link) == "B"
    assert _snapshot(layout_a.version_dir) == before
    assert (layout_b.headers_dir / "Widget.h").is_file()


def test_build_layout_replaces_stale_file_at_link_path(product: BuildProduct) -> None:
    root = product.built_products_dir / "Widget.framework"
    root.mkdir()
    (root / "Widget").write_bytes(b"stale binary")

    build_layout(product)

    assert os.readlink(root / "Widget") == "Versions/Current/Widget"


def test_build_layout_requires_headers_directory(product: BuildProduct, tmp_path: Path) -> None:
    missing = product.model_copy(update={"public_headers_dir": tmp_path / "nope"})

    with pytest.raises(FilesystemError, match="nope"):
        build_layout(missing)

    assert not (product.built_products_dir / "Widget.framework").exists()


def test_build_layout_refuses_to_replace_directory(product: BuildProduct) -> None:
    (product.built_products_dir / "Widget.framework" / "Headers").mkdir(parents=True)

    with pytest.raises(FilesystemError, match="directory"):
        build_layout(product)


def test_header_symlinks_stay_links_across_runs(
    product: BuildProduct,
    public_headers: Path,
) -> None:
    (public_headers / "Alias.h").symlink_to("WGView.h")
    (public_headers / "Internal" / "Dangling.h").symlink_to("Gone.h")

    layout = build_layout(product)
    first = _snapshot(layout.root)
    build_layout(product)

    assert _snapshot(layout.root) == first
    assert os.readlink(layout.headers_dir / "Alias.h") == "WGView.h"
    assert os.readlink(layout.headers_dir / "Internal" / "Dangling.h") == "Gone.h"
    assert not (layout.headers_dir / "Internal" / "Dangling.h").exists()


def test_header_turned_into_link_replaces_copied_file(
    product: BuildProduct,
    public_headers: Path,
) -> None:
    (public_headers / "Alias.h").write_text("#define WG_ALIAS\n")
    layout = build_layout(product)
    assert not (layout.headers_dir / "Alias.h").is_symlink()

    (public_headers / "Alias.h").unlink()
    (public_headers / "Alias.h").symlink_to("Widget.h")
    build_layout(product)

    assert os.readlink(layout.headers_dir / "Alias.h") == "Widget.h"
    assert (layout.headers_dir / "Alias.h").read_text() == '#import "WGView.h"\n'
