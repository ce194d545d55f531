from __future__ import annotations

import os
import struct
from pathlib import Path
from typing import Callable, List, Optional

import pytest

from fatframe.binary.macho import AR_MAGIC, ARCHITECTURES, MH_MAGIC, MH_MAGIC_64
from fatframe.build.invoker import CompanionBuildRequest
from fatframe.config import BuildProduct, DistributionConfig

OLD_MTIME = 1_300_000_000


def thin_object(arch: str, payload: bytes = b"") -> bytes:
    cputype, cpusubtype = ARCHITECTURES[arch]
    if cputype & 0x01000000:
        header = struct.pack(
            "<IIIIIIII", MH_MAGIC_64, cputype, cpusubtype, 1, 0, 0, 0, 0
        )
    else:
        header = struct.pack(
            "<IIIIIII", MH_MAGIC, cputype, cpusubtype, 1, 0, 0, 0
        )
    return header + (payload or arch.encode() * 8)


def _ar_member(name: bytes, data: bytes, *, bsd_long_name: bool = False) -> bytes:
    if bsd_long_name:
        stored_name = name + b"\0" * (-len(name) % 8 or 8)
        header_name = b"#1/%d" % len(stored_name)
        data = stored_name + data
    else:
        header_name = name

    header = (
        header_name.ljust(16)
        + b"0".ljust(12)
        + b"0".ljust(6)
        + b"0".ljust(6)
        + b"100644".ljust(8)
        + str(len(data)).encode().ljust(10)
        + b"`\n"
    )
    member = header + data
    if len(data) % 2:
        member += b"\n"
    return member


def static_archive(arch: str) -> bytes:
    return (
        AR_MAGIC
        + _ar_member(b"__.SYMDEF SORTED", b"\0" * 8, bsd_long_name=True)
        + _ar_member(b"widget.o", thin_object(arch))
        + _ar_member(b"a_rather_long_object_name.o", thin_object(arch), bsd_long_name=True)
    )


@pytest.fixture
def products_root(tmp_path: Path) -> Path:
    root = tmp_path / "Build" / "Products"
    root.mkdir(parents=True)
    return root


@pytest.fixture
def device_dir(products_root: Path) -> Path:
    path = products_root / "Release-iphoneos"
    path.mkdir()
    return path


@pytest.fixture
def simulator_dir(products_root: Path) -> Path:
    return products_root / "Release-iphonesimulator"


@pytest.fixture
def public_headers(device_dir: Path) -> Path:
    headers = device_dir / "include" / "Widget"
    (headers / "Internal").mkdir(parents=True)
    (headers / "Widget.h").write_text('#import "WGView.h"\n')
    (headers / "WGView.h").write_text("@interface WGView\n@end\n")
    (headers / "Internal" / "WGMacros.h").write_text("#define WG_API\n")

    for path in headers.rglob("*.h"):
        os.utime(path, (OLD_MTIME, OLD_MTIME))

    return headers


@pytest.fixture
def product(device_dir: Path, public_headers: Path) -> BuildProduct:
    return BuildProduct(
        product_name="Widget",
        version="A",
        built_products_dir=device_dir,
        public_headers_dir=public_headers,
    )


@pytest.fixture
def distribution(product: BuildProduct, tmp_path: Path) -> DistributionConfig:
    return DistributionConfig(
        product=product,
        sdk_name="iphoneos10.0",
        configuration="Release",
        project_file_path=tmp_path / "Widget.xcodeproj",
        target_name="Widget",
        build_dir=tmp_path / "Build" / "Products",
        sym_root=tmp_path / "Build" / "Products",
    )


class FakeInvoker:
    """Stands in for the companion xcodebuild run."""

    def __init__(self, on_build: Optional[Callable[[CompanionBuildRequest], None]] = None):
        self.requests: List[CompanionBuildRequest] = []
        self._on_build = on_build

    def __call__(self, request: CompanionBuildRequest) -> None:
        self.requests.append(request)
        if self._on_build is not None:
            self._on_build(request)
