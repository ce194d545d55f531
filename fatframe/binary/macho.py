"""Minimal Mach-O reading and universal ("fat") file writing.

Only the parts needed to merge static libraries are covered: the CPU type of
a thin object, of the first object inside a static archive, and the slice
table of an existing fat file. Layout follows ``<mach-o/fat.h>``: a
big-endian ``fat_header`` followed by one ``fat_arch`` per slice, each slice
aligned to ``2 ** align`` bytes.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import Iterable, Optional

from fatframe.errors import MergeError

FAT_MAGIC = 0xCAFEBABE
MH_MAGIC = 0xFEEDFACE
MH_MAGIC_64 = 0xFEEDFACF
MH_CIGAM = 0xCEFAEDFE
MH_CIGAM_64 = 0xCFFAEDFE

AR_MAGIC = b"!<arch>\n"
AR_HEADER_SIZE = 60
AR_BSD_LONG_NAME = b"#1/"

CPU_ARCH_ABI64 = 0x01000000
CPU_ARCH_ABI64_32 = 0x02000000
CPU_SUBTYPE_MASK = 0xFF000000

CPU_TYPE_X86 = 7
CPU_TYPE_X86_64 = CPU_TYPE_X86 | CPU_ARCH_ABI64
CPU_TYPE_ARM = 12
CPU_TYPE_ARM64 = CPU_TYPE_ARM | CPU_ARCH_ABI64
CPU_TYPE_ARM64_32 = CPU_TYPE_ARM | CPU_ARCH_ABI64_32

ARCHITECTURES = {
    "i386": (CPU_TYPE_X86, 3),
    "x86_64": (CPU_TYPE_X86_64, 3),
    "x86_64h": (CPU_TYPE_X86_64, 8),
    "armv7": (CPU_TYPE_ARM, 9),
    "armv7s": (CPU_TYPE_ARM, 11),
    "armv7k": (CPU_TYPE_ARM, 12),
    "arm64": (CPU_TYPE_ARM64, 0),
    "arm64e": (CPU_TYPE_ARM64, 2),
    "arm64_32": (CPU_TYPE_ARM64_32, 1),
}

_NAMES = {cpu: name for name, cpu in ARCHITECTURES.items()}

_FAT_HEADER = struct.Struct(">II")
_FAT_ARCH = struct.Struct(">IIIII")


@dataclass(frozen=True)
class Slice:
    cputype: int
    cpusubtype: int
    data: bytes
    align: int

    @property
    def arch(self) -> str:
        return arch_name(self.cputype, self.cpusubtype)


def arch_name(cputype: int, cpusubtype: int) -> str:
    key = (cputype, cpusubtype & ~CPU_SUBTYPE_MASK)
    return _NAMES.get(key, f"unknown(0x{cputype:X}:0x{cpusubtype:X})")


def default_alignment(cputype: int) -> int:
    if cputype & 0xFF == CPU_TYPE_ARM:
        return 14
    return 12


def read_slices(data: bytes) -> list[Slice]:
    if len(data) < 8:
        raise MergeError("Input is too short to be a Mach-O file or archive")

    if struct.unpack(">I", data[:4])[0] == FAT_MAGIC:
        return _read_fat(data)

    if data.startswith(AR_MAGIC):
        cpu = _archive_cpu(data)
    else:
        cpu = _macho_cpu(data)

    if cpu is None:
        raise MergeError("Input is not a Mach-O object, archive or fat file")

    cputype, cpusubtype = cpu
    return [
        Slice(
            cputype=cputype,
            cpusubtype=cpusubtype,
            data=data,
            align=default_alignment(cputype),
        )
    ]


def architectures(data: bytes) -> list[str]:
    return [piece.arch for piece in read_slices(data)]


def build_fat(slices: Iterable[Slice]) -> bytes:
    slices = list(slices)
    if not slices:
        raise MergeError("Nothing to merge: no architecture slices given")

    seen: dict[tuple[int, int], str] = {}
    for piece in slices:
        key = (piece.cputype, piece.cpusubtype & ~CPU_SUBTYPE_MASK)
        if key in seen:
            raise MergeError(
                f"Inputs have the same architecture ({piece.arch}) "
                "and can't be in the same fat output file"
            )
        seen[key] = piece.arch

    header_size = _FAT_HEADER.size + _FAT_ARCH.size * len(slices)
    header = bytearray(_FAT_HEADER.pack(FAT_MAGIC, len(slices)))
    body = bytearray()
    offset = header_size

    placed = []
    for piece in slices:
        offset = _align_up(offset, 1 << piece.align)
        placed.append((piece, offset))
        offset += len(piece.data)

    for piece, slice_offset in placed:
        header += _FAT_ARCH.pack(
            piece.cputype,
            piece.cpusubtype,
            slice_offset,
            len(piece.data),
            piece.align,
        )

    cursor = header_size
    for piece, slice_offset in placed:
        body += b"\0" * (slice_offset - cursor)
        body += piece.data
        cursor = slice_offset + len(piece.data)

    return bytes(header + body)


def _align_up(value: int, alignment: int) -> int:
    return (value + alignment - 1) // alignment * alignment


def _read_fat(data: bytes) -> list[Slice]:
    _, count = _FAT_HEADER.unpack_from(data, 0)
    if _FAT_HEADER.size + count * _FAT_ARCH.size > len(data):
        raise MergeError("Truncated fat header")

    slices = []
    for index in range(count):
        cputype, cpusubtype, offset, size, align = _FAT_ARCH.unpack_from(
            data, _FAT_HEADER.size + index * _FAT_ARCH.size
        )
        if offset + size > len(data):
            raise MergeError(
                f"Fat slice {index} extends past the end of the file"
            )
        slices.append(
            Slice(
                cputype=cputype,
                cpusubtype=cpusubtype,
                data=data[offset:offset + size],
                align=align,
            )
        )

    return slices


def _macho_cpu(data: bytes) -> Optional[tuple[int, int]]:
    if len(data) < 12:
        return None

    magic = struct.unpack("<I", data[:4])[0]
    if magic in (MH_MAGIC, MH_MAGIC_64):
        endian = "<"
    elif magic in (MH_CIGAM, MH_CIGAM_64):
        endian = ">"
    else:
        return None

    return struct.unpack(f"{endian}II", data[4:12])


def _archive_cpu(data: bytes) -> Optional[tuple[int, int]]:
    pos = len(AR_MAGIC)

    while pos + AR_HEADER_SIZE <= len(data):
        header = data[pos:pos + AR_HEADER_SIZE]
        if header[58:60] != b"`\n":
            break

        try:
            size = int(header[48:58].strip())
        except ValueError:
            break

        start = pos + AR_HEADER_SIZE
        member = data[start:start + size]
        name = header[:16].rstrip()

        # BSD archives store long names in front of the member data
        if name.startswith(AR_BSD_LONG_NAME):
            try:
                name_length = int(name[len(AR_BSD_LONG_NAME):])
            except ValueError:
                break
            name = member[:name_length].rstrip(b"\0")
            member = member[name_length:]

        pos = start + size + (size % 2)

        if name in (b"/", b"//") or name.startswith(b"__.SYMDEF"):
            continue

        cpu = _macho_cpu(member)
        if cpu is not None:
            return cpu

    return None
