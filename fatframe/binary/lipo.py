import logging
import os
import shutil
from pathlib import Path
from typing import List, Literal, Sequence

from fatframe.binary.macho import architectures, build_fat, read_slices
from fatframe.errors import MergeError
from fatframe.utils.fs import FilesystemError, atomic_write, ensure_dir
from fatframe.utils.subprocess import SubprocessError, run_command

logger = logging.getLogger(__name__)

Backend = Literal["auto", "lipo", "native"]


def resolve_backend(backend: Backend) -> str:
    if backend != "auto":
        return backend
    return "lipo" if shutil.which("xcrun") else "native"


def merge_libraries(
    inputs: Sequence[Path],
    output: Path,
    *,
    backend: Backend = "auto",
) -> List[str]:
    """Combine single-architecture libraries into one fat file at ``output``.

    The result is staged next to ``output`` and only renamed into place once
    its architectures have been read back, so a rejected merge never leaves
    a new or partial binary behind. Returns those architectures.
    """
    missing = [str(path) for path in inputs if not path.is_file()]
    if missing:
        raise MergeError(
            "Missing input libraries: " + ", ".join(missing)
        )

    ensure_dir(output.parent)

    chosen = resolve_backend(backend)
    logger.info(
        "merging %d libraries into %s (%s)", len(inputs), output, chosen
    )

    if chosen == "lipo":
        return _merge_with_lipo(inputs, output)
    return _merge_native(inputs, output)


def list_architectures(
    path: Path,
    *,
    backend: Backend = "auto",
) -> List[str]:
    if resolve_backend(backend) == "lipo":
        try:
            result = run_command(["xcrun", "lipo", "-archs", str(path)])
        except SubprocessError as exc:
            raise MergeError(
                f"Failed to list architectures of {path} (lipo {exc.describe_exit()}): {exc}"
            ) from exc
        return result.stdout.split()

    return architectures(_read(path))


def _merge_with_lipo(inputs: Sequence[Path], output: Path) -> List[str]:
    staging = output.with_name(f".{output.name}.lipo-tmp")

    command = ["xcrun", "lipo", "-create"]
    command += [str(path) for path in inputs]
    command += ["-output", str(staging)]

    try:
        run_command(command)
        archs = list_architectures(staging, backend="lipo")
        os.replace(staging, output)
    except SubprocessError as exc:
        staging.unlink(missing_ok=True)
        raise MergeError(
            f"lipo rejected its inputs ({exc.describe_exit()}): {exc}"
        ) from exc
    except MergeError:
        staging.unlink(missing_ok=True)
        raise
    except OSError as exc:
        raise FilesystemError(
            f"Failed to move merged binary into place: {output}: {exc}"
        ) from exc

    return archs


def _merge_native(inputs: Sequence[Path], output: Path) -> List[str]:
    slices = []
    for path in inputs:
        try:
            slices.extend(read_slices(_read(path)))
        except MergeError as exc:
            raise MergeError(f"{path}: {exc}") from exc

    atomic_write(output, build_fat(slices))
    return [piece.arch for piece in slices]


def _read(path: Path) -> bytes:
    try:
        return path.read_bytes()
    except OSError as exc:
        raise FilesystemError(
            f"Failed to read binary: {path}: {exc}"
        ) from exc
