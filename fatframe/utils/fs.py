import logging
import os
import shutil
from pathlib import Path

from fatframe.errors import FatframeError

logger = logging.getLogger(__name__)


class FilesystemError(FatframeError):
    exit_code = 12


def ensure_dir(path: Path) -> None:
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise FilesystemError(
            f"Failed to create directory: {path}: {exc}"
        ) from exc


def force_symlink(link: Path, target: str) -> None:
    """Point ``link`` at ``target``, replacing any existing link or file.

    The new link is created beside the old one and renamed over it, so the
    path never disappears for a reader in between. A real directory at
    ``link`` is not replaced.
    """
    if link.is_symlink() and os.readlink(link) == target:
        return

    if link.is_dir() and not link.is_symlink():
        raise FilesystemError(
            f"Cannot replace directory with symlink: {link}"
        )

    tmp_link = link.with_name(f".{link.name}.tmp-{os.getpid()}")

    try:
        if tmp_link.is_symlink() or tmp_link.exists():
            tmp_link.unlink()
        os.symlink(target, tmp_link)
        os.replace(tmp_link, link)
    except OSError as exc:
        raise FilesystemError(
            f"Failed to link {link} -> {target}: {exc}"
        ) from exc

    logger.debug("linked %s -> %s", link, target)


def copy_tree_preserving(source: Path, destination: Path) -> None:
    """Merge ``source`` into ``destination`` the way ``cp -a`` does.

    Files keep their modification times, symlinks stay symlinks (dangling
    ones included) and directories get the source's stat once their
    contents are in place. Re-running over an existing copy is a no-op.
    """
    copied_dirs = []

    try:
        for dirpath, dirnames, filenames in os.walk(source):
            current = Path(dirpath)
            target_dir = destination / current.relative_to(source)
            ensure_dir(target_dir)
            copied_dirs.append((current, target_dir))

            linked_dirs = [name for name in dirnames if (current / name).is_symlink()]
            for name in linked_dirs:
                dirnames.remove(name)

            for name in linked_dirs + filenames:
                entry = current / name
                if entry.is_symlink():
                    force_symlink(target_dir / name, os.readlink(entry))
                else:
                    copied = target_dir / name
                    if copied.is_symlink():
                        copied.unlink()
                    shutil.copy2(entry, copied)

        for source_dir, target_dir in reversed(copied_dirs):
            shutil.copystat(source_dir, target_dir)
    except OSError as exc:
        raise FilesystemError(
            f"Failed to copy {source} to {destination}: {exc}"
        ) from exc


def copy_file_preserving(source: Path, destination: Path) -> None:
    try:
        shutil.copy2(source, destination)
    except OSError as exc:
        raise FilesystemError(
            f"Failed to copy {source} to {destination}: {exc}"
        ) from exc


def atomic_write(path: Path, data: bytes) -> None:
    tmp_path = path.with_suffix(path.suffix + ".tmp")

    try:
        with tmp_path.open("wb") as f:
            f.write(data)
        os.replace(tmp_path, path)
    except OSError as exc:
        raise FilesystemError(
            f"Failed to write file atomically: {path}"
        ) from exc
