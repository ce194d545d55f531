import logging
from pathlib import Path

from fatframe.bundle.layout import FrameworkLayout
from fatframe.config import BuildProduct
from fatframe.utils.fs import (
    FilesystemError,
    copy_tree_preserving,
    ensure_dir,
    force_symlink,
)

logger = logging.getLogger(__name__)


def build_layout(product: BuildProduct) -> FrameworkLayout:
    """Create or refresh the versioned skeleton of ``product``'s framework.

    Safe to re-run: directories are created only when missing, links are
    repointed in place and headers keep their source modification times.
    Earlier ``Versions/<old>`` trees are left alone.
    """
    headers_source = product.public_headers_dir
    if not headers_source.is_dir():
        raise FilesystemError(
            f"Public headers directory not found: {headers_source}"
        )

    layout = FrameworkLayout.for_product(product)
    logger.info("preparing %s (version %s)", layout.root, layout.version)

    ensure_dir(layout.headers_dir)

    for link, target in layout.links():
        force_symlink(link, target)

    _copy_headers(headers_source, layout)

    return layout


def _copy_headers(
    headers_source: Path,
    layout: FrameworkLayout,
) -> None:
    copy_tree_preserving(headers_source, layout.headers_dir)
    logger.debug("copied headers from %s", headers_source)
