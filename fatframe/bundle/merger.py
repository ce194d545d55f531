import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from fatframe.binary.lipo import Backend, merge_libraries
from fatframe.build.invoker import BuildInvoker, CompanionBuildRequest
from fatframe.bundle.layout import FrameworkLayout
from fatframe.config import DistributionConfig
from fatframe.sdk import (
    SdkDescriptor,
    derive_other_products_dir,
    other_platform,
    parse_sdk_name,
)
from fatframe.utils.fs import copy_file_preserving, ensure_dir

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MergeResult:
    binary_path: Path
    other_binary_path: Path
    other_sdk_name: str
    architectures: List[str]


def merge_fat_binary(
    config: DistributionConfig,
    *,
    invoker: BuildInvoker,
    already_running: bool = False,
    backend: Backend = "auto",
) -> Optional[MergeResult]:
    """Build the companion platform, merge both libraries into the framework
    binary and copy the result into the companion's framework as well.

    ``already_running`` is true inside the companion build itself; the call
    is then a no-op so the companion does not start another companion.
    """
    if already_running:
        logger.info("fat merge already in progress, skipping")
        return None

    product = config.product
    current = parse_sdk_name(config.sdk_name)
    other = other_platform(current.platform)
    other_products_dir = derive_other_products_dir(
        product.built_products_dir,
        current.platform,
        other,
    )
    other_sdk_name = SdkDescriptor(other, current.version).sdk_name

    # a workspace build wins; the project pair is only sent without one
    if config.uses_workspace:
        source = dict(
            workspace_path=config.workspace_path,
            scheme=config.scheme,
        )
    else:
        source = dict(
            project_file_path=config.project_file_path,
            target_name=config.target_name,
        )

    invoker(
        CompanionBuildRequest(
            sdk_name=other_sdk_name,
            configuration=config.configuration,
            action=config.action,
            **source,
            build_dir=config.build_dir,
            obj_root=config.obj_root,
            build_root=config.build_root,
            sym_root=config.sym_root,
            merge_running=True,
        )
    )

    layout = FrameworkLayout.for_product(product)
    other_layout = layout.relocated(other_products_dir)

    archs = merge_libraries(
        [
            product.built_products_dir / config.library_name,
            other_products_dir / config.library_name,
        ],
        layout.binary_path,
        backend=backend,
    )
    logger.info("%s contains %s", layout.binary_path, ", ".join(archs))

    ensure_dir(other_layout.binary_path.parent)
    copy_file_preserving(layout.binary_path, other_layout.binary_path)
    logger.info("copied fat binary to %s", other_layout.binary_path)

    return MergeResult(
        binary_path=layout.binary_path,
        other_binary_path=other_layout.binary_path,
        other_sdk_name=other_sdk_name,
        architectures=archs,
    )
