from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path

from fatframe.errors import ParseError

logger = logging.getLogger(__name__)

DEVICE_PLATFORM = "iphoneos"
SIMULATOR_PLATFORM = "iphonesimulator"

_PLATFORM_PATTERN = re.compile(r"[A-Za-z]+")
_VERSION_PATTERN = re.compile(r"[0-9]+.*$")


@dataclass(frozen=True)
class SdkDescriptor:
    platform: str
    version: str

    @property
    def sdk_name(self) -> str:
        return f"{self.platform}{self.version}"


def parse_sdk_name(raw: str) -> SdkDescriptor:
    """Split an SDK identifier such as ``iphonesimulator9.3`` into its
    platform (leading letters) and version (first digit onwards)."""

    platform_match = _PLATFORM_PATTERN.search(raw)
    if not platform_match:
        raise ParseError(
            f"Could not find platform name from SDK name: {raw!r}"
        )

    version_match = _VERSION_PATTERN.search(raw)
    if not version_match:
        raise ParseError(
            f"Could not find SDK version from SDK name: {raw!r}"
        )

    return SdkDescriptor(
        platform=platform_match.group(0),
        version=version_match.group(0),
    )


def other_platform(platform: str) -> str:
    if platform == DEVICE_PLATFORM:
        return SIMULATOR_PLATFORM

    if platform != SIMULATOR_PLATFORM:
        logger.warning(
            "unknown platform %r, pairing it with %s", platform, DEVICE_PLATFORM
        )
    return DEVICE_PLATFORM


def derive_other_products_dir(
    products_dir: Path,
    platform: str,
    other: str,
) -> Path:
    # Release-iphoneos -> Release-iphonesimulator
    raw = str(products_dir)
    match = re.fullmatch(r"(.*)" + re.escape(platform), raw, flags=re.DOTALL)
    if not match:
        raise ParseError(
            "Could not find platform name "
            f"{platform!r} at the end of build products directory: {raw}"
        )

    return Path(match.group(1) + other)
