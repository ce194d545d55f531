from pathlib import Path
from typing import Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from fatframe.errors import ConfigError

DEFAULT_VERSION = "A"
RESERVED_VERSIONS = {".", "..", "Current"}


class BuildProduct(BaseModel):
    model_config = ConfigDict(frozen=True)

    product_name: str = Field(
        ...,
        description="Framework name, also used for the binary and its symlink",
        examples=["MyKit"],
    )
    version: str = Field(
        default=DEFAULT_VERSION,
        description="Directory name under Versions/",
        examples=["A", "1.2.0"],
    )
    built_products_dir: Path = Field(
        ...,
        description="Output root of the current build",
    )
    public_headers_dir: Path = Field(
        ...,
        description="Directory holding the already exported public headers",
    )

    @field_validator("product_name")
    @classmethod
    def validate_product_name(cls, value: str) -> str:
        if not value:
            raise ConfigError("Product name cannot be empty")
        if "/" in value or "\\" in value:
            raise ConfigError("Product name must not contain path separators")
        return value

    @field_validator("version")
    @classmethod
    def validate_version(cls, value: str) -> str:
        if not value:
            raise ConfigError("Framework version cannot be empty")
        if "/" in value or "\\" in value:
            raise ConfigError(
                f"Framework version must be a single path segment: {value!r}"
            )
        if value in RESERVED_VERSIONS:
            raise ConfigError(f"Framework version {value!r} is reserved")
        return value

    @property
    def framework_name(self) -> str:
        return f"{self.product_name}.framework"

    @classmethod
    def from_build_settings(cls, settings: Mapping[str, str]) -> "BuildProduct":
        built_products_dir = Path(_require(settings, "BUILT_PRODUCTS_DIR"))

        return cls(
            product_name=_require(settings, "PRODUCT_NAME"),
            version=settings.get("FRAMEWORK_VERSION")
            or settings.get("LIB_VERSION")
            or DEFAULT_VERSION,
            built_products_dir=built_products_dir,
            public_headers_dir=built_products_dir
            / _require(settings, "PUBLIC_HEADERS_FOLDER_PATH"),
        )


class DistributionConfig(BaseModel):
    """Everything the fat merge needs, including what the companion build is
    handed through verbatim."""

    model_config = ConfigDict(frozen=True)

    product: BuildProduct
    sdk_name: str = Field(
        ...,
        description="Raw SDK identifier of the current build",
        examples=["iphoneos10.0", "iphonesimulator9.3"],
    )
    configuration: str = Field(
        ...,
        description="Build configuration, e.g. Release",
    )
    project_file_path: Optional[Path] = None
    target_name: Optional[str] = None
    workspace_path: Optional[Path] = None
    scheme: Optional[str] = None
    build_dir: Optional[Path] = None
    obj_root: Optional[Path] = None
    build_root: Optional[Path] = None
    sym_root: Optional[Path] = None
    action: str = Field(
        default="build",
        description="xcodebuild action run for the companion platform",
    )
    executable_path: Optional[str] = Field(
        default=None,
        description="Single-architecture library, relative to each products dir",
    )

    @field_validator("sdk_name", "configuration", "action")
    @classmethod
    def validate_not_empty(cls, value: str) -> str:
        if not value:
            raise ConfigError("Build setting cannot be empty")
        return value

    @model_validator(mode="after")
    def validate_build_source(self) -> "DistributionConfig":
        has_project = self.project_file_path is not None and bool(self.target_name)

        if not (self.uses_workspace or has_project):
            raise ConfigError(
                "Companion build needs a project and target, "
                "or a workspace and scheme"
            )
        return self

    @property
    def uses_workspace(self) -> bool:
        return self.workspace_path is not None and bool(self.scheme)

    @property
    def library_name(self) -> str:
        return self.executable_path or f"lib{self.product.product_name}.a"

    @classmethod
    def from_build_settings(
        cls, settings: Mapping[str, str]
    ) -> "DistributionConfig":

        def _path(key: str) -> Optional[Path]:
            value = settings.get(key)
            return Path(value) if value else None

        return cls(
            product=BuildProduct.from_build_settings(settings),
            sdk_name=_require(settings, "SDK_NAME"),
            configuration=_require(settings, "CONFIGURATION"),
            project_file_path=_path("PROJECT_FILE_PATH"),
            target_name=settings.get("TARGET_NAME") or None,
            workspace_path=_path("WORKSPACE_PATH"),
            scheme=settings.get("SCHEME") or None,
            build_dir=_path("BUILD_DIR"),
            obj_root=_path("OBJROOT"),
            build_root=_path("BUILD_ROOT"),
            sym_root=_path("SYMROOT"),
            action=settings.get("ACTION") or "build",
            executable_path=settings.get("EXECUTABLE_PATH") or None,
        )


def _require(settings: Mapping[str, str], key: str) -> str:
    value = settings.get(key)
    if not value:
        raise ConfigError(f"Missing build setting: {key}")
    return value
