from pathlib import Path
from dataclasses import dataclass

from fatframe.config import BuildProduct

CURRENT = "Current"


@dataclass(frozen=True)
class FrameworkLayout:
    root: Path
    product_name: str
    version: str

    @classmethod
    def for_product(cls, product: BuildProduct) -> "FrameworkLayout":
        return cls(
            root=product.built_products_dir / product.framework_name,
            product_name=product.product_name,
            version=product.version,
        )

    def relocated(self, built_products_dir: Path) -> "FrameworkLayout":
        return FrameworkLayout(
            root=built_products_dir / self.root.name,
            product_name=self.product_name,
            version=self.version,
        )

    @property
    def versions_dir(self) -> Path:
        return self.root / "Versions"

    @property
    def version_dir(self) -> Path:
        return self.versions_dir / self.version

    @property
    def headers_dir(self) -> Path:
        return self.version_dir / "Headers"

    @property
    def binary_path(self) -> Path:
        return self.version_dir / self.product_name

    @property
    def current_link(self) -> Path:
        return self.versions_dir / CURRENT

    @property
    def headers_link(self) -> Path:
        return self.root / "Headers"

    @property
    def binary_link(self) -> Path:
        return self.root / self.product_name

    @property
    def current_target(self) -> str:
        return self.version

    @property
    def headers_target(self) -> str:
        return f"Versions/{CURRENT}/Headers"

    @property
    def binary_target(self) -> str:
        return f"Versions/{CURRENT}/{self.product_name}"

    def links(self) -> list[tuple[Path, str]]:
        return [
            (self.current_link, self.current_target),
            (self.headers_link, self.headers_target),
            (self.binary_link, self.binary_target),
        ]
