import sys
from pathlib import Path
from enum import Enum
from typing import Dict, Optional

import typer

from fatframe.binary.lipo import list_architectures
from fatframe.build.invoker import MERGE_RUNNING_ENV, XcodebuildInvoker
from fatframe.bundle.assembler import build_layout
from fatframe.bundle.merger import merge_fat_binary
from fatframe.config import BuildProduct, DistributionConfig
from fatframe.errors import FatframeError
from fatframe.logger import setup_logger


class MergeBackend(str, Enum):
    auto = "auto"
    lipo = "lipo"
    native = "native"


app = typer.Typer(
    name="fatframe",
    help="fatframe: package static libraries as versioned, multi-architecture frameworks",
    add_completion=False,
)

BackendOption = typer.Option(
    MergeBackend.auto,
    "--backend",
    "-b",
    case_sensitive=False,
    help="Merge tool: xcrun lipo, the built-in writer, or auto-detect",
)

ProductNameOption = typer.Option(
    None, "--product-name", envvar="PRODUCT_NAME", help="Framework name"
)
FrameworkVersionOption = typer.Option(
    None,
    "--framework-version",
    envvar=["FRAMEWORK_VERSION", "LIB_VERSION"],
    help="Directory under Versions/ (default: A)",
)
BuiltProductsDirOption = typer.Option(
    None,
    "--built-products-dir",
    envvar="BUILT_PRODUCTS_DIR",
    help="Output root of the current build",
)
PublicHeadersOption = typer.Option(
    None,
    "--public-headers",
    envvar="PUBLIC_HEADERS_FOLDER_PATH",
    help="Public headers folder, relative to the built products dir",
)

SdkNameOption = typer.Option(None, "--sdk-name", envvar="SDK_NAME")
ConfigurationOption = typer.Option(None, "--configuration", envvar="CONFIGURATION")
ProjectOption = typer.Option(None, "--project", envvar="PROJECT_FILE_PATH")
TargetOption = typer.Option(None, "--target", envvar="TARGET_NAME")
WorkspaceOption = typer.Option(None, "--workspace", envvar="WORKSPACE_PATH")
SchemeOption = typer.Option(None, "--scheme", envvar="SCHEME")
BuildDirOption = typer.Option(None, "--build-dir", envvar="BUILD_DIR")
ObjRootOption = typer.Option(None, "--obj-root", envvar="OBJROOT")
BuildRootOption = typer.Option(None, "--build-root", envvar="BUILD_ROOT")
SymRootOption = typer.Option(None, "--sym-root", envvar="SYMROOT")
ActionOption = typer.Option(None, "--action", envvar="ACTION")
ExecutablePathOption = typer.Option(
    None,
    "--executable-path",
    envvar="EXECUTABLE_PATH",
    help="Single-architecture library name (default: lib<product>.a)",
)
AlreadyRunningOption = typer.Option(
    False,
    "--already-running",
    envvar=MERGE_RUNNING_ENV,
    hidden=True,
)


@app.callback()
def main(
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose logging",
    ),
):

    setup_logger(verbose=verbose)

@app.command()
def layout(
    product_name: Optional[str] = ProductNameOption,
    framework_version: Optional[str] = FrameworkVersionOption,
    built_products_dir: Optional[str] = BuiltProductsDirOption,
    public_headers: Optional[str] = PublicHeadersOption,
):
    """Create or refresh the versioned framework skeleton and its headers."""

    try:
        product = BuildProduct.from_build_settings(
            _settings(
                PRODUCT_NAME=product_name,
                FRAMEWORK_VERSION=framework_version,
                BUILT_PRODUCTS_DIR=built_products_dir,
                PUBLIC_HEADERS_FOLDER_PATH=public_headers,
            )
        )
        skeleton = build_layout(product)
        typer.echo(f"Framework ready: {skeleton.root}")

    except FatframeError as exc:
        _fail(exc)

@app.command()
def merge(
    product_name: Optional[str] = ProductNameOption,
    framework_version: Optional[str] = FrameworkVersionOption,
    built_products_dir: Optional[str] = BuiltProductsDirOption,
    public_headers: Optional[str] = PublicHeadersOption,
    sdk_name: Optional[str] = SdkNameOption,
    configuration: Optional[str] = ConfigurationOption,
    project: Optional[str] = ProjectOption,
    target: Optional[str] = TargetOption,
    workspace: Optional[str] = WorkspaceOption,
    scheme: Optional[str] = SchemeOption,
    build_dir: Optional[str] = BuildDirOption,
    obj_root: Optional[str] = ObjRootOption,
    build_root: Optional[str] = BuildRootOption,
    sym_root: Optional[str] = SymRootOption,
    action: Optional[str] = ActionOption,
    executable_path: Optional[str] = ExecutablePathOption,
    backend: MergeBackend = BackendOption,
    already_running: bool = AlreadyRunningOption,
):
    """Build the companion platform and merge both libraries into a fat binary."""

    try:
        config = DistributionConfig.from_build_settings(
            _settings(
                PRODUCT_NAME=product_name,
                FRAMEWORK_VERSION=framework_version,
                BUILT_PRODUCTS_DIR=built_products_dir,
                PUBLIC_HEADERS_FOLDER_PATH=public_headers,
                SDK_NAME=sdk_name,
                CONFIGURATION=configuration,
                PROJECT_FILE_PATH=project,
                TARGET_NAME=target,
                WORKSPACE_PATH=workspace,
                SCHEME=scheme,
                BUILD_DIR=build_dir,
                OBJROOT=obj_root,
                BUILD_ROOT=build_root,
                SYMROOT=sym_root,
                ACTION=action,
                EXECUTABLE_PATH=executable_path,
            )
        )
        _run_merge(
            config,
            backend=backend.value,
            already_running=already_running,
        )

    except FatframeError as exc:
        _fail(exc)

@app.command()
def build(
    product_name: Optional[str] = ProductNameOption,
    framework_version: Optional[str] = FrameworkVersionOption,
    built_products_dir: Optional[str] = BuiltProductsDirOption,
    public_headers: Optional[str] = PublicHeadersOption,
    distribution: bool = typer.Option(
        False,
        "--distribution/--no-distribution",
        help="Also build the companion platform and merge a fat binary",
    ),
    sdk_name: Optional[str] = SdkNameOption,
    configuration: Optional[str] = ConfigurationOption,
    project: Optional[str] = ProjectOption,
    target: Optional[str] = TargetOption,
    workspace: Optional[str] = WorkspaceOption,
    scheme: Optional[str] = SchemeOption,
    build_dir: Optional[str] = BuildDirOption,
    obj_root: Optional[str] = ObjRootOption,
    build_root: Optional[str] = BuildRootOption,
    sym_root: Optional[str] = SymRootOption,
    action: Optional[str] = ActionOption,
    executable_path: Optional[str] = ExecutablePathOption,
    backend: MergeBackend = BackendOption,
    already_running: bool = AlreadyRunningOption,
):
    """Run the layout step, then the fat merge for distribution builds."""

    try:
        settings = _settings(
            PRODUCT_NAME=product_name,
            FRAMEWORK_VERSION=framework_version,
            BUILT_PRODUCTS_DIR=built_products_dir,
            PUBLIC_HEADERS_FOLDER_PATH=public_headers,
            SDK_NAME=sdk_name,
            CONFIGURATION=configuration,
            PROJECT_FILE_PATH=project,
            TARGET_NAME=target,
            WORKSPACE_PATH=workspace,
            SCHEME=scheme,
            BUILD_DIR=build_dir,
            OBJROOT=obj_root,
            BUILD_ROOT=build_root,
            SYMROOT=sym_root,
            ACTION=action,
            EXECUTABLE_PATH=executable_path,
        )

        skeleton = build_layout(BuildProduct.from_build_settings(settings))
        typer.echo(f"Framework ready: {skeleton.root}")

        if not distribution:
            return

        _run_merge(
            DistributionConfig.from_build_settings(settings),
            backend=backend.value,
            already_running=already_running,
        )

    except FatframeError as exc:
        _fail(exc)

@app.command()
def archs(
    binary: Path = typer.Argument(..., help="Library or fat binary to inspect"),
    backend: MergeBackend = BackendOption,
):
    """List the architectures contained in a binary."""

    try:
        typer.echo(" ".join(list_architectures(binary, backend=backend.value)))

    except FatframeError as exc:
        _fail(exc)


def _run_merge(
    config: DistributionConfig,
    *,
    backend: str,
    already_running: bool = False,
) -> None:
    result = merge_fat_binary(
        config,
        invoker=XcodebuildInvoker(),
        already_running=already_running,
        backend=backend,
    )
    if result is None:
        typer.echo("Fat merge already running, nothing to do")
        return

    typer.echo(f"Merged fat binary for {config.product.product_name}")
    typer.echo(f" - architectures: {', '.join(result.architectures)}")
    typer.echo(f" - {result.binary_path}")
    typer.echo(f" - {result.other_binary_path}")
    typer.echo("Merge complete!")


def _settings(**values: Optional[str]) -> Dict[str, str]:
    return {key: value for key, value in values.items() if value}


def _fail(exc: FatframeError) -> None:
    typer.secho(f"Error: {exc}", fg=typer.colors.RED, err=True)
    sys.exit(exc.exit_code)

def run_cli() -> None:
    app()


if __name__ == "__main__":
    run_cli()
