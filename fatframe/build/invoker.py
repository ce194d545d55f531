import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Protocol

from fatframe.errors import BuildError
from fatframe.utils.subprocess import SubprocessError, run_command

logger = logging.getLogger(__name__)

MERGE_RUNNING_ENV = "FATFRAME_MERGE_RUNNING"


@dataclass(frozen=True)
class CompanionBuildRequest:
    sdk_name: str
    configuration: str
    action: str = "build"
    project_file_path: Optional[Path] = None
    target_name: Optional[str] = None
    workspace_path: Optional[Path] = None
    scheme: Optional[str] = None
    build_dir: Optional[Path] = None
    obj_root: Optional[Path] = None
    build_root: Optional[Path] = None
    sym_root: Optional[Path] = None
    merge_running: bool = True


class BuildInvoker(Protocol):
    def __call__(self, request: CompanionBuildRequest) -> None:
        ...


def build_xcodebuild_command(request: CompanionBuildRequest) -> List[str]:
    command = ["xcrun", "xcodebuild"]

    if request.workspace_path is not None and request.scheme:
        command += [
            "-workspace",
            str(request.workspace_path),
            "-scheme",
            request.scheme,
        ]
    elif request.project_file_path is not None and request.target_name:
        command += [
            "-project",
            str(request.project_file_path),
            "-target",
            request.target_name,
        ]
    else:
        raise BuildError(
            "Companion build needs a project and target, "
            "or a workspace and scheme"
        )

    command += [
        "-configuration",
        request.configuration,
        "-sdk",
        request.sdk_name,
    ]

    for key, value in (
        ("BUILD_DIR", request.build_dir),
        ("OBJROOT", request.obj_root),
        ("BUILD_ROOT", request.build_root),
        ("SYMROOT", request.sym_root),
    ):
        if value is not None:
            command.append(f"{key}={value}")

    command.append(request.action)

    return command


def companion_env(
    request: CompanionBuildRequest,
    base: Optional[Dict[str, str]] = None,
) -> Dict[str, str]:
    env = dict(os.environ if base is None else base)
    if request.merge_running:
        env[MERGE_RUNNING_ENV] = "1"
    return env


class XcodebuildInvoker:
    """Runs the companion build through ``xcodebuild``, streaming its output."""

    def __call__(self, request: CompanionBuildRequest) -> None:
        command = build_xcodebuild_command(request)
        logger.info("building companion SDK %s", request.sdk_name)

        try:
            run_command(
                command,
                env=companion_env(request),
                capture_output=False,
            )
        except SubprocessError as exc:
            raise BuildError(
                f"Companion build for {request.sdk_name} {exc.describe_exit()}: {exc}"
            ) from exc
