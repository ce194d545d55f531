import logging
import subprocess
from pathlib import Path
from typing import Dict, List, Optional

from fatframe.errors import FatframeError

logger = logging.getLogger(__name__)

# output of xcodebuild/lipo; shown only with --verbose
tool_logger = logging.getLogger("fatframe.tools")


class SubprocessError(FatframeError):
    exit_code = 13

    def __init__(self, message: str, returncode: Optional[int] = None):
        super().__init__(message)
        self.returncode = returncode

    def describe_exit(self) -> str:
        if self.returncode is None:
            return "could not be started"
        return f"exited with code {self.returncode}"


def run_command(
    command: List[str],
    *,
    cwd: Optional[Path] = None,
    env: Optional[Dict[str, str]] = None,
    check: bool = True,
    capture_output: bool = True,
    text: bool = True,
) -> subprocess.CompletedProcess:
    tool = _tool_name(command)
    logger.debug("running %s: %s", tool, " ".join(command))

    try:
        result = subprocess.run(
            command,
            cwd=str(cwd) if cwd else None,
            env=env,
            check=False,  # handled manually
            capture_output=capture_output,
            text=text,
        )
    except FileNotFoundError as exc:
        raise SubprocessError(
            f"{tool} not found: {command[0]}"
        ) from exc
    except OSError as exc:
        raise SubprocessError(
            f"Failed to execute {tool}: {' '.join(command)}"
        ) from exc

    if check and result.returncode != 0:
        raise SubprocessError(
            _format_error(tool, command, result),
            returncode=result.returncode,
        )

    if capture_output and result.stderr:
        for line in result.stderr.strip().splitlines():
            tool_logger.debug("%s: %s", tool, line)

    return result


def _tool_name(command: List[str]) -> str:
    # "xcrun lipo -create ..." is reported as lipo
    if len(command) > 1 and Path(command[0]).name == "xcrun":
        return command[1]
    return Path(command[0]).name


def _format_error(
    tool: str,
    command: List[str],
    result: subprocess.CompletedProcess,
) -> str:
    message = [
        f"{tool} failed: {' '.join(command)}",
        f"Exit code: {result.returncode}",
    ]

    if result.stdout:
        message.append(f"stdout:\n{result.stdout.strip()}")

    if result.stderr:
        message.append(f"stderr:\n{result.stderr.strip()}")

    return "\n".join(message)
