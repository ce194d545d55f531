import logging
import os
import sys
from typing import Optional

# set by Xcode for every Run Script build phase
XCODE_ENV = "XCODE_VERSION_ACTUAL"


class XcodeFormatter(logging.Formatter):
    """Prefix warnings and errors the way Xcode's issue navigator expects."""

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        if record.levelno >= logging.ERROR:
            return f"error: {message}"
        if record.levelno >= logging.WARNING:
            return f"warning: {message}"
        return message


def setup_logger(verbose: bool = False, xcode: Optional[bool] = None) -> None:
    root_logger = logging.getLogger()

    if root_logger.handlers:
        return

    if xcode is None:
        xcode = XCODE_ENV in os.environ

    level = logging.DEBUG if verbose else logging.INFO

    handler = logging.StreamHandler(sys.stderr)
    if xcode:
        formatter = XcodeFormatter(fmt="%(name)s: %(message)s")
    else:
        formatter = logging.Formatter(
            fmt="[%(levelname)s] %(name)s: %(message)s"
        )
    handler.setFormatter(formatter)

    root_logger.setLevel(level)
    root_logger.addHandler(handler)

    # child tool chatter is only worth reading when asked for
    logging.getLogger("fatframe.tools").setLevel(
        logging.DEBUG if verbose else logging.WARNING
    )
