import logging

import pytest

from fatframe.logger import XcodeFormatter, setup_logger


def _record(level: int) -> logging.LogRecord:
    return logging.LogRecord(
        "fatframe.bundle.merger", level, __file__, 1, "lipo missing", None, None
    )


def test_xcode_formatter_marks_issues() -> None:
    formatter = XcodeFormatter(fmt="%(name)s: %(message)s")

    assert formatter.format(_record(logging.ERROR)) == (
        "error: fatframe.bundle.merger: lipo missing"
    )
    assert formatter.format(_record(logging.WARNING)) == (
        "warning: fatframe.bundle.merger: lipo missing"
    )
    assert formatter.format(_record(logging.INFO)) == (
        "fatframe.bundle.merger: lipo missing"
    )


def test_setup_logger_quiets_tools_unless_verbose(monkeypatch: pytest.MonkeyPatch) -> None:
    root = logging.getLogger()
    tools = logging.getLogger("fatframe.tools")
    monkeypatch.setattr(root, "handlers", [])
    root_level, tools_level = root.level, tools.level

    try:
        setup_logger(verbose=False, xcode=True)

        assert isinstance(root.handlers[0].formatter, XcodeFormatter)
        assert tools.level == logging.WARNING

        root.handlers = []
        setup_logger(verbose=True, xcode=False)

        assert not isinstance(root.handlers[0].formatter, XcodeFormatter)
        assert tools.level == logging.DEBUG
    finally:
        root.setLevel(root_level)
        tools.setLevel(tools_level)
