"""Tests for the server log format."""
import io
import logging
import sys

import pytest

from taskflow.logging_config import TaskflowFormatter, get_logger, setup_logging


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    package = logging.getLogger("taskflow")
    handlers, level, package_level = list(root.handlers), root.level, package.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
    package.setLevel(package_level)


def make_record(name, filename, func="update_timeline", lineno=42, msg="Cascade applied"):
    record = logging.LogRecord(name, logging.INFO, filename, lineno, msg, None, None, func=func)
    record.filename = filename
    return record


def test_package_modules_render_as_server():
    line = TaskflowFormatter().format(
        make_record("taskflow.services.timeline", "timeline.py")
    )

    level_and_time, location, message = line.split(" : ")
    assert level_and_time.startswith("INFO: ")
    assert location == "server.services.timeline.update_timeline.42"
    assert message == "Cascade applied"


def test_foreign_module_keeps_its_name_plus_file():
    line = TaskflowFormatter().format(make_record("uvicorn.error", "server.py", func="run"))
    assert " : uvicorn.error.server.run.42 : " in line


def test_traceback_follows_the_line():
    try:
        raise ValueError("bad date")
    except ValueError:
        record = make_record("taskflow.engine.scheduler", "scheduler.py")
        record.exc_info = sys.exc_info()

    lines = TaskflowFormatter().format(record).splitlines()

    assert lines[0].endswith("Cascade applied")
    assert lines[-1] == "ValueError: bad date"


def test_setup_logging_writes_to_stream(restore_root_logger, monkeypatch):
    monkeypatch.setenv("LOG_LEVEL", "WARNING")
    stream = io.StringIO()

    setup_logging(stream=stream)
    setup_logging(stream=stream)
    logger = get_logger("taskflow.services.locks")
    logger.info("hidden")
    logger.warning("Workspace ws_1 lock contention: gave up")

    output = stream.getvalue().splitlines()
    assert len(output) == 1
    assert output[0].startswith("WARNING: ")
    assert output[0].endswith("Workspace ws_1 lock contention: gave up")
