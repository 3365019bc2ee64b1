import errno
import inspect
import os
import sys

import pytest

from reactorkit.logger import (
    FatalError,
    Logger,
    LogLevel,
    SourceFile,
    log,
    log_debug,
    log_error,
    log_fatal,
    log_info,
    log_level,
    log_warn,
    set_flush,
    set_log_level,
    set_output,
    strerror,
)


@pytest.fixture
def captured():
    records = []
    saved_level = log_level()
    set_output(records.append)
    yield records
    set_log_level(saved_level)
    set_output(lambda msg: sys.stdout.write(msg.decode("utf-8", "replace")))
    set_flush(lambda: sys.stdout.flush())


def test_source_file_strips_directories():
    source = SourceFile("/a/b/file.cc")
    assert source.data == "file.cc"
    assert source.size == len("file.cc")


def test_logger_record_format(captured):
    with Logger("a/b/c.py", 42, LogLevel.WARN, "fn") as record:
        record.stream() << "msg"
    assert captured == [b"fn msg - c.py:42\n"]


def test_logger_errno_prefix(captured):
    with Logger("x.py", 1, LogLevel.ERROR, save_errno=errno.ENOENT):
        pass
    expected = f"{os.strerror(errno.ENOENT)} (errno={errno.ENOENT}) ".encode()
    assert captured[0].startswith(expected)


def test_finish_emits_once(captured):
    record = Logger("y.py", 7)
    record.finish()
    record.finish()
    assert len(captured) == 1


def test_log_info_includes_function_and_line(captured):
    set_log_level(LogLevel.DEBUG)
    line = inspect.currentframe().f_lineno + 1
    log_info("hello ", 5)
    record = captured[0]
    assert record.startswith(b"test_log_info_includes_function_and_line hello 5")
    assert record.endswith(f" - test_logger.py:{line}\n".encode())


def test_info_filtered_above_level(captured):
    set_log_level(LogLevel.WARN)
    log_info("hidden")
    log_debug("hidden")
    assert captured == []
    log_warn("shown")
    log_error("shown")
    assert len(captured) == 2


def test_debug_filtered_at_info(captured):
    set_log_level(LogLevel.INFO)
    log_debug("hidden")
    log(LogLevel.INFO, "shown")
    assert len(captured) == 1
    assert b"shown" in captured[0]


def test_warn_not_filtered_by_level(captured):
    set_log_level(LogLevel.FATAL)
    log(LogLevel.WARN, "kept")
    assert len(captured) == 1


def test_fatal_flushes_and_raises(captured):
    flushed = []
    set_flush(lambda: flushed.append(True))
    with pytest.raises(FatalError):
        log_fatal("boom")
    assert flushed == [True]
    assert b"boom" in captured[0]


def test_strerror_matches_os():
    assert strerror(errno.EPIPE) == os.strerror(errno.EPIPE)


def test_set_log_level_round_trip(captured):
    set_log_level(LogLevel.ERROR)
    assert log_level() is LogLevel.ERROR