import pytest

from mctpkit.log import (
    MAX_TRACE_BYTES,
    LogLevel,
    format_trace,
    prlog,
    set_log_custom,
    set_log_stdio,
    set_tracing_enabled,
)


@pytest.fixture
def records():
    captured = []
    set_log_custom(lambda level, msg: captured.append((level, msg)))
    yield captured
    set_tracing_enabled(False)
    set_log_custom(lambda level, msg: None)


def test_levels_match_syslog(records):
    prlog(LogLevel.ERR, "e")
    prlog(LogLevel.WARNING, "w")
    prlog(LogLevel.INFO, "i")
    prlog(LogLevel.DEBUG, "d")
    assert [level for level, _ in records] == [3, 4, 6, 7]


def test_custom_receives_messages(records):
    prlog(LogLevel.ERR, "boom")
    prlog(LogLevel.DEBUG, "detail")
    assert records == [(3, "boom"), (7, "detail")]


def test_stdio_filters_by_level(capsys):
    try:
        set_log_stdio(LogLevel.WARNING)
        prlog(LogLevel.ERR, "shown")
        prlog(LogLevel.DEBUG, "hidden")
        err = capsys.readouterr().err
    finally:
        set_log_custom(lambda level, msg: None)
    assert err == "shown\n"


def test_format_trace_short():
    assert format_trace(b"\x01\xab") == "01 AB "


def test_format_trace_exact_limit_not_truncated():
    text = format_trace(bytes(MAX_TRACE_BYTES))
    assert not text.endswith("..")
    assert len(text) == MAX_TRACE_BYTES * 3


def test_format_trace_truncated():
    text = format_trace(bytes(MAX_TRACE_BYTES + 10))
    assert text.endswith("..")
    assert text.count("00 ") == MAX_TRACE_BYTES - 1


def test_format_trace_empty():
    assert format_trace(b"") == ""


def test_format_trace_framing_bytes():
    assert format_trace(b"\x7e\x01") == "7E 01 "


def test_stdio_level_boundary(capsys):
    try:
        set_log_stdio(LogLevel.NOTICE)
        prlog(LogLevel.NOTICE, "notice")
        prlog(LogLevel.INFO, "info")
        err = capsys.readouterr().err
    finally:
        set_log_custom(lambda level, msg: None)
    assert err == "notice\n"