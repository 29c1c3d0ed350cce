"""Logging and payload tracing for the MCTP stack."""

from __future__ import annotations

import enum
import sys
from collections.abc import Callable
from dataclasses import dataclass

MAX_TRACE_BYTES = 128


class LogLevel(enum.IntEnum):
    """Log levels matching the syslog priorities."""

    ERR = 3
    WARNING = 4
    NOTICE = 5
    INFO = 6
    DEBUG = 7


class _Sink(enum.Enum):
    NONE = enum.auto()
    STDIO = enum.auto()
    SYSLOG = enum.auto()
    CUSTOM = enum.auto()


@dataclass
class _LogState:
    sink: _Sink = _Sink.NONE
    stdio_level: int = 0
    custom_fn: Callable[[int, str], None] | None = None
    trace_enabled: bool = False


_state = _LogState()


def set_log_stdio(level: int) -> None:
    """Send messages at ``level`` or more severe to standard error."""
    _state.sink = _Sink.STDIO
    _state.stdio_level = int(level)


def set_log_syslog() -> None:
    """Send all messages to the system log."""
    _state.sink = _Sink.SYSLOG


def set_log_custom(fn: Callable[[int, str], None]) -> None:
    """Send all messages to ``fn(level, message)``."""
    _state.sink = _Sink.CUSTOM
    _state.custom_fn = fn


def set_tracing_enabled(enable: bool) -> None:
    """Turn payload tracing on or off."""
    _state.trace_enabled = bool(enable)


def prlog(level: int, message: str) -> None:
    """Emit ``message`` at ``level`` through the configured sink."""
    if _state.sink is _Sink.STDIO:
        if level <= _state.stdio_level:
            sys.stderr.write(message + "\n")
    elif _state.sink is _Sink.SYSLOG:
        import syslog

        syslog.syslog(int(level), message)
    elif _state.sink is _Sink.CUSTOM and _state.custom_fn is not None:
        _state.custom_fn(int(level), message)


def format_trace(payload: bytes) -> str:
    """Render ``payload`` as hex bytes, marking truncation with '..'."""
    truncated = len(payload) > MAX_TRACE_BYTES
    shown = payload[: MAX_TRACE_BYTES - 1] if truncated else payload
    text = "".join(f"{byte:02X} " for byte in shown)
    return text + ".." if truncated else text


def trace(tag: str, payload: bytes) -> None:
    """Log ``payload`` at debug level when tracing is enabled."""
    if not _state.trace_enabled or not payload:
        return
    prlog(LogLevel.DEBUG, f"{tag} {format_trace(payload)}")