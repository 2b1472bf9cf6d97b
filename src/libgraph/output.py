"""
User-facing output for the libgraph command line.

Every line is prefixed with the elapsed time since launch in MM:SS.cc
format, so slow discovery or fetch steps are easy to spot:

    00:00.01 libgraph v0.3.0
    00:00.02 [1/3] Scanning module roots...
    00:00.05       Registered 4 libraries
    00:00.06 [2/3] Resolving Hello...

Library code logs through the logging module; only the CLI writes here.

Usage:
    from libgraph.output import log, log_phase, log_detail

    log_phase(1, 3, "Scanning module roots...")
    log_detail("Registered 4 libraries")
"""

import sys
import time
from types import TracebackType
from typing import Optional, Sequence, TextIO

_start_time: Optional[float] = None
_output_stream: Optional[TextIO] = None
_verbose: bool = False
_output_file: Optional[TextIO] = None


def init_timer(output_stream: Optional[TextIO] = None) -> None:
    """
    Initialize the program timer.

    Called automatically on first log if not called explicitly.

    Args:
        output_stream: Optional output stream (defaults to sys.stdout at write time)
    """
    global _start_time, _output_stream
    _start_time = time.time()
    _output_stream = output_stream


def set_verbose(verbose: bool) -> None:
    """Enable or disable verbose-only messages."""
    global _verbose
    _verbose = verbose


def is_verbose() -> bool:
    return _verbose


def set_output_file(output_file: Optional[TextIO]) -> None:
    """
    Set a file to receive all log output (in addition to the stream).

    Args:
        output_file: File object to receive output, or None to disable file output
    """
    global _output_file
    _output_file = output_file


def get_elapsed() -> float:
    """Elapsed seconds since timer initialization."""
    if _start_time is None:
        init_timer(_output_stream)
    return time.time() - _start_time  # type: ignore[operator]


def format_timestamp() -> str:
    """Format the current elapsed time as MM:SS.cc."""
    elapsed = get_elapsed()
    minutes = int(elapsed // 60)
    seconds = elapsed % 60
    return f"{minutes:02d}:{seconds:05.2f}"


def _print(message: str) -> None:
    line = f"{format_timestamp()} {message}\n"
    stream = _output_stream if _output_stream is not None else sys.stdout
    stream.write(line)
    stream.flush()

    if _output_file is not None:
        _output_file.write(line)
        _output_file.flush()


def log(message: str, verbose_only: bool = False) -> None:
    """Log a message with timestamp."""
    if verbose_only and not _verbose:
        return
    _print(message)


def log_phase(phase: int, total: int, message: str, verbose_only: bool = False) -> None:
    """Log a phase message formatted as [N/M] message."""
    if verbose_only and not _verbose:
        return
    _print(f"[{phase}/{total}] {message}")


def log_detail(message: str, indent: int = 6, verbose_only: bool = False) -> None:
    """Log an indented detail message."""
    if verbose_only and not _verbose:
        return
    _print(f"{' ' * indent}{message}")


def log_header(title: str, version: str) -> None:
    _print(f"{title} v{version}")


def log_order(names: Sequence[str], verbose_only: bool = False) -> None:
    """Log a build order, one numbered library per line."""
    if verbose_only and not _verbose:
        return
    width = len(str(len(names)))
    for index, name in enumerate(names, start=1):
        log_detail(f"{index:>{width}}. {name}")


def log_error(message: str) -> None:
    _print(f"ERROR: {message}")


def log_warning(message: str) -> None:
    _print(f"WARNING: {message}")


class TimedLogger:
    """
    Context manager that logs an operation and how long it took.

    Usage:
        with TimedLogger("Resolving Hello", phase=(2, 3)) as timer:
            order = resolver.resolve("Hello")
            timer.detail(f"{len(order)} libraries")
    """

    def __init__(self, operation: str, phase: Optional[tuple[int, int]] = None, verbose_only: bool = False):
        self.operation = operation
        self.phase = phase
        self.verbose_only = verbose_only
        self.start_time = 0.0

    def __enter__(self) -> "TimedLogger":
        self.start_time = time.time()
        if self.phase:
            log_phase(self.phase[0], self.phase[1], f"{self.operation}...", self.verbose_only)
        else:
            log(f"{self.operation}...", self.verbose_only)
        return self

    def __exit__(
        self,
        exc_type: Optional[type[BaseException]],
        exc_val: Optional[BaseException],
        exc_tb: Optional[TracebackType],
    ) -> None:
        del exc_val, exc_tb
        elapsed = time.time() - self.start_time
        if exc_type is None:
            log_detail(f"Done ({elapsed:.2f}s)", verbose_only=True)
        return None

    def detail(self, message: str) -> None:
        """Log a detail message within this operation."""
        log_detail(message, verbose_only=self.verbose_only)
