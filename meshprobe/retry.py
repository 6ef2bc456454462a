"""Retrying a check until it succeeds, with buffered logging of each attempt."""

from __future__ import annotations

import dataclasses
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

__all__ = [
    "RetryOptions",
    "AttemptHelper",
    "RetryFailed",
    "options",
    "attempt",
    "until_success",
]

_log = logging.getLogger(__name__)

Logger = Callable[[str], object]


@dataclass(frozen=True)
class RetryOptions:
    """How often to try, how long to wait in between, and whether to log attempts."""

    max_attempts: int = 60
    delay: float = 1.0
    log_attempts: bool = True

    def with_max_attempts(self, max_attempts: int) -> RetryOptions:
        return dataclasses.replace(self, max_attempts=max_attempts)

    def with_delay(self, delay: float) -> RetryOptions:
        return dataclasses.replace(self, delay=delay)

    def with_log_attempts(self, log_attempts: bool) -> RetryOptions:
        return dataclasses.replace(self, log_attempts=log_attempts)


_DEFAULT_OPTIONS = RetryOptions()


def options() -> RetryOptions:
    """Return the default retry options."""
    return _DEFAULT_OPTIONS


class _Aborted(Exception):
    """Raised by :meth:`AttemptHelper.fail` to end an attempt."""


class RetryFailed(Exception):
    """Every attempt failed; ``error`` holds the failure of the last one."""

    def __init__(self, attempts: int, error: BaseException | None):
        self.attempts = attempts
        self.error = error
        super().__init__(f"Last attempt ({attempts}/{attempts}) failed: {error}")


class AttemptHelper:
    """Handed to the function under retry: it logs messages and can fail the attempt.

    Without a sink, messages are buffered until :meth:`flush_log_buffer` is called.
    """

    def __init__(self, attempt: int = 0, max_attempts: int = 1, sink: Logger | None = None):
        self.attempt = attempt
        self.max_attempts = max_attempts
        self.failed = False
        self.error: BaseException | None = None
        self.result: Any = None
        self._sink = sink
        self._buffer: list[str] = []

    @property
    def messages(self) -> tuple[str, ...]:
        """Messages buffered so far."""
        return tuple(self._buffer)

    def log(self, message: str) -> None:
        if self._sink is None:
            self._buffer.append(message)
        else:
            self._sink(message)

    def fail(self, message: str) -> None:
        """Log ``message``, mark the attempt as failed and end it."""
        self.log(message)
        raise _Aborted(message)

    def flush_log_buffer(self, sink: Logger) -> None:
        """Send every buffered message to ``sink`` and empty the buffer."""
        for message in self._buffer:
            sink(message)
        self._buffer.clear()

    def _run(self, func: Callable[[AttemptHelper], Any]) -> AttemptHelper:
        try:
            self.result = func(self)
        except _Aborted as exc:
            self.failed = True
            self.error = exc
        except Exception as exc:  # any error inside an attempt counts as a failed attempt
            self.failed = True
            self.error = exc
            self.log(f"{type(exc).__name__}: {exc}")
        return self


def attempt(func: Callable[[AttemptHelper], Any]) -> AttemptHelper:
    """Run ``func`` once, capturing failures and buffering its log messages."""
    return AttemptHelper()._run(func)


def _format_delay(delay: float) -> str:
    if delay == 0 or delay >= 1:
        return f"{delay:g}s"
    return f"{delay * 1000:g}ms"


def until_success(
    func: Callable[[AttemptHelper], Any],
    options: RetryOptions | None = None,
    logger: Logger | None = None,
    log_failed_attempts: bool = True,
) -> Any:
    """Call ``func`` until an attempt succeeds and return what it returned.

    When ``log_failed_attempts`` is false, messages of failed attempts are dropped
    and only those of the successful attempt are shown. Raises :class:`RetryFailed`
    when the last attempt fails.
    """
    opts = options if options is not None else _DEFAULT_OPTIONS
    emit: Logger = logger if logger is not None else _log.info
    start = time.monotonic()
    for number in range(opts.max_attempts):
        last = number == opts.max_attempts - 1
        sink = emit if (log_failed_attempts or last) else None
        helper = AttemptHelper(number, opts.max_attempts, sink)._run(func)

        if helper.failed:
            if last:
                if opts.log_attempts and log_failed_attempts:
                    emit(f"Last attempt ({number + 1}/{opts.max_attempts}) failed.")
                raise RetryFailed(opts.max_attempts, helper.error) from helper.error
            if opts.log_attempts and log_failed_attempts:
                if opts.delay == _DEFAULT_OPTIONS.delay:
                    emit(f"--- Attempt {number + 1}/{opts.max_attempts} failed. Retrying...")
                else:
                    emit(
                        f"--- Attempt {number + 1}/{opts.max_attempts} failed. "
                        f"Retrying in {_format_delay(opts.delay)}..."
                    )
            time.sleep(opts.delay)
            continue

        if log_failed_attempts:
            if number > 0 and opts.log_attempts:
                elapsed = time.monotonic() - start
                emit(
                    f"--- Attempt {number + 1}/{opts.max_attempts} successful; "
                    f"total time: {elapsed:.2f}s"
                )
        else:
            helper.flush_log_buffer(emit)

        if opts.max_attempts > 1:
            percentage = number * 100 // opts.max_attempts
            if percentage >= 90:
                emit(
                    "WARNING: This test is is almost certainly flaky since it required more than "
                    "90% of the maximum retry count to succeed. Consider increasing the maximum "
                    "retry count to prevent flakiness."
                )
            elif percentage >= 75:
                emit(
                    "WARNING: This test may be flaky since it required more than 75% of the "
                    "maximum retry count to succeed. Consider increasing the maximum retry count "
                    "to prevent flakiness."
                )
        return helper.result
    return None