"""Fixed-interval poll loop for long-running generation jobs.

A job handle is anything with a truthy/falsy ``done`` attribute; ``refresh``
takes the current handle and returns the updated one. The loop sleeps
``interval`` seconds between status checks, with no backoff.
"""

from __future__ import annotations

import logging
import time
from typing import Callable, TypeVar

import config
from pipeline.llm import LLMError

logger = logging.getLogger(__name__)

Op = TypeVar("Op")


class VideoPollTimeout(LLMError):
    """The job did not report completion within max_wait seconds."""


class VideoPollCancelled(LLMError):
    """The caller asked the poll loop to stop."""


def poll_operation(
    operation: Op,
    refresh: Callable[[Op], Op],
    *,
    interval: float | None = None,
    max_wait: float | None = None,
    is_cancelled: Callable[[], bool] | None = None,
    sleep: Callable[[float], None] = time.sleep,
    on_poll: Callable[[int, float], None] | None = None,
) -> Op:
    """Wait until ``operation.done`` is set and return that operation.

    ``max_wait`` <= 0 disables the deadline and the loop runs until the job
    completes. ``is_cancelled`` is checked before every wait. ``on_poll``
    receives (poll_count, elapsed_seconds) after each refresh.
    """
    interval = config.VIDEO_POLL_INTERVAL if interval is None else interval
    max_wait = config.VIDEO_POLL_MAX_WAIT if max_wait is None else max_wait

    elapsed = 0.0
    polls = 0
    while not getattr(operation, "done", False):
        if callable(is_cancelled) and is_cancelled():
            raise VideoPollCancelled("Video generation was cancelled.")
        if max_wait and max_wait > 0 and elapsed >= max_wait:
            raise VideoPollTimeout(f"Video generation timed out after {int(elapsed)}s.")

        sleep(interval)
        elapsed += interval

        operation = refresh(operation)
        polls += 1
        logger.info("Video job poll #%d: done=%s (elapsed %ds)", polls, bool(getattr(operation, "done", False)), elapsed)
        if on_poll:
            on_poll(polls, elapsed)

    return operation
