"""
Polling of long-running operations such as file ingestion.

An operation is fetched every ``interval`` seconds until it reports
``done`` or until ``timeout`` seconds have passed. There is no backoff:
ingestion takes tens of seconds to a few minutes and a fixed interval is
enough. Each :class:`OperationPoller` runs one independent sequence;
polling the same operation twice simply fetches it twice.
"""
from __future__ import annotations

import asyncio
import time
from enum import Enum
from typing import Awaitable, Callable, Optional

from file_search_proxy.core.exceptions import OperationTimeoutError, UpstreamError
from file_search_proxy.core.logging import get_logger
from file_search_proxy.schemas.file_search import Operation

logger = get_logger(__name__)

POLL_INTERVAL_SECONDS = 3.0
POLL_TIMEOUT_SECONDS = 5 * 60.0
# Progress is a guess that assumes an average ingestion of 30s
EXPECTED_DURATION_SECONDS = 30.0
MAX_PENDING_PROGRESS = 95.0

OperationFetcher = Callable[[str], Awaitable[Operation]]


class PollState(str, Enum):
    PENDING = "PENDING"
    DONE_SUCCESS = "DONE_SUCCESS"
    DONE_ERROR = "DONE_ERROR"
    TIMED_OUT = "TIMED_OUT"


def estimate_progress(elapsed_seconds: float, done: bool = False) -> float:
    """Percent complete for display; 100 only once the operation is done."""
    if done:
        return 100.0
    return min(MAX_PENDING_PROGRESS, elapsed_seconds / EXPECTED_DURATION_SECONDS * 100)


def reported_progress(operation: Operation) -> Optional[float]:
    """Progress as reported by the operation itself, if any."""
    if operation.metadata and operation.metadata.get("progressPercentage") is not None:
        return float(operation.metadata["progressPercentage"])
    if operation.done:
        return 100.0
    return None


class OperationPoller:
    """Fetch one operation at a fixed interval until it reaches a terminal state.

    ``stop()`` ends the loop before the next fetch. The state is left as last
    observed; ``cancelled`` tells a stopped poll apart from a live one.
    """

    def __init__(
        self,
        fetch: OperationFetcher,
        operation_name: str,
        interval: float = POLL_INTERVAL_SECONDS,
        timeout: float = POLL_TIMEOUT_SECONDS,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
        on_update: Optional[Callable[["OperationPoller"], None]] = None,
    ):
        self.operation_name = operation_name
        self.interval = interval
        self.timeout = timeout
        self._fetch = fetch
        self._sleep = sleep
        self._clock = clock
        self._on_update = on_update

        self.state = PollState.PENDING
        self.operation: Optional[Operation] = None
        self.progress = 0.0
        self.error: Optional[str] = None
        self.fetch_count = 0
        self.cancelled = False
        self.is_polling = False

    @property
    def is_terminal(self) -> bool:
        return self.state != PollState.PENDING

    def stop(self) -> None:
        self.cancelled = True

    async def run(self, initial: Optional[Operation] = None) -> PollState:
        """Poll until done, failed, timed out or stopped; returns the final state."""

        if initial is not None and initial.done:
            self._finish(initial)
            return self.state

        start = self._clock()
        self.is_polling = True
        try:
            while True:
                await self._sleep(self.interval)
                if self.cancelled:
                    logger.info("Stopped polling %s after %d fetches", self.operation_name, self.fetch_count)
                    return self.state

                if self._clock() - start > self.timeout:
                    self.state = PollState.TIMED_OUT
                    self.error = f"Operation timed out after {self.timeout:g} seconds"
                    logger.warning("%s: %s", self.operation_name, self.error)
                    return self.state

                try:
                    operation = await self._fetch(self.operation_name)
                except Exception as exc:
                    self.error = str(exc)
                    raise
                self.fetch_count += 1

                if operation.done:
                    self._finish(operation)
                    return self.state

                self.operation = operation
                elapsed = self._clock() - start
                self.progress = max(self.progress, estimate_progress(elapsed))
                logger.debug("%s pending, ~%.0f%%", self.operation_name, self.progress)
                self._notify()
        finally:
            self.is_polling = False

    def _finish(self, operation: Operation) -> None:
        self.operation = operation
        self.progress = 100.0
        if operation.error:
            self.state = PollState.DONE_ERROR
            self.error = operation.error.message
            logger.warning("%s failed: %s", self.operation_name, self.error)
        else:
            self.state = PollState.DONE_SUCCESS
            logger.info("%s completed after %d fetches", self.operation_name, self.fetch_count)
        self._notify()

    def _notify(self) -> None:
        if self._on_update is not None:
            self._on_update(self)


async def wait_for_operation(
    fetch: OperationFetcher,
    operation: Operation,
    interval: float = POLL_INTERVAL_SECONDS,
    timeout: float = POLL_TIMEOUT_SECONDS,
    **kwargs,
) -> Operation:
    """Poll ``operation`` to completion and return the finished operation.

    Raises:
        OperationTimeoutError: no terminal state within ``timeout``.
        UpstreamError: the operation finished with an error.
    """

    poller = OperationPoller(fetch, operation.name, interval=interval, timeout=timeout, **kwargs)
    state = await poller.run(initial=operation)

    if state == PollState.TIMED_OUT:
        raise OperationTimeoutError(
            f"Operation timed out after {timeout:g} seconds",
            details={"operationName": operation.name},
        )
    if state == PollState.DONE_ERROR:
        error = poller.operation.error
        raise UpstreamError(f"Operation failed: {error.message}", 500, error.model_dump(by_alias=True))
    return poller.operation
