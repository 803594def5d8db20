"""Cancellable retry executor with exponential backoff.

Repeatedly invokes an async operation, sleeping between attempts according
to a RetryPolicy and the RetryDecision of each failure, until the operation
succeeds, the attempt budget is exhausted, or cancel() is called.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from functools import wraps
from typing import Any, TypeVar

from media_client.retry.decision import (
    DoNotRetry,
    FailureClassifier,
    RetryAfter,
    default_classifier,
)
from media_client.retry.policy import DEFAULT_POLICY, RetryPolicy
from media_client.utils.errors import OperationCancelledError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RetryExecutor:
    """Runs async operations under a retry policy, with cooperative cancellation.

    The executor holds a single cancellation flag. cancel() sets it once;
    it is checked before every attempt and raced against every backoff wait,
    so a pending sleep is interrupted immediately. Once cancelled, every
    subsequent execute() fails with OperationCancelledError.

    The flag is an asyncio.Event, so cancel() must be called from the event
    loop thread. From another thread use ``loop.call_soon_threadsafe(executor.cancel)``.

    Args:
        name: Label used in retry log messages.
    """

    def __init__(self, name: str = "operation") -> None:
        self.name = name
        self._cancelled = asyncio.Event()

    def cancel(self) -> None:
        """Request cancellation of any in-flight and future executions."""
        if not self._cancelled.is_set():
            logger.info("Cancellation requested for %s", self.name)
            self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def raise_if_cancelled(self) -> None:
        """Raise OperationCancelledError if cancel() has been called."""
        if self._cancelled.is_set():
            raise OperationCancelledError(f"{self.name} was cancelled")

    async def run_until_cancelled(self, awaitable: Awaitable[T]) -> T:
        """Await ``awaitable`` unless cancel() is called first.

        The awaitable runs as its own task and is raced against the
        cancellation flag. If the flag wins, the task is cancelled and
        awaited before OperationCancelledError is raised, so a hung request
        or a silent stream is abandoned immediately.

        Raises:
            OperationCancelledError: If cancel() was called before the
                awaitable finished.
        """
        if self._cancelled.is_set():
            # Close an unawaited coroutine instead of leaking it
            if asyncio.iscoroutine(awaitable):
                awaitable.close()
            self.raise_if_cancelled()

        task = asyncio.ensure_future(awaitable)
        cancel_wait = asyncio.ensure_future(self._cancelled.wait())
        try:
            done, _ = await asyncio.wait(
                {task, cancel_wait}, return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            cancel_wait.cancel()
            if not task.done():
                task.cancel()
                await asyncio.gather(task, return_exceptions=True)
        if task in done:
            return task.result()
        raise OperationCancelledError(f"{self.name} was cancelled")

    async def execute(
        self,
        operation: Callable[[], Awaitable[T]],
        policy: RetryPolicy = DEFAULT_POLICY,
        classifier: FailureClassifier | None = None,
    ) -> T:
        """Execute an async operation with retry logic.

        Args:
            operation: Zero-argument callable returning an awaitable.
            policy: Attempt budget and backoff configuration.
            classifier: Optional ``(exc, attempt) -> RetryDecision`` that fully
                replaces the default classification.

        Returns:
            The operation's result.

        Raises:
            OperationCancelledError: If cancelled before an attempt, during a
                backoff wait, or while an attempt was failing.
            Exception: The last failure when attempts are exhausted, or the
                first failure classified as DoNotRetry. ``_retry_count`` is
                attached with the number of retries performed.
        """
        for attempt in range(policy.max_attempts):
            self.raise_if_cancelled()
            try:
                return await self.run_until_cancelled(operation())
            except OperationCancelledError:
                raise
            except Exception as exc:
                # Cancellation wins over any further retry
                if self.cancelled:
                    raise OperationCancelledError(f"{self.name} was cancelled") from exc

                exc._retry_count = attempt  # type: ignore[attr-defined]
                if attempt == policy.max_attempts - 1:
                    raise

                if classifier is not None:
                    decision = classifier(exc, attempt)
                else:
                    decision = default_classifier(exc)

                if isinstance(decision, DoNotRetry):
                    raise
                if isinstance(decision, RetryAfter):
                    delay = max(0.0, decision.delay)
                else:
                    delay = policy.delay(attempt)

                logger.warning(
                    "Retry %d/%d for %s after %.1fs: %s",
                    attempt + 1,
                    policy.max_attempts - 1,
                    self.name,
                    delay,
                    exc,
                )
                await self._wait(delay)

        # max_attempts >= 1 so the loop always returns or raises
        raise AssertionError("unreachable")

    async def _wait(self, delay: float) -> None:
        """Sleep for ``delay`` seconds unless cancelled first."""
        if delay > 0:
            try:
                await asyncio.wait_for(self._cancelled.wait(), timeout=delay)
            except asyncio.TimeoutError:
                return
        self.raise_if_cancelled()


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    policy: RetryPolicy = DEFAULT_POLICY,
    classifier: FailureClassifier | None = None,
) -> T:
    """Run ``operation`` under ``policy`` with a fresh, private executor."""
    executor = RetryExecutor(name=getattr(operation, "__name__", "operation"))
    return await executor.execute(operation, policy=policy, classifier=classifier)


def retry_with_backoff(
    policy: RetryPolicy = DEFAULT_POLICY,
    classifier: FailureClassifier | None = None,
) -> Callable:
    """Decorator for retrying async functions under a RetryPolicy.

    Each call of the decorated function gets its own RetryExecutor.

    Args:
        policy: Attempt budget and backoff configuration.
        classifier: Optional custom classifier overriding the default.

    Returns:
        Decorator that wraps an async function with retry logic.
    """

    def decorator(func: Callable) -> Callable:
        @wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            executor = RetryExecutor(name=func.__name__)
            return await executor.execute(
                lambda: func(*args, **kwargs), policy=policy, classifier=classifier
            )

        return wrapper

    return decorator
