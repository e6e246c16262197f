"""
VidLook Resilience Module

Retry logic for provider requests: a bounded number of attempts with a fixed
(or optionally exponential) delay between them, and a hook that lets the
caller switch providers before the next attempt.
"""

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, TypeVar

from .config import APP_NAME, EngineSettings
from .constants import NetworkConstants
from .exceptions import (
    EmptyResultError,
    RelayRejectedError,
    TransportError,
    UpstreamStatusError,
)

logger = logging.getLogger(APP_NAME + ".resilience")

T = TypeVar("T")


@dataclass
class RetryConfig:
    """Configuration for retry logic."""

    max_attempts: int = NetworkConstants.DEFAULT_RETRY_ATTEMPTS
    base_delay: float = NetworkConstants.DEFAULT_RETRY_DELAY  # seconds
    max_delay: float = NetworkConstants.MAX_RETRY_DELAY
    exponential_base: float = 1.0  # 1.0 keeps the delay fixed
    jitter: bool = False

    def __post_init__(self):
        if self.max_attempts < NetworkConstants.MIN_RETRY_ATTEMPTS:
            raise ValueError(
                f"max_attempts must be at least {NetworkConstants.MIN_RETRY_ATTEMPTS}"
            )
        if self.base_delay < 0:
            raise ValueError("base_delay cannot be negative")

    @classmethod
    def from_settings(cls, settings: EngineSettings) -> "RetryConfig":
        return cls(
            max_attempts=max(
                NetworkConstants.MIN_RETRY_ATTEMPTS,
                min(settings.max_retries, NetworkConstants.MAX_RETRY_ATTEMPTS),
            ),
            base_delay=settings.retry_delay,
        )


class RetryableOperation:
    """
    Handles retry logic for async provider operations.
    """

    def __init__(self, retry_config: Optional[RetryConfig] = None):
        """
        Initialize RetryableOperation.

        Args:
            retry_config: Configuration for retry behavior
        """
        self.config = retry_config or RetryConfig()

    def should_retry(self, exception: Exception, attempt: int) -> bool:
        """
        Determine if an operation should be retried based on the exception type.

        Args:
            exception: The exception that occurred
            attempt: Current attempt number (1-based)

        Returns:
            bool: True if the operation should be retried
        """
        if attempt >= self.config.max_attempts:
            return False

        # Empty answers and relay refusals would repeat on every attempt
        if isinstance(exception, (EmptyResultError, RelayRejectedError)):
            return False
        return isinstance(exception, (TransportError, UpstreamStatusError))

    def calculate_delay(self, attempt: int) -> float:
        """
        Calculate delay before next retry attempt.

        Args:
            attempt: Current attempt number (1-based)

        Returns:
            float: Delay in seconds
        """
        delay = min(
            self.config.base_delay * (self.config.exponential_base ** (attempt - 1)),
            self.config.max_delay,
        )

        if self.config.jitter:
            jitter_range = delay * 0.25
            delay += random.uniform(-jitter_range, jitter_range)

        return max(0.0, delay)

    async def execute(
        self,
        operation: Callable[[int], Awaitable[T]],
        operation_name: str = "operation",
        on_retry: Optional[Callable[[Exception, int], None]] = None,
        max_attempts: Optional[int] = None,
    ) -> T:
        """
        Execute an async operation with retry logic.

        Args:
            operation: Coroutine function called with the attempt number
            operation_name: Name for logging purposes
            on_retry: Called with the error and attempt number before a retry
            max_attempts: Overrides the configured attempt budget

        Returns:
            T: Result of the operation

        Raises:
            Exception: The last exception if all retries fail
        """
        budget = max_attempts if max_attempts is not None else self.config.max_attempts
        if budget < 1:
            raise ValueError("max_attempts must be at least 1")
        policy = self
        if budget != self.config.max_attempts:
            policy = RetryableOperation(
                RetryConfig(
                    max_attempts=budget,
                    base_delay=self.config.base_delay,
                    max_delay=self.config.max_delay,
                    exponential_base=self.config.exponential_base,
                    jitter=self.config.jitter,
                )
            )

        last_exception: Optional[Exception] = None

        for attempt in range(1, budget + 1):
            try:
                logger.debug(f"Executing {operation_name}, attempt {attempt}/{budget}")
                result = await operation(attempt)

                if attempt > 1:
                    logger.info(f"{operation_name} succeeded on attempt {attempt}")

                return result

            except Exception as e:
                last_exception = e

                if not policy.should_retry(e, attempt):
                    if attempt < budget:
                        logger.warning(
                            f"{operation_name} failed on attempt {attempt}, not retrying: {e}"
                        )
                    else:
                        logger.error(
                            f"{operation_name} failed on final attempt {attempt}: {e}"
                        )
                    break

                if on_retry is not None:
                    on_retry(e, attempt)

                delay = policy.calculate_delay(attempt)
                logger.warning(
                    f"{operation_name} failed on attempt {attempt}, "
                    f"{budget - attempt} attempts left, retrying in {delay:.2f}s: {e}"
                )
                if delay > 0:
                    await asyncio.sleep(delay)

        # All retries exhausted
        raise last_exception
