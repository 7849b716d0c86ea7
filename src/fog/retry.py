"""Bounded retry policy for dialing machine sockets."""

import logging
from dataclasses import dataclass

from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_fixed,
)

from fog import constants
from fog._logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    """Fixed-delay retry with a hard attempt bound.

    Attributes:
        max_attempts: Total attempts, including the first one.
        delay: Seconds to sleep between attempts (0 in tests).
        retry_on: Exception types that trigger another attempt; anything
            else propagates immediately.
    """

    max_attempts: int = constants.CONNECT_ATTEMPTS
    delay: float = constants.CONNECT_DELAY_SECONDS
    retry_on: tuple[type[BaseException], ...] = (OSError,)

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {self.max_attempts}")
        if self.delay < 0:
            raise ValueError(f"delay must be >= 0, got {self.delay}")

    def retrying(self) -> AsyncRetrying:
        """Build a tenacity AsyncRetrying for one retry sequence.

        The last exception is re-raised unchanged once attempts run out.

        Usage:
            async for attempt in policy.retrying():
                with attempt:
                    await dial()

            conn = await policy.retrying()(dial, path)
        """
        return AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_fixed(self.delay),
            retry=retry_if_exception_type(self.retry_on),
            before_sleep=before_sleep_log(logger, logging.DEBUG),
            reraise=True,
        )
