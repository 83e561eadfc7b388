"""
urinorm.retry — Retry budget, backoff scale and transient status handling.
"""

import logging
import time
from dataclasses import dataclass, field

from urinorm.errors import ConfigurationError, NonRetryableStatus, TransportFailure
from urinorm.settings import SUCCESS_STATUS_CODES, TRANSIENT_STATUS_CODES
from urinorm.transport import Err, Ok, SendResult

logger = logging.getLogger(__name__)

SCALE_CONSTANT = "constant"
SCALE_MULTIPLICATIVE = "multiplicative"
SCALE_POWER = "power"
SCALES = (SCALE_CONSTANT, SCALE_MULTIPLICATIVE, SCALE_POWER)


@dataclass
class RetryPolicy:
    """
    Decides, after each exchange, whether to try again.

    ``max_attempts`` counts retries, not requests: with ``max_attempts=N`` a
    request that keeps failing transiently is sent N + 1 times.  Attempt 1
    is the first retry; the initial request is never delayed.
    """

    max_attempts: int = 0
    base_delay: float = 0.0
    scale: str = SCALE_CONSTANT
    retryable_statuses: frozenset = field(default_factory=lambda: TRANSIENT_STATUS_CODES)

    def __post_init__(self):
        if self.scale not in SCALES:
            raise ConfigurationError(f"Unknown scale {self.scale}")
        if self.max_attempts < 0:
            raise ConfigurationError(f"max_attempts must be >= 0, got {self.max_attempts}")
        if self.base_delay < 0:
            raise ConfigurationError(f"base_delay must be >= 0, got {self.base_delay}")
        self.retryable_statuses = frozenset(self.retryable_statuses)

    def delay(self, attempt: int) -> float:
        """Seconds to wait before retry number ``attempt``."""
        if self.scale == SCALE_MULTIPLICATIVE:
            return self.base_delay * attempt
        if self.scale == SCALE_POWER:
            return self.base_delay ** attempt
        return self.base_delay

    def sleep(self, attempt: int):
        wait = self.delay(attempt)
        if wait > 0:
            time.sleep(wait)

    def should_retry(self, outcome: SendResult, attempt: int, target: str) -> bool:
        """
        Return False on success, sleep and return True on a transient
        condition within budget, raise otherwise.
        """
        if isinstance(outcome, Ok):
            code = outcome.response.status_code
            if code in SUCCESS_STATUS_CODES:
                return False
            if code in self.retryable_statuses and attempt <= self.max_attempts:
                logger.info("HTTP %s from %s, retry %d/%d", code, target, attempt, self.max_attempts)
                self.sleep(attempt)
                return True
            logger.warning("Giving up on %s after HTTP %s", target, code)
            raise NonRetryableStatus(target, code)

        if isinstance(outcome, Err):
            if attempt > self.max_attempts:
                logger.warning("Giving up on %s: %s", target, outcome.message)
                raise TransportFailure(target, outcome.message)
            logger.info("Transport error for %s (%s), retry %d/%d",
                        target, outcome.message, attempt, self.max_attempts)
            self.sleep(attempt)
            return True

        raise TypeError(f"Unexpected send outcome {outcome!r}")
