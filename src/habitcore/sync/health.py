"""Remote gateway health tracking.

Counts consecutive failed remote writes. After ``failure_threshold`` of them
the gateway is considered down for ``cooldown_seconds``: the offline queue
then stores new writes straight away instead of making the user wait for a
network call that is almost certainly going to time out. Any success, or the
host reporting that connectivity is back, marks the gateway healthy again.
"""

import time
from collections.abc import Callable
from dataclasses import dataclass


@dataclass
class GatewayHealthConfig:
    failure_threshold: int = 3
    """Consecutive failures before the gateway is treated as down."""

    cooldown_seconds: float = 30.0
    """How long to skip immediate delivery once down."""


class GatewayHealth:
    """Consecutive-failure breaker for the remote gateway.

    Usage::

        health = GatewayHealth()
        if health.is_available():
            try:
                await mutation.apply(gateway, user_id)
                health.record_success()
            except TransientIOError:
                health.record_failure()
    """

    def __init__(self, config: GatewayHealthConfig | None = None, clock: Callable[[], float] | None = None):
        self.config = config or GatewayHealthConfig()
        self._clock = clock or time.monotonic
        self._consecutive_failures = 0
        self._down_until = 0.0
        self.total_successes = 0
        self.total_failures = 0

    @property
    def consecutive_failures(self) -> int:
        return self._consecutive_failures

    def record_success(self) -> None:
        self.total_successes += 1
        self.reset()

    def record_failure(self) -> None:
        self.total_failures += 1
        self._consecutive_failures += 1
        if self._consecutive_failures >= self.config.failure_threshold:
            self._down_until = self._clock() + self.config.cooldown_seconds

    def is_available(self) -> bool:
        """True unless recent failures put the gateway in cooldown."""
        return self._clock() >= self._down_until

    def reset(self) -> None:
        self._consecutive_failures = 0
        self._down_until = 0.0

    def get_status(self) -> dict:
        return {
            "available": self.is_available(),
            "consecutive_failures": self._consecutive_failures,
            "successes": self.total_successes,
            "failures": self.total_failures,
        }
