"""Bounded completion polling with exponential backoff.

Azure operations such as deallocation, snapshot creation and the backup
'Take Snapshot' task finish asynchronously. poll_until() re-checks a
condition with growing delays and gives up with OperationTimeoutError once
the deadline passes, so no wait can block a migration forever.

Only the status check is repeated. Errors raised by the check propagate on
the first occurrence: a failed query is fatal, not retried.

Usage:
    poll_until(
        lambda: client.get_power_state(rg, name) == "PowerState/deallocated",
        description=f"VM {name} to deallocate",
        timeout=config.deallocate_timeout,
    )
"""

import logging
import random
import time
from typing import Callable, TypeVar

from azmove.errors import OperationTimeoutError
from azmove.poll_config import PollConfig, get_poll_config

logger = logging.getLogger(__name__)

T = TypeVar("T")


def next_delay(delay: float, config: PollConfig) -> float:
    """Compute the delay before the next check.

    Args:
        delay: Current base delay in seconds
        config: Poll configuration

    Returns:
        Delay in seconds, jittered by up to 25% and capped at max_delay
    """
    actual_delay = delay
    if config.jitter_enabled:
        jitter_amount = delay * 0.25
        actual_delay = delay + random.uniform(-jitter_amount, jitter_amount)
    return max(0.0, min(actual_delay, config.max_delay))


def poll_until(
    check: Callable[[], T | None],
    description: str,
    timeout: float,
    config: PollConfig | None = None,
) -> T:
    """Call check() until it returns a truthy value.

    Args:
        check: Zero-argument callable; a truthy return ends the wait
        description: What is being waited for (used in logs and errors)
        timeout: Maximum seconds to wait
        config: Poll configuration (default: global PollConfig)

    Returns:
        The first truthy value returned by check()

    Raises:
        OperationTimeoutError: If the deadline passes first
        Exception: Anything raised by check(), unchanged
    """
    config = config or get_poll_config()
    start = time.monotonic()
    delay = config.initial_delay
    attempt = 0

    while True:
        attempt += 1
        result = check()
        if result:
            if attempt > 1:
                logger.debug(f"Done waiting for {description} after {attempt} checks")
            return result

        elapsed = time.monotonic() - start
        remaining = timeout - elapsed
        if remaining <= 0:
            raise OperationTimeoutError(
                f"Timed out after {elapsed:.0f}s waiting for {description}",
                waited_seconds=elapsed,
            )

        sleep_for = min(next_delay(delay, config), remaining)
        logger.info(f"Waiting for {description}... (next check in {sleep_for:.0f}s)")
        time.sleep(sleep_for)
        delay *= config.multiplier


__all__ = ["next_delay", "poll_until"]
