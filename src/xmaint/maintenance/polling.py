"""
Convergence polling

Waits for externally owned state to reach a target condition by probing it on
a fixed interval. Time is counted in elapsed intervals rather than wall-clock
so the wait is deterministic: a budget of N retries at I seconds times out
after N * I seconds of sleeping, however long the probes themselves take.
"""

import time
from dataclasses import dataclass
from typing import Any, Callable, Optional

from loguru import logger

from ..exceptions import ConvergenceTimeoutError, UnreachableError


@dataclass
class PollResult:
    """Outcome of a successful convergence wait"""
    value: Any
    attempts: int
    elapsed: float


def poll_until(probe: Callable[[], Any],
               predicate: Callable[[Any], bool],
               description: str,
               interval: float,
               max_retries: int,
               sleep: Callable[[float], None] = time.sleep,
               on_attempt: Optional[Callable[[int, Any], None]] = None) -> PollResult:
    """Probe until predicate(value) holds or the retry budget is exhausted

    The first probe happens immediately; every further probe is preceded by one
    interval of sleep. UnreachableError from the probe counts as a failed attempt
    (the node may come back within the budget); any other exception propagates.

    Raises:
        ConvergenceTimeoutError: after max_retries sleeps without convergence
    """
    attempts = 0
    last_value: Any = None

    while True:
        attempts += 1
        try:
            last_value = probe()
        except UnreachableError as e:
            logger.warning(f"Probe for {description} failed (attempt {attempts}): {e}")
            last_value = f"unreachable: {e}"
        else:
            if predicate(last_value):
                elapsed = (attempts - 1) * interval
                logger.debug(f"{description} converged after {attempts} attempt(s)")
                return PollResult(value=last_value, attempts=attempts, elapsed=elapsed)

        if on_attempt:
            on_attempt(attempts, last_value)

        if attempts > max_retries:
            raise ConvergenceTimeoutError(description, attempts, (attempts - 1) * interval, last_value)

        logger.debug(f"Waiting for {description}: attempt {attempts}/{max_retries + 1}, last observed {last_value}")
        sleep(interval)
