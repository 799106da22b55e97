"""
Bounded poll-until-terminal loop.

The loop knows nothing about OpenAI payloads: it is driven by a status fetch
coroutine and a terminal-state predicate. Reaching the attempt ceiling while
still non-terminal is reported as `timed_out`, not raised.
"""
import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

logger = logging.getLogger(__name__)

MISSING = "missing"
ERROR = "error"


@dataclass(frozen=True)
class PollResult:
    status: str
    attempts: int
    timed_out: bool = False
    error: Optional[str] = None

    @property
    def completed(self) -> bool:
        return self.status == "completed" and not self.timed_out


async def poll_until_terminal(
    fetch_status: Callable[[], Awaitable[Optional[str]]],
    is_terminal: Callable[[str], bool],
    initial_status: str,
    max_attempts: int = 30,
    interval: float = 1.0,
) -> PollResult:
    """
    Re-fetch a job's status until it is terminal or `max_attempts` ticks ran.

    Each tick sleeps `interval` then calls `fetch_status`. A fetch returning
    None ends the loop with status "missing"; a fetch raising ends it with
    status "error". Ticks are never retried.
    """
    status = initial_status
    attempts = 0
    while attempts < max_attempts and not is_terminal(status):
        await asyncio.sleep(interval)
        attempts += 1
        try:
            fetched = await fetch_status()
        except Exception as e:
            logger.warning("poll attempt %d failed: %s", attempts, e)
            return PollResult(status=ERROR, attempts=attempts, error=str(e))
        if fetched is None:
            logger.warning("poll attempt %d: job not found", attempts)
            return PollResult(status=MISSING, attempts=attempts)
        status = fetched
        logger.debug("poll attempt %d: status=%s", attempts, status)

    if not is_terminal(status):
        logger.info("polling gave up after %d attempts (status=%s)", attempts, status)
        return PollResult(status=status, attempts=attempts, timed_out=True)
    return PollResult(status=status, attempts=attempts)
