# IncidentWatcher: repeats mirror passes on a fixed interval.

# responsibilities:
#   - run one pass every poll interval
#   - retry with exponential backoff when the feed is unreachable
#   - stop the whole run when the mapping store is unusable

import asyncio
import logging

from incident_mirror.config import RetryConfig
from incident_mirror.errors import FeedError
from incident_mirror.orchestrator import IncidentMirror

log = logging.getLogger(__name__)


class IncidentWatcher:
    """
    Runs an infinite poll loop around a single IncidentMirror.

    Backoff formula: delay = retry.base_delay_seconds * 2^retry_count
    Capped at retry.max_delay_seconds to avoid indefinite silence.
    retry_count is capped at retry.max_retries before the formula to prevent
    integer overflow in very long-running processes.

    StoreError is not caught here: it ends the run.
    """

    def __init__(self, mirror: IncidentMirror, interval_seconds: float, retry: RetryConfig | None = None) -> None:
        self._mirror = mirror
        self.interval_seconds = interval_seconds
        self._retry = retry or RetryConfig()

    def backoff_delay(self, retry_count: int) -> float:
        return min(self._retry.base_delay_seconds * (2 ** retry_count), self._retry.max_delay_seconds)

    async def run_forever(self) -> None:
        retry_count = 0
        log.info("Polling every %ss.", self.interval_seconds)

        while True:
            try:
                await self._mirror.run_once()
                retry_count = 0  # reset backoff on every successful pass

            except FeedError as exc:
                retry_count = min(retry_count + 1, self._retry.max_retries)  # cap before formula
                delay = self.backoff_delay(retry_count)
                log.warning(
                    "Feed unavailable (%s). Retry %d/%d in %ds.",
                    exc, retry_count, self._retry.max_retries, delay,
                )
                await asyncio.sleep(delay)
                continue  # skip the normal sleep at the bottom

            except asyncio.CancelledError:
                log.info("Watcher cancelled.")
                raise  # propagate so the task terminates cleanly

            await asyncio.sleep(self.interval_seconds)
