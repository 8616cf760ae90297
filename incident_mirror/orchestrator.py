# IncidentMirror: one reconciliation pass over the current feed snapshot.

# Responsibilities:
#   - Build the shared aiohttp session and everything that hangs off it
#     (feed client, webhook client, mapping store, reconciler)
#   - Fetch the snapshot and walk it oldest incident first
#   - Isolate failures: one bad incident is logged and the pass moves on
#
# Concurrency model:
#   Strictly sequential. Every incident funnels through the same mapping
#   file and the same rate-limited webhook, so each call is awaited before
#   the next incident is touched. Interrupting between incidents is safe:
#   the mapping is only written after a send succeeded.

import logging
from collections import Counter
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import timedelta
from typing import AsyncIterator

import aiohttp

from incident_mirror.config import MirrorConfig
from incident_mirror.errors import StoreError
from incident_mirror.http_client import FeedClient, IncidentFeed
from incident_mirror.messaging import DiscordWebhookClient
from incident_mirror.reconciler import Action, Reconciler
from incident_mirror.store import JsonMappingStore

log = logging.getLogger(__name__)

USER_AGENT = "IncidentMirror/1.0 (status-mirror)"


@dataclass
class PassSummary:
    actions: Counter = field(default_factory=Counter)
    failed: int = 0

    def __str__(self) -> str:
        parts = [f"{a.value}={self.actions[a]}" for a in Action]
        return " ".join(parts + [f"failed={self.failed}"])


class IncidentMirror:

    def __init__(self, feed: IncidentFeed, reconciler: Reconciler) -> None:
        self._feed = feed
        self._reconciler = reconciler

    async def run_once(self) -> PassSummary:
        """
        Run one full pass.

        A FeedError propagates before any incident is touched. A StoreError
        propagates from wherever it happens: without a trustworthy mapping
        every further send risks a duplicate. Anything else is per incident.
        """
        incidents = await self._feed.fetch_incidents()
        summary = PassSummary()

        # the feed is newest first; handle the oldest first so an interrupted
        # pass has already settled everything older than where it stopped
        for incident in reversed(incidents):
            try:
                action = await self._reconciler.reconcile(incident)
            except StoreError:
                raise
            except Exception:
                log.exception("Could not check incident %s.", incident.id)
                summary.failed += 1
                continue
            summary.actions[action] += 1

        log.info("Pass done over %d incident(s): %s", len(incidents), summary)
        return summary


@asynccontextmanager
async def open_mirror(config: MirrorConfig) -> AsyncIterator[IncidentMirror]:
    """Wire an IncidentMirror for config; the HTTP session lives as long as the context."""
    store = JsonMappingStore(config.messages_file)
    store.ensure()

    timeout = aiohttp.ClientTimeout(total=config.request_timeout_seconds)
    async with aiohttp.ClientSession(headers={"User-Agent": USER_AGENT}, timeout=timeout) as session:
        feed = FeedClient(session, config.feed_url, timeout_seconds=config.request_timeout_seconds)
        messaging = DiscordWebhookClient(
            config.webhook_url, session, timeout_seconds=config.request_timeout_seconds,
        )
        reconciler = Reconciler(
            store=store,
            messaging=messaging,
            ignore_window=timedelta(days=config.ignore_days),
        )
        log.info(
            "Mirroring %s, ignoring incidents not updated in %d day(s).",
            config.feed_url, config.ignore_days,
        )
        yield IncidentMirror(feed, reconciler)
