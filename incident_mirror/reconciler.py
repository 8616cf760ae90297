# Reconciler: keeps exactly one message per incident in step with the feed.

# Per incident:
#   1. too old (updated_at outside the ignore window) → skip, touch nothing
#   2. no mapping entry                                → create
#   3. mapping entry, message gone, unreadable or empty → create (new id replaces old)
#   4. message timestamp != incident updated_at         → edit in place
#   5. otherwise                                       → already in sync
#
# The store is written only on the create path, and only after the send
# returned a message id. Any difference in timestamps counts as stale, not
# just "incident is newer": the message must mirror the feed exactly.

import enum
import logging
from datetime import datetime, timedelta, timezone
from typing import Callable

from incident_mirror.errors import MessageNotFound, MessagingError
from incident_mirror.messaging import MessagingClient
from incident_mirror.models import Incident
from incident_mirror.presenter import render
from incident_mirror.store import MappingStore

log = logging.getLogger(__name__)


class Action(enum.Enum):
    SKIPPED = "skipped"        # outside the freshness window
    CREATED = "created"
    UPDATED = "updated"
    UNCHANGED = "unchanged"


def _utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


class Reconciler:

    def __init__(
        self,
        store: MappingStore,
        messaging: MessagingClient,
        ignore_window: timedelta = timedelta(days=30),
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._store = store
        self._messaging = messaging
        self._ignore_window = ignore_window
        self._clock = clock

    def is_fresh(self, incident: Incident) -> bool:
        return self._clock() - incident.updated_at <= self._ignore_window

    async def reconcile(self, incident: Incident) -> Action:
        if not self.is_fresh(incident):
            log.debug("Skipping incident %s, last updated %s", incident.id, incident.updated_at)
            return Action.SKIPPED

        message_id = self._store.get(incident.id)
        if message_id is None:
            return await self._create(incident)

        try:
            message = await self._messaging.fetch(message_id)
        except MessageNotFound:
            log.info("Message %s for incident %s is gone, recreating", message_id, incident.id)
            return await self._create(incident)
        except MessagingError as exc:
            log.warning("Could not fetch message %s for incident %s (%s), recreating", message_id, incident.id, exc)
            return await self._create(incident)

        if message is None:
            log.info("Message %s for incident %s has no content, recreating", message_id, incident.id)
            return await self._create(incident)

        if message.embeds and message.embeds[0].timestamp == incident.updated_at:
            log.debug("Incident %s already in sync (message %s)", incident.id, message_id)
            return Action.UNCHANGED

        return await self._update(message_id, incident)

    async def _create(self, incident: Incident) -> Action:
        message_id = await self._messaging.send(render(incident))
        self._store.put(incident.id, message_id)
        log.info("Created new message for incident %s with message-id %s.", incident.id, message_id)
        return Action.CREATED

    async def _update(self, message_id: str, incident: Incident) -> Action:
        log.info("Updating message %s of incident %s.", message_id, incident.id)
        await self._messaging.edit(message_id, render(incident))
        return Action.UPDATED
