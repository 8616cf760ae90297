# parses the Statuspage.io /api/v2/incidents.json response into Incident snapshots.

# Design decisions:
#   - One Incident per feed entry, in the order the feed delivered them
#     (newest first). The poll driver decides the processing order.
#   - incident_updates are kept in feed order too; the presenter owns display order.
#   - updated_at is the staleness comparison key, so an entry without a
#     parseable updated_at is dropped with a warning rather than guessed.
#   - Anything that is not {"incidents": [...]} is a FeedError: a malformed
#     snapshot must never look like "no incidents".

import logging
from typing import Any

from incident_mirror.errors import FeedError
from incident_mirror.models import Component, Incident, IncidentUpdate, parse_dt

log = logging.getLogger(__name__)


def _parse_update(entry: dict) -> IncidentUpdate:
    return IncidentUpdate(
        status=entry.get("status") or "unknown",
        body=entry.get("body") or "",
        created_at=parse_dt(entry.get("created_at")),
    )


def parse_incident(entry: dict) -> Incident | None:
    incident_id = entry.get("id")
    updated_at = parse_dt(entry.get("updated_at"))
    if not incident_id or updated_at is None:
        log.warning("Dropping incident without id/updated_at: %r", entry.get("id"))
        return None

    return Incident(
        id=str(incident_id),
        name=entry.get("name") or "Unknown Incident",
        status=entry.get("status") or "unknown",
        impact=entry.get("impact") or "none",
        shortlink=entry.get("shortlink") or "",
        updated_at=updated_at,
        components=tuple(
            Component(name=c.get("name") or "Unknown")
            for c in entry.get("components") or []
            if isinstance(c, dict)
        ),
        incident_updates=tuple(
            _parse_update(u)
            for u in entry.get("incident_updates") or []
            if isinstance(u, dict)
        ),
    )


def parse_incidents(data: Any) -> list[Incident]:
    """
    Parse a Statuspage.io incidents.json payload.

    Returns the incidents in feed order. Raises FeedError if the payload
    does not have the expected shape.
    """
    if not isinstance(data, dict) or not isinstance(data.get("incidents"), list):
        raise FeedError("incidents.json payload has no 'incidents' list")

    result: list[Incident] = []
    for entry in data["incidents"]:
        if not isinstance(entry, dict):
            log.warning("Skipping non-object incident entry: %r", entry)
            continue
        incident = parse_incident(entry)
        if incident is not None:
            result.append(incident)
    return result
