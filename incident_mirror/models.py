import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone

log = logging.getLogger(__name__)


def parse_dt(value: str | None) -> datetime | None:
    """
    Parse an ISO 8601 timestamp string into an aware UTC datetime.

    Statuspage returns strings like '2024-11-03T14:32:00.000Z'.
    We store datetimes (not raw strings) so:
      - Comparison is chronologically correct, never lexicographic
      - Timezone bugs surface at parse time, not silently during comparison
      - Display formatting is controlled in one place
    """
    if not value:
        return None

    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00")).astimezone(timezone.utc)
    except ValueError:
        log.warning("Could not parse datetime string: %r", value)
        return None


def as_utc(dt: datetime | None) -> datetime | None:
    """Normalise a datetime read back from the messaging platform for comparison."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


@dataclass(frozen=True)
class Component:
    name: str


@dataclass(frozen=True)
class IncidentUpdate:
    """One entry of an incident's update log."""
    status: str
    body: str
    created_at: datetime | None


@dataclass(frozen=True)
class Incident:
    """
    Snapshot of one incident as delivered by a single poll.

    incident_updates keep the order the feed delivered them in;
    the presenter decides how they are displayed.
    """
    id: str
    name: str
    status: str                    # investigating | identified | monitoring | resolved | anything else
    impact: str                    # none | minor | major | critical
    shortlink: str
    updated_at: datetime           # comparison key against the rendered message
    components: tuple[Component, ...] = ()
    incident_updates: tuple[IncidentUpdate, ...] = ()


@dataclass(frozen=True)
class PayloadField:
    name: str
    value: str


@dataclass(frozen=True)
class Payload:
    """Platform-agnostic rendering of an incident, ready to send or compare."""
    title: str
    url: str
    color: str                     # "#rrggbb"
    footer: str                    # incident id
    timestamp: datetime | None
    description: str
    fields: tuple[PayloadField, ...] = ()


@dataclass(frozen=True)
class RemoteMessage:
    """An existing message as read back from the messaging platform."""
    message_id: str
    embeds: tuple[Payload, ...] = field(default_factory=tuple)
