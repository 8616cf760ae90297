# presenter: the output layer of the pipeline.

# render() turns an Incident into a Payload. All formatting decisions live
# here — the models are kept as pure data containers with zero display logic.
#
# The payload's timestamp is the incident's updated_at. The reconciler reads
# it back from the posted message to decide whether the message is stale, so
# render() must stay deterministic: same incident in, same payload out.

import re

from discord.utils import format_dt

from incident_mirror.models import Incident, IncidentUpdate, Payload, PayloadField

# ─── Status colour map (anything unlisted renders as an open incident) ────────

COLOR_RESOLVED   = "#06a51b"   # green
COLOR_MONITORING = "#a3a506"   # yellow
COLOR_IDENTIFIED = "#a55806"   # orange
COLOR_OPEN       = "#a50626"   # red — investigating, unknown, future statuses

_STATUS_COLOR: dict[str, str] = {
    "resolved":   COLOR_RESOLVED,
    "monitoring": COLOR_MONITORING,
    "identified": COLOR_IDENTIFIED,
}

# Discord embed limits
MAX_TITLE_LEN = 256
MAX_FIELD_NAME_LEN = 256
MAX_FIELD_VALUE_LEN = 1024
MAX_FIELDS = 25
MAX_EMBED_LEN = 6000          # title + description + footer + every field name and value

EMPTY_BODY = "No message provided."

_WORD_RE = re.compile(r"[A-Z]{2,}(?=[A-Z][a-z]|\b|[^A-Za-z])|[A-Z]?[a-z]+|[A-Z]+|\d+")


def status_color(status: str) -> str:
    return _STATUS_COLOR.get(status.lower(), COLOR_OPEN)


def start_case(text: str) -> str:
    """'in_progress' → 'In Progress', 'postIncident' → 'Post Incident'."""
    return " ".join(w[0].upper() + w[1:] for w in _WORD_RE.findall(text))


def _truncate(text: str, limit: int) -> str:
    if len(text) <= limit:
        return text
    return text[: limit - 1].rstrip() + "…"


def _render_update(update: IncidentUpdate) -> PayloadField:
    name = start_case(update.status) or "Update"
    if update.created_at is not None:
        name = f"{name} ({format_dt(update.created_at, 'R')})"
    return PayloadField(
        name=_truncate(name, MAX_FIELD_NAME_LEN),
        value=_truncate(update.body.strip() or EMPTY_BODY, MAX_FIELD_VALUE_LEN),
    )


def describe(incident: Incident) -> str:
    components = ", ".join(c.name for c in incident.components)
    return f"• Impact: {incident.impact}\n• Affected Components: {components}"


def _fit_fields(fields: list[PayloadField], budget: int) -> list[PayloadField]:
    """Keep the newest fields that fit in budget characters; fields are newest first."""
    kept: list[PayloadField] = []
    for f in fields[:MAX_FIELDS]:
        size = len(f.name) + len(f.value)
        if size > budget:
            break
        kept.append(f)
        budget -= size
    return kept


def render(incident: Incident) -> Payload:
    fields = [_render_update(u) for u in incident.incident_updates]
    fields.reverse()

    title = _truncate(incident.name, MAX_TITLE_LEN)
    description = describe(incident)
    budget = MAX_EMBED_LEN - len(title) - len(description) - len(incident.id)

    return Payload(
        title=title,
        url=incident.shortlink,
        color=status_color(incident.status),
        footer=incident.id,
        timestamp=incident.updated_at,
        description=description,
        # newest first, so the caps drop the oldest entries
        fields=tuple(_fit_fields(fields, budget)),
    )
