"""Tests for incident rendering."""

from datetime import timedelta

import pytest

from conftest import T1, make_incident
from incident_mirror.models import IncidentUpdate
from incident_mirror.messaging import to_embed
from incident_mirror.presenter import (
    MAX_EMBED_LEN,
    MAX_FIELD_VALUE_LEN,
    MAX_FIELDS,
    render,
    start_case,
    status_color,
)


class TestStatusColor:
    @pytest.mark.parametrize(
        "status,color",
        [
            ("resolved", "#06a51b"),
            ("monitoring", "#a3a506"),
            ("identified", "#a55806"),
            ("investigating", "#a50626"),
            ("postmortem", "#a50626"),
            ("", "#a50626"),
        ],
    )
    def test_mapping(self, status, color):
        assert status_color(status) == color


class TestStartCase:
    def test_single_word(self):
        assert start_case("investigating") == "Investigating"

    def test_snake_case(self):
        assert start_case("in_progress") == "In Progress"

    def test_camel_case(self):
        assert start_case("postIncident") == "Post Incident"


class TestRender:
    def test_identity_fields(self):
        payload = render(make_incident())
        assert payload.title == "Elevated API errors"
        assert payload.url == "https://stspg.io/abc123"
        assert payload.footer == "abc123"
        assert payload.timestamp == T1

    def test_description_lists_components_in_order(self):
        payload = render(make_incident(components=("Voice", "API", "Gateway")))
        assert payload.description == "• Impact: major\n• Affected Components: Voice, API, Gateway"

    def test_updates_are_newest_first(self):
        updates = [
            IncidentUpdate("investigating", "first", T1 - timedelta(hours=2)),
            IncidentUpdate("identified", "second", T1 - timedelta(hours=1)),
            IncidentUpdate("monitoring", "third", T1),
        ]
        payload = render(make_incident(updates=updates))

        assert [f.value for f in payload.fields] == ["third", "second", "first"]
        assert payload.fields[0].name.startswith("Monitoring (<t:")
        assert payload.fields[0].name.endswith(":R>)")

    def test_render_is_deterministic(self):
        assert render(make_incident()) == render(make_incident())

    def test_long_body_is_truncated(self):
        updates = [IncidentUpdate("investigating", "x" * 5000, T1)]
        payload = render(make_incident(updates=updates))
        assert len(payload.fields[0].value) == MAX_FIELD_VALUE_LEN

    def test_empty_body_gets_placeholder(self):
        payload = render(make_incident(updates=[IncidentUpdate("resolved", "  ", None)]))
        assert payload.fields[0].value
        assert payload.fields[0].name == "Resolved"

    def test_field_cap_keeps_newest(self):
        updates = [IncidentUpdate("monitoring", f"u{i}", T1) for i in range(MAX_FIELDS + 5)]
        payload = render(make_incident(updates=updates))

        assert len(payload.fields) == MAX_FIELDS
        assert payload.fields[0].value == f"u{MAX_FIELDS + 4}"

    def test_embed_total_stays_within_discord_limit(self):
        updates = [IncidentUpdate("monitoring", f"{i}" + "y" * 899, T1) for i in range(10)]
        payload = render(make_incident(updates=updates))

        assert len(to_embed(payload)) <= MAX_EMBED_LEN
        # the newest updates survive, the oldest are dropped
        assert payload.fields[0].value.startswith("9")
        assert len(payload.fields) < 10
