# tests/unit/core/test_unit_models.py — v1
"""Tests for core/models.py — domain model validation."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from orgnet.core.models import (
    DERIVED_FIELDS,
    AnalysisJobRecord,
    CommunicationEdge,
    CommunicationEvent,
    Insight,
    Person,
    normalize_identity,
    validate_derived_fields,
)


class TestCommunicationEvent:
    def test_naive_timestamp_becomes_utc(self):
        event = CommunicationEvent(
            organization_id="acme", sender="a", recipients=["b"],
            timestamp=datetime(2026, 1, 5, 9, 30),
        )
        assert event.timestamp.tzinfo == timezone.utc

    def test_aware_timestamp_kept(self):
        ts = datetime(2026, 1, 5, 9, 30, tzinfo=timezone.utc)
        event = CommunicationEvent(organization_id="acme", sender="a", timestamp=ts)
        assert event.timestamp == ts
        assert event.recipients == []
        assert event.channel == "email"

    def test_iso_string_timestamp(self):
        event = CommunicationEvent(
            organization_id="acme", sender="a", timestamp="2026-01-05T09:30:00Z",
        )
        assert event.timestamp.hour == 9


class TestNormalizeIdentity:
    def test_strip_and_lower(self):
        assert normalize_identity("  Ana@ACME.com ") == "ana@acme.com"


class TestPerson:
    def test_derived_empty_by_default(self):
        p = Person(person_id="a", organization_id="acme", department="Eng")
        assert p.derived() == {}

    def test_derived_returns_set_fields(self):
        p = Person(person_id="a", organization_id="acme", pagerank=0.5, community_id="comm_000")
        assert p.derived() == {"community_id": "comm_000", "pagerank": 0.5}

    def test_derived_fields_are_person_fields(self):
        assert DERIVED_FIELDS <= set(Person.model_fields)


class TestCommunicationEdge:
    def test_valid_edge(self):
        edge = CommunicationEdge(organization_id="acme", source="a", target="b", message_count=3)
        assert edge.key == ("a", "b")
        assert edge.recent_count == 0

    def test_self_edge_rejected(self):
        with pytest.raises(ValidationError, match="self-edge"):
            CommunicationEdge(organization_id="acme", source="a", target="a", message_count=3)

    def test_zero_weight_rejected(self):
        with pytest.raises(ValidationError):
            CommunicationEdge(organization_id="acme", source="a", target="b", message_count=0)

    def test_negative_recent_rejected(self):
        with pytest.raises(ValidationError):
            CommunicationEdge(
                organization_id="acme", source="a", target="b",
                message_count=1, recent_count=-1,
            )


class TestValidateDerivedFields:
    def test_known_fields_pass(self):
        validate_derived_fields({"pagerank": 1.0, "hierarchy_gap": 2})

    def test_identity_field_rejected(self):
        with pytest.raises(ValueError, match="department"):
            validate_derived_fields({"department": "Sales"})


class TestInsightAndJob:
    def test_insight_defaults(self):
        insight = Insight(
            insight_id="ins_1", organization_id="acme", type="t", category="c",
            severity="low", title="x", description="y", entity_id="acme",
        )
        assert insight.entity_type == "organization"
        assert insight.created_at.tzinfo is not None

    def test_invalid_severity(self):
        with pytest.raises(ValidationError):
            Insight(
                insight_id="ins_1", organization_id="acme", type="t", category="c",
                severity="urgent", title="x", description="y", entity_id="acme",
            )

    def test_job_record_defaults(self):
        job = AnalysisJobRecord(job_id="job_1", organization_id="acme")
        assert job.status == "pending"
        assert job.completed_at is None
