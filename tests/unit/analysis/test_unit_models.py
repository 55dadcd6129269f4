# tests/unit/analysis/test_unit_models.py — v1
"""Tests for analysis/models.py — request validation and stage resolution."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from orgnet.analysis.models import (
    STAGE_ORDER,
    AnalysisOptions,
    AnalysisRequest,
    InvalidAnalysisRequestError,
    resolve_stages,
    validate_request,
)


class TestResolveStages:
    def test_full_expands_in_order(self):
        assert resolve_stages(["full"]) == STAGE_ORDER

    def test_subset_reordered(self):
        assert resolve_stages(["patterns", "network", "community"]) == [
            "network", "community", "patterns",
        ]

    def test_duplicates_collapse(self):
        assert resolve_stages(["network", "network"]) == ["network"]

    def test_empty(self):
        with pytest.raises(InvalidAnalysisRequestError, match="empty"):
            resolve_stages([])

    def test_unknown_lists_available(self):
        with pytest.raises(InvalidAnalysisRequestError, match="Available"):
            resolve_stages(["sentiment"])


class TestValidateRequest:
    def test_default_request_runs_everything(self):
        assert validate_request(AnalysisRequest(organization_id="acme")) == STAGE_ORDER

    def test_blank_organization(self):
        with pytest.raises(InvalidAnalysisRequestError, match="organization_id"):
            validate_request(AnalysisRequest(organization_id="  "))

    def test_inverted_dates(self):
        request = AnalysisRequest(
            organization_id="acme",
            options=AnalysisOptions(
                start_date=datetime(2026, 3, 1, tzinfo=timezone.utc),
                end_date=datetime(2026, 2, 1, tzinfo=timezone.utc),
            ),
        )
        with pytest.raises(InvalidAnalysisRequestError, match="after"):
            validate_request(request)

    def test_non_positive_option(self):
        request = AnalysisRequest(
            organization_id="acme", options=AnalysisOptions(min_community_size=0),
        )
        with pytest.raises(InvalidAnalysisRequestError, match="min_community_size"):
            validate_request(request)

    def test_confidence_range(self):
        request = AnalysisRequest(
            organization_id="acme", options=AnalysisOptions(min_confidence=1.2),
        )
        with pytest.raises(InvalidAnalysisRequestError, match="min_confidence"):
            validate_request(request)

    def test_naive_dates_become_utc(self):
        options = AnalysisOptions(end_date=datetime(2026, 3, 1))
        assert options.end_date.tzinfo == timezone.utc
