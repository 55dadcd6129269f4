# tests/unit/logging/test_unit_context.py — v1
"""Tests for logging/context.py — contextual logging variables."""

from __future__ import annotations

from orgnet.logging.context import (
    clear_context,
    get_context,
    set_run_context,
    set_stage_context,
)


class TestLogContext:
    def setup_method(self):
        clear_context()

    def teardown_method(self):
        clear_context()

    def test_initial_state(self):
        ctx = get_context()
        assert ctx.organization_id is None
        assert ctx.run_id is None
        assert ctx.stage is None

    def test_set_run_context(self):
        set_run_context("acme", "run_1")
        ctx = get_context()
        assert ctx.organization_id == "acme"
        assert ctx.run_id == "run_1"

    def test_set_run_context_resets_stage(self):
        set_stage_context("community")
        set_run_context("acme", "run_2")
        assert get_context().stage is None

    def test_set_stage_context(self):
        set_run_context("acme", "run_1")
        set_stage_context("centrality")
        assert get_context().stage == "centrality"

    def test_as_dict_filters_none(self):
        set_run_context("acme", "run_1")
        d = get_context().as_dict()
        assert d == {"organization_id": "acme", "run_id": "run_1"}

    def test_clear(self):
        set_run_context("acme", "run_1")
        set_stage_context("patterns")
        clear_context()
        ctx = get_context()
        assert ctx.organization_id is None
        assert ctx.stage is None
