# tests/unit/logging/test_unit_context.py — v2
"""Tests for logging/context.py — contextual logging variables."""

from __future__ import annotations

import asyncio

import pytest

from loretech.logging.context import (
    clear_context,
    get_context,
    set_echo_context,
    set_run_context,
    set_step_context,
)


class TestLogContext:
    def setup_method(self):
        clear_context()

    def teardown_method(self):
        clear_context()

    def test_initial_state(self):
        ctx = get_context()
        assert ctx.run_id is None
        assert ctx.step is None
        assert ctx.echo_id is None

    def test_set_run_resets_step_and_echo(self):
        set_step_context("compose")
        set_echo_context("echo-old")
        set_run_context("run1")
        ctx = get_context()
        assert ctx.run_id == "run1"
        assert ctx.step is None
        assert ctx.echo_id is None

    def test_as_dict_filters_none(self):
        set_run_context("run1")
        set_step_context("sources")
        assert get_context().as_dict() == {"run_id": "run1", "step": "sources"}

    @pytest.mark.asyncio
    async def test_task_inherits_context(self):
        set_run_context("run1")
        set_step_context("webset")

        async def child():
            return get_context().run_id, get_context().step

        assert await asyncio.create_task(child()) == ("run1", "webset")
