"""Tests for the per-phase execution context."""

import pytest
from phaseline.orchestration.context import ExecutionContext, bind


class TestExecutionContext:
    """Tests for ExecutionContext."""

    def test_item_access_writes_through(self):
        """Test item assignment lands in the working copy."""
        working = {"a": 1}
        ctx = bind("boot", working)

        ctx["b"] = 2
        del ctx["a"]

        assert working == {"b": 2}
        assert len(ctx) == 1
        assert list(ctx) == ["b"]

    def test_attribute_access(self):
        """Test keys are readable and assignable as attributes."""
        working = {"x": 1}
        ctx = bind("boot", working)

        ctx.y = ctx.x + 1

        assert working == {"x": 1, "y": 2}

    def test_missing_attribute(self):
        ctx = bind("boot", {})

        with pytest.raises(AttributeError):
            ctx.missing

    def test_delete_attribute(self):
        working = {"x": 1}
        ctx = bind("boot", working)

        del ctx.x

        assert working == {}

    def test_phase_and_effects(self):
        """Test the phase name and effect coordinator are exposed."""
        effects = object()
        ctx = bind("persist", {}, effects)

        assert ctx.phase == "persist"
        assert ctx.effects is effects

    def test_reserved_names_need_item_access(self):
        """Test names the context defines cannot be assigned as attributes."""
        ctx = bind("boot", {})

        with pytest.raises(AttributeError):
            ctx.phase = "other"
        with pytest.raises(AttributeError):
            ctx.keys = "value"

        ctx["phase"] = "stored"
        assert ctx["phase"] == "stored"
        assert ctx.phase == "boot"

    def test_private_names_not_exposed(self):
        """Test orchestrator internals are not reachable through attributes."""
        ctx = bind("boot", {"_ledger": 1})

        with pytest.raises(AttributeError):
            ctx._ledger

    def test_mapping_helpers(self):
        """Test MutableMapping helpers work on the working copy."""
        working = {}
        ctx = bind("boot", working)

        ctx.update({"a": 1})
        ctx.setdefault("b", 2)

        assert ctx.get("a") == 1
        assert "b" in ctx
        assert working == {"a": 1, "b": 2}

    def test_is_backed_by(self):
        working = {}
        ctx = ExecutionContext("boot", working)

        assert ctx.is_backed_by(ctx)
        assert ctx.is_backed_by(working)
        assert not ctx.is_backed_by({})

    def test_fresh_context_per_bind(self):
        """Test bind never hands out the same object twice."""
        working = {}

        assert bind("boot", working) is not bind("boot", working)
