"""
Unit Tests for Optimistic Updates
"""
import pytest

from leadsync.domain.services.optimistic import with_optimistic_update


class TestWithOptimisticUpdate:
    """Tests for with_optimistic_update."""

    @pytest.mark.asyncio
    async def test_commit_success_keeps_change(self):
        state = {"items": [1, 2]}

        async def commit():
            return "ok"

        result = await with_optimistic_update(
            snapshot=lambda: list(state["items"]),
            apply=lambda: state["items"].append(3),
            commit=commit,
            revert=lambda previous: state.update(items=previous),
        )

        assert result == "ok"
        assert state["items"] == [1, 2, 3]

    @pytest.mark.asyncio
    async def test_commit_failure_restores_snapshot(self):
        """Test that the pre-change state is restored and the error re-raised."""
        state = {"items": [1, 2]}
        seen_during_commit = []

        async def commit():
            seen_during_commit.extend(state["items"])
            raise ValueError("write rejected")

        with pytest.raises(ValueError, match="write rejected"):
            await with_optimistic_update(
                snapshot=lambda: list(state["items"]),
                apply=lambda: state["items"].append(3),
                commit=commit,
                revert=lambda previous: state.update(items=previous),
            )

        assert seen_during_commit == [1, 2, 3]
        assert state["items"] == [1, 2]
