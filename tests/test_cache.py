"""
Tests for the result cache.
"""

import asyncio

import pytest

from toolbridge.core.models import ExecutionOutcome
from toolbridge.core.services.result_cache import ResultCache


class _Compute:
    """Counting compute function."""

    def __init__(self, outcome: ExecutionOutcome, delay: float = 0):
        self.outcome = outcome
        self.delay = delay
        self.calls = 0

    async def __call__(self) -> ExecutionOutcome:
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        return self.outcome


class TestResultCache:
    @pytest.mark.asyncio
    async def test_miss_then_hit(self):
        cache = ResultCache()
        compute = _Compute(ExecutionOutcome.success("src", ["payload"]))

        first = await cache.get_or_compute("src", "doc", "h1", compute)
        second = await cache.get_or_compute("src", "doc", "h1", compute)

        assert compute.calls == 1
        assert first.payload == second.payload == ["payload"]
        assert second.metadata == {"cached": True}
        assert cache.stats() == {"entries": 1, "hits": 1, "misses": 1}
        assert cache.get("src", "doc", "h1") == ["payload"]

    @pytest.mark.asyncio
    async def test_new_content_recomputes_and_drops_old(self):
        cache = ResultCache()
        compute = _Compute(ExecutionOutcome.success("src", "x"))

        await cache.get_or_compute("src", "doc", "h1", compute)
        await cache.get_or_compute("src", "doc", "h2", compute)

        assert compute.calls == 2
        assert cache.get("src", "doc", "h1") is None
        assert cache.get("src", "doc", "h2") == "x"

    @pytest.mark.asyncio
    async def test_revision_change_invalidates_every_source(self):
        cache = ResultCache()
        compute = _Compute(ExecutionOutcome.success("a", 1))
        await cache.get_or_compute("a", "doc", "h1", compute)
        await cache.get_or_compute("b", "doc", "h1", compute)
        assert len(cache) == 2

        await cache.get_or_compute("a", "doc", "h2", compute)
        assert cache.get("b", "doc", "h1") is None

    @pytest.mark.asyncio
    async def test_chain_content_does_not_invalidate(self):
        """Intermediate content with the same revision keeps other entries."""
        cache = ResultCache()
        compute = _Compute(ExecutionOutcome.success("a", 1))
        await cache.get_or_compute("a", "doc", "h1", compute, revision="h1")
        await cache.get_or_compute("b", "doc", "mid", compute, revision="h1")
        assert cache.get("a", "doc", "h1") == 1
        assert cache.get("b", "doc", "mid") == 1

    @pytest.mark.asyncio
    async def test_documents_are_independent(self):
        cache = ResultCache()
        compute = _Compute(ExecutionOutcome.success("a", 1))
        await cache.get_or_compute("a", "one", "h1", compute)
        await cache.get_or_compute("a", "two", "h9", compute)
        assert cache.get("a", "one", "h1") == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "outcome",
        [
            ExecutionOutcome.failure("src", "boom"),
            ExecutionOutcome.timeout("src", 1.0),
            ExecutionOutcome.skip("src", "condition"),
        ],
    )
    async def test_only_successes_are_stored(self, outcome):
        cache = ResultCache()
        compute = _Compute(outcome)
        await cache.get_or_compute("src", "doc", "h1", compute)
        await cache.get_or_compute("src", "doc", "h1", compute)
        assert compute.calls == 2
        assert len(cache) == 0

    @pytest.mark.asyncio
    async def test_concurrent_misses_compute_once(self):
        cache = ResultCache()
        compute = _Compute(ExecutionOutcome.success("src", "v"), delay=0.05)
        results = await asyncio.gather(
            cache.get_or_compute("src", "doc", "h1", compute),
            cache.get_or_compute("src", "doc", "h1", compute),
        )
        assert compute.calls == 1
        assert [r.payload for r in results] == ["v", "v"]

    @pytest.mark.asyncio
    async def test_stale_result_not_stored(self):
        """A result computed against an old revision is returned but not kept."""
        cache = ResultCache()
        slow = _Compute(ExecutionOutcome.success("src", "old"), delay=0.05)
        fast = _Compute(ExecutionOutcome.success("other", "new"))

        task = asyncio.ensure_future(cache.get_or_compute("src", "doc", "h1", slow))
        await asyncio.sleep(0)
        await cache.get_or_compute("other", "doc", "h2", fast)
        result = await task

        assert result.payload == "old"
        assert cache.get("src", "doc", "h1") is None

    @pytest.mark.asyncio
    async def test_invalidate_and_clear(self):
        cache = ResultCache()
        compute = _Compute(ExecutionOutcome.success("a", 1))
        await cache.get_or_compute("a", "doc", "h1", compute)
        cache.invalidate("doc")
        assert len(cache) == 0

        await cache.get_or_compute("a", "doc", "h1", compute)
        cache.clear()
        assert cache.stats() == {"entries": 0, "hits": 0, "misses": 0}
