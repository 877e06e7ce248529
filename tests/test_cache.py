"""Tests for cache.py - TTL snapshots, stale fallback and refresh coalescing."""

import asyncio

import pytest

from chordbook.cache import EntityCache
from chordbook.errors import DocumentUnavailable, EmptyDocument, FetchFailed


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


class ScriptedLoader:
    """Loader returning (or raising) scripted results in order"""

    def __init__(self, *results, delay=0.0):
        self.results = list(results)
        self.delay = delay
        self.calls = 0

    async def __call__(self, document_id):
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        result = self.results.pop(0)
        if isinstance(result, Exception):
            raise result
        return result


class TestFreshness:
    """Test TTL handling."""

    def test_fresh_snapshot_not_refetched(self):
        clock = FakeClock()
        loader = ScriptedLoader(['a'], ['b'])
        cache = EntityCache(loader, ttl=300, clock=clock)

        async def scenario():
            first = await cache.get('doc')
            clock.now += 299
            second = await cache.get('doc')
            return first, second

        assert asyncio.run(scenario()) == (['a'], ['a'])
        assert loader.calls == 1
        assert cache.is_fresh('doc')

    def test_expired_snapshot_refetched(self):
        clock = FakeClock()
        loader = ScriptedLoader(['a'], ['b'])
        cache = EntityCache(loader, ttl=300, clock=clock)

        async def scenario():
            await cache.get('doc')
            clock.now += 300
            return await cache.get('doc')

        assert asyncio.run(scenario()) == ['b']
        assert loader.calls == 2

    def test_invalidate_keeps_data_as_fallback(self):
        loader = ScriptedLoader(['a'], FetchFailed('doc', 'HTTP 500'))
        cache = EntityCache(loader, clock=FakeClock())

        async def scenario():
            await cache.get('doc')
            cache.invalidate('doc')
            assert not cache.is_fresh('doc')
            return await cache.get('doc')

        assert asyncio.run(scenario()) == ['a']
        assert loader.calls == 2

    def test_documents_cached_separately(self):
        async def loader(document_id):
            return [document_id]

        cache = EntityCache(loader, clock=FakeClock())

        async def scenario():
            return await cache.get('songs'), await cache.get('jokes')

        assert asyncio.run(scenario()) == (['songs'], ['jokes'])


class TestFailures:
    """Test stale fallback and first-fetch failures."""

    def test_failure_serves_prior_snapshot(self):
        clock = FakeClock()
        loader = ScriptedLoader(['a', 'b'], FetchFailed('doc', 'timed out'))
        cache = EntityCache(loader, ttl=10, clock=clock)

        async def scenario():
            await cache.get('doc')
            before = cache.snapshot('doc')
            clock.now += 60
            result = await cache.get('doc')
            return before, result

        before, result = asyncio.run(scenario())
        assert result == ['a', 'b']
        # The stale snapshot is kept unchanged, timestamp included
        assert cache.snapshot('doc') == before

    def test_empty_document_serves_prior_snapshot(self):
        clock = FakeClock()
        loader = ScriptedLoader(['a'], EmptyDocument('doc'))
        cache = EntityCache(loader, ttl=10, clock=clock)

        async def scenario():
            await cache.get('doc')
            clock.now += 60
            return await cache.get('doc')

        assert asyncio.run(scenario()) == ['a']

    def test_failure_without_snapshot_is_unavailable(self):
        cache = EntityCache(ScriptedLoader(FetchFailed('doc', 'HTTP 403')), clock=FakeClock())
        with pytest.raises(DocumentUnavailable) as excinfo:
            asyncio.run(cache.get('doc'))
        assert excinfo.value.document_id == 'doc'

    def test_empty_document_without_snapshot_is_empty(self):
        loader = ScriptedLoader(EmptyDocument('doc'), ['a'])
        cache = EntityCache(loader, clock=FakeClock())

        async def scenario():
            first = await cache.get('doc')
            second = await cache.get('doc')
            return first, second

        # Nothing is cached for an empty document, so the next call fetches again
        assert asyncio.run(scenario()) == ([], ['a'])
        assert loader.calls == 2

    def test_other_errors_propagate(self):
        loader = ScriptedLoader(ValueError('bug'))
        cache = EntityCache(loader, clock=FakeClock())
        with pytest.raises(ValueError):
            asyncio.run(cache.get('doc'))


class TestCoalescing:
    """Test that concurrent callers share one refresh."""

    def test_concurrent_gets_fetch_once(self):
        loader = ScriptedLoader(['a'], delay=0.01)
        cache = EntityCache(loader, clock=FakeClock())

        async def scenario():
            return await asyncio.gather(*[cache.get('doc') for _ in range(5)])

        assert asyncio.run(scenario()) == [['a']] * 5
        assert loader.calls == 1

    def test_failed_refresh_shared(self):
        loader = ScriptedLoader(FetchFailed('doc', 'HTTP 500'), delay=0.01)
        cache = EntityCache(loader, clock=FakeClock())

        async def scenario():
            return await asyncio.gather(cache.get('doc'), cache.get('doc'), return_exceptions=True)

        results = asyncio.run(scenario())
        assert all(isinstance(r, DocumentUnavailable) for r in results)
        assert loader.calls == 1

    def test_next_refresh_after_completion(self):
        loader = ScriptedLoader(['a'], ['b'])
        cache = EntityCache(loader, clock=FakeClock())

        async def scenario():
            await cache.refresh('doc')
            return await cache.refresh('doc')

        assert asyncio.run(scenario()) == ['b']
        assert loader.calls == 2

    def test_cancelled_caller_does_not_cancel_refresh(self):
        loader = ScriptedLoader(['a'], delay=0.05)
        cache = EntityCache(loader, clock=FakeClock())

        async def scenario():
            impatient = asyncio.ensure_future(cache.get('doc'))
            patient = asyncio.ensure_future(cache.get('doc'))
            await asyncio.sleep(0.01)
            impatient.cancel()
            return await patient

        assert asyncio.run(scenario()) == ['a']
        assert loader.calls == 1
