"""Tests for debounced search."""

import asyncio

import pytest

from modlist.models import SearchHit
from modlist.services import SearchDebouncer


@pytest.mark.asyncio
async def test_rapid_queries_only_search_the_last_one(registry):
    registry.hits = [SearchHit(project_id="AANobbMI", title="Sodium", slug="sodium")]
    debouncer = SearchDebouncer(registry, delay=0.01)

    debouncer.submit("s")
    debouncer.submit("so")
    debouncer.submit("sod")
    results = await debouncer.wait()

    assert [hit.slug for hit in results] == ["sodium"]
    assert [call for call in registry.calls if call[0] == "search"] == [("search", "sod")]


@pytest.mark.asyncio
async def test_blank_query_clears_results(registry):
    registry.hits = [SearchHit(project_id="AANobbMI", title="Sodium", slug="sodium")]
    debouncer = SearchDebouncer(registry, delay=0)
    debouncer.submit("sodium")
    await debouncer.wait()

    assert debouncer.submit("   ") is None
    assert await debouncer.wait() == []
    assert registry.count("search") == 1


@pytest.mark.asyncio
async def test_cancelled_search_leaves_results_untouched(registry):
    registry.hits = [SearchHit(project_id="AANobbMI", title="Sodium", slug="sodium")]
    debouncer = SearchDebouncer(registry, delay=0.05)

    debouncer.submit("sodium")
    debouncer.cancel()
    await asyncio.sleep(0.1)

    assert debouncer.results == []
    assert registry.count("search") == 0
