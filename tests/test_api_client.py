"""Tests for the registry client and its response cache."""

import pytest

from modlist.exceptions import APIError, APIRateLimitError, APIServerError
from modlist.models import RegistryConfig
from modlist.services import ModrinthClient, ResponseCache


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


class StubResponse:
    def __init__(self, url, status, payload=None):
        self.url = url
        self.status = status
        self._payload = payload

    async def json(self):
        return self._payload

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        return False


class StubSession:
    """按 URL 返回预设响应的 aiohttp 会话替身"""

    def __init__(self, routes):
        self.routes = routes
        self.requests = []
        self.closed = False

    def get(self, url, params=None):
        self.requests.append((url, params))
        status, payload = self.routes.get(url, (404, None))
        return StubResponse(url, status, payload)


BASE = "https://api.modrinth.com/v2"


def make_client(routes, clock=None):
    session = StubSession(routes)
    cache = ResponseCache(clock=clock or FakeClock())
    return ModrinthClient(RegistryConfig(), session=session, cache=cache), session


def test_cache_keys():
    assert ResponseCache.make_key("project", project_id="sodium") == "project:sodium"
    assert (
        ResponseCache.make_key("versions", project_id="sodium", game_version="1.20.1")
        == "versions:sodium:1.20.1:all"
    )
    assert ResponseCache.make_key("versions", project_id="sodium") == "versions:sodium:all:all"
    assert ResponseCache.make_key("search", query="iris") == "search:iris"
    assert ResponseCache.make_key("loaders") == "loaders"
    with pytest.raises(ValueError):
        ResponseCache.make_key("unknown")


def test_cache_entries_expire_after_ttl():
    clock = FakeClock()
    cache = ResponseCache(clock=clock)
    cache.set("project:sodium", {"id": "sodium"})

    clock.now += 299
    assert cache.get("project:sodium", 300) == {"id": "sodium"}

    clock.now += 1
    assert cache.get("project:sodium", 300) is None
    assert len(cache) == 0
    assert (cache.hits, cache.misses) == (1, 1)


def test_writes_evict_other_expired_entries():
    clock = FakeClock()
    cache = ResponseCache(clock=clock)
    cache.set("project:sodium", {"id": "sodium"}, ttl=300)
    cache.set("loaders", ["fabric"], ttl=3600)

    clock.now += 301
    cache.set("project:lithium", {"id": "lithium"}, ttl=300)

    assert len(cache) == 2
    assert cache.get("project:sodium", 300) is None
    assert cache.get("loaders", 3600) == ["fabric"]


@pytest.mark.asyncio
async def test_client_cache_does_not_keep_expired_lookups():
    clock = FakeClock()
    client, _ = make_client(
        {
            f"{BASE}/project/sodium": (200, {"id": "sodium", "title": "Sodium"}),
            f"{BASE}/project/lithium": (200, {"id": "lithium", "title": "Lithium"}),
        },
        clock=clock,
    )
    await client.get_project("sodium")

    clock.now += 301
    await client.get_project("lithium")

    assert len(client.cache) == 1


@pytest.mark.asyncio
async def test_get_project_is_cached():
    client, session = make_client(
        {f"{BASE}/project/sodium": (200, {"id": "AANobbMI", "slug": "sodium", "title": "Sodium"})}
    )

    first = await client.get_project("sodium")
    second = await client.get_project("sodium")

    assert first.title == "Sodium"
    assert second.slug == "sodium"
    assert len(session.requests) == 1


@pytest.mark.asyncio
async def test_missing_project_is_none_and_not_cached():
    client, session = make_client({})

    assert await client.get_project("nope") is None
    assert await client.get_project("nope") is None
    assert len(session.requests) == 2


@pytest.mark.asyncio
async def test_versions_query_encodes_filters_as_json_arrays():
    url = f"{BASE}/project/sodium/version"
    client, session = make_client(
        {
            url: (
                200,
                [
                    {
                        "id": "v1",
                        "game_versions": ["1.20.1"],
                        "loaders": ["fabric"],
                        "files": [{"url": "https://cdn/x.jar", "filename": "x.jar", "primary": True}],
                        "dependencies": [{"project_id": "P7dR8mSH", "dependency_type": "required"}],
                    }
                ],
            )
        }
    )

    versions = await client.get_versions("sodium", "1.20.1", "fabric")
    await client.get_versions("sodium")

    assert session.requests[0] == (
        url,
        {"game_versions": '["1.20.1"]', "loaders": '["fabric"]'},
    )
    assert session.requests[1] == (url, None)
    assert versions[0].primary_file().filename == "x.jar"
    assert versions[0].required_dependency_ids() == ["P7dR8mSH"]


@pytest.mark.asyncio
async def test_versions_for_unknown_project_are_empty():
    client, _ = make_client({})

    assert await client.get_versions("nope", "1.20.1", "fabric") == []


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "status, error",
    [(429, APIRateLimitError), (500, APIServerError), (503, APIServerError), (400, APIError)],
)
async def test_error_statuses_raise(status, error):
    client, _ = make_client({f"{BASE}/project/sodium": (status, None)})

    with pytest.raises(error):
        await client.get_project("sodium")
    assert len(client.cache) == 0


@pytest.mark.asyncio
async def test_search_parses_hits():
    client, session = make_client(
        {
            f"{BASE}/search": (
                200,
                {"hits": [{"project_id": "AANobbMI", "slug": "sodium", "title": "Sodium"}]},
            )
        }
    )

    hits = await client.search("sod", limit=5)

    assert [(hit.slug, hit.title) for hit in hits] == [("sodium", "Sodium")]
    assert session.requests[0][1]["query"] == "sod"
    assert session.requests[0][1]["limit"] == "5"


@pytest.mark.asyncio
async def test_tags_are_parsed():
    client, _ = make_client(
        {
            f"{BASE}/tag/game_version": (
                200,
                [{"version": "1.20.1", "date": "2023-06-12", "version_type": "release"}, {}],
            ),
            f"{BASE}/tag/loader": (200, [{"loader": "fabric"}, {"loader": "forge"}]),
        }
    )

    versions = await client.get_game_versions()
    loaders = await client.get_loaders()

    assert [tag.version for tag in versions] == ["1.20.1"]
    assert [tag.loader for tag in loaders] == ["fabric", "forge"]


@pytest.mark.asyncio
async def test_injected_session_is_not_closed():
    client, session = make_client({})

    await client.close()

    assert not session.closed
