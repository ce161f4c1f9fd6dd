"""Tests for single-entry resolution."""

import pytest

from modlist.models import NO_VERSION, EntryStatus, ListEntry, StatusTone
from modlist.services import ModResolver

from tests.conftest import make_version


@pytest.mark.asyncio
async def test_paused_entry_is_returned_unchanged(registry):
    entry = ListEntry.pending("sodium", "1.20.1").with_paused(True)
    resolver = ModResolver(registry)

    result = await resolver.resolve(entry, "1.20.1", "fabric")

    assert result is entry
    assert registry.calls == []


@pytest.mark.asyncio
async def test_custom_entry_never_contacts_registry(registry):
    entry = ListEntry.custom(title="Private tweaks", custom_url="https://example.com")
    resolver = ModResolver(registry)

    result = await resolver.resolve(entry, "1.20.1", "fabric")

    assert result.status == EntryStatus.CUSTOM
    assert result.target_version == NO_VERSION
    assert result.current_version == NO_VERSION
    assert result.filename is None
    assert result.custom_url == "https://example.com"
    assert registry.calls == []


@pytest.mark.asyncio
async def test_resolvable_entry_takes_primary_file_and_required_dependencies(registry):
    resolver = ModResolver(registry)

    result = await resolver.resolve(ListEntry.pending("sodium", "1.20.1"), "1.20.1", "fabric")

    assert result.status == EntryStatus.RESOLVABLE
    assert result.status_tone == StatusTone.SUCCESS
    assert result.target_version == "1.20.1"
    assert result.filename == "sodium-0.5.jar"
    assert result.title == "Sodium"
    assert result.current_version == "1.21.1"
    assert result.last_supported_version is None
    assert [dep.id for dep in result.dependencies] == ["fabric-api"]
    assert result.dependencies[0].title == "Fabric API"


@pytest.mark.asyncio
async def test_primary_flag_wins_over_file_order(registry):
    version = make_version("v1", ["1.20.1"], filename="sources.jar", primary=False)
    version.files.append(
        make_version("v1", ["1.20.1"], filename="real.jar", primary=True).files[0]
    )
    registry.versions[("sodium", "1.20.1", "fabric")] = [version]

    result = await ModResolver(registry).resolve(
        ListEntry.pending("sodium", "1.20.1"), "1.20.1", "fabric"
    )

    assert result.filename == "real.jar"


@pytest.mark.asyncio
async def test_missing_entry_reports_latest_published_game_version(registry):
    resolver = ModResolver(registry)

    result = await resolver.resolve(ListEntry.pending("oldmod", "1.21.1"), "1.21.1", "fabric")

    assert result.status == EntryStatus.MISSING
    assert result.status_tone == StatusTone.WARNING
    assert result.last_supported_version == "1.16.5"
    assert result.target_version == NO_VERSION
    assert result.filename is None


@pytest.mark.asyncio
async def test_transport_failure_falls_back_to_unfiltered_query(registry):
    registry.failing.add(("versions", "oldmod", "1.21.1", "fabric"))

    result = await ModResolver(registry).resolve(
        ListEntry.pending("oldmod", "1.21.1"), "1.21.1", "fabric"
    )

    assert result.status == EntryStatus.MISSING
    assert result.last_supported_version == "1.16.5"
    assert ("versions", "oldmod", None, None) in registry.calls


@pytest.mark.asyncio
async def test_fallback_failure_leaves_last_supported_empty(registry):
    registry.failing.add(("versions", "oldmod", None, None))
    entry = ListEntry.pending("oldmod", "1.21.1").evolve(last_supported_version="1.12.2")

    result = await ModResolver(registry).resolve(entry, "1.21.1", "fabric")

    assert result.status == EntryStatus.MISSING
    assert result.last_supported_version is None


@pytest.mark.asyncio
async def test_metadata_failure_keeps_previous_display_fields(registry):
    registry.failing.add(("project", "sodium"))
    entry = ListEntry.pending("sodium", "1.20.1", title="My Sodium")

    result = await ModResolver(registry).resolve(entry, "1.20.1", "fabric")

    assert result.title == "My Sodium"
    assert result.status == EntryStatus.RESOLVABLE


@pytest.mark.asyncio
async def test_known_current_version_is_not_overwritten(registry):
    entry = ListEntry.pending("sodium", "1.20.1", current_version="1.20.4")

    result = await ModResolver(registry).resolve(entry, "1.20.1", "fabric")

    assert result.current_version == "1.20.4"


@pytest.mark.asyncio
async def test_resolution_is_stable_when_repeated(registry):
    resolver = ModResolver(registry)
    first = await resolver.resolve(ListEntry.pending("sodium", "1.20.1"), "1.20.1", "fabric")

    second = await resolver.resolve(first, "1.20.1", "fabric")

    assert (second.status, second.target_version, second.filename) == (
        first.status,
        first.target_version,
        first.filename,
    )


@pytest.mark.asyncio
async def test_input_entry_is_not_mutated(registry):
    entry = ListEntry.pending("sodium", "1.20.1")

    await ModResolver(registry).resolve(entry, "1.20.1", "fabric")

    assert entry.status == EntryStatus.PENDING
    assert entry.filename is None
    assert entry.dependencies == []


@pytest.mark.asyncio
async def test_dependency_title_falls_back_to_id(registry):
    registry.failing.add(("project", "fabric-api"))

    result = await ModResolver(registry).resolve(
        ListEntry.pending("sodium", "1.20.1"), "1.20.1", "fabric"
    )

    assert result.dependencies[0].title == "fabric-api"


@pytest.mark.asyncio
async def test_resolve_many_preserves_order(registry):
    entries = [
        ListEntry.pending("oldmod", "1.20.1"),
        ListEntry.pending("sodium", "1.20.1"),
        ListEntry.pending("lithium", "1.20.1"),
    ]

    results = await ModResolver(registry, max_concurrent=2).resolve_many(
        entries, "1.20.1", "fabric"
    )

    assert [entry.id for entry in results] == ["oldmod", "sodium", "lithium"]
    assert [entry.status for entry in results] == [
        EntryStatus.MISSING,
        EntryStatus.RESOLVABLE,
        EntryStatus.RESOLVABLE,
    ]
