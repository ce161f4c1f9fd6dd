"""Tests for dependency expansion."""

import pytest

from modlist.models import DependencyRef, EntryStatus, ListEntry
from modlist.services import DependencyResolver, ModResolver

from tests.conftest import make_version


def resolved_with(mod_id, *dep_ids):
    return ListEntry.pending(mod_id, "1.20.1").evolve(
        status=EntryStatus.RESOLVABLE,
        dependencies=[DependencyRef(id=dep, title=dep.title()) for dep in dep_ids],
    )


def expander(registry):
    return DependencyResolver(ModResolver(registry))


def test_shared_dependency_is_added_once(registry):
    resolved = [resolved_with("sodium", "fabric-api"), resolved_with("lithium", "fabric-api")]

    pending, _ = expander(registry).collect(resolved, [], set(), "1.20.1")

    assert [entry.id for entry in pending] == ["fabric-api"]
    assert pending[0].is_dependency
    assert pending[0].status == EntryStatus.PENDING


def test_dependencies_already_in_list_are_skipped(registry):
    resolved = [resolved_with("sodium", "fabric-api", "lithium"), resolved_with("lithium")]

    pending, _ = expander(registry).collect(resolved, ["fabric-api"], set(), "1.20.1")

    assert pending == []


def test_selection_is_or_of_requesting_parents(registry):
    resolved = [resolved_with("sodium", "fabric-api"), resolved_with("lithium", "fabric-api")]

    _, selected = expander(registry).collect(resolved, [], {"lithium"}, "1.20.1")

    assert selected == {"fabric-api"}


def test_unselected_parents_leave_dependency_unselected(registry):
    resolved = [resolved_with("sodium", "fabric-api", "cloth-config")]

    _, selected = expander(registry).collect(resolved, [], set(), "1.20.1")

    assert selected == set()


@pytest.mark.asyncio
async def test_expand_returns_resolved_dependency_entries(registry):
    resolved = [resolved_with("sodium", "fabric-api")]

    result = await expander(registry).expand(resolved, ["sodium"], {"sodium"}, "1.20.1", "fabric")

    assert len(result) == 1
    dep = result.entries[0]
    assert dep.id == "fabric-api"
    assert dep.status == EntryStatus.RESOLVABLE
    assert dep.filename == "fabric-api-0.92.jar"
    assert dep.is_dependency
    assert result.selected == {"fabric-api"}


@pytest.mark.asyncio
async def test_expansion_goes_only_one_level(registry):
    registry.versions[("fabric-api", "1.20.1", "fabric")] = [
        make_version(
            "fabric-api-0.92",
            ["1.20.1"],
            filename="fabric-api-0.92.jar",
            dependencies=[("fabric-loader-lib", "required")],
        )
    ]
    resolved = [resolved_with("sodium", "fabric-api")]

    result = await expander(registry).expand(resolved, ["sodium"], set(), "1.20.1", "fabric")

    assert [entry.id for entry in result.entries] == ["fabric-api"]
    assert [dep.id for dep in result.entries[0].dependencies] == ["fabric-loader-lib"]
    assert ("versions", "fabric-loader-lib", "1.20.1", "fabric") not in registry.calls


@pytest.mark.asyncio
async def test_nothing_to_expand_makes_no_calls(registry):
    result = await expander(registry).expand(
        [resolved_with("sodium")], ["sodium"], set(), "1.20.1", "fabric"
    )

    assert len(result) == 0
    assert registry.calls == []
