"""
Tests for the organization tag directory service.
"""

import pytest

from orgtags.exceptions import (
    AlreadyExistsException,
    HasChildrenException,
    InternalException,
    NotFoundException,
    ValidationException,
)
from orgtags.modules.tags.schemas import OrganizationTag
from orgtags.modules.tags.service import OrgTagService, build_tag_tree
from orgtags.modules.tags.store import (
    InMemoryTagStore,
    TagHasChildrenError,
    TagNotFoundError,
    TagStore,
)


class FakeTagStore(TagStore):
    """Store whose every call is scripted by the test."""

    def __init__(self, **handlers):
        self.handlers = handlers
        self.calls: list[str] = []

    async def _dispatch(self, name, *args):
        self.calls.append(name)
        handler = self.handlers.get(name)
        if handler is None:
            raise AssertionError(f"unexpected store call: {name}")
        return handler(*args)

    async def create(self, tag):
        return await self._dispatch("create", tag)

    async def find_by_id(self, tag_id):
        return await self._dispatch("find_by_id", tag_id)

    async def find_all(self):
        return await self._dispatch("find_all")

    async def find_by_parent(self, parent_tag):
        return await self._dispatch("find_by_parent", parent_tag)

    async def update(self, tag):
        return await self._dispatch("update", tag)

    async def delete_protect(self, tag_id):
        return await self._dispatch("delete_protect", tag_id)

    async def delete_reparent(self, tag_id):
        return await self._dispatch("delete_reparent", tag_id)


def raise_(exc):
    def handler(*_args):
        raise exc
    return handler


def tag(tag_id: str, parent: str | None = None) -> OrganizationTag:
    return OrganizationTag(tag_id=tag_id, name=tag_id.title(), parent_tag=parent)


@pytest.fixture
def store():
    return InMemoryTagStore()


@pytest.fixture
def service(store):
    return OrgTagService(store)


async def seed_chain(service: OrgTagService) -> None:
    await service.create("root", "Root")
    await service.create("dept", "Dept", parent_tag="root")
    await service.create("team", "Team", parent_tag="dept")


class TestCreate:
    """Create rule tests."""

    @pytest.mark.asyncio
    async def test_trims_and_defaults_actor(self, service):
        created = await service.create("  hq  ", "  Headquarters ", "main", parent_tag="   ", actor="  ")

        assert created.tag_id == "hq"
        assert created.name == "Headquarters"
        assert created.parent_tag is None
        assert created.created_by == "system"
        assert created.updated_by == "system"

    @pytest.mark.asyncio
    async def test_custom_system_actor(self, store):
        service = OrgTagService(store, system_actor="bootstrap")
        created = await service.create("hq", "HQ")
        assert created.created_by == "bootstrap"

    @pytest.mark.asyncio
    async def test_keeps_actor(self, service):
        created = await service.create("hq", "HQ", actor="alice")
        assert created.created_by == "alice"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("tag_id,name", [("", "Name"), ("   ", "Name"), ("id", ""), ("id", "  ")])
    async def test_blank_id_or_name_never_reaches_store(self, tag_id, name):
        fake = FakeTagStore()
        service = OrgTagService(fake)

        with pytest.raises(ValidationException):
            await service.create(tag_id, name)
        assert fake.calls == []

    @pytest.mark.asyncio
    async def test_self_parent_rejected(self):
        fake = FakeTagStore()
        service = OrgTagService(fake)

        with pytest.raises(ValidationException):
            await service.create("hq", "HQ", parent_tag=" hq ")
        assert fake.calls == []

    @pytest.mark.asyncio
    async def test_duplicate_id(self, service):
        await service.create("hq", "HQ", "first")

        with pytest.raises(AlreadyExistsException):
            await service.create("hq", "Other", "second")

        assert (await service.find_by_id("hq")).description == "first"

    @pytest.mark.asyncio
    async def test_missing_parent(self, service, store):
        with pytest.raises(NotFoundException) as exc_info:
            await service.create("team", "Team", parent_tag="nowhere")

        assert exc_info.value.details["resource_id"] == "nowhere"
        assert await store.find_all() == []

    @pytest.mark.asyncio
    async def test_store_failure_becomes_internal(self):
        fake = FakeTagStore(find_by_id=raise_(ConnectionError("db down")))
        service = OrgTagService(fake)

        with pytest.raises(InternalException) as exc_info:
            await service.create("hq", "HQ")
        assert isinstance(exc_info.value.__cause__, ConnectionError)


class TestUpdate:
    """Update rule tests."""

    @pytest.mark.asyncio
    async def test_updates_fields_and_keeps_creator(self, service):
        await service.create("root", "Root", actor="alice")
        await service.create("hq", "HQ", actor="alice")

        updated = await service.update("hq", " Head Office ", "desc", parent_tag="root", actor="bob")

        assert updated.name == "Head Office"
        assert updated.description == "desc"
        assert updated.parent_tag == "root"
        assert updated.created_by == "alice"
        assert updated.updated_by == "bob"

    @pytest.mark.asyncio
    async def test_blank_parent_moves_to_root(self, service):
        await seed_chain(service)

        updated = await service.update("dept", "Dept", parent_tag="")
        assert updated.parent_tag is None

    @pytest.mark.asyncio
    async def test_missing_tag(self, service):
        with pytest.raises(NotFoundException):
            await service.update("ghost", "Ghost")

    @pytest.mark.asyncio
    async def test_missing_parent(self, service):
        await service.create("hq", "HQ")
        with pytest.raises(NotFoundException):
            await service.update("hq", "HQ", parent_tag="nowhere")

    @pytest.mark.asyncio
    async def test_self_parent(self, service):
        await service.create("hq", "HQ")
        with pytest.raises(ValidationException):
            await service.update("hq", "HQ", parent_tag="hq")

    @pytest.mark.asyncio
    async def test_descendant_as_parent_rejected(self, service):
        await seed_chain(service)

        with pytest.raises(ValidationException) as exc_info:
            await service.update("root", "Root", parent_tag="team")

        assert exc_info.value.details["errors"][0]["reason"] == "cycle"
        assert (await service.find_by_id("root")).parent_tag is None

    @pytest.mark.asyncio
    async def test_cycle_check_can_be_disabled(self, store):
        service = OrgTagService(store, reject_ancestor_cycles=False)
        await seed_chain(service)

        updated = await service.update("root", "Root", parent_tag="team")
        assert updated.parent_tag == "team"

    @pytest.mark.asyncio
    async def test_store_reports_vanished_row(self):
        fake = FakeTagStore(
            find_by_id=lambda tag_id: tag(tag_id),
            update=raise_(TagNotFoundError("hq")),
        )
        service = OrgTagService(fake)

        with pytest.raises(NotFoundException):
            await service.update("hq", "HQ")


class TestDelete:
    """Delete strategy tests."""

    @pytest.mark.asyncio
    async def test_protect_refuses_with_children(self, service):
        await seed_chain(service)
        before = await service.list_tags()

        with pytest.raises(HasChildrenException):
            await service.delete("dept")

        assert await service.list_tags() == before

    @pytest.mark.asyncio
    async def test_protect_deletes_leaf(self, service):
        await seed_chain(service)
        await service.delete(" team ")

        with pytest.raises(NotFoundException):
            await service.find_by_id("team")

    @pytest.mark.asyncio
    async def test_reparent_moves_children(self, service):
        await seed_chain(service)
        await service.delete_and_reparent("dept")

        assert (await service.find_by_id("team")).parent_tag == "root"
        with pytest.raises(NotFoundException):
            await service.find_by_id("dept")

    @pytest.mark.asyncio
    async def test_reparent_root_children_become_roots(self, service):
        await seed_chain(service)
        await service.delete_and_reparent("root")

        assert (await service.find_by_id("dept")).parent_tag is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize("method", ["delete", "delete_and_reparent"])
    async def test_blank_id(self, method):
        fake = FakeTagStore()
        service = OrgTagService(fake)

        with pytest.raises(ValidationException):
            await getattr(service, method)("  ")
        assert fake.calls == []

    @pytest.mark.asyncio
    async def test_has_children_mapped(self):
        service = OrgTagService(FakeTagStore(delete_protect=raise_(TagHasChildrenError("team-a"))))
        with pytest.raises(HasChildrenException):
            await service.delete("team-a")

    @pytest.mark.asyncio
    async def test_not_found_mapped(self):
        service = OrgTagService(FakeTagStore(delete_protect=raise_(TagNotFoundError("missing"))))
        with pytest.raises(NotFoundException):
            await service.delete("missing")

    @pytest.mark.asyncio
    async def test_reparent_not_found_mapped(self):
        service = OrgTagService(FakeTagStore(delete_reparent=raise_(TagNotFoundError("missing"))))
        with pytest.raises(NotFoundException):
            await service.delete_and_reparent("missing")


class TestTree:
    """Tree materialization tests."""

    def test_orphan_kept_as_root(self):
        roots = build_tag_tree([tag("child", "root"), tag("orphan", "missing-parent"), tag("root")])

        by_id = {node.tag_id: node for node in roots}
        assert set(by_id) == {"orphan", "root"}
        assert [c.tag_id for c in by_id["root"].children] == ["child"]
        assert by_id["orphan"].children == []

    def test_total_node_count_preserved(self):
        tags = [
            tag("a"),
            tag("b", "a"),
            tag("c", "b"),
            tag("d", "gone"),
            tag("e", "d"),
            tag("f", ""),
        ]
        roots = build_tag_tree(tags)

        assert sum(node.count() for node in roots) == len(tags)
        assert [node.tag_id for node in roots] == ["a", "d", "f"]

    def test_malformed_cycle_does_not_drop_nodes(self):
        tags = [tag("x", "y"), tag("y", "x"), tag("z", "z")]
        roots = build_tag_tree(tags)

        assert sum(node.count() for node in roots) == 3

    def test_empty(self):
        assert build_tag_tree([]) == []

    @pytest.mark.asyncio
    async def test_get_tree_from_store(self, service):
        await seed_chain(service)

        roots = await service.get_tree()

        assert len(roots) == 1
        assert roots[0].tag_id == "root"
        assert roots[0].children[0].tag_id == "dept"
        assert roots[0].children[0].children[0].tag_id == "team"

    @pytest.mark.asyncio
    async def test_get_tree_store_error(self):
        service = OrgTagService(FakeTagStore(find_all=raise_(RuntimeError("db down"))))
        with pytest.raises(InternalException):
            await service.get_tree()


class TestFindById:

    @pytest.mark.asyncio
    async def test_blank(self):
        fake = FakeTagStore()
        with pytest.raises(ValidationException):
            await OrgTagService(fake).find_by_id("")
        assert fake.calls == []

    @pytest.mark.asyncio
    async def test_trims(self, service):
        await service.create("hq", "HQ")
        assert (await service.find_by_id(" hq ")).tag_id == "hq"
