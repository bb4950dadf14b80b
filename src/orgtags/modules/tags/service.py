"""
OrgTags Tags - Service

Business rules for the organization tag directory.

The service validates and normalizes input before any store call, then
translates store errors 1:1 into service exceptions. It holds no state of
its own besides the injected store.
"""

import logging
from contextlib import contextmanager
from typing import Iterator, List

from orgtags.exceptions import (
    AlreadyExistsException,
    HasChildrenException,
    InternalException,
    NotFoundException,
    OrgTagsException,
    ValidationException,
)
from .schemas import OrganizationTag, OrganizationTagNode
from .store import (
    InvalidTagError,
    TagAlreadyExistsError,
    TagHasChildrenError,
    TagNotFoundError,
    TagStore,
    TagStoreError,
)

logger = logging.getLogger(__name__)

RESOURCE = "organization tag"
DEFAULT_ACTOR = "system"


# =============================================================================
# Error Translation
# =============================================================================

def to_service_error(exc: TagStoreError) -> OrgTagsException:
    """Map a store error onto the matching service exception."""
    if isinstance(exc, InvalidTagError):
        return ValidationException(str(exc))
    if isinstance(exc, TagNotFoundError):
        return NotFoundException(RESOURCE, exc.tag_id)
    if isinstance(exc, TagAlreadyExistsError):
        return AlreadyExistsException(RESOURCE, exc.tag_id)
    if isinstance(exc, TagHasChildrenError):
        return HasChildrenException(exc.tag_id)
    return InternalException()


@contextmanager
def translate_store_errors(operation: str) -> Iterator[None]:
    """Run a store call, re-raising its failures as service exceptions."""
    try:
        yield
    except TagStoreError as e:
        raise to_service_error(e) from e
    except OrgTagsException:
        raise
    except Exception as e:
        logger.exception(f"Tag store failure during {operation}")
        raise InternalException() from e


# =============================================================================
# Helpers
# =============================================================================

def normalize_optional_tag_id(raw: str | None) -> str | None:
    """None or blank -> None, anything else -> trimmed value."""
    if raw is None:
        return None
    trimmed = raw.strip()
    return trimmed or None


def build_tag_tree(tags: List[OrganizationTag]) -> List[OrganizationTagNode]:
    """
    Materialize a flat tag list into a forest.

    Pass 1 creates one node per tag; pass 2 attaches every node to its
    parent's children. A node whose parent is null, blank or absent from
    ``tags`` becomes a root, so the forest always holds len(tags) nodes.
    A link that would close a cycle in malformed data is not followed; the
    node is kept as a root instead.
    Roots and children keep the order of ``tags``.
    """
    nodes: dict[str, OrganizationTagNode] = {}
    for tag in tags:
        nodes[tag.tag_id] = OrganizationTagNode(
            tag_id=tag.tag_id,
            name=tag.name,
            description=tag.description,
            parent_tag=tag.parent_tag,
            children=[],
        )

    roots: List[OrganizationTagNode] = []
    attached_to: dict[str, str] = {}
    for tag in tags:
        node = nodes[tag.tag_id]
        parent_id = tag.parent_tag
        if parent_id and parent_id in nodes and not _links_reach(attached_to, parent_id, tag.tag_id):
            nodes[parent_id].children.append(node)
            attached_to[tag.tag_id] = parent_id
            continue
        roots.append(node)
    return roots


def _links_reach(links: dict[str, str], start: str, target: str) -> bool:
    """True if following child->parent links from start arrives at target."""
    current: str | None = start
    while current is not None:
        if current == target:
            return True
        current = links.get(current)
    return False


# =============================================================================
# Tag Directory Service
# =============================================================================

class OrgTagService:
    """
    Manages the organization tag hierarchy.

    Rules:
    - tag ids are caller-chosen, unique and immutable
    - a tag can never be its own parent
    - a parent must exist when it is set
    - deletes either refuse (protect) or rewire children (reparent)
    """

    def __init__(
        self,
        store: TagStore,
        system_actor: str = DEFAULT_ACTOR,
        reject_ancestor_cycles: bool = True,
    ):
        self._store = store
        self._system_actor = system_actor
        self._reject_ancestor_cycles = reject_ancestor_cycles

    # -------------------------------------------------------------------------
    # Commands
    # -------------------------------------------------------------------------

    async def create(
        self,
        tag_id: str,
        name: str,
        description: str = "",
        parent_tag: str | None = None,
        actor: str | None = None,
    ) -> OrganizationTag:
        """Create a tag, optionally under an existing parent."""
        tag_id = (tag_id or "").strip()
        name = (name or "").strip()
        if not tag_id or not name:
            raise ValidationException("tag id and name are required")

        parent = normalize_optional_tag_id(parent_tag)
        if parent == tag_id:
            raise ValidationException("a tag cannot be its own parent")

        if await self._exists(tag_id):
            raise AlreadyExistsException(RESOURCE, tag_id)

        if parent is not None:
            await self.find_by_id(parent)

        actor = self._actor(actor)
        tag = OrganizationTag(
            tag_id=tag_id,
            name=name,
            description=description or "",
            parent_tag=parent,
            created_by=actor,
            updated_by=actor,
        )
        with translate_store_errors("create"):
            created = await self._store.create(tag)

        logger.info(f"[TAG] create {tag_id} parent={parent} by {actor}")
        return created

    async def update(
        self,
        tag_id: str,
        name: str,
        description: str = "",
        parent_tag: str | None = None,
        actor: str | None = None,
    ) -> OrganizationTag:
        """Update name, description and parent; a null parent makes the tag a root."""
        tag_id = (tag_id or "").strip()
        name = (name or "").strip()
        if not tag_id or not name:
            raise ValidationException("tag id and name are required")

        parent = normalize_optional_tag_id(parent_tag)
        if parent == tag_id:
            raise ValidationException("a tag cannot be its own parent")

        tag = await self.find_by_id(tag_id)
        if parent is not None:
            await self.find_by_id(parent)
            if self._reject_ancestor_cycles and tag_id in await self._ancestors_of(parent):
                raise ValidationException(
                    f"parent {parent} is a descendant of {tag_id}",
                    errors=[{"field": "parent_tag", "reason": "cycle"}],
                )

        actor = self._actor(actor)
        changed = tag.model_copy(
            update={
                "name": name,
                "description": description or "",
                "parent_tag": parent,
                "updated_by": actor,
            }
        )
        with translate_store_errors("update"):
            updated = await self._store.update(changed)

        logger.info(f"[TAG] update {tag_id} parent={parent} by {actor}")
        return updated

    async def delete(self, tag_id: str) -> None:
        """Protect delete: refuses with HasChildrenException if the tag has children."""
        tag_id = self._require_id(tag_id)
        with translate_store_errors("delete"):
            await self._store.delete_protect(tag_id)
        logger.info(f"[TAG] delete {tag_id}")

    async def delete_and_reparent(self, tag_id: str) -> None:
        """Reparent delete: children move to the tag's parent, then the tag is removed."""
        tag_id = self._require_id(tag_id)
        with translate_store_errors("delete_reparent"):
            await self._store.delete_reparent(tag_id)
        logger.info(f"[TAG] delete_reparent {tag_id}")

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    async def list_tags(self) -> List[OrganizationTag]:
        with translate_store_errors("list"):
            return await self._store.find_all()

    async def get_tree(self) -> List[OrganizationTagNode]:
        with translate_store_errors("tree"):
            tags = await self._store.find_all()
        return build_tag_tree(tags)

    async def find_by_id(self, tag_id: str) -> OrganizationTag:
        tag_id = self._require_id(tag_id)
        with translate_store_errors("find"):
            return await self._store.find_by_id(tag_id)

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    @staticmethod
    def _require_id(tag_id: str) -> str:
        tag_id = (tag_id or "").strip()
        if not tag_id:
            raise ValidationException("tag id is required")
        return tag_id

    def _actor(self, actor: str | None) -> str:
        return (actor or "").strip() or self._system_actor

    async def _exists(self, tag_id: str) -> bool:
        try:
            with translate_store_errors("find"):
                await self._store.find_by_id(tag_id)
        except NotFoundException:
            return False
        return True

    async def _ancestors_of(self, tag_id: str) -> set[str]:
        """Ids on the parent chain starting at tag_id (inclusive)."""
        with translate_store_errors("ancestors"):
            tags = await self._store.find_all()
        parent_of = {t.tag_id: t.parent_tag for t in tags}

        seen: set[str] = set()
        current: str | None = tag_id
        while current and current not in seen:
            seen.add(current)
            current = parent_of.get(current)
        return seen
