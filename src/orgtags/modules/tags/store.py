"""
OrgTags Tags - Store.

Abstract tag store plus an in-process implementation.

Every multi-step operation (check children then delete, reparent then
delete) is atomic: implementations must run it inside a single transaction
so no intermediate state is observable.
"""

import threading
from abc import ABC, abstractmethod
from datetime import datetime, timezone

from orgtags.modules.tags.schemas import OrganizationTag


# =============================================================================
# Store Errors
# =============================================================================


class TagStoreError(Exception):
    """Base class for store-level failures with a business meaning."""


class InvalidTagError(TagStoreError, ValueError):
    """Raised when a store call is made with an unusable tag or id."""


class TagNotFoundError(TagStoreError):
    """Raised when the referenced tag row does not exist."""

    def __init__(self, tag_id: str):
        self.tag_id = tag_id
        super().__init__(f"organization tag not found: {tag_id}")


class TagAlreadyExistsError(TagStoreError):
    """Raised when inserting a tag whose id is taken."""

    def __init__(self, tag_id: str):
        self.tag_id = tag_id
        super().__init__(f"organization tag already exists: {tag_id}")


class TagHasChildrenError(TagStoreError):
    """Raised by a protect-delete when the tag still has direct children."""

    def __init__(self, tag_id: str, child_count: int | None = None):
        self.tag_id = tag_id
        self.child_count = child_count
        super().__init__(f"organization tag has children: {tag_id}")


# =============================================================================
# Store Interface
# =============================================================================


class TagStore(ABC):
    """
    Durable keyed storage for organization tags.

    The directory service and the effective-tag resolver only depend on this
    interface, so tests can hand them an in-memory store or a fake.
    """

    name: str = "abstract"

    @abstractmethod
    async def create(self, tag: OrganizationTag) -> OrganizationTag:
        """
        Persist a new tag.

        Raises:
            InvalidTagError: If the tag id is empty
            TagAlreadyExistsError: If the id is already taken
        """
        ...

    @abstractmethod
    async def find_by_id(self, tag_id: str) -> OrganizationTag:
        """
        Get a single tag.

        Raises:
            TagNotFoundError: If no tag has this id
        """
        ...

    @abstractmethod
    async def find_all(self) -> list[OrganizationTag]:
        """Return every tag ordered by id ascending."""
        ...

    @abstractmethod
    async def find_by_parent(self, parent_tag: str | None) -> list[OrganizationTag]:
        """Return the direct children of a tag, or the roots when parent_tag is None."""
        ...

    @abstractmethod
    async def update(self, tag: OrganizationTag) -> OrganizationTag:
        """
        Overwrite name, description, parent_tag and updated_by.

        created_by and created_at are never touched.

        Raises:
            TagNotFoundError: If no row was affected
        """
        ...

    @abstractmethod
    async def delete_protect(self, tag_id: str) -> None:
        """
        Delete a tag only if it has no direct children.

        Raises:
            TagNotFoundError: If the tag does not exist
            TagHasChildrenError: If the tag has at least one child
        """
        ...

    @abstractmethod
    async def delete_reparent(self, tag_id: str) -> None:
        """
        Move the direct children of a tag to its own parent, then delete it.

        Children of a root tag become roots.

        Raises:
            TagNotFoundError: If the tag does not exist
        """
        ...


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _require_id(tag_id: str) -> None:
    if not tag_id:
        raise InvalidTagError("tag id is required")


# =============================================================================
# In-Memory Store
# =============================================================================


class InMemoryTagStore(TagStore):
    """
    Tag store backed by a dict.

    A single re-entrant lock plays the role of the transaction: each public
    operation holds it for its whole read-then-write sequence. Tags are
    copied on the way in and out so callers never share state with the store.
    """

    name = "memory"

    def __init__(self, tags: list[OrganizationTag] | None = None):
        self._lock = threading.RLock()
        self._tags: dict[str, OrganizationTag] = {}
        for tag in tags or []:
            self._tags[tag.tag_id] = tag.model_copy(deep=True)

    async def create(self, tag: OrganizationTag) -> OrganizationTag:
        if tag is None:
            raise InvalidTagError("tag is required")
        _require_id(tag.tag_id)

        with self._lock:
            if tag.tag_id in self._tags:
                raise TagAlreadyExistsError(tag.tag_id)
            now = _now()
            stored = tag.model_copy(update={"created_at": now, "updated_at": now}, deep=True)
            self._tags[stored.tag_id] = stored
            return stored.model_copy(deep=True)

    async def find_by_id(self, tag_id: str) -> OrganizationTag:
        _require_id(tag_id)

        with self._lock:
            tag = self._tags.get(tag_id)
            if tag is None:
                raise TagNotFoundError(tag_id)
            return tag.model_copy(deep=True)

    async def find_all(self) -> list[OrganizationTag]:
        with self._lock:
            return [self._tags[key].model_copy(deep=True) for key in sorted(self._tags)]

    async def find_by_parent(self, parent_tag: str | None) -> list[OrganizationTag]:
        with self._lock:
            return [
                self._tags[key].model_copy(deep=True)
                for key in sorted(self._tags)
                if self._tags[key].parent_tag == parent_tag
            ]

    async def update(self, tag: OrganizationTag) -> OrganizationTag:
        if tag is None:
            raise InvalidTagError("tag is required")
        _require_id(tag.tag_id)

        with self._lock:
            current = self._tags.get(tag.tag_id)
            if current is None:
                raise TagNotFoundError(tag.tag_id)
            stored = current.model_copy(
                update={
                    "name": tag.name,
                    "description": tag.description,
                    "parent_tag": tag.parent_tag,
                    "updated_by": tag.updated_by,
                    "updated_at": _now(),
                }
            )
            self._tags[stored.tag_id] = stored
            return stored.model_copy(deep=True)

    async def delete_protect(self, tag_id: str) -> None:
        _require_id(tag_id)

        with self._lock:
            if tag_id not in self._tags:
                raise TagNotFoundError(tag_id)
            child_count = sum(1 for t in self._tags.values() if t.parent_tag == tag_id)
            if child_count > 0:
                raise TagHasChildrenError(tag_id, child_count)
            del self._tags[tag_id]

    async def delete_reparent(self, tag_id: str) -> None:
        _require_id(tag_id)

        with self._lock:
            current = self._tags.get(tag_id)
            if current is None:
                raise TagNotFoundError(tag_id)

            now = _now()
            for child_id, child in list(self._tags.items()):
                if child.parent_tag == tag_id:
                    self._tags[child_id] = child.model_copy(
                        update={"parent_tag": current.parent_tag, "updated_at": now}
                    )
            del self._tags[tag_id]
