"""
OrgTags Tags - Effective Tag Resolver.

Expands the tags a principal holds directly (seed tags) into every tag
reachable below them in the hierarchy. Holding a tag grants the scope of
all of its descendants.
"""

import logging
from collections import deque
from typing import Iterable, List, Sequence

from orgtags.exceptions import NotFoundException
from .schemas import OrganizationTag
from .service import RESOURCE, translate_store_errors
from .store import TagStore

logger = logging.getLogger(__name__)


def normalize_tag_ids(ids: Iterable[str]) -> List[str]:
    """Trim, drop empties and de-duplicate while keeping first-seen order."""
    result: List[str] = []
    seen: set[str] = set()
    for raw in ids:
        tag_id = (raw or "").strip()
        if not tag_id or tag_id in seen:
            continue
        seen.add(tag_id)
        result.append(tag_id)
    return result


def parse_org_tag_ids(raw: str | None) -> List[str]:
    """Parse the comma-separated org tag field of a user record."""
    if not raw or not raw.strip():
        return []
    return normalize_tag_ids(raw.split(","))


class EffectiveTagResolver:
    """
    Breadth-first closure over the tag hierarchy.

    Each call reads the whole tag set once and keeps nothing afterwards.
    Termination relies on the visited set, so cycles in stored data are
    harmless here.
    """

    def __init__(self, store: TagStore):
        self._store = store

    async def resolve(self, seed_ids: Sequence[str]) -> List[OrganizationTag]:
        """
        Return the seed tags plus all of their descendants, seeds first in
        breadth-first order.

        Raises:
            NotFoundException: If a seed (or any reachable id) has no tag
        """
        if not seed_ids:
            return []

        with translate_store_errors("resolve"):
            all_tags = await self._store.find_all()

        tag_by_id: dict[str, OrganizationTag] = {}
        children: dict[str, List[str]] = {}
        for tag in all_tags:
            tag_by_id[tag.tag_id] = tag
            if tag.parent_tag:
                children.setdefault(tag.parent_tag, []).append(tag.tag_id)

        result: List[OrganizationTag] = []
        visited: set[str] = set()
        queue = deque(seed_ids)

        while queue:
            tag_id = queue.popleft()
            if tag_id in visited:
                continue
            visited.add(tag_id)

            tag = tag_by_id.get(tag_id)
            if tag is None:
                logger.warning(f"Effective tag resolution hit unknown tag {tag_id}")
                raise NotFoundException(RESOURCE, tag_id)
            result.append(tag)

            for child_id in children.get(tag_id, []):
                if child_id not in visited:
                    queue.append(child_id)

        return result

    async def resolve_org_tags(self, raw: str | None) -> List[OrganizationTag]:
        """Resolve straight from a user's comma-separated org tag field."""
        return await self.resolve(parse_org_tag_ids(raw))
