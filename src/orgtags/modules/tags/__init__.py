"""
OrgTags Tags Module

Organization tag hierarchy with:
- Caller-chosen unique ids and nullable parent links
- Protect and reparent delete strategies
- Forest materialization (orphan-as-root)
- Effective tag resolution for permission filtering
"""

from .resolver import EffectiveTagResolver, normalize_tag_ids, parse_org_tag_ids
from .schemas import (
    EffectiveTagsRequest,
    OrganizationTag,
    OrganizationTagNode,
    TagCreate,
    TagListResponse,
    TagTreeResponse,
    TagUpdate,
)
from .service import OrgTagService, build_tag_tree
from .store import (
    InMemoryTagStore,
    InvalidTagError,
    TagAlreadyExistsError,
    TagHasChildrenError,
    TagNotFoundError,
    TagStore,
    TagStoreError,
)

__all__ = [
    "EffectiveTagResolver",
    "normalize_tag_ids",
    "parse_org_tag_ids",
    "EffectiveTagsRequest",
    "OrganizationTag",
    "OrganizationTagNode",
    "TagCreate",
    "TagListResponse",
    "TagTreeResponse",
    "TagUpdate",
    "OrgTagService",
    "build_tag_tree",
    "InMemoryTagStore",
    "InvalidTagError",
    "TagAlreadyExistsError",
    "TagHasChildrenError",
    "TagNotFoundError",
    "TagStore",
    "TagStoreError",
]
