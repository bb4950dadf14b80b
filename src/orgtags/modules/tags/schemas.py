"""
OrgTags Tags - Schemas

Pydantic models for the organization tag hierarchy.
"""

from __future__ import annotations

from datetime import datetime
from typing import List

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Path segments under /org-tags that would shadow GET /org-tags/{tag_id}
RESERVED_TAG_IDS = frozenset({"tree", "effective"})


# =============================================================================
# Domain Models
# =============================================================================

class OrganizationTag(BaseModel):
    """A node in the organization hierarchy as persisted by a tag store."""

    model_config = ConfigDict(populate_by_name=True)

    tag_id: str = Field(..., alias="tagId")
    name: str
    description: str = ""
    parent_tag: str | None = Field(default=None, alias="parentTag")
    created_by: str = Field(default="", alias="createdBy")
    updated_by: str = Field(default="", alias="updatedBy")
    created_at: datetime | None = Field(default=None, alias="createdAt")
    updated_at: datetime | None = Field(default=None, alias="updatedAt")


class OrganizationTagNode(BaseModel):
    """Tree node view of a tag; carries no audit fields."""

    model_config = ConfigDict(populate_by_name=True)

    tag_id: str = Field(..., alias="tagId")
    name: str
    description: str = ""
    parent_tag: str | None = Field(default=None, alias="parentTag")
    children: List[OrganizationTagNode] = Field(default_factory=list)

    def count(self) -> int:
        """Number of nodes in this subtree, including itself."""
        return 1 + sum(child.count() for child in self.children)


OrganizationTagNode.model_rebuild()


# =============================================================================
# Request Schemas
# =============================================================================

class TagCreate(BaseModel):
    """Create a new organization tag."""

    model_config = ConfigDict(populate_by_name=True)

    tag_id: str = Field(..., alias="tagId", max_length=255, description="Caller-chosen unique id")
    name: str = Field(..., max_length=100)
    description: str = Field(default="", max_length=255)
    parent_tag: str | None = Field(default=None, alias="parentTag", max_length=255)

    @field_validator("tag_id")
    @classmethod
    def tag_id_not_reserved(cls, value: str) -> str:
        if value.strip().lower() in RESERVED_TAG_IDS:
            raise ValueError(f"tag id '{value.strip()}' is reserved")
        return value


class TagUpdate(BaseModel):
    """Update an existing organization tag."""

    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(..., max_length=100)
    description: str = Field(default="", max_length=255)
    parent_tag: str | None = Field(default=None, alias="parentTag", max_length=255)


class EffectiveTagsRequest(BaseModel):
    """Seed tags held by a principal, as a list or as the raw comma-separated user field."""

    model_config = ConfigDict(populate_by_name=True)

    tag_ids: List[str] = Field(default_factory=list, alias="tagIds")
    org_tags: str | None = Field(default=None, alias="orgTags", description="e.g. 'dept,team'")


# =============================================================================
# Response Schemas
# =============================================================================

class TagListResponse(BaseModel):
    """List of tags."""
    items: List[OrganizationTag]
    total: int


class TagTreeResponse(BaseModel):
    """Forest of root nodes."""
    items: List[OrganizationTagNode]
    total: int = Field(..., description="Number of nodes across the whole forest")
