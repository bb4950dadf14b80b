"""OrgTags Tags - Router.

REST API endpoints for the organization tag hierarchy.
"""

from fastapi import APIRouter, Depends, Query, status

from orgtags.deps import get_actor, get_tag_resolver, get_tag_service
from orgtags.exceptions import ValidationException
from orgtags.modules.tags.resolver import EffectiveTagResolver, normalize_tag_ids, parse_org_tag_ids
from orgtags.modules.tags.schemas import (
    EffectiveTagsRequest,
    OrganizationTag,
    TagCreate,
    TagListResponse,
    TagTreeResponse,
    TagUpdate,
)
from orgtags.modules.tags.service import OrgTagService
from orgtags.schemas import ErrorResponse

router = APIRouter(
    prefix="/org-tags",
    tags=["Organization Tags"],
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
    },
)


@router.get("", response_model=TagListResponse)
async def list_tags(service: OrgTagService = Depends(get_tag_service)) -> TagListResponse:
    """List all tags ordered by id."""
    tags = await service.list_tags()
    return TagListResponse(items=tags, total=len(tags))


@router.post("", response_model=OrganizationTag, status_code=status.HTTP_201_CREATED)
async def create_tag(
    data: TagCreate,
    service: OrgTagService = Depends(get_tag_service),
    actor: str | None = Depends(get_actor),
) -> OrganizationTag:
    """Create a new tag."""
    return await service.create(data.tag_id, data.name, data.description, data.parent_tag, actor)


@router.get("/tree", response_model=TagTreeResponse)
async def get_tree(service: OrgTagService = Depends(get_tag_service)) -> TagTreeResponse:
    """Get the tag forest."""
    roots = await service.get_tree()
    return TagTreeResponse(items=roots, total=sum(node.count() for node in roots))


@router.post("/effective", response_model=TagListResponse)
async def resolve_effective_tags(
    data: EffectiveTagsRequest,
    resolver: EffectiveTagResolver = Depends(get_tag_resolver),
) -> TagListResponse:
    """Expand seed tags into every tag they grant, descendants included."""
    seed_ids = normalize_tag_ids([*data.tag_ids, *parse_org_tag_ids(data.org_tags)])
    tags = await resolver.resolve(seed_ids)
    return TagListResponse(items=tags, total=len(tags))


@router.get("/{tag_id}", response_model=OrganizationTag)
async def get_tag(tag_id: str, service: OrgTagService = Depends(get_tag_service)) -> OrganizationTag:
    """Get a specific tag by id."""
    return await service.find_by_id(tag_id)


@router.put("/{tag_id}", response_model=OrganizationTag)
async def update_tag(
    tag_id: str,
    data: TagUpdate,
    service: OrgTagService = Depends(get_tag_service),
    actor: str | None = Depends(get_actor),
) -> OrganizationTag:
    """Update name, description and parent of a tag."""
    return await service.update(tag_id, data.name, data.description, data.parent_tag, actor)


@router.delete("/{tag_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_tag(
    tag_id: str,
    strategy: str = Query(default="protect"),
    service: OrgTagService = Depends(get_tag_service),
):
    """Delete a tag.

    - protect: refuse with 409 while the tag has children
    - reparent: move children to the tag's parent, then delete
    """
    strategy = strategy.strip().lower()
    if strategy == "protect":
        await service.delete(tag_id)
    elif strategy == "reparent":
        await service.delete_and_reparent(tag_id)
    else:
        raise ValidationException("Invalid delete strategy, use 'protect' or 'reparent'")
    return None
