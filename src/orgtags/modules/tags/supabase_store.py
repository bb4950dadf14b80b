"""
OrgTags Tags - Supabase Store.

Production tag store on Supabase (PostgREST).

Single-statement operations go through the table API. The two delete
strategies call Postgres functions (see supabase/migrations) through
``rpc()``: PostgREST runs each function call in one transaction, so the
existence check, child check/reparent and delete commit or roll back
together.
"""

import logging
from datetime import datetime, timezone
from typing import Any

from postgrest.exceptions import APIError
from supabase import Client

from orgtags.modules.tags.schemas import OrganizationTag
from orgtags.modules.tags.store import (
    InvalidTagError,
    TagAlreadyExistsError,
    TagHasChildrenError,
    TagNotFoundError,
    TagStore,
)

logger = logging.getLogger(__name__)

# SQLSTATE codes surfaced by PostgREST in APIError.code
UNIQUE_VIOLATION = "23505"
NO_DATA_FOUND = "P0002"
HAS_CHILDREN = "OT409"

DELETE_PROTECT_FN = "org_tags_delete_protect"
DELETE_REPARENT_FN = "org_tags_delete_reparent"

_WRITABLE_FIELDS = ("name", "description", "parent_tag", "updated_by")


def _translate(exc: APIError, tag_id: str) -> Exception | None:
    """Map a PostgREST error onto a store error; None for codes with no business meaning."""
    if exc.code == UNIQUE_VIOLATION:
        return TagAlreadyExistsError(tag_id)
    if exc.code == NO_DATA_FOUND:
        return TagNotFoundError(tag_id)
    if exc.code == HAS_CHILDREN:
        count = str(exc.details or "").strip()
        return TagHasChildrenError(tag_id, int(count) if count.isdigit() else None)
    return None


class SupabaseTagStore(TagStore):
    """Tag store over a Supabase table."""

    name = "supabase"

    def __init__(self, client: Client, table_name: str = "organization_tags"):
        self._client = client
        self._table_name = table_name

    @property
    def table(self):
        """Get the Supabase table reference."""
        return self._client.table(self._table_name)

    @staticmethod
    def _to_tag(row: dict[str, Any]) -> OrganizationTag:
        return OrganizationTag.model_validate(row)

    async def create(self, tag: OrganizationTag) -> OrganizationTag:
        if tag is None:
            raise InvalidTagError("tag is required")
        if not tag.tag_id:
            raise InvalidTagError("tag id is required")

        # created_at / updated_at come from column defaults
        payload = tag.model_dump(exclude={"created_at", "updated_at"})
        try:
            response = self.table.insert(payload).execute()
        except APIError as e:
            translated = _translate(e, tag.tag_id)
            if translated is None:
                raise
            raise translated from e
        return self._to_tag(response.data[0])

    async def find_by_id(self, tag_id: str) -> OrganizationTag:
        if not tag_id:
            raise InvalidTagError("tag id is required")

        try:
            response = (
                self.table.select("*")
                .eq("tag_id", tag_id)
                .maybe_single()
                .execute()
            )
        except APIError as e:
            # older postgrest clients report an empty maybe_single() as HTTP 204
            if str(e.code) == "204":
                raise TagNotFoundError(tag_id) from e
            raise
        if response is None or not response.data:
            raise TagNotFoundError(tag_id)
        return self._to_tag(response.data)

    async def find_all(self) -> list[OrganizationTag]:
        response = self.table.select("*").order("tag_id").execute()
        return [self._to_tag(row) for row in response.data or []]

    async def find_by_parent(self, parent_tag: str | None) -> list[OrganizationTag]:
        query = self.table.select("*")
        if parent_tag is None:
            query = query.is_("parent_tag", "null")
        else:
            query = query.eq("parent_tag", parent_tag)
        response = query.order("tag_id").execute()
        return [self._to_tag(row) for row in response.data or []]

    async def update(self, tag: OrganizationTag) -> OrganizationTag:
        if tag is None:
            raise InvalidTagError("tag is required")
        if not tag.tag_id:
            raise InvalidTagError("tag id is required")

        payload: dict[str, Any] = {field: getattr(tag, field) for field in _WRITABLE_FIELDS}
        payload["updated_at"] = datetime.now(timezone.utc).isoformat()

        response = self.table.update(payload).eq("tag_id", tag.tag_id).execute()
        if not response.data:
            raise TagNotFoundError(tag.tag_id)
        return self._to_tag(response.data[0])

    async def delete_protect(self, tag_id: str) -> None:
        await self._call_delete(DELETE_PROTECT_FN, tag_id)

    async def delete_reparent(self, tag_id: str) -> None:
        await self._call_delete(DELETE_REPARENT_FN, tag_id)

    async def _call_delete(self, function: str, tag_id: str) -> None:
        if not tag_id:
            raise InvalidTagError("tag id is required")

        logger.debug(f"rpc {function}({tag_id})")
        try:
            self._client.rpc(function, {"p_tag_id": tag_id}).execute()
        except APIError as e:
            translated = _translate(e, tag_id)
            if translated is None:
                raise
            raise translated from e
