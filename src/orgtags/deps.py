"""
OrgTags - Dependency Injection.

Store construction plus FastAPI dependencies that hand out the store,
services and request context. The store and services live on
``app.state``; there is no module-level instance.
"""

import logging
from typing import Annotated

from fastapi import Header, Request

from orgtags.config import Settings
from orgtags.core.supabase_client import create_supabase_client
from orgtags.modules.tags.resolver import EffectiveTagResolver
from orgtags.modules.tags.service import OrgTagService
from orgtags.modules.tags.store import InMemoryTagStore, TagStore
from orgtags.modules.tags.supabase_store import SupabaseTagStore

logger = logging.getLogger(__name__)


# =============================================================================
# Construction
# =============================================================================


def build_tag_store(settings: Settings) -> TagStore:
    """Create the tag store selected by ``store_backend``."""
    if settings.store_backend == "supabase":
        client = create_supabase_client(settings.supabase)
        logger.info(f"Using Supabase tag store (table={settings.supabase.table})")
        return SupabaseTagStore(client, table_name=settings.supabase.table)

    logger.info("Using in-memory tag store")
    return InMemoryTagStore()


def build_tag_service(store: TagStore, settings: Settings) -> OrgTagService:
    return OrgTagService(
        store,
        system_actor=settings.system_actor,
        reject_ancestor_cycles=settings.tags.reject_ancestor_cycles,
    )


# =============================================================================
# Request Dependencies
# =============================================================================


def get_tag_service(request: Request) -> OrgTagService:
    return request.app.state.tag_service


def get_tag_resolver(request: Request) -> EffectiveTagResolver:
    return request.app.state.tag_resolver


def get_actor(x_actor: Annotated[str | None, Header()] = None) -> str | None:
    """Actor attribution for writes; the service substitutes the system actor when blank."""
    return x_actor
