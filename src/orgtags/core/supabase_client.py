"""
OrgTags Core - Supabase Client.

Builds a configured Supabase client for the production tag store.
The client is created once at startup and handed to the store; nothing
here is cached at module level.
"""

from supabase import Client, create_client

from orgtags.config import SupabaseSettings


def create_supabase_client(settings: SupabaseSettings) -> Client:
    """
    Create a Supabase client.

    Uses service role key for server-side operations.
    """
    return create_client(
        supabase_url=settings.url,
        supabase_key=settings.service_role_key,
    )
