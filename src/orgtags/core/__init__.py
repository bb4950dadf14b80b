"""
OrgTags Core - Infrastructure shared by modules.
"""

from orgtags.core.supabase_client import create_supabase_client

__all__ = ["create_supabase_client"]
