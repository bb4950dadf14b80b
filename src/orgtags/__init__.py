"""
OrgTags - Organization tag hierarchy for multi-tenant access control.
"""

__version__ = "0.1.0"
