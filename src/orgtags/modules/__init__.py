"""OrgTags feature modules."""
