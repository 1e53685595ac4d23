"""curate — authorization and consistency layer for user-owned collections."""
