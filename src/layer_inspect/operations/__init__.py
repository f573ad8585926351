"""Registry API v2 read operations."""
