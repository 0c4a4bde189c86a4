"""API v1 schemas."""
