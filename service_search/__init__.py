"""Documentation hybrid search service."""
