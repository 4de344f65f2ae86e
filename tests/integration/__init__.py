"""Integration test suite for end-to-end flows.

Drives the FastAPI application over the bundled sample corpus, verifying
that routing, the search service and providers work together.
"""
