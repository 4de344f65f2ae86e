"""Hybrid search components for semantic + keyword ranking.

Includes the ``HybridSearchService`` which dispatches both retrieval signals
concurrently and merges their results.
"""
