"""Tests for the documentation search platform.

Unit tests cover configuration, metrics, providers, rank fusion and the
hybrid search service. Provider backends are replaced with fakes or mocked
clients so the suite runs without external services.
"""
