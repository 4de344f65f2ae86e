"""Shared libraries for the documentation search platform.

Subpackages:
- ``libs.common``: configuration, logging, and metrics.
- ``libs.search_provider``: search provider abstractions, the chunk data
  model, and concrete backends.

Usage:
- Import stable, reusable functionality from here to keep service code lean.

Notes:
- Avoid service-specific logic; keep modules cohesive and broadly useful.
"""
