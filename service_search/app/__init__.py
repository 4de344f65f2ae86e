"""Search service package.

Layout:
- ``api``: HTTP endpoints for hybrid search and chunk lookup.
- ``hybrid``: semantic + keyword search orchestration.
- ``ranking``: rank fusion of provider result lists.
"""
