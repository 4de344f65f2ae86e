"""Search ranking and result fusion components.

Contents
- ``fusion``: Reciprocal Rank Fusion of semantic and keyword result lists
"""
