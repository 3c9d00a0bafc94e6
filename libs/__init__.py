"""Shared libraries for the search query service.

Subpackages:
- ``libs.common``: configuration, logging, and metrics.
- ``libs.vector_store``: vector store abstraction and the Chroma backend.

Notes:
- Avoid search-pipeline logic here; keep modules cohesive and broadly useful.
"""
