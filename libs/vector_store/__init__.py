"""Vector store adapters and utilities.

Primary components:
- ``base``: abstract ``VectorStore`` interface, result types and exceptions.
- ``chroma``: Chroma REST implementation of the interface.
- ``factory``: helpers to construct a store from typed config.

Guidance:
- Prefer constructing via ``factory.create_vector_store_from_config`` so the
  service stays decoupled from specific backends.
"""
