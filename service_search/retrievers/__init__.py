"""Candidate retrieval from the vector store.

``KnnQueryExecutor`` runs one nearest-neighbor query (embedding text queries
through ``EmbeddingClient`` first) and ``ResultTransformer`` turns the raw
parallel arrays into result items.
"""
