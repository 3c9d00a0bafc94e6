"""API subpackage for the search service.

Routers expose the search and batch search endpoints. The transport layer
stays thin and delegates to ``SearchExecutor``.
"""
