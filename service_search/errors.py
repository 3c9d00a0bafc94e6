"""Exceptions raised by the search pipeline.

Store failures use the exceptions in ``libs.vector_store.base``; everything
here is specific to request handling.
"""


class SearchError(Exception):
    """Base exception for search pipeline failures."""
    pass


class SearchRequestError(SearchError):
    """The request cannot be executed as written (client error)."""
    pass


class MissingRankError(SearchRequestError):
    """Neither a KNN query nor an RRF clause was supplied."""

    def __init__(self, message: str = "rank (KNN or RRF) is required"):
        super().__init__(message)


class UnsupportedEmbeddingKeyError(SearchRequestError):
    """A query targets an embedding field other than the default."""

    def __init__(self, key: str):
        self.key = key
        super().__init__(
            f'Custom embedding key "{key}" is not yet supported. '
            "Use default #embedding or omit the key parameter."
        )


class EmbeddingServiceError(SearchError):
    """The embedding service could not turn query text into a vector."""
    pass
