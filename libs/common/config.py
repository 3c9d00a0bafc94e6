"""Configuration management for the search query service.

Settings are read from the process environment (or a ``.env`` file) through
``pydantic-settings``. Field names map to upper-case environment variables,
so ``ml_search_port`` is populated from ``ML_SEARCH_PORT``.

Usage
- Build the config once in the service entrypoint: ``config = SearchConfig()``
- Pass it down to the pieces that need it rather than re-reading the env
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseConfig(BaseSettings):
    """Settings shared by every process in the repository.

    Notes
    - Add new shared settings here so downstream configs inherit them.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    # Environment
    ml_env: str = Field(default="local")

    # Logging
    ml_log_level: str = Field(default="INFO")
    ml_log_format: str = Field(default="json")

    # Vector store
    ml_vector_backend: str = Field(default="chroma")
    ml_chroma_host: str = Field(default="localhost")
    ml_chroma_port: int = Field(default=8000)
    ml_chroma_ssl: bool = Field(default=False)
    ml_chroma_tenant: str = Field(default="default_tenant")
    ml_chroma_database: str = Field(default="default_database")

    # Embedding service (used to turn text queries into vectors)
    ml_embedding_service_url: str = Field(default="http://localhost:9006")
    ml_embedding_model: str = Field(default="default")


class SearchConfig(BaseConfig):
    """Configuration for the search service.

    Adds the HTTP bind address and the knobs of the search pipeline.
    """

    ml_search_host: str = Field(default="0.0.0.0")
    ml_search_port: int = Field(default=9007)

    # Candidate count requested from the store when a query sets no limit
    ml_search_default_knn_limit: int = Field(default=100, gt=0)

    # Issue the sub-queries of a fusion clause concurrently
    ml_search_concurrent_subqueries: bool = Field(default=True)

    # Credit ids missing from a fused sub-list with that query's default rank
    ml_search_rrf_default_rank_synthesis: bool = Field(default=False)
