"""Client for the embedding service used to vectorize text queries."""

from typing import Optional

import httpx
import numpy as np
import structlog

from ..errors import EmbeddingServiceError

logger = structlog.get_logger("search_service.embedding_client")


class EmbeddingClient:
    """Fetches query embeddings from the embedding service over HTTP.

    Parameters
    - base_url: Root URL of the embedding service
    - model: Model name forwarded with every request
    - timeout: Request timeout in seconds
    - transport: Optional ``httpx`` transport override, mainly for tests
    """

    def __init__(
        self,
        base_url: str,
        model: str = "default",
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.http_client = httpx.AsyncClient(timeout=timeout, transport=transport)

    async def embed(self, text: str) -> np.ndarray:
        """Return the embedding for ``text``.

        Raises ``EmbeddingServiceError`` on transport failures, non-200
        responses, or an empty vector list.
        """
        try:
            response = await self.http_client.post(
                f"{self.base_url}/api/v1/embed",
                json={
                    "items": [{"text": text}],
                    "model": self.model
                }
            )
        except httpx.HTTPError as e:
            logger.error("Embedding service call failed", error=str(e))
            raise EmbeddingServiceError(f"Embedding service unreachable: {e}") from e

        if response.status_code != 200:
            raise EmbeddingServiceError(f"Embedding service returned status {response.status_code}")

        vectors = response.json().get("vectors") or []
        if not vectors:
            raise EmbeddingServiceError("Embedding service returned no vectors")

        return np.asarray(vectors[0], dtype=float)

    async def close(self) -> None:
        await self.http_client.aclose()
