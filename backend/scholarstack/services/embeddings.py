import numpy as np
import logging
from typing import List, Optional, Sequence

from scholarstack.core.errors import EmbeddingProviderError
from scholarstack.services import llm_clients
from scholarstack.services.llm_clients import Credential, LLMBackendError

logger = logging.getLogger(__name__)


async def embed_batch(texts: Sequence[str], credential: Optional[Credential]) -> List[List[float]]:
    """
    Embeds each text with the credential's provider, one request per text.

    Without a credential every vector is empty ("embeddings unavailable");
    callers check the vector length rather than catching an error.
    """
    if credential is None:
        return [[] for _ in texts]

    backend = llm_clients.get_backend(credential)
    embeddings = []
    for i, text in enumerate(texts):
        try:
            embeddings.append(await backend.embed(text))
        except LLMBackendError as e:
            logger.error(f"Embedding failed for item {i + 1}/{len(texts)}: {e}")
            raise EmbeddingProviderError(f"Failed to generate embeddings: {e}", status_code=e.status_code) from e
    return embeddings


async def embed_query(text: str, credential: Optional[Credential]) -> List[float]:
    if credential is None:
        return []

    backend = llm_clients.get_backend(credential)
    try:
        return await backend.embed(text)
    except LLMBackendError as e:
        logger.error(f"Query embedding failed: {e}")
        raise EmbeddingProviderError(f"Failed to generate query embedding: {e}", status_code=e.status_code) from e


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    a = np.asarray(a, dtype=float)
    b = np.asarray(b, dtype=float)
    if a.shape != b.shape:
        raise ValueError(f"Vectors must have the same length ({a.size} != {b.size})")

    norm = np.linalg.norm(a) * np.linalg.norm(b)
    if norm == 0.0:
        return 0.0
    return float(np.dot(a, b) / norm)


def cosine_similarities(query: Sequence[float], vectors: Sequence[Sequence[float]]) -> np.ndarray:
    """
    Cosine similarity of the query against every row. Returns shape (n,).
    Rows with zero norm score 0.0.
    """
    query_vec = np.asarray(query, dtype=float)
    if len(vectors) == 0:
        return np.zeros(0)
    matrix = np.asarray(vectors, dtype=float)
    if matrix.ndim != 2 or matrix.shape[1] != query_vec.size:
        raise ValueError(f"Every vector must have length {query_vec.size}")

    norms = np.linalg.norm(matrix, axis=1) * np.linalg.norm(query_vec)
    dots = matrix @ query_vec
    scores = np.zeros(len(matrix))
    np.divide(dots, norms, out=scores, where=norms > 0)
    return scores
