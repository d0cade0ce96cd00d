import re
import logging
from dataclasses import dataclass
from sqlalchemy.orm import Session
from typing import List, Optional, Sequence

from scholarstack.core.errors import EmbeddingProviderError
from scholarstack.services import chunk_store, embeddings
from scholarstack.services.llm_clients import Credential

logger = logging.getLogger(__name__)


@dataclass
class ChunkWithScore:
    id: int
    document_id: int
    document_name: str
    content: str
    score: float


@dataclass
class _Candidate:
    id: int
    document_id: int
    document_name: str
    content: str
    embedding: Optional[List[float]]


def _rank(scored: List[ChunkWithScore], top_k: int) -> List[ChunkWithScore]:
    # sorted() is stable, so equal scores keep reading order
    return sorted(scored, key=lambda c: c.score, reverse=True)[:top_k]


def keyword_search(candidates: Sequence[_Candidate], query: str, top_k: int) -> List[ChunkWithScore]:
    """
    Scores each chunk by how many query words (longer than 2 chars) it
    contains as a case-insensitive substring. Zero-score chunks are dropped.
    """
    query_words = [w for w in re.split(r"\s+", query.lower()) if len(w) > 2]

    scored = []
    for candidate in candidates:
        content_lower = candidate.content.lower()
        match_count = sum(1 for word in query_words if word in content_lower)
        if match_count > 0:
            scored.append(ChunkWithScore(
                id=candidate.id,
                document_id=candidate.document_id,
                document_name=candidate.document_name,
                content=candidate.content,
                score=float(match_count),
            ))
    return _rank(scored, top_k)


def vector_search(candidates: Sequence[_Candidate], query_embedding: List[float], top_k: int) -> List[ChunkWithScore]:
    """
    Cosine ranking. Chunks without an embedding, or with one from a model
    of a different dimension, are left out entirely.
    """
    dimension = len(query_embedding)
    comparable = [c for c in candidates if c.embedding and len(c.embedding) == dimension]
    if not comparable:
        return []

    scores = embeddings.cosine_similarities(query_embedding, [c.embedding for c in comparable])
    scored = [
        ChunkWithScore(
            id=candidate.id,
            document_id=candidate.document_id,
            document_name=candidate.document_name,
            content=candidate.content,
            score=float(score),
        )
        for candidate, score in zip(comparable, scores)
    ]
    return _rank(scored, top_k)


async def find_relevant_chunks(
    db: Session,
    project_id: int,
    query: str,
    top_k: int = 5,
    credential: Optional[Credential] = None,
) -> List[ChunkWithScore]:
    """
    Returns at most `top_k` chunks from the project, best first.

    Falls back to keyword scoring when there is no credential, when no chunk
    carries an embedding, when the query cannot be embedded, or when no
    stored vector has the query's dimension.
    """
    if top_k <= 0:
        return []

    candidates = [
        _Candidate(
            id=chunk.id,
            document_id=chunk.document_id,
            document_name=filename,
            content=chunk.content,
            embedding=chunk.embedding,
        )
        for chunk, filename in chunk_store.load_project_chunks(db, project_id)
    ]
    if not candidates:
        return []

    if credential is None:
        logger.info(f"No credential for project {project_id}; using keyword search.")
        return keyword_search(candidates, query, top_k)

    if not any(c.embedding for c in candidates):
        logger.warning("No chunks with embeddings found, falling back to keyword search")
        return keyword_search(candidates, query, top_k)

    try:
        query_embedding = await embeddings.embed_query(query, credential)
    except EmbeddingProviderError as e:
        logger.warning(f"Query embedding unavailable ({e}); falling back to keyword search")
        return keyword_search(candidates, query, top_k)

    if not query_embedding:
        return keyword_search(candidates, query, top_k)

    results = vector_search(candidates, query_embedding, top_k)
    if not results:
        logger.warning(
            f"No stored embedding matches the query dimension ({len(query_embedding)}); "
            "re-index the project. Falling back to keyword search"
        )
        return keyword_search(candidates, query, top_k)
    logger.info(f"Vector search over {len(candidates)} chunks returned {len(results)} results.")
    return results
