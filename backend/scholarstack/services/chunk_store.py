"""
Persistence for document chunks and their embeddings.

A document's chunk set is written once per ingestion run and replaced
wholesale on re-ingestion; rows are never patched individually except to
clear embeddings when a run degrades to keyword-only storage.
"""
from sqlalchemy.orm import Session
from typing import List, Optional, Sequence, Tuple
import logging

from scholarstack.models import sql_models as models

logger = logging.getLogger(__name__)


def add_chunks(
    db: Session,
    document_id: int,
    start_index: int,
    texts: Sequence[str],
    embeddings: Optional[Sequence[List[float]]] = None,
) -> int:
    """
    Stages one sub-batch of chunks. Indices continue from `start_index`.
    Empty vectors are stored as NULL.
    """
    for offset, text in enumerate(texts):
        chunk = models.DocumentChunk(
            document_id=document_id,
            chunk_index=start_index + offset,
            content=text,
        )
        chunk.embedding = embeddings[offset] if embeddings else None
        db.add(chunk)
    db.flush()
    return len(texts)


def delete_document_chunks(db: Session, document_id: int) -> int:
    deleted_count = db.query(models.DocumentChunk).filter(
        models.DocumentChunk.document_id == document_id
    ).delete(synchronize_session=False)
    logger.info(f"Deleted {deleted_count} chunks for document_id: {document_id}")
    return deleted_count


def clear_document_embeddings(db: Session, document_id: int) -> int:
    return db.query(models.DocumentChunk).filter(
        models.DocumentChunk.document_id == document_id
    ).update({"embedding_json": None}, synchronize_session=False)


def load_project_chunks(db: Session, project_id: int) -> List[Tuple[models.DocumentChunk, str]]:
    """
    All chunks under a project with their document's filename, in
    document upload order then reading order.
    """
    return db.query(models.DocumentChunk, models.Document.filename).join(
        models.Document, models.DocumentChunk.document_id == models.Document.id
    ).filter(
        models.Document.project_id == project_id
    ).order_by(
        models.Document.uploaded_at, models.Document.id, models.DocumentChunk.chunk_index
    ).all()


def list_document_names(db: Session, project_id: int) -> List[str]:
    rows = db.query(models.Document.filename).filter(
        models.Document.project_id == project_id
    ).order_by(models.Document.uploaded_at, models.Document.id).all()
    return [row.filename for row in rows]
