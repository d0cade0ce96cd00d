import asyncio
import logging
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from scholarstack.core.config import settings
from scholarstack.core.errors import EmbeddingProviderError
from scholarstack.models import sql_models as models
from scholarstack.services import chunk_store, embeddings, file_service
from scholarstack.services.llm_clients import Credential
from scholarstack.services.pdf_extractor import extract_pdf
from scholarstack.services.text_chunker import chunk_text

logger = logging.getLogger(__name__)

CONTENT_PREVIEW_CHARS = 100_000


class IngestionService:
    """
    Runs extraction -> chunking -> embedding -> storage for one document.

    Ingestion of a given document is serialized through a per-document lock,
    so a re-index cannot interleave its delete-then-recreate with another.
    One instance lives on app.state for the lifetime of the process.
    """

    def __init__(self):
        self._locks: Dict[int, asyncio.Lock] = {}

    def _lock_for(self, document_id: int) -> asyncio.Lock:
        lock = self._locks.get(document_id)
        if lock is None:
            lock = self._locks[document_id] = asyncio.Lock()
        return lock

    def forget(self, document_id: int) -> None:
        self._locks.pop(document_id, None)

    async def ingest_document(
        self,
        db: Session,
        project_id: int,
        filename: str,
        data: bytes,
        location: str,
        credential: Optional[Credential],
    ) -> models.Document:
        logger.info(f"Processing file: {filename} for project {project_id}")

        # The Document row is only created once the PDF has been read
        extracted = extract_pdf(data)
        logger.info(f"Text extracted: {len(extracted.text)} chars, {extracted.page_count} pages")

        document = models.Document(
            project_id=project_id,
            filename=filename,
            file_path=location,
            page_count=extracted.page_count,
            content=extracted.text[:CONTENT_PREVIEW_CHARS],
        )
        try:
            db.add(document)
            db.flush()
            async with self._lock_for(document.id):
                await self._store_chunks(db, document, extracted.text, credential)
            db.commit()
        except Exception:
            db.rollback()
            raise

        db.refresh(document)
        return document

    async def reindex_document(
        self,
        db: Session,
        document: models.Document,
        credential: Optional[Credential],
    ) -> models.Document:
        """
        Re-extracts from the stored location and replaces the whole chunk set,
        including its embedding status under the current credential.
        """
        async with self._lock_for(document.id):
            if document.is_remote:
                data = await file_service.fetch_remote_pdf(document.file_path)
            else:
                data = file_service.read_stored_file(document.file_path)
            extracted = extract_pdf(data)

            try:
                chunk_store.delete_document_chunks(db, document.id)
                document.page_count = extracted.page_count
                document.content = extracted.text[:CONTENT_PREVIEW_CHARS]
                await self._store_chunks(db, document, extracted.text, credential)
                db.commit()
            except Exception:
                db.rollback()
                raise

        db.refresh(document)
        return document

    async def _store_chunks(
        self,
        db: Session,
        document: models.Document,
        text: str,
        credential: Optional[Credential],
    ) -> bool:
        """
        Chunks and persists in sub-batches. Returns True if the stored chunks
        carry embeddings.

        A provider failure part-way clears the embeddings already written for
        this document, so its chunks are never a mix of embedded and not.
        """
        chunks = chunk_text(text, settings.CHUNK_SIZE, settings.CHUNK_OVERLAP)
        logger.info(f"Generated {len(chunks)} chunks for document {document.id}.")

        embedded = credential is not None
        batch_size = max(1, settings.EMBED_PERSIST_BATCH_SIZE)
        for batch_start in range(0, len(chunks), batch_size):
            batch = chunks[batch_start: batch_start + batch_size]
            vectors: Optional[List[List[float]]] = None
            if embedded:
                try:
                    vectors = await embeddings.embed_batch(batch, credential)
                except EmbeddingProviderError as e:
                    logger.warning(
                        f"Embedding failed for document {document.id} ({e}); "
                        "storing chunks without embeddings."
                    )
                    embedded = False
                    chunk_store.clear_document_embeddings(db, document.id)
            chunk_store.add_chunks(db, document.id, batch_start, batch, vectors if embedded else None)
            logger.info(f"Stored chunks {batch_start + 1}-{batch_start + len(batch)}/{len(chunks)}")

        if chunks and not embedded:
            logger.info(f"Document {document.id} indexed for keyword search only.")
        return embedded
