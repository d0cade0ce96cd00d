import asyncio
import logging

from scholarstack.core.database import SessionLocal
from scholarstack.core.errors import ScholarStackError
from scholarstack.models import sql_models as models
from scholarstack.services import user_settings
from scholarstack.services.ingestion import IngestionService

# Configure Logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

async def reindex_all():
    """
    Rebuilds every document's chunk set under its owner's current key.
    Needed after switching provider, since vectors from different models
    cannot be compared.
    """
    ingestion = IngestionService()
    db = SessionLocal()
    failed = 0
    try:
        documents = db.query(models.Document).all()
        logger.info(f"Found {len(documents)} documents to re-index.")

        for document in documents:
            logger.info(f"Re-indexing: {document.filename} (ID: {document.id})")
            credential = user_settings.credential_for_user(document.project.user)
            try:
                await ingestion.reindex_document(db, document, credential)
                logger.info("Success.")
            except ScholarStackError as e:
                failed += 1
                logger.error(f"Failed to re-index {document.id}: {e}")
    finally:
        db.close()
    return failed

if __name__ == "__main__":
    raise SystemExit(1 if asyncio.run(reindex_all()) else 0)
