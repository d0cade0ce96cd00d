from fastapi import APIRouter, UploadFile, File, Form, Depends, HTTPException, status
from sqlalchemy.orm import Session
from typing import List
import logging

from scholarstack.core.config import settings
from scholarstack.core.database import get_db
from scholarstack.models import sql_models as models
from scholarstack import schemas
from scholarstack.services import file_service, user_settings
from scholarstack.services.ingestion import IngestionService
from scholarstack.api.routers.projects import get_ingestion_service, get_project_or_404

logger = logging.getLogger(__name__)

router = APIRouter()

def get_document_or_404(db: Session, document_id: int) -> models.Document:
    document = db.query(models.Document).filter(models.Document.id == document_id).first()
    if not document:
        raise HTTPException(status_code=404, detail="Document not found")
    return document

@router.post("/upload", response_model=schemas.Document, status_code=status.HTTP_201_CREATED)
async def upload_document(
    pdf: UploadFile = File(...),
    project_id: int = Form(...),
    db: Session = Depends(get_db),
    ingestion: IngestionService = Depends(get_ingestion_service),
):
    project = get_project_or_404(db, project_id)

    filename = pdf.filename or "document.pdf"
    is_pdf = pdf.content_type == "application/pdf" or filename.lower().endswith(".pdf")
    if not is_pdf:
        raise HTTPException(status_code=400, detail="Only PDF files are allowed")

    try:
        data = await pdf.read()
    finally:
        await pdf.close()
    if len(data) > settings.MAX_UPLOAD_BYTES:
        raise HTTPException(status_code=413, detail="File exceeds the upload size limit")

    logger.info(f"PDF upload: project={project_id} filename={filename} size={len(data)}")
    file_path, _ = file_service.save_upload_bytes(filename, data)
    try:
        document = await ingestion.ingest_document(
            db,
            project_id=project.id,
            filename=filename,
            data=data,
            location=file_path,
            credential=user_settings.credential_for_user(project.user),
        )
    except Exception:
        # Nothing references the file if ingestion failed
        file_service.remove_stored_file(file_path)
        raise
    return document

@router.post("/link", response_model=schemas.Document, status_code=status.HTTP_201_CREATED)
async def link_document(
    link: schemas.DocumentLink,
    db: Session = Depends(get_db),
    ingestion: IngestionService = Depends(get_ingestion_service),
):
    project = get_project_or_404(db, link.project_id)
    url = link.url.strip()
    if not url.startswith(("http://", "https://")):
        raise HTTPException(status_code=400, detail="A http(s) URL is required")

    data = await file_service.fetch_remote_pdf(url)
    return await ingestion.ingest_document(
        db,
        project_id=project.id,
        filename=link.filename or file_service.filename_from_url(url),
        data=data,
        location=url,
        credential=user_settings.credential_for_user(project.user),
    )

@router.get("/project/{project_id}", response_model=List[schemas.Document])
def read_project_documents(project_id: int, db: Session = Depends(get_db)):
    get_project_or_404(db, project_id)
    return db.query(models.Document).filter(
        models.Document.project_id == project_id
    ).order_by(models.Document.uploaded_at.desc()).all()

@router.get("/{document_id}", response_model=schemas.DocumentWithChunks)
def read_document(document_id: int, db: Session = Depends(get_db)):
    return get_document_or_404(db, document_id)

@router.post("/{document_id}/reindex", response_model=schemas.DocumentWithChunks)
async def reindex_document(
    document_id: int,
    db: Session = Depends(get_db),
    ingestion: IngestionService = Depends(get_ingestion_service),
):
    document = get_document_or_404(db, document_id)
    credential = user_settings.credential_for_user(document.project.user)
    return await ingestion.reindex_document(db, document, credential)

@router.delete("/{document_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_document(
    document_id: int,
    db: Session = Depends(get_db),
    ingestion: IngestionService = Depends(get_ingestion_service),
):
    document = get_document_or_404(db, document_id)
    file_path = None if document.is_remote else document.file_path
    db.delete(document)
    db.commit()
    ingestion.forget(document_id)
    if file_path:
        file_service.remove_stored_file(file_path)
