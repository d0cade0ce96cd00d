from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session
from typing import List

from scholarstack.core.database import get_db
from scholarstack.models import sql_models as models
from scholarstack import schemas
from scholarstack.services import file_service, user_settings
from scholarstack.services.ingestion import IngestionService

router = APIRouter()

def get_ingestion_service(request: Request) -> IngestionService:
    return request.app.state.ingestion

def get_project_or_404(db: Session, project_id: int) -> models.Project:
    project = db.query(models.Project).filter(models.Project.id == project_id).first()
    if not project:
        raise HTTPException(status_code=404, detail="Project not found")
    return project

@router.post("/", response_model=schemas.Project, status_code=status.HTTP_201_CREATED)
def create_project(project_in: schemas.ProjectCreate, db: Session = Depends(get_db)):
    name = project_in.name.strip()
    if not name:
        raise HTTPException(status_code=400, detail="Project name is required")
    user = user_settings.get_or_create_user(db)
    project = models.Project(name=name, user_id=user.id)
    db.add(project)
    db.commit()
    db.refresh(project)
    return project

@router.get("/", response_model=List[schemas.Project])
def read_projects(skip: int = 0, limit: int = 100, db: Session = Depends(get_db)):
    return db.query(models.Project).order_by(models.Project.updated_at.desc()).offset(skip).limit(limit).all()

@router.get("/{project_id}", response_model=schemas.ProjectDetail)
def read_project(project_id: int, db: Session = Depends(get_db)):
    return get_project_or_404(db, project_id)

@router.patch("/{project_id}", response_model=schemas.Project)
def update_project(project_id: int, project_update: schemas.ProjectUpdate, db: Session = Depends(get_db)):
    project = get_project_or_404(db, project_id)
    if project_update.name is not None:
        if not project_update.name.strip():
            raise HTTPException(status_code=400, detail="Project name is required")
        project.name = project_update.name.strip()
    db.commit()
    db.refresh(project)
    return project

@router.delete("/{project_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_project(
    project_id: int,
    db: Session = Depends(get_db),
    ingestion: IngestionService = Depends(get_ingestion_service),
):
    project = get_project_or_404(db, project_id)
    document_ids = [doc.id for doc in project.documents]
    stored_files = [doc.file_path for doc in project.documents if not doc.is_remote]
    # Documents, chunks, sessions and messages cascade
    db.delete(project)
    db.commit()
    for document_id in document_ids:
        ingestion.forget(document_id)
    for file_path in stored_files:
        file_service.remove_stored_file(file_path)
