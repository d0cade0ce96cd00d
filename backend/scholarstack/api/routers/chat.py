from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from typing import List

from scholarstack.core.database import get_db
from scholarstack.models import sql_models as models
from scholarstack import schemas
from scholarstack.services import chat_service
from scholarstack.api.routers.projects import get_project_or_404

router = APIRouter()

@router.post("/", response_model=schemas.ChatResponse)
async def chat(request: schemas.ChatRequest, db: Session = Depends(get_db)):
    if not request.query.strip():
        raise HTTPException(status_code=400, detail="Project ID and query are required")
    project = get_project_or_404(db, request.project_id)
    return await chat_service.answer_query(db, project, request)

@router.get("/project/{project_id}", response_model=List[schemas.ChatSession])
def read_sessions(project_id: int, db: Session = Depends(get_db)):
    get_project_or_404(db, project_id)
    return db.query(models.ChatSession).filter(
        models.ChatSession.project_id == project_id
    ).order_by(models.ChatSession.updated_at.desc()).all()

@router.get("/session/{session_id}", response_model=List[schemas.ChatMessage])
def read_session_messages(session_id: int, db: Session = Depends(get_db)):
    session = db.query(models.ChatSession).filter(models.ChatSession.id == session_id).first()
    if not session:
        raise HTTPException(status_code=404, detail="Chat session not found")
    return session.messages
