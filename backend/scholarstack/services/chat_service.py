import json
import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from scholarstack import schemas
from scholarstack.core.config import settings
from scholarstack.models import sql_models as models
from scholarstack.services import chunk_store, rag_service, retriever, user_settings

logger = logging.getLogger(__name__)

SESSION_TITLE_CHARS = 50


def session_title(query: str) -> str:
    return query[:SESSION_TITLE_CHARS] + ("..." if len(query) > SESSION_TITLE_CHARS else "")


def _get_or_create_session(db: Session, project_id: int, session_id: Optional[int], query: str) -> models.ChatSession:
    if session_id is not None:
        session = db.query(models.ChatSession).filter(
            models.ChatSession.id == session_id,
            models.ChatSession.project_id == project_id,
        ).first()
        if session:
            return session
        logger.warning(f"Session {session_id} not found in project {project_id}; starting a new one.")

    session = models.ChatSession(project_id=project_id, title=session_title(query))
    db.add(session)
    db.flush()
    return session


async def answer_query(db: Session, project: models.Project, request: schemas.ChatRequest) -> schemas.ChatResponse:
    """
    Retrieval -> grounded generation -> persistence of the turn.

    Raises ConfigurationError before any retrieval when no key is set.
    A generation failure propagates and nothing is persisted.
    """
    credential, model_override = user_settings.require_credential(project.user)

    relevant_chunks = await retriever.find_relevant_chunks(
        db, project.id, request.query, top_k=settings.RETRIEVAL_TOP_K, credential=credential
    )

    if not relevant_chunks:
        logger.info(f"No relevant chunks for project {project.id}; returning canned response.")
        return schemas.ChatResponse(
            response=rag_service.NO_CONTEXT_RESPONSE,
            citations=[],
            sources=[],
            session_id=request.session_id,
        )

    answer = await rag_service.generate_chat_response(
        request.query,
        relevant_chunks,
        [m.model_dump() for m in request.conversation_history],
        credential,
        chunk_store.list_document_names(db, project.id),
        model_override,
    )

    # Save chat history to database
    session = _get_or_create_session(db, project.id, request.session_id, request.query)
    model_used = model_override or None
    db.add(models.ChatMessage(session_id=session.id, role="user", content=request.query))
    db.add(models.ChatMessage(
        session_id=session.id,
        role="assistant",
        content=answer.response,
        citations_json=json.dumps([c.model_dump() for c in answer.citations]),
        model_used=model_used,
    ))
    session.updated_at = datetime.utcnow()
    db.commit()

    return schemas.ChatResponse(
        response=answer.response,
        citations=answer.citations,
        session_id=session.id,
        sources=[
            schemas.SourcePreview(
                chunk_id=chunk.id,
                document_id=chunk.document_id,
                content=rag_service.truncate_preview(chunk.content),
            )
            for chunk in relevant_chunks
        ],
    )
