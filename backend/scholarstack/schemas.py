from pydantic import BaseModel, Field
from typing import List, Literal, Optional
from datetime import datetime

from scholarstack.services.llm_clients import Provider

# --- User / Credential ---
class ApiKeyUpdate(BaseModel):
    api_key: str = Field(..., min_length=1)
    provider: Optional[Provider] = None # inferred once from the key when omitted
    ai_model: Optional[str] = None
    email: Optional[str] = None

class ApiKeyStatus(BaseModel):
    email: str
    has_api_key: bool
    provider: Optional[Provider] = None
    ai_model: Optional[str] = None

# --- Documents ---
class DocumentSummary(BaseModel):
    id: int
    filename: str
    uploaded_at: datetime

    class Config:
        from_attributes = True

class Document(DocumentSummary):
    project_id: int
    file_path: str
    file_url: str
    page_count: Optional[int] = None

class DocumentChunk(BaseModel):
    id: int
    chunk_index: int
    content: str
    has_embedding: bool

    class Config:
        from_attributes = True

class DocumentWithChunks(Document):
    chunks: List[DocumentChunk] = []

class DocumentLink(BaseModel):
    project_id: int
    url: str
    filename: Optional[str] = None

# --- Projects ---
class ProjectCreate(BaseModel):
    name: str = Field(..., min_length=1)

class ProjectUpdate(BaseModel):
    name: Optional[str] = None

class Project(BaseModel):
    id: int
    name: str
    created_at: datetime
    updated_at: datetime
    documents: List[DocumentSummary] = []

    class Config:
        from_attributes = True

# --- Chat ---
class Citation(BaseModel):
    chunk_id: int
    document_id: int
    document_name: str
    text: str

class SourcePreview(BaseModel):
    chunk_id: int
    document_id: int
    content: str

class HistoryMessage(BaseModel):
    role: Literal["user", "assistant"]
    content: str

class ChatRequest(BaseModel):
    project_id: int
    query: str
    conversation_history: List[HistoryMessage] = []
    session_id: Optional[int] = None

class GeneratedAnswer(BaseModel):
    response: str
    citations: List[Citation] = []

class ChatResponse(GeneratedAnswer):
    sources: List[SourcePreview] = []
    session_id: Optional[int] = None

class ChatSession(BaseModel):
    id: int
    title: str
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True

class ChatMessage(BaseModel):
    id: int
    role: str
    content: str
    citations: List[Citation] = []
    model_used: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True

class ProjectDetail(Project):
    documents: List[Document] = []
    chat_sessions: List[ChatSession] = []
