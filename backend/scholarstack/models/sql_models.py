from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Unicode, UnicodeText, Text, UniqueConstraint
from sqlalchemy.orm import relationship
from datetime import datetime
from typing import List, Optional
import json
import os
from scholarstack.core.database import Base


class User(Base):
    __tablename__ = 'Users'

    id = Column(Integer, primary_key=True, index=True)
    email = Column(Unicode(255), unique=True, nullable=False)
    # Credential is a tagged value: provider is fixed when the key is stored
    llm_provider = Column(String(20), nullable=True) # openai, gemini
    api_key = Column(Unicode(500), nullable=True)
    ai_model = Column(Unicode(255), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    projects = relationship("Project", back_populates="user", cascade="all, delete-orphan", passive_deletes=True)

class Project(Base):
    __tablename__ = 'Projects'

    id = Column(Integer, primary_key=True, index=True)
    name = Column(Unicode(255), nullable=False)
    user_id = Column(Integer, ForeignKey('Users.id', ondelete='CASCADE'), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    user = relationship("User", back_populates="projects")
    documents = relationship("Document", back_populates="project", cascade="all, delete-orphan",
                             passive_deletes=True, order_by="Document.uploaded_at.desc()")
    chat_sessions = relationship("ChatSession", back_populates="project", cascade="all, delete-orphan",
                                 passive_deletes=True, order_by="ChatSession.updated_at.desc()")

class Document(Base):
    __tablename__ = 'Documents'

    id = Column(Integer, primary_key=True, index=True)
    project_id = Column(Integer, ForeignKey('Projects.id', ondelete='CASCADE'), nullable=False, index=True)
    filename = Column(Unicode(255), nullable=False)
    file_path = Column(Unicode(1000), nullable=False) # local path or external URL
    page_count = Column(Integer, nullable=True)
    content = Column(UnicodeText, nullable=True) # extracted text preview
    uploaded_at = Column(DateTime, default=datetime.utcnow)

    project = relationship("Project", back_populates="documents")
    chunks = relationship("DocumentChunk", back_populates="document", cascade="all, delete-orphan",
                          passive_deletes=True, order_by="DocumentChunk.chunk_index")

    @property
    def is_remote(self) -> bool:
        return self.file_path.startswith(("http://", "https://"))

    @property
    def file_url(self) -> str:
        if self.is_remote:
            return self.file_path
        return f"/uploads/{os.path.basename(self.file_path)}"

class DocumentChunk(Base):
    __tablename__ = 'DocumentChunks'
    __table_args__ = (UniqueConstraint('document_id', 'chunk_index', name='uq_chunk_document_index'),)

    id = Column(Integer, primary_key=True, index=True)
    document_id = Column(Integer, ForeignKey('Documents.id', ondelete='CASCADE'), nullable=False, index=True)
    chunk_index = Column(Integer, nullable=False)
    content = Column(UnicodeText, nullable=False)
    embedding_json = Column(Text, nullable=True) # JSON list of floats, NULL when never embedded
    created_at = Column(DateTime, default=datetime.utcnow)

    document = relationship("Document", back_populates="chunks")

    @property
    def embedding(self) -> Optional[List[float]]:
        if not self.embedding_json:
            return None
        vector = json.loads(self.embedding_json)
        return vector or None

    @embedding.setter
    def embedding(self, vector: Optional[List[float]]):
        self.embedding_json = json.dumps(vector) if vector else None

    @property
    def has_embedding(self) -> bool:
        return self.embedding is not None

class ChatSession(Base):
    __tablename__ = 'ChatSessions'

    id = Column(Integer, primary_key=True, index=True)
    project_id = Column(Integer, ForeignKey('Projects.id', ondelete='CASCADE'), nullable=False, index=True)
    title = Column(Unicode(255), default='New Chat')
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    project = relationship("Project", back_populates="chat_sessions")
    messages = relationship("ChatMessage", back_populates="session", cascade="all, delete-orphan",
                            passive_deletes=True, order_by="ChatMessage.id")

class ChatMessage(Base):
    __tablename__ = 'ChatMessages'

    id = Column(Integer, primary_key=True, index=True)
    session_id = Column(Integer, ForeignKey('ChatSessions.id', ondelete='CASCADE'), nullable=False, index=True)
    role = Column(String(50)) # user, assistant
    content = Column(UnicodeText)
    citations_json = Column(UnicodeText, nullable=True) # serialized Citation list (assistant turns)
    model_used = Column(Unicode(255), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    session = relationship("ChatSession", back_populates="messages")

    @property
    def citations(self) -> list:
        return json.loads(self.citations_json) if self.citations_json else []
