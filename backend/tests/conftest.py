import os
import tempfile

# Settings are read at import time; point them at throwaway locations first
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("UPLOAD_DIR", tempfile.mkdtemp(prefix="scholarstack-uploads-"))

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from scholarstack.core.database import Base, get_db
from scholarstack.main import app
from scholarstack.models import sql_models as models
from scholarstack.services import llm_clients
from scholarstack.services.llm_clients import Credential, LLMBackend, LLMBackendError, Provider


@pytest.fixture
def db_engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db(db_engine):
    session = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(db_engine):
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)

    def override_get_db():
        session = TestingSession()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def project(db):
    user = models.User(email="tester@example.com")
    db.add(user)
    db.flush()
    project = models.Project(name="Thesis", user_id=user.id)
    db.add(project)
    db.commit()
    db.refresh(project)
    return project


@pytest.fixture
def credential():
    return Credential(provider=Provider.OPENAI, api_key="sk-test")


# --- Fake LLM backend ---

VOCABULARY = ("photosynthesis", "chlorophyll", "mitochondria", "enzyme", "protein", "light")


def bag_of_words(text: str) -> list:
    lowered = text.lower()
    # trailing constant keeps every vector non-zero
    return [float(lowered.count(word)) for word in VOCABULARY] + [0.1]


class FakeBackend(LLMBackend):
    provider = Provider.OPENAI

    def __init__(self, answer="", fail_embed_after=None, fail_chat=False):
        super().__init__(Credential(provider=Provider.OPENAI, api_key="sk-fake"))
        self.answer = answer
        self.fail_embed_after = fail_embed_after
        self.fail_chat = fail_chat
        self.embed_calls = []
        self.chat_calls = []

    @property
    def default_chat_model(self):
        return "fake-chat"

    @property
    def embed_model(self):
        return "fake-embed"

    async def embed(self, text):
        if self.fail_embed_after is not None and len(self.embed_calls) >= self.fail_embed_after:
            raise LLMBackendError("rate limited", status_code=429)
        self.embed_calls.append(text)
        return bag_of_words(text)

    async def chat(self, system_prompt, history, query, model, temperature, max_tokens):
        self.chat_calls.append({
            "system_prompt": system_prompt,
            "history": history,
            "query": query,
            "model": model,
            "temperature": temperature,
            "max_tokens": max_tokens,
        })
        if self.fail_chat:
            raise LLMBackendError("invalid api key", status_code=401)
        return self.answer


@pytest.fixture
def fake_backend(monkeypatch):
    backend = FakeBackend()
    monkeypatch.setattr(llm_clients, "get_backend", lambda credential, transport=None: backend)
    return backend


# --- PDF fixtures ---

def _escape(text: str) -> str:
    return text.replace("\\", "\\\\").replace("(", "\\(").replace(")", "\\)")


def make_pdf(pages) -> bytes:
    """
    Builds a minimal PDF with one line of Helvetica text per page.
    """
    page_count = len(pages)
    font_id = 3
    first_page_id = 4
    # objects: 1 catalog, 2 pages, 3 font, then (page, content) pairs
    kids = " ".join(f"{first_page_id + 2 * i} 0 R" for i in range(page_count))
    objects = [
        b"<< /Type /Catalog /Pages 2 0 R >>",
        f"<< /Type /Pages /Kids [{kids}] /Count {page_count} >>".encode(),
        b"<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica >>",
    ]
    for i, text in enumerate(pages):
        content_id = first_page_id + 2 * i + 1
        objects.append((
            f"<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] "
            f"/Resources << /Font << /F1 {font_id} 0 R >> >> /Contents {content_id} 0 R >>"
        ).encode())
        stream = f"BT /F1 12 Tf 72 720 Td ({_escape(text)}) Tj ET".encode("latin-1")
        objects.append(b"<< /Length %d >>\nstream\n" % len(stream) + stream + b"\nendstream")

    out = bytearray(b"%PDF-1.4\n")
    offsets = []
    for number, body in enumerate(objects, start=1):
        offsets.append(len(out))
        out += b"%d 0 obj\n" % number + body + b"\nendobj\n"

    xref_offset = len(out)
    out += b"xref\n0 %d\n" % (len(objects) + 1)
    out += b"0000000000 65535 f \n"
    for offset in offsets:
        out += b"%010d 00000 n \n" % offset
    out += b"trailer\n<< /Size %d /Root 1 0 R >>\nstartxref\n%d\n%%%%EOF\n" % (len(objects) + 1, xref_offset)
    return bytes(out)


@pytest.fixture
def two_page_pdf():
    return make_pdf([
        "Photosynthesis converts light energy into chemical energy.",
        "Chlorophyll absorbs light most strongly in the blue and red bands.",
    ])
