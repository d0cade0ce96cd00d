from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from scholarstack.api.routers import chat, documents, projects, user
from scholarstack.core.database import engine, Base
from scholarstack.core.config import settings
from scholarstack.core.errors import (
    AnswerGenerationError,
    ConfigurationError,
    EmbeddingProviderError,
    ExtractionError,
)
from scholarstack.services.file_service import UPLOAD_DIR
from scholarstack.services.ingestion import IngestionService
import logging

# Configure Logging
# Using force=True to override default handlers and ensure consistent formatting
logging.basicConfig(
    level=logging.INFO,
    format="%(levelname)-9s %(name)-40s %(message)s",
    force=True
)
logger = logging.getLogger(__name__)

# Create Tables
Base.metadata.create_all(bind=engine)

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for the FastAPI application.
    Owns the ingestion coordinator (per-document locks) for the process.
    """
    app.state.ingestion = IngestionService()
    logger.info(f"{settings.PROJECT_NAME} backend ready.")
    yield

app = FastAPI(
    title=settings.PROJECT_NAME,
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
    lifespan=lifespan
)

# CORS
origins = [
    "http://localhost",
    "http://localhost:3000",
    "http://localhost:5173", # Vite default
    "*"
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Error taxonomy -> HTTP
@app.exception_handler(ExtractionError)
async def extraction_error_handler(request: Request, exc: ExtractionError):
    logger.warning(f"Extraction failed: {exc}")
    return JSONResponse(status_code=422, content={"detail": str(exc)})

@app.exception_handler(ConfigurationError)
async def configuration_error_handler(request: Request, exc: ConfigurationError):
    return JSONResponse(status_code=400, content={"detail": str(exc)})

@app.exception_handler(AnswerGenerationError)
async def answer_generation_error_handler(request: Request, exc: AnswerGenerationError):
    return JSONResponse(status_code=502, content={"detail": str(exc)})

@app.exception_handler(EmbeddingProviderError)
async def embedding_provider_error_handler(request: Request, exc: EmbeddingProviderError):
    return JSONResponse(status_code=502, content={"detail": str(exc)})

# Include Routers
app.include_router(projects.router, prefix=f"{settings.API_V1_STR}/projects", tags=["projects"])
app.include_router(documents.router, prefix=f"{settings.API_V1_STR}/documents", tags=["documents"])
app.include_router(chat.router, prefix=f"{settings.API_V1_STR}/chat", tags=["chat"])
app.include_router(user.router, prefix=f"{settings.API_V1_STR}/user", tags=["user"])

app.mount("/uploads", StaticFiles(directory=UPLOAD_DIR), name="uploads")

@app.get(f"{settings.API_V1_STR}/health")
def health():
    """
    Health endpoint to verify backend status.
    """
    return {"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
