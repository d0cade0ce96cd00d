from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    PROJECT_NAME: str = "ScholarStack"
    API_V1_STR: str = "/api"

    # SQLite by default; any SQLAlchemy URL works
    DATABASE_URL: str = "sqlite:///./scholarstack.db"

    # Uploads
    UPLOAD_DIR: str = "app_data/uploads"
    MAX_UPLOAD_BYTES: int = 50 * 1024 * 1024

    # Single-user deployment: credentials hang off this user
    DEFAULT_USER_EMAIL: str = "demo@scholarstack.local"

    # Chunking / retrieval
    CHUNK_SIZE: int = 1000
    CHUNK_OVERLAP: int = 100
    RETRIEVAL_TOP_K: int = 20
    EMBED_PERSIST_BATCH_SIZE: int = 50

    # Answer synthesis
    CHAT_TEMPERATURE: float = 0.3
    CHAT_MAX_TOKENS: int = 1000
    CITATION_PREVIEW_CHARS: int = 200

    # LLM backends
    LLM_TIMEOUT: float = 120.0
    OPENAI_BASE_URL: str = "https://api.openai.com/v1"
    OPENAI_EMBED_MODEL: str = "text-embedding-3-small"
    OPENAI_CHAT_MODEL: str = "gpt-4o-mini"
    GEMINI_BASE_URL: str = "https://generativelanguage.googleapis.com/v1beta"
    GEMINI_EMBED_MODEL: str = "text-embedding-004"
    GEMINI_CHAT_MODEL: str = "gemini-2.5-flash"

    class Config:
        env_file = ".env"

settings = Settings()
