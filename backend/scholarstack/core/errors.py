"""
Error taxonomy for the document pipeline.

Each error belongs to the component that raises it. Ingestion recovers from
EmbeddingProviderError by storing chunks without embeddings; the others are
surfaced unchanged to the caller and mapped to HTTP responses in main.py.
"""
from typing import Optional


class ScholarStackError(Exception):
    """Base class for all pipeline errors."""


class ExtractionError(ScholarStackError):
    """The uploaded bytes are not a readable PDF."""


class EmbeddingProviderError(ScholarStackError):
    """The embedding backend rejected or failed a request."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class AnswerGenerationError(ScholarStackError):
    """The chat-completion backend failed; no partial answer exists."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class ConfigurationError(ScholarStackError):
    """A user setup problem, e.g. no API key configured. Retrying will not help."""
