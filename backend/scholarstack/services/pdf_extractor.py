from io import BytesIO
from typing import BinaryIO, NamedTuple, Union
import logging

from pypdf import PdfReader
from pypdf.errors import PyPdfError

from scholarstack.core.errors import ExtractionError

logger = logging.getLogger(__name__)

# The header may be preceded by junk, but only within the first KiB
HEADER_SEARCH_BYTES = 1024


class ExtractedPDF(NamedTuple):
    text: str
    page_count: int


def extract_pdf(source: Union[bytes, BinaryIO]) -> ExtractedPDF:
    """
    Extracts plain text and the page count from a PDF.
    The caller owns the stream; it is read but not closed.
    """
    data = source if isinstance(source, (bytes, bytearray)) else source.read()
    if not data:
        raise ExtractionError("Failed to extract text from PDF: file is empty")
    if b"%PDF-" not in data[:HEADER_SEARCH_BYTES]:
        raise ExtractionError("Failed to extract text from PDF: not a PDF file")

    try:
        reader = PdfReader(BytesIO(data))
        if reader.is_encrypted:
            # Some PDFs are "encrypted" with an empty user password and still open
            try:
                opened = reader.decrypt("")
            except (PyPdfError, NotImplementedError) as e:
                raise ExtractionError("Failed to extract text from PDF: document is encrypted") from e
            if not opened:
                raise ExtractionError("Failed to extract text from PDF: document is encrypted")

        pages = [page.extract_text() or "" for page in reader.pages]
    except ExtractionError:
        raise
    except Exception as e:
        # pypdf surfaces malformed files through many exception types
        logger.error(f"Error extracting PDF: {e}")
        raise ExtractionError(f"Failed to extract text from PDF: {e}") from e

    return ExtractedPDF(text="\n".join(pages), page_count=len(pages))
