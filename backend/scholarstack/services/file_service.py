import os
import re
import logging
import httpx
from datetime import datetime
from typing import Tuple
from urllib.parse import urlparse, unquote

from scholarstack.core.config import settings
from scholarstack.core.errors import ExtractionError

logger = logging.getLogger(__name__)

UPLOAD_DIR = settings.UPLOAD_DIR

os.makedirs(UPLOAD_DIR, exist_ok=True)

PDF_MAGIC = b"%PDF-"


def _safe_filename(filename: str) -> str:
    name = os.path.basename(filename or "") or "document.pdf"
    return re.sub(r"[^\w.\-]+", "_", name)


def save_upload_bytes(filename: str, data: bytes) -> Tuple[str, int]:
    """
    Saves file to disk and returns (file_path, file_size).
    """
    # Timestamp prefix keeps repeated uploads of the same name apart
    unique_name = f"{int(datetime.now().timestamp() * 1000)}-{_safe_filename(filename)}"
    file_path = os.path.join(UPLOAD_DIR, unique_name)

    with open(file_path, "wb") as buffer:
        buffer.write(data)

    file_size = os.path.getsize(file_path)
    return file_path, file_size


def remove_stored_file(file_path: str) -> None:
    if file_path and os.path.exists(file_path):
        try:
            os.remove(file_path)
            logger.info(f"Deleted stored file: {file_path}")
        except OSError as e:
            logger.warning(f"Could not delete stored file {file_path}: {e}")


def filename_from_url(url: str) -> str:
    name = unquote(os.path.basename(urlparse(url).path))
    if not name:
        return "document.pdf"
    return name if name.lower().endswith(".pdf") else f"{name}.pdf"


async def fetch_remote_pdf(url: str) -> bytes:
    """
    Downloads an external PDF. Anything that is not a PDF body is reported
    as an extraction failure, same as a corrupt upload.
    """
    async with httpx.AsyncClient(timeout=settings.LLM_TIMEOUT, follow_redirects=True) as client:
        try:
            response = await client.get(url)
        except httpx.HTTPError as e:
            raise ExtractionError(f"Could not download PDF from {url}: {e}") from e

    if response.status_code != 200:
        raise ExtractionError(f"Could not download PDF from {url} (status {response.status_code})")
    if len(response.content) > settings.MAX_UPLOAD_BYTES:
        raise ExtractionError(f"PDF at {url} exceeds the upload size limit")
    return response.content


def read_stored_file(file_path: str) -> bytes:
    try:
        with open(file_path, "rb") as f:
            return f.read()
    except OSError as e:
        raise ExtractionError(f"Stored file is missing or unreadable: {file_path}") from e
