"""
Boundary-aware text chunking.

Windows of `max_chunk_size` characters are cut at the last sentence
terminator past the window midpoint (or past the overlap, when that is
larger), else at the last such newline, else at the raw window edge. Each following window starts
`overlap` characters before the previous cut.
"""
import re
from typing import List, Tuple

SENTENCE_TERMINATORS = (".", "!", "?")


def normalize_whitespace(text: str) -> str:
    text = re.sub(r"[^\S\n]+", " ", text)  # runs of spaces/tabs
    text = re.sub(r" ?\n[\s]*", "\n", text)  # runs of newlines (and the blanks around them)
    return text.strip()


def _find_break(text: str, start: int, end: int, max_chunk_size: int, overlap: int) -> int:
    # A cut must clear the overlap too, or the next window would find it again
    floor = start + max(max_chunk_size // 2, overlap)

    best = max(text.rfind(t, start, end) for t in SENTENCE_TERMINATORS)
    if best > floor:
        return best + 1

    paragraph = text.rfind("\n", start, end)
    if paragraph > floor:
        return paragraph + 1

    return end


def chunk_spans(text: str, max_chunk_size: int = 1000, overlap: int = 100) -> List[Tuple[int, int]]:
    """
    Returns (start, end) offsets into the *normalized* text, one per window.
    """
    if max_chunk_size <= 0:
        raise ValueError("max_chunk_size must be positive")
    if overlap < 0 or overlap >= max_chunk_size:
        raise ValueError("overlap must be >= 0 and smaller than max_chunk_size")

    length = len(text)
    if length <= max_chunk_size:
        return [(0, length)] if length else []

    spans = []
    start = 0
    while start < length:
        end = min(start + max_chunk_size, length)
        if end < length:
            end = _find_break(text, start, end, max_chunk_size, overlap)
        spans.append((start, end))
        if end >= length:
            break
        start = end - overlap
    return spans


def chunk_text(text: str, max_chunk_size: int = 1000, overlap: int = 100) -> List[str]:
    cleaned = normalize_whitespace(text)
    chunks = []
    for start, end in chunk_spans(cleaned, max_chunk_size, overlap):
        chunk = cleaned[start:end].strip()
        if chunk:
            chunks.append(chunk)
    return chunks
