import pytest

from scholarstack.services.text_chunker import chunk_spans, chunk_text, normalize_whitespace


def _long_text(sentences=60):
    return " ".join(
        f"Sentence number {i} talks about enzymes and proteins in some detail." for i in range(sentences)
    )


def test_normalize_whitespace_collapses_spaces_and_newlines():
    assert normalize_whitespace("  a   b\t\tc \n\n\n  d  ") == "a b c\nd"


def test_short_text_is_single_normalized_chunk():
    text = "Hello   world.\n\n\nSecond    paragraph."
    assert chunk_text(text, max_chunk_size=1000, overlap=100) == ["Hello world.\nSecond paragraph."]


def test_text_exactly_max_size_is_one_chunk():
    text = "x" * 50
    assert chunk_text(text, max_chunk_size=50, overlap=10) == [text]


def test_empty_text_yields_no_chunks():
    assert chunk_text("   \n\n  ", max_chunk_size=100, overlap=10) == []


def test_long_text_chunks_respect_max_size():
    chunks = chunk_text(_long_text(), max_chunk_size=300, overlap=40)
    assert len(chunks) > 1
    assert all(0 < len(c) <= 300 for c in chunks)


def test_cuts_land_on_sentence_terminators():
    chunks = chunk_text(_long_text(), max_chunk_size=300, overlap=40)
    for chunk in chunks[:-1]:
        assert chunk.endswith(".")


def test_paragraph_break_used_when_no_sentence_end_past_midpoint():
    # no terminators at all; newlines are the only soft boundary
    line = "word " * 15  # 75 chars
    text = "\n".join(line.strip() for _ in range(10))
    cleaned = normalize_whitespace(text)
    spans = chunk_spans(cleaned, max_chunk_size=200, overlap=20)
    for _, end in spans[:-1]:
        assert cleaned[end - 1] == "\n"


def test_hard_cut_when_no_boundary():
    text = "a" * 250
    spans = chunk_spans(text, max_chunk_size=100, overlap=10)
    assert spans[0] == (0, 100)
    assert spans[1] == (90, 190)


def test_spans_overlap_and_reconstruct_original():
    cleaned = normalize_whitespace(_long_text())
    overlap = 40
    spans = chunk_spans(cleaned, max_chunk_size=300, overlap=overlap)

    assert spans[0][0] == 0
    assert spans[-1][1] == len(cleaned)
    for (_, prev_end), (next_start, _) in zip(spans, spans[1:]):
        assert next_start == prev_end - overlap

    rebuilt = cleaned[spans[0][0]:spans[0][1]]
    for start, end in spans[1:]:
        rebuilt += cleaned[start + overlap:end]
    assert rebuilt == cleaned


def test_chunking_is_deterministic():
    text = _long_text()
    assert chunk_text(text, 250, 30) == chunk_text(text, 250, 30)


@pytest.mark.parametrize("max_size,overlap", [(0, 0), (100, 100), (100, -1)])
def test_invalid_parameters_rejected(max_size, overlap):
    with pytest.raises(ValueError):
        chunk_spans("x" * 500, max_size, overlap)


def test_large_overlap_still_advances_past_each_cut():
    text = " ".join(f"Sentence {i} is about chlorophyll and light." for i in range(25))
    overlap = 70
    spans = chunk_spans(text, max_chunk_size=100, overlap=overlap)

    ends = [end for _, end in spans]
    assert ends == sorted(set(ends))
    # at most one terminator cut per sentence between the hard cuts
    assert len(spans) <= len(text) // (100 - overlap) + text.count(".")
    for (_, prev_end), (next_start, _) in zip(spans, spans[1:]):
        assert next_start == prev_end - overlap

    rebuilt = text[spans[0][0]:spans[0][1]]
    for start, end in spans[1:]:
        rebuilt += text[start + overlap:end]
    assert rebuilt == text

    chunks = chunk_text(text, max_chunk_size=100, overlap=overlap)
    assert len(chunks) == len(set(chunks))
