import math

import pytest

from scholarstack.core.errors import EmbeddingProviderError
from scholarstack.services.embeddings import cosine_similarities, cosine_similarity, embed_batch, embed_query


@pytest.mark.parametrize("vector", [[1.0, 2.0, 3.0], [0.5, -0.25], [1e-3, 4.0, -7.5, 2.2]])
def test_cosine_of_vector_with_itself_is_one(vector):
    assert cosine_similarity(vector, vector) == pytest.approx(1.0)


@pytest.mark.parametrize("vector", [[1.0, 2.0, 3.0], [0.5, -0.25]])
def test_cosine_of_vector_with_negation_is_minus_one(vector):
    assert cosine_similarity(vector, [-x for x in vector]) == pytest.approx(-1.0)


def test_cosine_of_orthogonal_vectors_is_zero():
    assert cosine_similarity([1.0, 0.0], [0.0, 1.0]) == pytest.approx(0.0)


def test_cosine_with_zero_vector_is_zero():
    assert cosine_similarity([0.0, 0.0], [1.0, 1.0]) == 0.0


def test_cosine_length_mismatch_is_an_error():
    with pytest.raises(ValueError):
        cosine_similarity([1.0, 2.0], [1.0, 2.0, 3.0])


async def test_no_credential_returns_empty_vectors():
    assert await embed_batch(["a", "b", "c"], None) == [[], [], []]
    assert await embed_query("a", None) == []


async def test_batch_embeds_one_item_at_a_time(fake_backend, credential):
    vectors = await embed_batch(["light and protein", "enzyme"], credential)

    assert fake_backend.embed_calls == ["light and protein", "enzyme"]
    assert len(vectors) == 2
    assert all(len(v) == len(vectors[0]) for v in vectors)
    assert not math.isclose(cosine_similarity(vectors[0], vectors[1]), 1.0)


async def test_backend_failure_is_wrapped(fake_backend, credential):
    fake_backend.fail_embed_after = 1
    with pytest.raises(EmbeddingProviderError) as excinfo:
        await embed_batch(["one", "two", "three"], credential)
    assert excinfo.value.status_code == 429
    assert excinfo.value.__cause__ is not None


async def test_query_failure_is_wrapped(fake_backend, credential):
    fake_backend.fail_embed_after = 0
    with pytest.raises(EmbeddingProviderError):
        await embed_query("q", credential)


def test_cosine_similarities_scores_every_row():
    scores = cosine_similarities([1.0, 0.0], [[2.0, 0.0], [0.0, 3.0], [0.0, 0.0], [-1.0, 0.0]])
    assert scores.tolist() == pytest.approx([1.0, 0.0, 0.0, -1.0])


def test_cosine_similarities_matches_pairwise():
    query = [0.3, 1.2, -0.5]
    rows = [[1.0, 2.0, 3.0], [0.1, -0.4, 0.9]]
    scores = cosine_similarities(query, rows)
    assert scores.tolist() == pytest.approx([cosine_similarity(query, row) for row in rows])


def test_cosine_similarities_dimension_mismatch_is_an_error():
    with pytest.raises(ValueError):
        cosine_similarities([1.0, 0.0], [[1.0, 0.0, 0.0]])


def test_cosine_similarities_of_no_rows_is_empty():
    assert cosine_similarities([1.0, 0.0], []).shape == (0,)
