from __future__ import annotations

import pytest

from docintel.rag.errors import EmbeddingIntegrityError
from docintel.rag.types import Chunk
from docintel.vectorstore.inmemory import InMemoryIndex


def _chunk(document_id: str, index: int) -> Chunk:
    return Chunk(
        text=f"{document_id} chunk {index}",
        index=index,
        document_id=document_id,
        document_name=f"{document_id}.txt",
    )


def build_index() -> InMemoryIndex:
    index = InMemoryIndex(user_id="user-1")
    index.add(
        [_chunk("a", 0), _chunk("a", 1), _chunk("b", 0), _chunk("b", 1)],
        [[1.0, 0.0], [0.9, 0.1], [0.2, 0.8], [0.0, 1.0]],
    )
    return index


def test_search_returns_at_most_k_sorted_results() -> None:
    results = build_index().search([1.0, 0.0], k=3)

    assert len(results) == 3
    scores = [result.score for result in results]
    assert scores == sorted(scores, reverse=True)
    assert [result.rank for result in results] == [1, 2, 3]
    assert results[0].chunk.text == "a chunk 0"


def test_search_with_k_larger_than_index() -> None:
    assert len(build_index().search([1.0, 0.0], k=10)) == 4


def test_document_filter_applies_before_ranking() -> None:
    results = build_index().search([1.0, 0.0], k=2, document_id="b")

    assert [result.chunk.document_id for result in results] == ["b", "b"]
    assert results[0].chunk.text == "b chunk 0"
    assert results[0].rank == 1


def test_unknown_document_filter_returns_empty() -> None:
    assert build_index().search([1.0, 0.0], k=5, document_id="missing") == []


def test_non_positive_k_returns_empty() -> None:
    assert build_index().search([1.0, 0.0], k=0) == []


def test_ties_keep_index_order() -> None:
    index = InMemoryIndex(user_id="user-1")
    index.add([_chunk("a", 0), _chunk("b", 0), _chunk("c", 0)], [[1.0, 0.0]] * 3)

    results = index.search([1.0, 0.0], k=3)

    assert [result.chunk.document_id for result in results] == ["a", "b", "c"]


def test_zero_vectors_score_zero() -> None:
    index = InMemoryIndex(user_id="user-1")
    index.add([_chunk("a", 0)], [[0.0, 0.0]])

    assert index.search([1.0, 0.0], k=1)[0].score == 0.0


def test_count_mismatch_is_fatal() -> None:
    index = InMemoryIndex(user_id="user-1")

    with pytest.raises(EmbeddingIntegrityError):
        index.add([_chunk("a", 0), _chunk("a", 1)], [[1.0, 0.0]])
    assert len(index) == 0


def test_mixed_dimensions_are_rejected() -> None:
    index = InMemoryIndex(user_id="user-1")

    with pytest.raises(EmbeddingIntegrityError):
        index.add([_chunk("a", 0), _chunk("a", 1)], [[1.0, 0.0], [1.0, 0.0, 0.0]])


def test_query_dimension_mismatch_is_rejected() -> None:
    with pytest.raises(EmbeddingIntegrityError):
        build_index().search([1.0, 0.0, 0.0], k=1)


def test_stats_reports_counts() -> None:
    stats = build_index().stats()

    assert stats["chunk_count"] == 4
    assert stats["document_count"] == 2
    assert stats["embedding_dimension"] == 2
