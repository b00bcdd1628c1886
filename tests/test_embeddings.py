"""Tests for embeddings.py: cosine_similarity (pure), embed_texts and OpenAIEmbedder (mocked)."""
from __future__ import annotations

from unittest.mock import MagicMock, patch

import numpy as np
import pytest

from docsearch.embeddings import Embedder, OpenAIEmbedder, cosine_similarity, embed_texts


def _make_mock_response(count: int, dim: int = 4) -> MagicMock:
    """Build a fake OpenAI embeddings response."""
    response = MagicMock()
    response.data = [MagicMock(embedding=[float(i) * 0.1] * dim) for i in range(count)]
    return response


# ---------------------------------------------------------------------------
# cosine_similarity: pure NumPy, no mocking needed
# ---------------------------------------------------------------------------

class TestCosineSimilarity:
    def test_identical_vectors_score_1(self):
        v = np.array([1.0, 0.0, 0.0])
        assert cosine_similarity(v, np.array([v]))[0] == pytest.approx(1.0)

    def test_orthogonal_vectors_score_0(self):
        scores = cosine_similarity(np.array([1.0, 0.0]), np.array([[0.0, 1.0]]))
        assert scores[0] == pytest.approx(0.0)

    def test_aligned_to_matrix_rows(self):
        q = np.array([1.0, 0.0, 0.0])
        matrix = np.array([
            [1.0, 0.0, 0.0],
            [0.0, 1.0, 0.0],
            [-1.0, 0.0, 0.0],
        ])
        scores = cosine_similarity(q, matrix)
        assert scores.shape == (3,)
        assert list(scores) == pytest.approx([1.0, 0.0, -1.0])

    def test_zero_query_vector_does_not_raise(self):
        scores = cosine_similarity(np.zeros(3), np.array([[1.0, 0.0, 0.0]]))
        assert scores.shape == (1,)


# ---------------------------------------------------------------------------
# embed_texts: OpenAI API mocked
# ---------------------------------------------------------------------------

class TestEmbedTexts:
    @patch("docsearch.embeddings.OpenAI")
    def test_shape_and_dtype(self, mock_openai_cls):
        mock_client = mock_openai_cls.return_value
        mock_client.embeddings.create.return_value = _make_mock_response(3, dim=8)

        result = embed_texts(["first", "second", "third"])
        assert result.shape == (3, 8)
        assert result.dtype == np.float32

    @patch("docsearch.embeddings.OpenAI")
    def test_passes_model_to_api(self, mock_openai_cls):
        mock_client = mock_openai_cls.return_value
        mock_client.embeddings.create.return_value = _make_mock_response(1, dim=2)

        embed_texts(["x"], model="text-embedding-3-large")
        mock_client.embeddings.create.assert_called_once_with(
            model="text-embedding-3-large", input=["x"]
        )

    @patch("docsearch.embeddings.OpenAI")
    def test_api_error_propagates(self, mock_openai_cls):
        mock_openai_cls.return_value.embeddings.create.side_effect = RuntimeError("rate limited")
        with pytest.raises(RuntimeError, match="rate limited"):
            embed_texts(["x"])


# ---------------------------------------------------------------------------
# OpenAIEmbedder
# ---------------------------------------------------------------------------

class TestOpenAIEmbedder:
    @patch("docsearch.embeddings.OpenAI")
    def test_embed_returns_list_of_floats(self, mock_openai_cls):
        response = MagicMock()
        response.data = [MagicMock(embedding=[0.5, 0.25])]
        mock_openai_cls.return_value.embeddings.create.return_value = response

        vector = OpenAIEmbedder("text-embedding-3-small").embed("routing")
        assert vector == [0.5, 0.25]
        mock_openai_cls.return_value.embeddings.create.assert_called_once_with(
            model="text-embedding-3-small", input=["routing"]
        )

    def test_satisfies_embedder_protocol(self):
        assert isinstance(OpenAIEmbedder(), Embedder)
