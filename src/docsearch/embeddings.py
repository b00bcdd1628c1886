from __future__ import annotations

from typing import Protocol, runtime_checkable

import numpy as np
from openai import OpenAI

DEFAULT_EMBEDDING_MODEL = "text-embedding-3-small"


@runtime_checkable
class Embedder(Protocol):
    """Embedding capability used once per search call on the query text."""

    def embed(self, text: str) -> list[float]:
        ...


def embed_texts(texts: list[str], model: str = DEFAULT_EMBEDDING_MODEL) -> np.ndarray:
    """Generate embedding vectors for input texts using OpenAI embeddings API.

    Args:
        texts: Input strings to embed.
        model: Embedding model name.

    Returns:
        A `float32` NumPy matrix shaped `(len(texts), embedding_dim)`.
    """
    client = OpenAI()
    response = client.embeddings.create(model=model, input=texts)
    vectors = [row.embedding for row in response.data]
    return np.array(vectors, dtype=np.float32)


class OpenAIEmbedder:
    """`Embedder` backed by the OpenAI embeddings API."""

    def __init__(self, model: str = DEFAULT_EMBEDDING_MODEL):
        self.model = model

    def embed(self, text: str) -> list[float]:
        return embed_texts([text], model=self.model)[0].tolist()


def cosine_similarity(query_vector: np.ndarray, matrix: np.ndarray) -> np.ndarray:
    """Compute cosine similarity between one query vector and many vectors.

    Args:
        query_vector: Query embedding vector.
        matrix: Candidate embedding matrix where each row is one vector.

    Returns:
        A 1D array of cosine similarity scores aligned to matrix rows.
    """
    query_norm = np.linalg.norm(query_vector)
    matrix_norm = np.linalg.norm(matrix, axis=1)
    denominator = np.maximum(query_norm * matrix_norm, 1e-12)
    return (matrix @ query_vector) / denominator
