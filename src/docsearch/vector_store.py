from __future__ import annotations

from pathlib import Path

import chromadb

from .filters import ContainsSubstring, Equals, MetadataFilter, flatten, matches
from .schema import IndexedChunk, RankedCandidates, ScoredCandidate, SourceKind


def build_chroma_collection(
    chunks: list[IndexedChunk],
    embeddings: list[list[float]],
    collection_name: str,
    persist_dir: str = "artifacts/chroma",
):
    """Create (or replace) a persistent Chroma collection from chunk embeddings.

    Args:
        chunks: Chunk records to index.
        embeddings: Embedding vectors aligned to chunks.
        collection_name: Chroma collection name.
        persist_dir: Local path for Chroma persistence.

    Returns:
        The created Chroma collection instance.
    """
    Path(persist_dir).mkdir(parents=True, exist_ok=True)
    client = chromadb.PersistentClient(path=persist_dir)
    existing = {collection.name for collection in client.list_collections()}
    if collection_name in existing:
        client.delete_collection(collection_name)

    collection = client.create_collection(name=collection_name)
    collection.add(
        ids=[chunk.chunk_id for chunk in chunks],
        embeddings=embeddings,
        documents=[chunk.text for chunk in chunks],
        metadatas=[chunk.metadata() for chunk in chunks],
    )
    return collection


def to_chroma_where(metadata_filter: MetadataFilter | None) -> dict | None:
    """Translate the exact-match part of a filter tree into a Chroma `where` clause.

    Chroma cannot match metadata substrings, so `ContainsSubstring` leaves are
    skipped here and applied after the query.
    """
    clauses = [{leaf.key: leaf.value} for leaf in flatten(metadata_filter) if isinstance(leaf, Equals)]
    if not clauses:
        return None
    if len(clauses) == 1:
        return clauses[0]
    return {"$and": clauses}


class ChromaBackend:
    """Vector-only backend over a Chroma collection, returning one ranked list."""

    def __init__(self, collection):
        self.collection = collection

    def retrieve(
        self,
        query_vector: list[float],
        query_text: str,
        metadata_filter: MetadataFilter | None,
        limit: int,
    ) -> RankedCandidates:
        response = self.collection.query(
            query_embeddings=[list(query_vector)],
            n_results=limit,
            where=to_chroma_where(metadata_filter),
        )

        ids = response["ids"][0]
        docs = response["documents"][0]
        metadatas = response["metadatas"][0]
        distances = response["distances"][0]

        needs_post_filter = any(isinstance(leaf, ContainsSubstring) for leaf in flatten(metadata_filter))
        results = [
            ScoredCandidate(
                id=chunk_id,
                text=text,
                score=float(1.0 - distance),
                source_kind=SourceKind.VECTOR,
                metadata={key: str(value) for key, value in (metadata or {}).items()},
            )
            for chunk_id, text, metadata, distance in zip(ids, docs, metadatas, distances, strict=True)
        ]
        if needs_post_filter:
            results = [result for result in results if matches(metadata_filter, result.metadata)]
        return RankedCandidates(results=results)
