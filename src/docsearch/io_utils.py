from __future__ import annotations

from dataclasses import asdict
import json
from pathlib import Path

from .schema import GoldenSetEntry, IndexedChunk, QueryType, RelevanceJudgment


def _load_jsonl(path: str | Path) -> list[dict]:
    records: list[dict] = []
    with Path(path).open("r", encoding="utf-8") as file_handle:
        for line in file_handle:
            if line.strip():
                records.append(json.loads(line))
    return records


def _field(record: dict, snake: str, camel: str):
    return record[snake] if snake in record else record[camel]


def parse_golden_set(records: list[dict]) -> list[GoldenSetEntry]:
    """Build golden-set entries from decoded JSON records.

    Accepts both `query_type`/`chunk_id` and `queryType`/`chunkId` spellings.

    Raises:
        KeyError: If a required field is missing.
        ValueError: If a query type or grade is invalid.
    """
    return [
        GoldenSetEntry(
            query=record["query"],
            query_type=QueryType(_field(record, "query_type", "queryType")),
            judgments=tuple(
                RelevanceJudgment(chunk_id=_field(judgment, "chunk_id", "chunkId"), grade=int(judgment["grade"]))
                for judgment in record.get("judgments", [])
            ),
        )
        for record in records
    ]


def load_golden_set(path: str | Path = "data/golden_set.json") -> list[GoldenSetEntry]:
    """Load the golden set from a JSON array file."""
    with Path(path).open("r", encoding="utf-8") as file_handle:
        return parse_golden_set(json.load(file_handle))


def save_chunks(chunks: list[IndexedChunk], path: str | Path) -> None:
    destination = Path(path)
    destination.parent.mkdir(parents=True, exist_ok=True)

    with destination.open("w", encoding="utf-8") as file_handle:
        for chunk in chunks:
            file_handle.write(json.dumps(asdict(chunk)) + "\n")


def load_chunks(path: str | Path) -> list[IndexedChunk]:
    return [IndexedChunk(**record) for record in _load_jsonl(path)]
