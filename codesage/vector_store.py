"""A small persistent vector database for documentation search."""

from __future__ import annotations

import hashlib
import json
import math
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Optional, Sequence

EmbedFunc = Callable[[str], Sequence[float]]

_META_FILE = "collection.json"


@dataclass
class Document:
    """A stored text with its metadata and embedding."""

    id: str
    content: str = ""
    metadata: dict[str, str] = field(default_factory=dict)
    embedding: Optional[list[float]] = None


@dataclass(frozen=True)
class QueryResult:
    """One match of a query, with its cosine similarity."""

    id: str
    content: str
    metadata: dict[str, str]
    similarity: float


def _norm(vector: Sequence[float]) -> float:
    return math.sqrt(sum(value * value for value in vector))


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Return the cosine of the angle between two vectors (0.0 for a zero vector)."""
    if len(a) != len(b):
        raise ValueError(f"vectors differ in length: {len(a)} and {len(b)}")
    lengths = _norm(a) * _norm(b)
    return sum(x * y for x, y in zip(a, b)) / lengths if lengths else 0.0


def _normalise(vector: Sequence[float]) -> list[float]:
    length = _norm(vector)
    if length == 0:
        raise ValueError("embedding must not be a zero vector")
    return [float(value) / length for value in vector]


def _file_name(key: str) -> str:
    return hashlib.sha256(key.encode("utf-8")).hexdigest()[:32]


class Collection:
    """A named set of documents, optionally persisted to a directory."""

    def __init__(
        self,
        name: str,
        directory: Optional[str | Path] = None,
        embed: Optional[EmbedFunc] = None,
    ) -> None:
        self.name = name
        self.embed = embed
        self._dir = Path(directory) if directory is not None else None
        self._documents: dict[str, Document] = {}
        if self._dir is None:
            return
        self._dir.mkdir(parents=True, exist_ok=True)
        (self._dir / _META_FILE).write_text(json.dumps({"name": name}), encoding="utf-8")
        for path in sorted(self._dir.glob("*.json")):
            if path.name != _META_FILE:
                data = json.loads(path.read_text(encoding="utf-8"))
                self._documents[data["id"]] = Document(**data)

    def _embed_text(self, text: str) -> list[float]:
        if self.embed is None:
            raise ValueError(f"collection {self.name!r} has no embedding function")
        return list(self.embed(text))

    def add_document(self, document: Document) -> None:
        """Store a document, computing its embedding from its content if absent."""
        if not document.id:
            raise ValueError("document ID must not be empty")
        if not document.embedding and not document.content:
            raise ValueError("either document embedding or content must be filled")
        vector = document.embedding or self._embed_text(document.content)
        stored = Document(
            document.id, document.content, dict(document.metadata), _normalise(vector)
        )
        self._documents[stored.id] = stored
        if self._dir is not None:
            (self._dir / f"{_file_name(stored.id)}.json").write_text(
                json.dumps(stored.__dict__), encoding="utf-8"
            )

    def query(self, text: str, n_results: int = 1) -> list[QueryResult]:
        """Return the n most similar documents to the text, best first."""
        if not text:
            raise ValueError("query text is empty")
        if n_results <= 0:
            raise ValueError("n_results must be > 0")
        if n_results > len(self._documents):
            raise ValueError(
                "n_results must be <= the number of documents in the collection"
            )
        target = self._embed_text(text)
        results = [
            QueryResult(doc.id, doc.content, dict(doc.metadata),
                        cosine_similarity(target, doc.embedding or []))
            for doc in self._documents.values()
        ]
        results.sort(key=lambda result: result.similarity, reverse=True)
        return results[:n_results]

    def __len__(self) -> int:
        return len(self._documents)


class VectorDB:
    """Collections of documents kept under one directory."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._collections: dict[str, Collection] = {}
        self.path.mkdir(parents=True, exist_ok=True)
        for meta in sorted(self.path.glob(f"*/{_META_FILE}")):
            name = json.loads(meta.read_text(encoding="utf-8"))["name"]
            self._collections[name] = Collection(name, meta.parent)

    def create_collection(self, name: str, embed: Optional[EmbedFunc] = None) -> Collection:
        """Create an empty collection, replacing any existing one of that name."""
        if not name:
            raise ValueError("collection name must not be empty")
        directory = self.path / _file_name(name)
        shutil.rmtree(directory, ignore_errors=True)
        collection = self._collections[name] = Collection(name, directory, embed)
        return collection

    def get_collection(self, name: str, embed: Optional[EmbedFunc] = None) -> Collection:
        """Return an existing collection; raise KeyError if there is none."""
        collection = self._collections[name]
        if embed is not None:
            collection.embed = embed
        return collection

    def reset(self) -> None:
        """Delete every collection and its files."""
        shutil.rmtree(self.path, ignore_errors=True)
        self._collections.clear()
        self.path.mkdir(parents=True, exist_ok=True)