"""Vector store adapters used by the embedding policy and retriever.

Two backends satisfy the same small protocol:

- :class:`PgVectorStore` keeps documents in PostgreSQL with the pgvector
  extension, one table shared by all collections.
- :class:`ChromaRestStore` talks to a Chroma server over its REST API.

Collection names arrive already tenant scoped (``{tenant}_{collection}``);
the adapters never add or strip prefixes.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Callable, Sequence
from typing import Any, Protocol

import psycopg
import requests
from pgvector.psycopg import register_vector
from psycopg.types.json import Jsonb

logger = logging.getLogger(__name__)

def _default_timeout() -> float:
    return float(os.getenv("VECTOR_STORE_TIMEOUT", "30"))


class VectorStore(Protocol):
    def add_documents(
        self,
        collection: str,
        documents: Sequence[str],
        vectors: Sequence[Sequence[float]],
        metadatas: Sequence[dict[str, Any]],
        ids: Sequence[str],
    ) -> None: ...

    def query(
        self, collection: str, vector: Sequence[float], top_k: int = 10
    ) -> list[dict[str, Any]]: ...


def _check_lengths(*columns: Sequence[Any]) -> None:
    sizes = {len(column) for column in columns}
    if len(sizes) > 1:
        raise ValueError("documents, vectors, metadatas and ids must have equal length")


class PgVectorStore:
    """PostgreSQL/pgvector implementation of :class:`VectorStore`."""

    TABLE = "signal_embeddings"

    def __init__(
        self,
        dsn: str | None = None,
        *,
        connect: Callable[[], psycopg.Connection] | None = None,
    ) -> None:
        self._dsn = dsn or os.getenv("DATABASE_URL")
        self._connect = connect

    def _get_conn(self, *, register: bool = True) -> psycopg.Connection:
        if self._connect is not None:
            conn = self._connect()
        else:
            if not self._dsn:
                raise RuntimeError("DATABASE_URL not configured")
            conn = psycopg.connect(self._dsn, connect_timeout=int(_default_timeout()))
        if register:
            register_vector(conn)
        return conn

    def ensure_schema(self) -> None:
        """Create the pgvector extension and the embeddings table if missing."""

        # The vector type does not exist until the extension is installed.
        with self._get_conn(register=False) as conn:
            with conn.cursor() as cur:
                cur.execute("CREATE EXTENSION IF NOT EXISTS vector")
                cur.execute(
                    f"""
                    CREATE TABLE IF NOT EXISTS {self.TABLE} (
                        collection TEXT NOT NULL,
                        id TEXT NOT NULL,
                        content TEXT NOT NULL,
                        metadata JSONB NOT NULL DEFAULT '{{}}'::jsonb,
                        embedding VECTOR NOT NULL,
                        created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
                        PRIMARY KEY (collection, id)
                    )
                    """
                )
            conn.commit()

    def add_documents(
        self,
        collection: str,
        documents: Sequence[str],
        vectors: Sequence[Sequence[float]],
        metadatas: Sequence[dict[str, Any]],
        ids: Sequence[str],
    ) -> None:
        _check_lengths(documents, vectors, metadatas, ids)
        if not documents:
            return
        with self._get_conn() as conn:
            with conn.cursor() as cur:
                for doc_id, content, vector, metadata in zip(
                    ids, documents, vectors, metadatas, strict=False
                ):
                    cur.execute(
                        f"""
                        INSERT INTO {self.TABLE} (collection, id, content, metadata, embedding)
                        VALUES (%s, %s, %s, %s, %s::vector)
                        ON CONFLICT (collection, id) DO UPDATE SET
                            content = EXCLUDED.content,
                            metadata = EXCLUDED.metadata,
                            embedding = EXCLUDED.embedding
                        """,
                        (collection, doc_id, content, Jsonb(metadata), list(vector)),
                    )
            conn.commit()
        logger.debug("stored %d documents in %s", len(documents), collection)

    def query(
        self, collection: str, vector: Sequence[float], top_k: int = 10
    ) -> list[dict[str, Any]]:
        """Return the ``top_k`` nearest documents by L2 distance (``<->``)."""

        sql = f"""
        SELECT id, content, metadata, (embedding <-> %s::vector) AS distance
        FROM {self.TABLE}
        WHERE collection = %s
        ORDER BY distance
        LIMIT %s
        """
        with self._get_conn() as conn:
            with conn.cursor() as cur:
                cur.execute(sql, (list(vector), collection, top_k))
                rows = cur.fetchall()
        return [
            {
                "id": doc_id,
                "document": content,
                "metadata": dict(metadata or {}),
                "distance": float(distance),
            }
            for doc_id, content, metadata, distance in rows
        ]


class ChromaRestStore:
    """Chroma server accessed through its v1 REST API."""

    def __init__(
        self,
        base_url: str | None = None,
        *,
        session: requests.Session | None = None,
        timeout: float | None = None,
    ) -> None:
        self.base_url = (base_url or os.getenv("CHROMA_URL", "http://localhost:8000")).rstrip("/")
        self.session = session or requests.Session()
        self.timeout = timeout if timeout is not None else _default_timeout()
        self._collection_ids: dict[str, str] = {}

    def _post(self, path: str, payload: dict[str, Any]) -> Any:
        response = self.session.request(
            "POST",
            f"{self.base_url}{path}",
            json=payload,
            timeout=self.timeout,
        )
        response.raise_for_status()
        return response.json()

    def ensure_collection(self, collection: str) -> str:
        """Return the server id of ``collection``, creating it when missing.

        The v1 add and query routes address collections by id, not name.
        """

        cached = self._collection_ids.get(collection)
        if cached is not None:
            return cached
        created = self._post("/api/v1/collections", {"name": collection, "get_or_create": True})
        collection_id = str(created["id"])
        self._collection_ids[collection] = collection_id
        return collection_id

    def add_documents(
        self,
        collection: str,
        documents: Sequence[str],
        vectors: Sequence[Sequence[float]],
        metadatas: Sequence[dict[str, Any]],
        ids: Sequence[str],
    ) -> None:
        _check_lengths(documents, vectors, metadatas, ids)
        if not documents:
            return
        collection_id = self.ensure_collection(collection)
        self._post(
            f"/api/v1/collections/{collection_id}/add",
            {
                "documents": list(documents),
                "embeddings": [list(v) for v in vectors],
                "metadatas": list(metadatas),
                "ids": list(ids),
            },
        )

    def query(
        self, collection: str, vector: Sequence[float], top_k: int = 10
    ) -> list[dict[str, Any]]:
        collection_id = self.ensure_collection(collection)
        result = self._post(
            f"/api/v1/collections/{collection_id}/query",
            {
                "query_embeddings": [list(vector)],
                "n_results": top_k if top_k > 0 else 10,
                "include": ["documents", "metadatas", "distances"],
            },
        )
        ids = (result.get("ids") or [[]])[0] or []
        documents = (result.get("documents") or [[]])[0] or []
        metadatas = (result.get("metadatas") or [[]])[0] or []
        distances = (result.get("distances") or [[]])[0] or []
        rows: list[dict[str, Any]] = []
        for index, doc_id in enumerate(ids):
            rows.append(
                {
                    "id": doc_id,
                    "document": documents[index] if index < len(documents) else "",
                    "metadata": (metadatas[index] if index < len(metadatas) else None) or {},
                    "distance": distances[index] if index < len(distances) else None,
                }
            )
        return rows


def create_vector_store(backend: str | None = None) -> VectorStore:
    """Build the store selected by ``VECTOR_STORE`` (``pgvector`` or ``chroma``)."""

    backend = (backend or os.getenv("VECTOR_STORE", "pgvector")).lower()
    if backend == "chroma":
        return ChromaRestStore()
    if backend == "pgvector":
        return PgVectorStore()
    raise ValueError(f"Unknown vector store backend: {backend}")
