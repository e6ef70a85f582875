"""Selective embedding of curated content.

Only derived, curated content (product knowledge, conversation summaries and
customer preferences) is turned into vectors. Raw chat messages are never
embedded: retrieval context is built from derived content only.

Embedding is advisory enrichment. Generation and storage failures surface as
:class:`EmbedError` so callers can log them and carry on; background callers
should use :meth:`EmbeddingPolicy.embed_quietly`.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from typing import Any, Protocol

from fastembed import TextEmbedding

from app.core.tenant_context import get_current_tenant_id, tenant_collection_name

from .config import get_signal_settings
from .models import ContentType
from .vectorstore import VectorStore

logger = logging.getLogger(__name__)

EMBEDDABLE_CONTENT_TYPES = frozenset(
    {
        ContentType.PRODUCT_KNOWLEDGE,
        ContentType.CONVERSATION_SUMMARY,
        ContentType.CUSTOMER_PREFERENCE,
    }
)

DEFAULT_EMBEDDING_MODEL = "sentence-transformers/paraphrase-multilingual-MiniLM-L12-v2"


class EmbedError(Exception):
    """Embedding generation or vector storage failed."""

    def __init__(self, operation: str, cause: BaseException) -> None:
        super().__init__(f"{operation}: {cause}")
        self.operation = operation
        self.cause = cause


class EmbeddingGenerator(Protocol):
    def generate(self, text: str) -> list[float]: ...


class FastEmbedGenerator:
    """Embedding generator backed by a local fastembed model.

    The model is loaded on first use. When the configured model cannot be loaded the multilingual
    MiniLM base model is used instead.
    """

    FALLBACK_MODEL = DEFAULT_EMBEDDING_MODEL

    def __init__(self, model_name: str | None = None) -> None:
        self.model_name = model_name or os.getenv("EMBEDDING_MODEL", DEFAULT_EMBEDDING_MODEL)
        self._embedder: TextEmbedding | None = None

    def _load(self) -> TextEmbedding:
        try:
            return TextEmbedding(model_name=self.model_name)
        except Exception:
            if self.model_name == self.FALLBACK_MODEL:
                raise
            logger.warning(
                "Embedding model %s unavailable, using %s",
                self.model_name,
                self.FALLBACK_MODEL,
            )
            return TextEmbedding(model_name=self.FALLBACK_MODEL)

    def generate(self, text: str) -> list[float]:
        if self._embedder is None:
            self._embedder = self._load()
        vector = next(iter(self._embedder.embed([text])))
        return [float(value) for value in vector]


def _coerce_content_type(content_type: ContentType | str) -> ContentType | None:
    if isinstance(content_type, ContentType):
        return content_type
    try:
        return ContentType(content_type)
    except ValueError:
        return None


class EmbeddingPolicy:
    """Decide what to embed and route accepted content into the vector store."""

    def __init__(
        self,
        generator: EmbeddingGenerator,
        store: VectorStore,
        *,
        tenant_id: str | None = None,
    ) -> None:
        self._generator = generator
        self._store = store
        self._tenant_id = tenant_id

    @property
    def tenant_id(self) -> str:
        return (
            self._tenant_id
            or get_current_tenant_id()
            or get_signal_settings().default_tenant_id
        )

    def should_embed(self, content: str, content_type: ContentType | str) -> bool:
        if not content:
            return False
        return _coerce_content_type(content_type) in EMBEDDABLE_CONTENT_TYPES

    def embed_and_store(
        self,
        collection: str,
        content: str,
        content_type: ContentType | str,
        metadata: Mapping[str, Any] | None = None,
    ) -> None:
        """Embed ``content`` and write it to ``{tenant}_{collection}``.

        Content that is not eligible is skipped silently. Raises
        :class:`EmbedError` when generation or storage fails.
        """

        kind = _coerce_content_type(content_type)
        if kind is None or not self.should_embed(content, kind):
            return

        try:
            vector = self._generator.generate(content)
        except Exception as exc:
            raise EmbedError("generate embedding", exc) from exc

        record = dict(metadata or {})
        record["content_type"] = kind.value
        doc_id = record.get("id")
        if not isinstance(doc_id, str) or not doc_id:
            # Not globally unique; a collision overwrites the earlier document.
            doc_id = f"{collection}_{len(content)}"

        scoped = tenant_collection_name(self.tenant_id, collection)
        try:
            self._store.add_documents(scoped, [content], [vector], [record], [doc_id])
        except Exception as exc:
            raise EmbedError("store embedding", exc) from exc

        logger.info(
            "stored embedding collection=%s id=%s text_length=%d",
            scoped,
            doc_id,
            len(content),
        )

    def embed_quietly(
        self,
        collection: str,
        content: str,
        content_type: ContentType | str,
        metadata: Mapping[str, Any] | None = None,
    ) -> bool:
        """Like :meth:`embed_and_store` but logs failures instead of raising.

        Returns ``True`` when the content was eligible and stored.
        """

        if not self.should_embed(content, content_type):
            return False
        try:
            self.embed_and_store(collection, content, content_type, metadata)
        except EmbedError:
            logger.exception("embedding skipped for collection=%s", collection)
            return False
        return True
