"""Signal and decision API routes."""

from __future__ import annotations

import logging
from dataclasses import asdict
from datetime import datetime, timezone
from functools import lru_cache

from fastapi import APIRouter, BackgroundTasks, Depends, Request, status

from ..signals import schemas
from ..signals.confidence import ConfidenceGate, ConfidenceScorer
from ..signals.disengagement import DisengagementDetector
from ..signals.embedding import EmbeddingGenerator, EmbeddingPolicy, FastEmbedGenerator
from ..signals.timing import TimingSuggester
from ..signals.trends import TrendAnalyzer
from ..signals.vectorstore import VectorStore, create_vector_store

router = APIRouter(prefix="/api/signals", tags=["signals"])

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_embedding_generator() -> EmbeddingGenerator:
    return FastEmbedGenerator()


@lru_cache(maxsize=1)
def get_vector_store() -> VectorStore:
    return create_vector_store()


def get_embedding_policy(
    request: Request,
    generator: EmbeddingGenerator = Depends(get_embedding_generator),
    store: VectorStore = Depends(get_vector_store),
) -> EmbeddingPolicy:
    # Background tasks outlive the request context, so bind the tenant now.
    tenant_id = getattr(request.state, "tenant_id", None)
    return EmbeddingPolicy(generator, store, tenant_id=tenant_id)


def _now(value: datetime | None) -> datetime:
    return value or datetime.now(timezone.utc)


@router.post("/trends", response_model=schemas.TrendResponse)
def analyze_trends(payload: schemas.TrendRequest) -> schemas.TrendResponse:
    metadata = payload.metadata.to_domain() if payload.metadata else None
    analysis = TrendAnalyzer().analyze_trends(payload.domain_messages(), metadata)
    return schemas.TrendResponse(**asdict(analysis))


@router.post("/timing", response_model=schemas.TimingResponse)
def suggest_timing(payload: schemas.TimingRequest) -> schemas.TimingResponse:
    window = TimingSuggester().suggest_timing(payload.domain_messages(), _now(payload.now))
    return schemas.TimingResponse(**asdict(window))


@router.post("/disengagement", response_model=schemas.DisengagementResponse)
def check_disengagement(
    payload: schemas.DisengagementRequest,
) -> schemas.DisengagementResponse:
    result = DisengagementDetector().check(payload.domain_messages(), _now(payload.now))
    return schemas.DisengagementResponse(**asdict(result))


@router.post("/confidence", response_model=schemas.ConfidenceResponse)
def gate_confidence(payload: schemas.ConfidenceRequest) -> schemas.ConfidenceResponse:
    """Decide whether an AI output may be shown; rejected outputs are audited."""

    confidence = payload.confidence
    if confidence is None:
        confidence = ConfidenceScorer().calculate(payload.scorer_inputs())
    error = RuntimeError(payload.error) if payload.error else None
    decision = ConfidenceGate().evaluate(payload.conversation_id, error, confidence)
    return schemas.ConfidenceResponse(
        accept=decision.accept, reason=decision.reason, confidence=confidence
    )


@router.post(
    "/embeddings",
    response_model=schemas.EmbeddingResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
def submit_embedding(
    payload: schemas.EmbeddingRequest,
    background_tasks: BackgroundTasks,
    policy: EmbeddingPolicy = Depends(get_embedding_policy),
) -> schemas.EmbeddingResponse:
    """Queue eligible content for embedding off the request path."""

    if not policy.should_embed(payload.content, payload.content_type):
        logger.debug(
            "content_type=%s not eligible for embedding", payload.content_type
        )
        return schemas.EmbeddingResponse(accepted=False)
    background_tasks.add_task(
        policy.embed_quietly,
        payload.collection,
        payload.content,
        payload.content_type,
        payload.metadata,
    )
    return schemas.EmbeddingResponse(accepted=True)
