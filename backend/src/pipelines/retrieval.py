import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, Optional

from adapters import EmbeddingBatcher
from chunkers.tokens import DEFAULT_ESTIMATOR, TokenEstimator
from config import get_config_value, load_config
from errors import ValidationError
from models.chunk import Embedding
from models.retrieval import RAGResult, RetrievedChunk, StoredChunk
from stores import BaseSourceStore, BaseVectorStore
from .base import (
    create_batcher_from_config,
    create_stores_from_config,
    create_token_estimator_from_config,
)
from .context import format_chunks_for_context, format_source_citations

logger = logging.getLogger(__name__)

DEFAULT_TOP_K = 5
DEFAULT_SIMILARITY_THRESHOLD = 0.7
DEFAULT_MAX_TOKENS = 4000
DEFAULT_KEYWORD_BOOST = 0.3
MIN_KEYWORD_LENGTH = 4
UNKNOWN_DOCUMENT = "Unknown Document"


@dataclass(frozen=True)
class RetrievalOptions:
    """Per-call retrieval settings.

    Attributes:
        top_k: Maximum number of chunks returned.
        similarity_threshold: Candidates must score strictly above this.
        document_ids: Restrict results to these documents when set.
        tenant_id: Restrict results to documents owned by this tenant.
        max_tokens: Budget for the query plus all selected chunks.
        keyword_boost: Weight of keyword overlap in the hybrid score.
    """

    top_k: int = DEFAULT_TOP_K
    similarity_threshold: float = DEFAULT_SIMILARITY_THRESHOLD
    document_ids: Optional[tuple[str, ...]] = None
    tenant_id: Optional[str] = None
    max_tokens: int = DEFAULT_MAX_TOKENS
    keyword_boost: float = DEFAULT_KEYWORD_BOOST

    def __post_init__(self) -> None:
        if self.top_k <= 0:
            raise ValidationError("top_k must be a positive integer")
        if not 0.0 <= self.similarity_threshold <= 1.0:
            raise ValidationError("similarity_threshold must be between 0 and 1")
        if self.max_tokens <= 0:
            raise ValidationError("max_tokens must be a positive integer")
        if not 0.0 <= self.keyword_boost <= 1.0:
            raise ValidationError("keyword_boost must be between 0 and 1")
        if self.document_ids is not None:
            object.__setattr__(self, "document_ids", tuple(self.document_ids))


def extract_keywords(query: str) -> list[str]:
    """Lower-cased query words longer than three characters."""
    return [word for word in query.lower().split() if len(word) >= MIN_KEYWORD_LENGTH]


def keyword_score(content: str, keywords: list[str]) -> float:
    """Fraction of keywords found as substrings of ``content``."""
    if not keywords:
        return 0.0
    content_lower = content.lower()
    matches = sum(1 for keyword in keywords if keyword in content_lower)
    return matches / len(keywords)


def rerank_by_keywords(
    query: str, chunks: list[RetrievedChunk], keyword_boost: float
) -> list[RetrievedChunk]:
    """Fuse vector similarity with keyword overlap and re-sort.

    ``similarity`` on the returned chunks holds the fused score and
    ``vector_similarity`` the original one. Ties keep their incoming order.
    """
    keywords = extract_keywords(query)
    reranked = []
    for chunk in chunks:
        combined = (
            chunk.similarity * (1 - keyword_boost)
            + keyword_score(chunk.content, keywords) * keyword_boost
        )
        reranked.append(
            chunk.model_copy(
                update={"similarity": combined, "vector_similarity": chunk.similarity}
            )
        )
    reranked.sort(key=lambda c: c.similarity, reverse=True)
    return reranked


class RetrievalPipeline:
    """Retrieves scoped, token-budgeted chunks for a query.

    Supports dependency injection for flexible composition. The pipeline
    holds no per-call state, so one instance can serve concurrent calls.
    """

    def __init__(
        self,
        batcher: EmbeddingBatcher,
        vector_store: BaseVectorStore,
        source_store: BaseSourceStore,
        token_estimator: TokenEstimator = DEFAULT_ESTIMATOR,
        options: Optional[RetrievalOptions] = None,
        hybrid: bool = False,
        config: dict[str, Any] | None = None,
        config_path: Path | None = None,
    ):
        self.batcher = batcher
        self.vector_store = vector_store
        self.source_store = source_store
        self.token_estimator = token_estimator
        self.options = options or RetrievalOptions()
        self.hybrid = hybrid
        self.config = config or {}
        self.config_path = config_path

    @classmethod
    def from_config(
        cls, config: dict[str, Any], config_path: Path
    ) -> "RetrievalPipeline":
        """Create pipeline from configuration dictionary."""
        batcher = create_batcher_from_config(config)
        vector_store, source_store = create_stores_from_config(
            config, config_path, batcher.embedder
        )

        options = RetrievalOptions(
            top_k=get_config_value(config, "retrieval.top_k", DEFAULT_TOP_K),
            similarity_threshold=get_config_value(
                config, "retrieval.similarity_threshold", DEFAULT_SIMILARITY_THRESHOLD
            ),
            max_tokens=get_config_value(
                config, "retrieval.max_tokens", DEFAULT_MAX_TOKENS
            ),
            keyword_boost=get_config_value(
                config, "retrieval.keyword_boost", DEFAULT_KEYWORD_BOOST
            ),
        )

        return cls(
            batcher=batcher,
            vector_store=vector_store,
            source_store=source_store,
            token_estimator=create_token_estimator_from_config(config),
            options=options,
            hybrid=get_config_value(config, "retrieval.hybrid", False),
            config=config,
            config_path=config_path,
        )

    def _embed_query(self, query: str, options: RetrievalOptions) -> Embedding:
        if not query or not query.strip():
            raise ValidationError("query must not be empty")
        logger.info(f"Embedding query: {query[:50]}...")
        embedding = self.batcher.embed_query(query)
        if embedding.token_count > options.max_tokens:
            raise ValidationError(
                f"Query uses {embedding.token_count} tokens, "
                f"over the budget of {options.max_tokens}"
            )
        return embedding

    def _token_cost(self, chunk: RetrievedChunk) -> int:
        return chunk.metadata.token_estimate or self.token_estimator.estimate(
            chunk.content
        )

    def _resolve_scope(
        self, candidates: list[StoredChunk], options: RetrievalOptions
    ) -> list[RetrievedChunk]:
        """Attach document names and drop candidates outside the requested scope.

        Out-of-scope candidates are an expected filtering outcome, not an error.
        """
        documents = self.source_store.get_many(c.document_id for c in candidates)
        scoped = []

        for candidate in candidates:
            if (
                options.document_ids is not None
                and candidate.document_id not in options.document_ids
            ):
                logger.debug(f"Dropped {candidate.id}: document not in filter")
                continue

            document = documents.get(candidate.document_id)
            if options.tenant_id is not None and (
                document is None or document.tenant_id != options.tenant_id
            ):
                logger.debug(f"Dropped {candidate.id}: outside tenant {options.tenant_id}")
                continue

            scoped.append(
                RetrievedChunk(
                    id=candidate.id,
                    document_id=candidate.document_id,
                    document_name=document.name if document else UNKNOWN_DOCUMENT,
                    content=candidate.content,
                    similarity=candidate.similarity,
                    chunk_index=candidate.chunk_index,
                    metadata=candidate.metadata,
                )
            )

        return scoped

    def _select_within_budget(
        self,
        chunks: Iterable[RetrievedChunk],
        options: RetrievalOptions,
        query_tokens: int,
    ) -> tuple[list[RetrievedChunk], int]:
        """Take chunks in order until ``top_k`` or the token budget is reached.

        The walk stops at the first chunk that does not fit; later, smaller
        chunks are never pulled ahead of it.
        """
        total_tokens = query_tokens
        selected: list[RetrievedChunk] = []

        for chunk in chunks:
            cost = self._token_cost(chunk)
            if total_tokens + cost > options.max_tokens:
                logger.warning(
                    f"Context truncated to {total_tokens} tokens "
                    f"(limit: {options.max_tokens})"
                )
                break

            total_tokens += cost
            selected.append(chunk)
            if len(selected) >= options.top_k:
                break

        return selected, total_tokens

    def retrieve(
        self, query: str, options: Optional[RetrievalOptions] = None
    ) -> RAGResult:
        """Vector-only retrieval in oracle order.

        Raises:
            ValidationError: For an empty query, or one whose own token
                cost exceeds ``max_tokens``.
            ProviderError: If the query embedding or oracle call fails.
        """
        options = options or self.options
        query_embedding = self._embed_query(query, options)

        candidates = self.vector_store.query(
            query_embedding.embedding,
            threshold=options.similarity_threshold,
            limit=options.top_k * 2,
        )
        logger.info(f"Found {len(candidates)} candidates")

        if not candidates:
            return RAGResult(
                chunks=[], query=query, total_tokens=query_embedding.token_count
            )

        scoped = self._resolve_scope(candidates, options)
        selected, total_tokens = self._select_within_budget(
            scoped, options, query_embedding.token_count
        )
        return RAGResult(chunks=selected, query=query, total_tokens=total_tokens)

    def hybrid_search(
        self, query: str, options: Optional[RetrievalOptions] = None
    ) -> RAGResult:
        """Retrieval reranked by keyword overlap.

        A pool of ``2 * top_k`` in-scope candidates is reranked first, and
        the token budget is applied to the reranked order, so a strong
        keyword match is not lost to a budget cut made on vector order.
        """
        options = options or self.options
        query_embedding = self._embed_query(query, options)
        pool_size = options.top_k * 2

        candidates = self.vector_store.query(
            query_embedding.embedding,
            threshold=options.similarity_threshold,
            limit=pool_size * 2,
        )
        logger.info(f"Found {len(candidates)} candidates for reranking")

        if not candidates:
            return RAGResult(
                chunks=[], query=query, total_tokens=query_embedding.token_count
            )

        pool = self._resolve_scope(candidates, options)[:pool_size]
        reranked = rerank_by_keywords(query, pool, options.keyword_boost)
        selected, total_tokens = self._select_within_budget(
            reranked, options, query_embedding.token_count
        )
        return RAGResult(chunks=selected, query=query, total_tokens=total_tokens)

    def query(
        self,
        query: str,
        options: Optional[RetrievalOptions] = None,
        hybrid: Optional[bool] = None,
    ) -> dict[str, Any]:
        """Retrieve and assemble context and citations for a query."""
        use_hybrid = self.hybrid if hybrid is None else hybrid
        if use_hybrid:
            result = self.hybrid_search(query, options)
        else:
            result = self.retrieve(query, options)

        return {
            "result": result,
            "context": format_chunks_for_context(result.chunks),
            "citations": format_source_citations(result.chunks),
        }


def get_retrieval_pipeline(
    config_path: Path = Path("config.toml"),
) -> RetrievalPipeline:
    """Create a retrieval pipeline from config.

    Args:
        config_path: Path to configuration file.

    Returns:
        RetrievalPipeline instance.
    """
    config = load_config(config_path)
    return RetrievalPipeline.from_config(config, config_path)
