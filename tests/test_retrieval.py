from pathlib import Path

import pytest

from adapters import EmbeddingBatcher
from conftest import MockEmbedder, StaticVectorStore, make_candidate
from errors import ValidationError
from models import RetrievedChunk, SourceDocument
from pipelines import (
    RetrievalOptions,
    RetrievalPipeline,
    extract_keywords,
    keyword_score,
    rerank_by_keywords,
)
from pipelines.retrieval import UNKNOWN_DOCUMENT
from stores import JSONSourceStore

QUERY = "what is the refund policy"
QUERY_TOKENS = 5


@pytest.fixture
def handbook_sources() -> JSONSourceStore:
    store = JSONSourceStore()
    store.upsert(SourceDocument(id="doc-1", name="Handbook", tenant_id="t1"))
    store.upsert(SourceDocument(id="doc-2", name="Pricing", tenant_id="t2"))
    return store


def make_pipeline(
    candidates,
    source_store: JSONSourceStore,
    embedder: MockEmbedder | None = None,
) -> RetrievalPipeline:
    return RetrievalPipeline(
        batcher=EmbeddingBatcher(embedder or MockEmbedder()),
        vector_store=StaticVectorStore(candidates),
        source_store=source_store,
    )


def ten_candidates():
    return [make_candidate(i, 0.95 - i * 0.01, token_estimate=100) for i in range(10)]


class TestRetrieve:
    def test_budget_keeps_best_chunks_in_order(self, handbook_sources) -> None:
        pipeline = make_pipeline(ten_candidates(), handbook_sources)
        options = RetrievalOptions(top_k=5, max_tokens=QUERY_TOKENS + 300)

        result = pipeline.retrieve(QUERY, options)

        assert [c.id for c in result.chunks] == ["chunk-0", "chunk-1", "chunk-2"]
        assert result.total_tokens == QUERY_TOKENS + 300
        assert result.total_tokens <= options.max_tokens
        assert result.query == QUERY

    def test_requests_twice_top_k_from_oracle(self, handbook_sources) -> None:
        pipeline = make_pipeline(ten_candidates(), handbook_sources)

        pipeline.retrieve(QUERY, RetrievalOptions(top_k=4, similarity_threshold=0.6))

        assert pipeline.vector_store.queries == [{"threshold": 0.6, "limit": 8}]

    def test_stops_at_top_k(self, handbook_sources) -> None:
        pipeline = make_pipeline(ten_candidates(), handbook_sources)

        result = pipeline.retrieve(QUERY, RetrievalOptions(top_k=5))

        assert len(result.chunks) == 5
        assert result.total_tokens == QUERY_TOKENS + 500

    def test_no_candidates_costs_only_the_query(self, handbook_sources) -> None:
        pipeline = make_pipeline([], handbook_sources)

        result = pipeline.retrieve(QUERY)

        assert result.chunks == []
        assert result.total_tokens == QUERY_TOKENS

    def test_candidates_below_threshold_are_not_returned(self, handbook_sources) -> None:
        pipeline = make_pipeline(ten_candidates(), handbook_sources)

        result = pipeline.retrieve(QUERY, RetrievalOptions(similarity_threshold=0.935))

        assert [c.id for c in result.chunks] == ["chunk-0", "chunk-1"]

    def test_budget_walk_stops_at_first_chunk_that_does_not_fit(
        self, handbook_sources
    ) -> None:
        candidates = [
            make_candidate(0, 0.95, token_estimate=100),
            make_candidate(1, 0.90, token_estimate=500),
            make_candidate(2, 0.85, token_estimate=10),
        ]
        pipeline = make_pipeline(candidates, handbook_sources)

        result = pipeline.retrieve(
            QUERY, RetrievalOptions(max_tokens=QUERY_TOKENS + 150)
        )

        assert [c.id for c in result.chunks] == ["chunk-0"]
        assert result.total_tokens == QUERY_TOKENS + 100

    def test_missing_token_estimate_falls_back_to_estimator(
        self, handbook_sources
    ) -> None:
        candidate = make_candidate(0, 0.9, token_estimate=None, content="x" * 40)
        pipeline = make_pipeline([candidate], handbook_sources)

        result = pipeline.retrieve(QUERY)

        assert result.total_tokens == QUERY_TOKENS + 10

    def test_attaches_document_names(self, handbook_sources) -> None:
        candidates = [
            make_candidate(0, 0.9, document_id="doc-1"),
            make_candidate(1, 0.8, document_id="doc-2"),
            make_candidate(2, 0.75, document_id="deleted"),
        ]
        pipeline = make_pipeline(candidates, handbook_sources)

        result = pipeline.retrieve(QUERY, RetrievalOptions(similarity_threshold=0.5))

        assert [c.document_name for c in result.chunks] == [
            "Handbook",
            "Pricing",
            UNKNOWN_DOCUMENT,
        ]

    def test_document_filter(self, handbook_sources) -> None:
        candidates = [
            make_candidate(0, 0.9, document_id="doc-1"),
            make_candidate(1, 0.85, document_id="doc-2"),
            make_candidate(2, 0.8, document_id="doc-1"),
        ]
        pipeline = make_pipeline(candidates, handbook_sources)

        result = pipeline.retrieve(QUERY, RetrievalOptions(document_ids=["doc-2"]))

        assert [c.id for c in result.chunks] == ["chunk-1"]

    def test_tenant_filter_drops_other_and_unknown_documents(
        self, handbook_sources
    ) -> None:
        candidates = [
            make_candidate(0, 0.9, document_id="doc-2"),
            make_candidate(1, 0.85, document_id="deleted"),
            make_candidate(2, 0.8, document_id="doc-1"),
        ]
        pipeline = make_pipeline(candidates, handbook_sources)

        result = pipeline.retrieve(QUERY, RetrievalOptions(tenant_id="t1"))

        assert [c.id for c in result.chunks] == ["chunk-2"]
        assert result.total_tokens == QUERY_TOKENS + 100

    def test_empty_query_rejected_before_embedding(self, handbook_sources) -> None:
        embedder = MockEmbedder()
        pipeline = make_pipeline(ten_candidates(), handbook_sources, embedder)

        with pytest.raises(ValidationError):
            pipeline.retrieve("   ")

        assert embedder.embed_calls == []
        assert pipeline.vector_store.queries == []

    def test_query_over_budget_rejected(self, handbook_sources) -> None:
        pipeline = make_pipeline(ten_candidates(), handbook_sources)

        with pytest.raises(ValidationError):
            pipeline.retrieve(QUERY, RetrievalOptions(max_tokens=3))

    def test_uses_pipeline_default_options(self, handbook_sources) -> None:
        pipeline = RetrievalPipeline(
            batcher=EmbeddingBatcher(MockEmbedder()),
            vector_store=StaticVectorStore(ten_candidates()),
            source_store=handbook_sources,
            options=RetrievalOptions(top_k=2),
        )

        assert len(pipeline.retrieve(QUERY).chunks) == 2


class TestHybridSearch:
    def test_zero_boost_matches_baseline_order(self, handbook_sources) -> None:
        pipeline = make_pipeline(ten_candidates(), handbook_sources)
        options = RetrievalOptions(top_k=5, keyword_boost=0.0, max_tokens=QUERY_TOKENS + 300)

        baseline = pipeline.retrieve(QUERY, options)
        hybrid = pipeline.hybrid_search(QUERY, options)

        assert [c.id for c in hybrid.chunks] == [c.id for c in baseline.chunks]
        assert hybrid.total_tokens == baseline.total_tokens

    def test_keyword_match_is_promoted(self, handbook_sources) -> None:
        candidates = [
            make_candidate(0, 0.80, content="general overview text"),
            make_candidate(1, 0.75, content="Refund policy details"),
        ]
        pipeline = make_pipeline(candidates, handbook_sources)

        result = pipeline.hybrid_search(
            "refund policy", RetrievalOptions(keyword_boost=0.3)
        )

        assert [c.id for c in result.chunks] == ["chunk-1", "chunk-0"]
        assert result.chunks[0].similarity == pytest.approx(0.825)
        assert result.chunks[0].vector_similarity == pytest.approx(0.75)
        assert result.chunks[1].similarity == pytest.approx(0.56)

    def test_budget_applies_to_reranked_order(self, handbook_sources) -> None:
        candidates = [
            make_candidate(0, 0.80, content="general overview text"),
            make_candidate(1, 0.75, content="refund policy details"),
        ]
        pipeline = make_pipeline(candidates, handbook_sources)

        result = pipeline.hybrid_search(
            "refund policy", RetrievalOptions(max_tokens=2 + 100)
        )

        assert [c.id for c in result.chunks] == ["chunk-1"]

    def test_requests_larger_candidate_pool(self, handbook_sources) -> None:
        pipeline = make_pipeline(ten_candidates(), handbook_sources)

        pipeline.hybrid_search(QUERY, RetrievalOptions(top_k=3))

        assert pipeline.vector_store.queries[0]["limit"] == 12

    def test_no_candidates(self, handbook_sources) -> None:
        result = make_pipeline([], handbook_sources).hybrid_search(QUERY)

        assert result.chunks == []
        assert result.total_tokens == QUERY_TOKENS


class TestQuery:
    def test_returns_context_and_citations(self, handbook_sources) -> None:
        pipeline = make_pipeline(ten_candidates()[:1], handbook_sources)

        response = pipeline.query(QUERY)

        assert response["result"].chunks[0].id == "chunk-0"
        assert "[Source 1: Handbook (Chunk 1)]" in response["context"]
        assert response["citations"][0].document_name == "Handbook"

    def test_hybrid_flag_overrides_default(self, handbook_sources) -> None:
        candidates = [
            make_candidate(0, 0.80, content="general overview text"),
            make_candidate(1, 0.75, content="refund policy details"),
        ]
        pipeline = make_pipeline(candidates, handbook_sources)

        baseline = pipeline.query("refund policy")
        hybrid = pipeline.query("refund policy", hybrid=True)

        assert baseline["result"].chunks[0].id == "chunk-0"
        assert hybrid["result"].chunks[0].id == "chunk-1"


class TestKeywords:
    def test_extract_keywords(self) -> None:
        assert extract_keywords("What is the Refund policy") == [
            "what",
            "refund",
            "policy",
        ]

    def test_keyword_score(self) -> None:
        assert keyword_score("Refund POLICY", ["refund", "policy", "what"]) == pytest.approx(
            2 / 3
        )
        assert keyword_score("anything", []) == 0.0

    def test_rerank_is_stable_on_ties(self) -> None:
        chunks = [
            RetrievedChunk(
                id=f"chunk-{i}",
                document_id="doc-1",
                document_name="Doc",
                content="same text",
                similarity=0.8,
                chunk_index=i,
            )
            for i in range(3)
        ]

        reranked = rerank_by_keywords("unrelated words", chunks, 0.5)

        assert [c.id for c in reranked] == ["chunk-0", "chunk-1", "chunk-2"]


class TestRetrievalOptions:
    def test_document_ids_become_tuple(self) -> None:
        assert RetrievalOptions(document_ids=["a", "b"]).document_ids == ("a", "b")

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"top_k": 0},
            {"similarity_threshold": 1.5},
            {"max_tokens": 0},
            {"keyword_boost": -0.1},
        ],
    )
    def test_invalid_options_rejected(self, kwargs) -> None:
        with pytest.raises(ValidationError):
            RetrievalOptions(**kwargs)


class TestFromConfig:
    def test_builds_pipeline_from_config(self, temp_config: Path) -> None:
        from config import load_config

        pipeline = RetrievalPipeline.from_config(load_config(temp_config), temp_config)

        assert pipeline.options.top_k == 3
        assert pipeline.options.similarity_threshold == 0.5
        assert pipeline.options.keyword_boost == 0.4
        assert pipeline.hybrid is True
        assert pipeline.batcher.batch_size == 16
        assert pipeline.vector_store.dimension == 32
