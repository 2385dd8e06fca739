import argparse
import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent / "src"))

from config import find_config_path
from pipelines import RetrievalOptions, get_retrieval_pipeline

logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


def main():
    parser = argparse.ArgumentParser(
        description="Retrieve context and citations for a question"
    )
    parser.add_argument("query", help="Question to retrieve context for")
    parser.add_argument("--top-k", type=int, default=None, help="Chunks to return")
    parser.add_argument(
        "--threshold", type=float, default=None, help="Minimum similarity"
    )
    parser.add_argument(
        "--max-tokens", type=int, default=None, help="Token budget for the query and context"
    )
    parser.add_argument(
        "--document",
        action="append",
        dest="document_ids",
        default=None,
        help="Restrict to a document id (repeatable)",
    )
    parser.add_argument("--tenant", default=None, help="Restrict to a tenant id")
    parser.add_argument(
        "--hybrid",
        action="store_true",
        default=None,
        help="Rerank candidates by keyword overlap",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to configuration file (default: config.toml in project root)",
    )

    args = parser.parse_args()

    try:
        pipeline = get_retrieval_pipeline(find_config_path(args.config))
        defaults = pipeline.options
        options = RetrievalOptions(
            top_k=args.top_k or defaults.top_k,
            similarity_threshold=(
                defaults.similarity_threshold
                if args.threshold is None
                else args.threshold
            ),
            document_ids=args.document_ids,
            tenant_id=args.tenant,
            max_tokens=args.max_tokens or defaults.max_tokens,
            keyword_boost=defaults.keyword_boost,
        )
        response = pipeline.query(args.query, options, hybrid=args.hybrid)
    except Exception as e:
        logger.error(f"Retrieval failed: {e}")
        return 1

    print(response["context"])
    print(f"\n=== Sources ({response['result'].total_tokens} tokens) ===")
    for i, citation in enumerate(response["citations"], start=1):
        print(
            f"[{i}] {citation.document_name} (chunk {citation.chunk_index + 1}, "
            f"similarity {citation.similarity:.3f})"
        )
        print(f"    {citation.excerpt}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
