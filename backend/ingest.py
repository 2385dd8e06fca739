import argparse
import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent / "src"))

from config import find_config_path
from pipelines import run_ingestion

logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


def main():
    parser = argparse.ArgumentParser(
        description="Chunk, embed and store a document or meeting transcript"
    )
    parser.add_argument("file", type=Path, help="Text or transcript file to ingest")
    parser.add_argument(
        "--id",
        dest="source_id",
        default=None,
        help="Source id to store chunks under (default: file stem)",
    )
    parser.add_argument(
        "--name",
        default=None,
        help="Document name or meeting title (default: file name)",
    )
    parser.add_argument("--tenant", default=None, help="Owning tenant id")
    parser.add_argument(
        "--transcript",
        action="store_true",
        help="Treat the file as a speaker-attributed meeting transcript",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to configuration file (default: config.toml in project root)",
    )

    args = parser.parse_args()

    try:
        config_path = find_config_path(args.config)
        text = args.file.read_text(encoding="utf-8")
        result = run_ingestion(
            source_id=args.source_id or args.file.stem,
            text=text,
            name=args.name or args.file.name,
            config_path=config_path,
            tenant_id=args.tenant,
            transcript=args.transcript,
        )
        print("\n=== Ingestion Complete ===")
        print(f"Source: {result.document_id}")
        print(f"Chunks created: {result.chunks_created}")
        print(f"Embedding tokens: {result.total_tokens}")
        return 0
    except Exception as e:
        logger.error(f"Ingestion failed: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
