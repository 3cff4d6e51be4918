#!/usr/bin/env python
"""Ingest a document into the persisted vector store.

Usage:
    python scripts/ingest.py --text notes.txt          # Plain text file
    python scripts/ingest.py --pdf handbook.pdf        # PDF file
    python scripts/ingest.py --url https://example.com # Web page
    python scripts/ingest.py --url ... --store data/other.json
"""
import argparse
import asyncio
import sys
from datetime import datetime
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from askdocs import config
from askdocs.errors import AskDocsError
from askdocs.loaders import extract_pdf_text, fetch_url_content
from askdocs.rag.embeddings import OllamaEmbedder
from askdocs.rag.ingest import IngestPipeline
from askdocs.rag.store import VectorStore
import structlog

logger = structlog.get_logger()


async def load_content(args: argparse.Namespace) -> tuple:
    """Return (content, source_type, source_url) for the chosen input."""
    if args.url:
        return await fetch_url_content(args.url), "url", args.url
    if args.pdf:
        return extract_pdf_text(Path(args.pdf).read_bytes()), "pdf", None
    return Path(args.text).read_text(encoding="utf-8"), "text", None


async def main(args: argparse.Namespace) -> int:
    """Run the ingestion and print a summary."""
    start_time = datetime.now()

    store = VectorStore(
        embedder=OllamaEmbedder(),
        dimension=config.EMBEDDING_DIMENSION,
        path=Path(args.store) if args.store else None,
    )
    await store.load_or_init()

    pipeline = IngestPipeline(store, persist=True)

    try:
        content, source_type, source_url = await load_content(args)
        stats = await pipeline.ingest(content, source_type, source_url)
    except AskDocsError as e:
        logger.error("cli_ingest_failed", error=str(e), error_type=type(e).__name__)
        print(f"\n❌ Ingestion failed: {e}\n")
        return 1

    elapsed_seconds = (datetime.now() - start_time).total_seconds()

    print(f"\n{'=' * 60}")
    print(f"  Ingestion Complete!")
    print(f"{'=' * 60}\n")
    print(f"  📁 Source:           {stats['source']}")
    print(f"  📝 Chunks created:   {stats['chunks_created']}")
    print(f"  🧮 Total records:    {stats['total_records']}")
    print(f"  💾 Store:            {store.path}")
    if not stats["persisted"]:
        print("  ⚠️  Store could not be written; see log for details")
    print(f"  ⏱️  Time elapsed:     {elapsed_seconds:.1f}s")
    print(f"\n{'=' * 60}\n")

    return 0


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Ingest a document for question answering")
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--text", help="Path to a plain text file")
    source.add_argument("--pdf", help="Path to a PDF file")
    source.add_argument("--url", help="URL of a web page")
    parser.add_argument(
        "--store",
        help=f"Vector store file (default: {config.VECTOR_STORE_PATH})",
    )
    return parser.parse_args()


if __name__ == "__main__":
    sys.exit(asyncio.run(main(parse_args())))
