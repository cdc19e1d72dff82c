"""
Item Knowledge Base -- Command Line Interface
===============================================
Entry point for all user-facing operations.

Commands:
  ingest   -- Extract, chunk, embed, and store the item catalog
  chunks   -- Run extraction and chunking only; dump the chunks as JSON
  search   -- Semantic search over the stored item chunks
  stats    -- Show settings and collection statistics

Usage examples:
  python cli.py ingest
  python cli.py ingest --source "data/Item Index.xlsx" --force
  python cli.py chunks --output data/processed/chunks.json
  python cli.py chunks --stats
  python cli.py search "sword that deals fire damage" --limit 3
  python cli.py stats

Notes:
  - Settings come from configs/settings.yaml (or --config); command line
    flags override individual values.
  - Only ingest and search load the embedding model; chunks and stats
    run without torch.
  - Ingestion errors end the process with exit status 1 and a one-line
    message.
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from itemkb.config import PROJECT_ROOT, load_settings
from itemkb.ingestion.errors import IngestionError


def setup_logging(level: str = "INFO", verbose: bool = False) -> None:
    """Configure root logger."""
    level = logging.DEBUG if verbose else getattr(logging, str(level).upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def _resolve(path: str) -> Path:
    """Relative paths in settings are relative to the project root."""
    p = Path(path)
    return p if p.is_absolute() else PROJECT_ROOT / p


def _open_store(settings):
    from itemkb.memory.encoder import EmbeddingEncoder
    from itemkb.memory.store import MemoryStore

    encoder = EmbeddingEncoder(
        model_name=settings.memory.model_name,
        device=settings.memory.device,
    )
    return MemoryStore(
        str(_resolve(settings.memory.store_dir)),
        encoder=encoder,
        batch_size=settings.memory.batch_size,
        show_progress=True,
    )


# ===================================================================
# Command handlers
# ===================================================================

def cmd_ingest(args: argparse.Namespace) -> None:
    """
    Ingest pipeline: extract -> format -> chunk -> embed -> store.

    Skipped when the collection already exists, unless --force is given.
    """
    from itemkb.pipeline import IngestionPipeline

    settings = args.settings
    source = args.source or str(_resolve(settings.source.path))
    collection = settings.memory.collection

    logging.info("=== INGEST PIPELINE START (source=%s) ===", source)
    pipeline = IngestionPipeline(settings, show_progress=True)
    store = _open_store(settings)

    if store.has_collection(collection) and not args.force:
        print(f"Collection '{collection}' already exists "
              f"({store.count(collection)} chunks).  Use --force to rebuild.")
        return

    written = pipeline.populate(store, collection=collection, source=source,
                                force=args.force)

    logging.info("=== INGEST PIPELINE COMPLETE ===")
    print(
        f"\nIngestion complete:\n"
        f"  Source:          {source}\n"
        f"  Collection:      {collection}\n"
        f"  Chunks stored:   {written}"
    )


def cmd_chunks(args: argparse.Namespace) -> None:
    """Extract and chunk the catalog without touching the vector store."""
    from itemkb.ingestion.chunker import chunk_statistics
    from itemkb.pipeline import IngestionPipeline

    settings = args.settings
    source = args.source or str(_resolve(settings.source.path))

    chunks = IngestionPipeline(settings).build_chunks(source)

    if args.stats:
        stats = chunk_statistics(chunks)
        print(f"\n{'='*60}")
        print(f"Chunk statistics for: {source}")
        print(f"{'='*60}")
        print(f"  Chunks:        {stats['num_chunks']}")
        print(f"  Split items:   {stats['split_items']}")
        print(f"  Total chars:   {stats['total_chars']}")
        print(f"  Avg length:    {stats['avg_chunk_len']:.0f}")
        print(f"  Min / max:     {stats['min_chunk_len']} / {stats['max_chunk_len']}")
        print(f"{'='*60}")
        return

    payload = json.dumps(chunks, ensure_ascii=False, indent=2)
    if args.output:
        out = Path(args.output)
        out.parent.mkdir(parents=True, exist_ok=True)
        out.write_text(payload, encoding="utf-8")
        print(f"Saved {len(chunks)} chunks to {out.resolve()}")
    else:
        print(payload)


def cmd_search(args: argparse.Namespace) -> None:
    """Semantic search: encode query -> search collection -> display results."""
    settings = args.settings
    collection = settings.memory.collection
    limit = args.limit if args.limit is not None else settings.memory.limit
    min_relevance = (args.min_relevance if args.min_relevance is not None
                     else settings.memory.min_relevance)

    store = _open_store(settings)
    if not store.has_collection(collection):
        print(f"ERROR: Collection '{collection}' not found. Run 'python cli.py ingest' first.")
        sys.exit(1)

    results = store.search(collection, args.query, limit=limit,
                           min_relevance=min_relevance)
    if not results:
        print("No results found.")
        return

    print(f"\n{'='*60}")
    print(f"Search results for: \"{args.query}\"")
    print(f"{'='*60}")
    for i, r in enumerate(results, 1):
        print(f"\n--- Result {i} (relevance: {r.relevance:.4f}) ---")
        print(f"Chunk: {r.id}")
        print(r.text)
    print(f"\n{'='*60}")


def cmd_stats(args: argparse.Namespace) -> None:
    """Display settings and the state of the memory store."""
    from itemkb.memory.store import MemoryStore

    settings = args.settings
    store_dir = _resolve(settings.memory.store_dir)
    source = _resolve(settings.source.path)

    print(f"\n{'='*60}")
    print("Item Knowledge Base -- Statistics")
    print(f"{'='*60}")

    print(f"\nSource: {source}")
    print("  [OK]" if source.exists() else "  [NOT FOUND]")

    chunking = settings.chunking
    print("\nChunking:")
    print(f"  Max chunk size:      {chunking.max_chunk_size}")
    print(f"  Max tokens per line: {chunking.max_tokens_per_line} ({chunking.token_counter})")

    # Counting vectors needs no encoder.
    store = MemoryStore(str(store_dir), encoder=None)
    print(f"\nMemory store: {store_dir}")
    collections = store.list_collections()
    if not collections:
        print("  [NO COLLECTIONS -- run ingest]")
    for name in collections:
        marker = "  (default)" if name == settings.memory.collection else ""
        print(f"  {name}: {store.count(name)} chunks{marker}")

    print(f"\n{'='*60}")


# ===================================================================
# Argument parser
# ===================================================================

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="item-kb",
        description=(
            "Turn a spreadsheet item catalog into retrieval chunks and "
            "search them semantically."
        ),
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to a settings YAML file (default: configs/settings.yaml)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # -- ingest --
    p_ingest = subparsers.add_parser(
        "ingest",
        help="Chunk the item catalog and store it in the vector collection",
    )
    p_ingest.add_argument(
        "--source",
        type=str,
        default=None,
        help="Spreadsheet to ingest (default: source.path from settings)",
    )
    p_ingest.add_argument(
        "--force",
        action="store_true",
        help="Rebuild the collection even if it already exists",
    )
    p_ingest.set_defaults(func=cmd_ingest)

    # -- chunks --
    p_chunks = subparsers.add_parser(
        "chunks",
        help="Extract and chunk the catalog; print or save the chunks as JSON",
    )
    p_chunks.add_argument(
        "--source",
        type=str,
        default=None,
        help="Spreadsheet to chunk (default: source.path from settings)",
    )
    p_chunks.add_argument(
        "--output",
        type=str,
        default=None,
        help="Write the JSON mapping to this file instead of stdout",
    )
    p_chunks.add_argument(
        "--stats",
        action="store_true",
        help="Print chunk size statistics instead of the chunks",
    )
    p_chunks.set_defaults(func=cmd_chunks)

    # -- search --
    p_search = subparsers.add_parser(
        "search",
        help="Semantic search over the stored item chunks",
    )
    p_search.add_argument(
        "query",
        type=str,
        help="Natural-language search query",
    )
    p_search.add_argument(
        "--limit",
        type=int,
        default=None,
        help="Number of results to return (default: memory.limit)",
    )
    p_search.add_argument(
        "--min-relevance",
        type=float,
        default=None,
        dest="min_relevance",
        help="Minimum relevance score (default: memory.min_relevance)",
    )
    p_search.set_defaults(func=cmd_search)

    # -- stats --
    p_stats = subparsers.add_parser(
        "stats",
        help="Show settings and collection statistics",
    )
    p_stats.set_defaults(func=cmd_stats)

    return parser


# ===================================================================
# Main entry point
# ===================================================================

def main(argv=None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    args.settings = load_settings(args.config)
    setup_logging(args.settings.logging.level, verbose=args.verbose)

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    try:
        args.func(args)
    except KeyboardInterrupt:
        print("\nInterrupted by user.")
        sys.exit(130)
    except IngestionError as exc:
        print(f"ERROR: {exc}")
        sys.exit(1)
    except Exception as exc:
        logging.error("Command failed: %s", exc, exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
