"""CLI entry point for ragpack."""

import argparse
import asyncio
import json
import logging
import sys
from typing import Optional

from ragpack.config import Settings, load_settings
from ragpack.errors import ConfigurationError, RagPackError
from ragpack.factory import Components, build_components
from ragpack.models import BasicAuth, ConfluenceCredentials

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    """Log to stderr so the stdio transport's stdout stays clean."""
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


async def _with_store(components: Components, coro_fn) -> object:
    await components.store.connect()
    try:
        return await coro_fn()
    finally:
        await components.aclose()


def ingest(
    settings: Settings,
    source: str,
    confluence_url: Optional[str] = None,
    username: Optional[str] = None,
    password: Optional[str] = None,
) -> None:
    """Ingest a URL, or a Confluence page id when ``confluence_url`` is set."""
    if confluence_url and not (username and password):
        raise ConfigurationError("Confluence ingestion needs --username and --password")

    components = build_components(settings)
    if confluence_url:
        kind = "confluence"
        credentials = ConfluenceCredentials(username, password, base_url=confluence_url)
    else:
        kind = "url"
        credentials = BasicAuth(username, password) if username and password else None

    result = asyncio.run(
        _with_store(
            components,
            lambda: components.ingestion.ingest(source, kind, credentials),
        )
    )
    print(f"Ingested {result.file_id}: {result.chunk_count} chunks")


def query(settings: Settings, text: str) -> None:
    """Print the chunks most similar to ``text``."""
    components = build_components(settings)
    results = asyncio.run(
        _with_store(components, lambda: components.retrieval.query(text))
    )
    if not results:
        print(f"No results found for: {text}")
        return

    for i, r in enumerate(results, 1):
        snippet = r.page_content[:200].replace("\n", " ")
        if len(r.page_content) > 200:
            snippet += "..."
        print(f"{i}. [{r.similarity_score:.3f}] {r.metadata.get('source', '')}")
        print(f"   {snippet}")
        print("")


def list_documents(settings: Settings) -> None:
    components = build_components(settings)
    file_ids = asyncio.run(
        _with_store(components, components.store.list_ingested_file_ids)
    )
    for file_id in file_ids:
        print(file_id)


def delete(settings: Settings, file_ids: list[str]) -> int:
    """Delete documents; returns a non-zero exit code if any failed."""
    components = build_components(settings)
    report = asyncio.run(
        _with_store(components, lambda: components.ingestion.delete(file_ids))
    )
    print(json.dumps(report.to_dict(), indent=2))
    return 0 if report.ok else 1


def check(settings: Settings) -> int:
    """Report documents whose ledger count disagrees with their chunks."""
    components = build_components(settings)
    issues = asyncio.run(
        _with_store(components, components.store.find_inconsistencies)
    )
    if not issues:
        print("Ledger and chunk table are consistent")
        return 0

    for issue in issues:
        ledger = "missing" if issue.ledger_entries is None else issue.ledger_entries
        print(f"{issue.file_id}: ledger={ledger} chunks={issue.chunk_count}")
    return 1


def info(settings: Settings) -> None:
    """Show information about the project's store."""
    components = build_components(settings)

    async def gather() -> tuple[list[str], int]:
        return (
            await components.store.list_ingested_file_ids(),
            await components.store.count_chunks(),
        )

    file_ids, chunk_count = asyncio.run(_with_store(components, gather))
    print(f"Project: {settings.project_id}")
    print(f"  Store: {settings.db_path}")
    print(f"  Tables: {components.store.tables.chunks}, {components.store.tables.meta}")
    print(f"  Embedding model: {components.embedder.model_name} ({components.store.dimension} dims)")
    print(f"")
    print(f"Contents:")
    print(f"  Documents: {len(file_ids)}")
    print(f"  Chunks: {chunk_count}")


def serve(settings: Settings, transport: str = "stdio", host: str = "127.0.0.1", port: int = 8000) -> None:
    """Start the MCP server for one project.

    Args:
        settings: Loaded settings
        transport: Transport protocol (stdio, sse or streamable-http)
        host: Bind address for HTTP transports
        port: Port for HTTP transports
    """
    # Import here to avoid loading MCP unless needed
    from ragpack.server import create_mcp_server

    components = build_components(settings)
    logger.info(f"Serving project {settings.project_id} via {transport}")
    mcp = create_mcp_server(components, host=host, port=port)
    runners = {
        "stdio": mcp.run_stdio_async,
        "sse": mcp.run_sse_async,
        "streamable-http": mcp.run_streamable_http_async,
    }

    async def run() -> None:
        # Clients and the store are closed on the loop that used them
        try:
            await runners[transport]()
        finally:
            await components.aclose()

    asyncio.run(run())


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ragpack",
        description="ragpack - retrieval-augmented generation over MCP",
    )
    parser.add_argument("--project", help="Project id (default: $RAGPACK_PROJECT_ID)")
    parser.add_argument("--db", help="SQLite database path (default: $RAGPACK_DB_PATH)")
    parser.add_argument(
        "--embedding-provider",
        choices=["sentence-transformers", "openai"],
        help="Embedding backend (default: $RAGPACK_EMBEDDING_PROVIDER)",
    )
    parser.add_argument("--log-level", help="Logging level (default: INFO)")
    subparsers = parser.add_subparsers(dest="command", required=True)

    # serve command
    serve_parser = subparsers.add_parser("serve", help="Start the MCP server")
    serve_parser.add_argument(
        "--transport",
        choices=["stdio", "sse", "streamable-http"],
        default="stdio",
        help="Transport protocol (default: stdio)",
    )
    serve_parser.add_argument("--host", default="127.0.0.1", help="Bind address for HTTP transports")
    serve_parser.add_argument("--port", type=int, default=8000, help="Port for HTTP transports")

    # ingest command
    ingest_parser = subparsers.add_parser(
        "ingest", help="Ingest a document URL or Confluence page"
    )
    ingest_parser.add_argument("source", help="Document URL, or page id with --confluence")
    ingest_parser.add_argument(
        "--confluence",
        metavar="BASE_URL",
        help="Treat SOURCE as a page id on this Confluence site",
    )
    ingest_parser.add_argument("--username", help="Basic auth username")
    ingest_parser.add_argument("--password", help="Basic auth password or API token")

    # query command
    query_parser = subparsers.add_parser("query", help="Search ingested documents")
    query_parser.add_argument("text", help="Natural language query")
    query_parser.add_argument("--top-k", type=int, help="Maximum results (default: 5)")
    query_parser.add_argument("--min-score", type=float, help="Score threshold (default: 0.4)")

    # list command
    subparsers.add_parser("list", help="List ingested document ids")

    # delete command
    delete_parser = subparsers.add_parser("delete", help="Delete documents by file id")
    delete_parser.add_argument("file_ids", nargs="+", help="File ids to delete")

    # check command
    subparsers.add_parser("check", help="Compare ledger counts with stored chunks")

    # info command
    subparsers.add_parser("info", help="Show information about the project store")

    return parser


def main(argv: Optional[list[str]] = None) -> None:
    """Main CLI entry point."""
    args = build_parser().parse_args(argv)

    try:
        settings = load_settings(
            project_id=args.project,
            db_path=args.db,
            embedding_provider=args.embedding_provider,
            log_level=args.log_level,
            top_k=getattr(args, "top_k", None),
            min_score=getattr(args, "min_score", None),
        )
        configure_logging(settings.log_level)

        exit_code = 0
        if args.command == "serve":
            serve(settings, args.transport, args.host, args.port)
        elif args.command == "ingest":
            ingest(settings, args.source, args.confluence, args.username, args.password)
        elif args.command == "query":
            query(settings, args.text)
        elif args.command == "list":
            list_documents(settings)
        elif args.command == "delete":
            exit_code = delete(settings, args.file_ids)
        elif args.command == "check":
            exit_code = check(settings)
        elif args.command == "info":
            info(settings)
    except RagPackError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
