"""Standalone CLI for managing documents and asking questions.

Usage::

    python -m docqa.cli ingest --owner alice --file ./report.pdf

    python -m docqa.cli list --owner alice

    python -m docqa.cli ask --owner alice --question "What was Q3 revenue?" \\
        [--document-id <id> ...]

    python -m docqa.cli delete --owner alice --document-id <id>

Uses the same providers, ChromaDB directory and SQLite registry as the web
app, configured from environment variables and ``.env``.
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path
from typing import Any

from docqa.config.settings import Settings
from docqa.utils.errors import DocQAError


def _build_services(app_settings: Settings) -> dict[str, Any]:
    """Build the service graph shared with the web app.

    Deferred import: ``docqa.main`` pulls in FastAPI and every provider SDK.
    """
    from docqa.main import build_services

    return build_services(app_settings)


# ---------------------------------------------------------------------------
# Subcommand handlers
# ---------------------------------------------------------------------------


async def _handle_ingest(args: argparse.Namespace, services: dict[str, Any]) -> int:
    """Ingest one local file."""
    path = Path(args.file)
    if not path.is_file():
        print(f"Error: file not found: {path}", file=sys.stderr)
        return 1

    print(f"Ingesting {path.name} for owner {args.owner}")
    document = await services["ingestion_pipeline"].ingest(
        path.read_bytes(),
        path.name,
        args.owner,
        document_id=args.document_id,
    )

    print("\nIngestion complete:")
    print(f"  Document ID:  {document.id}")
    print(f"  File type:    {document.file_type.value}")
    print(f"  Chunks:       {document.total_chunks}")
    print(f"  Text length:  {document.text_length}")
    return 0


async def _handle_list(args: argparse.Namespace, services: dict[str, Any]) -> int:
    documents = await services["document_service"].list_for_owner(args.owner)
    if not documents:
        print(f"No documents for owner {args.owner}.")
        return 0

    print(f"{'ID':<38} {'CHUNKS':>6}  {'CREATED':<20} FILENAME")
    for doc in documents:
        created = doc.created_at.strftime("%Y-%m-%d %H:%M:%S")
        print(f"{doc.id:<38} {doc.total_chunks:>6}  {created:<20} {doc.filename}")
    return 0


async def _handle_ask(args: argparse.Namespace, services: dict[str, Any]) -> int:
    """Ask a question and print the answer with its citations."""
    answer = await services["qa_service"].ask(
        args.question,
        args.owner,
        document_ids=args.document_ids or None,
    )

    print(answer.text)
    if answer.citations:
        print(f"\nConfidence: {answer.confidence:.3f}")
        print("Sources:")
        for n, citation in enumerate(answer.citations, start=1):
            print(
                f"  [{n}] {citation.filename}, chunk {citation.chunk_index} "
                f"(relevance {citation.relevance:.3f})"
            )
    return 0


async def _handle_delete(args: argparse.Namespace, services: dict[str, Any]) -> int:
    removed = await services["document_service"].delete(args.document_id, args.owner)
    print(f"Deleted document {args.document_id} ({removed} chunks removed).")
    return 0


_HANDLERS = {
    "ingest": _handle_ingest,
    "list": _handle_list,
    "ask": _handle_ask,
    "delete": _handle_delete,
}


async def _run(args: argparse.Namespace, app_settings: Settings) -> int:
    services = _build_services(app_settings)
    await services["repository"].initialize()
    try:
        return await _HANDLERS[args.command](args, services)
    except DocQAError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------


def _build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the document CLI."""
    parser = argparse.ArgumentParser(
        prog="python -m docqa.cli",
        description="Upload documents and ask questions about them.",
    )
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # -- ingest --
    ingest_parser = subparsers.add_parser("ingest", help="Ingest a pdf, docx, txt or csv file")
    ingest_parser.add_argument("--file", required=True, help="Path to the file")
    ingest_parser.add_argument("--owner", required=True, help="Owner id")
    ingest_parser.add_argument(
        "--document-id",
        dest="document_id",
        default=None,
        help="Replace an existing document instead of creating a new one",
    )

    # -- list --
    list_parser = subparsers.add_parser("list", help="List an owner's documents")
    list_parser.add_argument("--owner", required=True, help="Owner id")

    # -- ask --
    ask_parser = subparsers.add_parser("ask", help="Ask a question over an owner's documents")
    ask_parser.add_argument("--owner", required=True, help="Owner id")
    ask_parser.add_argument("--question", "-q", required=True, help="The question")
    ask_parser.add_argument(
        "--document-id",
        dest="document_ids",
        action="append",
        default=[],
        help="Restrict to this document (repeatable)",
    )

    # -- delete --
    delete_parser = subparsers.add_parser("delete", help="Delete a document and its chunks")
    delete_parser.add_argument("--owner", required=True, help="Owner id")
    delete_parser.add_argument("--document-id", dest="document_id", required=True, help="Document id")

    return parser


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main(argv: list[str] | None = None) -> None:
    """CLI entry point.  Exits with 0 on success, 1 on error."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    app_settings = Settings()
    sys.exit(asyncio.run(_run(args, app_settings)))


if __name__ == "__main__":
    main()
