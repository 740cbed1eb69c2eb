"""CLI entry point: Typer app for finrag commands.

Usage:
    finrag ingest q3_earnings.pdf --company "Acme Corp" --report-type earnings
    finrag search "revenue growth" --strictness 0.15 --document-id <id>
    finrag ask "What guidance did management give for Q4?"
    finrag status

Components are built from ``settings.yaml``. Use a persistent store backend
(``faiss`` with a path, or ``qdrant``) to search across invocations.
"""

from __future__ import annotations

import logging
import os
import uuid
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table

from finrag import __version__
from finrag.config import Settings, load_settings

app = typer.Typer(
    name="finrag",
    help="Financial document RAG: ingest, search, ask.",
    no_args_is_help=True,
)

console = Console()

_INGEST_PATH = typer.Argument(..., help="Path to the document to ingest")
_CONFIG = typer.Option("--config", "-c", help="Path to settings.yaml")

_state: dict[str, Path | None] = {"config": None}


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
    config: Annotated[Path | None, _CONFIG] = None,
) -> None:
    level = "DEBUG" if verbose else os.getenv("LOG_LEVEL", "WARNING").upper()
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    _state["config"] = config


# ---------------------------------------------------------------------------
# Component wiring
# ---------------------------------------------------------------------------


def _settings() -> Settings:
    return load_settings(_state["config"])


def _embedding_provider(settings: Settings):
    from finrag.embeddings.factory import get_embedding_provider

    cfg = settings.embedding
    if cfg.provider == "openai":
        return get_embedding_provider("openai", model=cfg.model, dimensions=cfg.dimension)
    return get_embedding_provider(cfg.provider, model=cfg.model, dimension=cfg.dimension)


def _llm(settings: Settings):
    from finrag.llm.factory import get_llm_provider

    cfg = settings.llm
    return get_llm_provider(
        cfg.provider, model=cfg.model, temperature=cfg.temperature, max_tokens=cfg.max_tokens,
    )


def _store(settings: Settings, dimension: int):
    from finrag.store.factory import get_chunk_store

    cfg = settings.store
    if cfg.backend == "qdrant":
        return get_chunk_store(
            "qdrant", collection_name=cfg.collection, dimension=dimension,
            url=cfg.url, path=cfg.path,
        )
    if cfg.backend == "faiss":
        return get_chunk_store("faiss", dimension=dimension, path=cfg.path)
    return get_chunk_store(cfg.backend, dimension=dimension)


def _retriever(settings: Settings):
    from finrag.retrieval.retriever import Retriever

    emb = _embedding_provider(settings)
    return Retriever(emb, _store(settings, emb.dimension), settings=settings.retrieval)


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@app.command()
def ingest(
    path: Annotated[Path, _INGEST_PATH],
    company: str | None = typer.Option(None, "--company", help="Override company name"),
    ticker: str | None = typer.Option(None, "--ticker", "-t", help="Stock ticker"),
    report_type: str | None = typer.Option(
        None, "--report-type", "-r",
        help="earnings, 10k, 10q, annual_report, quarterly_report",
    ),
    document_id: str | None = typer.Option(None, "--document-id", help="Document id"),
    no_llm: bool = typer.Option(False, "--no-llm", help="Heuristic extraction only"),
) -> None:
    """Extract, chunk, embed and store a document."""
    from finrag.documents.schemas import DocumentMetadata, ReportType
    from finrag.errors import ProcessingError
    from finrag.pipeline.ingest import DocumentProcessor

    settings = _settings()
    if settings.store.backend == "memory":
        console.print("[yellow]Store backend is 'memory'; chunks are not persisted.[/]")

    emb = _embedding_provider(settings)
    processor = DocumentProcessor(
        llm=None if no_llm else _llm(settings),
        embedding_provider=emb,
        store=_store(settings, emb.dimension),
        settings=settings,
    )
    metadata = DocumentMetadata(
        filename=path.name,
        company_name=company,
        ticker=ticker,
        report_type=ReportType.parse(report_type) if report_type else None,
        source_integration="cli",
    )

    document_id = document_id or str(uuid.uuid4())
    try:
        processor.process_file(path, document_id=document_id, metadata=metadata)
    except ProcessingError as exc:
        console.print(f"[bold red]Failed:[/] {exc.message}")
        raise typer.Exit(code=1) from exc
    except (FileNotFoundError, ValueError) as exc:
        console.print(f"[bold red]Cannot load {path.name}:[/] {exc}")
        raise typer.Exit(code=1) from exc

    job = processor.get_job(document_id)
    console.print(f"\n[bold green]Ingested:[/] {path.name}")
    console.print(f"  Document id: {job.document_id}")
    console.print(f"  Chunks: {job.chunks_created}")
    console.print(f"  Parents stored: {job.parents_stored}")
    console.print(f"  Children stored: {job.children_stored}")
    for w in job.warnings:
        console.print(f"  [yellow]Warning:[/] {w}")


@app.command()
def search(
    query: str = typer.Argument(..., help="Search query"),
    strictness: float | None = typer.Option(
        None, "--strictness", "-s", min=0.0, max=1.0,
        help="Statistical cutoff (0 lenient, 1 strict)",
    ),
    document_id: str | None = typer.Option(
        None, "--document-id", "-d", help="Frame the query with this document's company",
    ),
    max_results: int | None = typer.Option(None, "--max-results", "-k", min=1),
    intent: bool = typer.Option(False, "--intent", help="Tune search from query wording"),
) -> None:
    """Search stored chunks without generating an answer."""
    retriever = _retriever(_settings())
    if intent:
        result = retriever.enhanced_search(query, document_id=document_id)
    else:
        result = retriever.retrieve(
            query, max_results=max_results, strictness=strictness, document_id=document_id,
        )

    if result.failed:
        console.print(f"[bold red]Search unavailable:[/] {result.error}")
        raise typer.Exit(code=1)

    console.print(f"\n[dim]Embedded query:[/] {result.rewritten_query}")
    table = Table(title=f"{len(result.results)} of {result.total_candidates} candidates")
    table.add_column("#", style="cyan")
    table.add_column("Similarity")
    table.add_column("Type")
    table.add_column("Title")
    table.add_column("Excerpt")
    for i, r in enumerate(result.results, 1):
        table.add_row(
            str(i), f"{r.similarity:.3f}", r.chunk_type, r.title, r.content[:80],
        )
    console.print(table)


@app.command()
def ask(
    question: str = typer.Argument(..., help="Question to ask"),
    document_id: str | None = typer.Option(None, "--document-id", "-d"),
    company: str | None = typer.Option(None, "--company", help="Filter by company"),
    strictness: float | None = typer.Option(None, "--strictness", "-s", min=0.0, max=1.0),
    max_results: int | None = typer.Option(None, "--max-results", "-k", min=1),
) -> None:
    """Answer a question from the stored documents."""
    from finrag.pipeline.citations import format_citations
    from finrag.pipeline.query import QueryPipeline
    from finrag.pipeline.schemas import RAGQuery

    settings = _settings()
    pipeline = QueryPipeline(_retriever(settings), _llm(settings))
    response = pipeline.ask(RAGQuery(
        question=question,
        document_id=document_id,
        company=company,
        strictness=strictness,
        max_results=max_results,
    ))

    console.print(f"\n[bold]Q:[/] {response.question}")
    console.print(f"\n[bold green]A:[/] {response.answer}")
    if response.citations:
        console.print(format_citations(response.citations))
    console.print(
        f"\n[dim]Model: {response.model} | Context chunks: {response.retrieval_count}[/]",
    )


@app.command()
def status() -> None:
    """Show available components and the active configuration."""
    from finrag.chunking.factory import available_chunkers
    from finrag.embeddings.factory import available_providers as emb_providers
    from finrag.llm.factory import available_providers as llm_providers
    from finrag.store.factory import available_stores

    settings = _settings()
    console.print(f"\n[bold green]finrag[/] v{__version__}\n")

    table = Table(title="Available Components")
    table.add_column("Layer", style="cyan")
    table.add_column("Available")
    table.add_column("Configured")
    table.add_row("Chunkers", ", ".join(available_chunkers()), "hierarchical")
    table.add_row(
        "Embedding Providers", ", ".join(emb_providers()),
        f"{settings.embedding.provider} ({settings.embedding.model})",
    )
    table.add_row("Chunk Stores", ", ".join(available_stores()), settings.store.backend)
    table.add_row(
        "LLM Providers", ", ".join(llm_providers()),
        f"{settings.llm.provider} ({settings.llm.model})",
    )
    console.print(table)

    r = settings.retrieval
    console.print(
        f"\n[dim]Retrieval: alpha={r.alpha} overfetch={r.overfetch_factor} "
        f"strictness={r.default_strictness} max_results={r.default_max_results}[/]",
    )


if __name__ == "__main__":
    app()
