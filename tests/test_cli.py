"""Tests for the Typer CLI with mocked providers and a shared in-memory store."""

from __future__ import annotations

from pathlib import Path

import pytest
from typer.testing import CliRunner

from conftest import DIM, MockEmbedder, MockLLM
from finrag import cli
from finrag.store.memory_store import InMemoryChunkStore

runner = CliRunner()


@pytest.fixture
def wired(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> InMemoryChunkStore:
    store = InMemoryChunkStore(dimension=DIM)
    embedder = MockEmbedder()
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(cli, "_embedding_provider", lambda settings: embedder)
    monkeypatch.setattr(cli, "_store", lambda settings, dimension: store)
    monkeypatch.setattr(cli, "_llm", lambda settings: MockLLM())
    return store


def test_ingest(wired: InMemoryChunkStore, sample_txt_file: Path):
    result = runner.invoke(
        cli.app,
        ["ingest", str(sample_txt_file), "--document-id", "doc-1", "--no-llm", "--ticker", "ACME"],
    )
    assert result.exit_code == 0, result.output
    assert "Ingested:" in result.output
    assert wired.count() > 0
    assert wired.get_profile("doc-1").ticker == "ACME"


def test_ingest_unsupported_file(wired: InMemoryChunkStore, tmp_path: Path):
    p = tmp_path / "slides.pptx"
    p.write_bytes(b"data")
    result = runner.invoke(cli.app, ["ingest", str(p), "--no-llm"])
    assert result.exit_code == 1
    assert "Cannot load slides.pptx" in result.output
    assert wired.count() == 0


def test_search_and_ask(wired: InMemoryChunkStore, sample_txt_file: Path):
    runner.invoke(cli.app, ["ingest", str(sample_txt_file), "--document-id", "doc-1", "--no-llm"])

    found = runner.invoke(cli.app, ["search", "What was revenue?", "--document-id", "doc-1"])
    assert found.exit_code == 0, found.output
    assert "Acme Robotics Inc." in found.output

    answered = runner.invoke(cli.app, ["ask", "What was revenue?", "--document-id", "doc-1"])
    assert answered.exit_code == 0, answered.output
    assert "Revenue was $734.2 million" in answered.output
    assert "Sources:" in answered.output


def test_search_failure_exits_nonzero(monkeypatch: pytest.MonkeyPatch, tmp_path: Path):
    class BrokenStore(InMemoryChunkStore):
        def search(self, query_embedding, filters=None):
            raise RuntimeError("index offline")

    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(cli, "_embedding_provider", lambda settings: MockEmbedder())
    monkeypatch.setattr(cli, "_store", lambda settings, dimension: BrokenStore(dimension=DIM))
    result = runner.invoke(cli.app, ["search", "revenue"])
    assert result.exit_code == 1
    assert "Search unavailable" in result.output


def test_status(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.chdir(tmp_path)
    result = runner.invoke(cli.app, ["status"])
    assert result.exit_code == 0, result.output
    assert "Available Components" in result.output
    assert "alpha=0.5" in result.output
