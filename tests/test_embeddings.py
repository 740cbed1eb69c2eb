"""Tests for embedding providers, enrichment text and concurrent chunk embedding."""

from __future__ import annotations

import json
import threading
import time
from unittest.mock import MagicMock, patch

import httpx
import pytest

from conftest import DIM, MockEmbedder
from finrag.chunking.schemas import Chunk, FinancialMetadata
from finrag.embeddings.base import EmbeddingProvider
from finrag.embeddings.enrichment import build_embedding_text
from finrag.embeddings.factory import (
    available_providers,
    clear_cache,
    get_embedding_provider,
)
from finrag.embeddings.generator import ChunkEmbedder
from finrag.embeddings.ollama_provider import OllamaEmbeddingProvider
from finrag.errors import EmbeddingError, ProcessingCancelled, ProcessingError


def _chunks(n: int, document_id: str = "doc-1") -> list[Chunk]:
    return [
        Chunk(document_id=document_id, content=f"chunk number {i}", chunk_type="narrative")
        for i in range(n)
    ]


class SlowFirstBatchEmbedder(MockEmbedder):
    """Completes batches out of order: the batch holding chunk 0 finishes last."""

    def embed_texts(self, texts: list[str]) -> list[list[float]]:
        if texts and texts[0].startswith("chunk number 0 "):
            time.sleep(0.05)
        return super().embed_texts(texts)


class WrongDimensionEmbedder(MockEmbedder):
    def embed_texts(self, texts: list[str]) -> list[list[float]]:
        return [[0.5] * (self.dimension // 2) for _ in texts]


class ShortBatchEmbedder(MockEmbedder):
    def embed_texts(self, texts: list[str]) -> list[list[float]]:
        return super().embed_texts(texts)[:-1]


# ---------------------------------------------------------------------------
# Base class
# ---------------------------------------------------------------------------


class TestEmbeddingProviderABC:
    def test_cannot_instantiate_base(self):
        with pytest.raises(TypeError):
            EmbeddingProvider()  # type: ignore[abstract]

    def test_provider_name(self):
        assert MockEmbedder.provider_name() == "MockEmbedder"

    def test_mock_is_deterministic(self, embedder: MockEmbedder):
        assert embedder.embed_query("same text") == embedder.embed_query("same text")
        assert embedder.embed_query("text one") != embedder.embed_query("text two")
        assert len(embedder.embed_query("x")) == DIM


# ---------------------------------------------------------------------------
# Enrichment
# ---------------------------------------------------------------------------


class TestEmbeddingText:
    def test_all_tags(self):
        chunk = Chunk(
            document_id="d",
            content="Revenue grew 12%",
            chunk_type="financial_metrics",
            section_type="financial_metrics",
            metadata=FinancialMetadata(
                company_name="Acme Robotics Inc.",
                report_type="earnings",
                fiscal_period="Q3 2024",
                metrics=("revenue", "eps"),
            ),
        )
        assert build_embedding_text(chunk) == (
            "Revenue grew 12% | Company: Acme Robotics Inc. | Report Type: earnings"
            " | Period: Q3 2024 | Metrics: revenue, eps | Section: financial_metrics"
        )

    def test_missing_tags_are_skipped(self):
        chunk = Chunk(document_id="d", content="Plain text", chunk_type="narrative")
        assert build_embedding_text(chunk) == "Plain text"


# ---------------------------------------------------------------------------
# Concurrent embedding
# ---------------------------------------------------------------------------


class TestChunkEmbedder:
    def test_every_chunk_embedded(self, embedder: MockEmbedder):
        chunks = _chunks(10)
        ChunkEmbedder(embedder, max_workers=3, batch_size=3).embed_chunks(chunks)
        assert all(c.embedding is not None and len(c.embedding) == DIM for c in chunks)
        assert embedder.calls == 4

    def test_order_independent_of_completion(self):
        provider = SlowFirstBatchEmbedder()
        chunks = [
            Chunk(document_id="d", content=f"chunk number {i} ", chunk_type="narrative")
            for i in range(8)
        ]
        ChunkEmbedder(provider, max_workers=4, batch_size=2).embed_chunks(chunks)
        for chunk in chunks:
            assert chunk.embedding == provider.embed_query(build_embedding_text(chunk))

    def test_empty_list(self, embedder: MockEmbedder):
        assert ChunkEmbedder(embedder).embed_chunks([]) == []
        assert embedder.calls == 0

    def test_provider_failure(self):
        chunks = _chunks(6)
        embedder = ChunkEmbedder(MockEmbedder(fail_on_call=2), max_workers=1, batch_size=2)
        with pytest.raises(EmbeddingError) as exc_info:
            embedder.embed_chunks(chunks)
        assert isinstance(exc_info.value.__cause__, RuntimeError)
        assert exc_info.value.document_id == "doc-1"
        assert all(c.embedding is None for c in chunks)

    def test_cancelled_before_start(self, embedder: MockEmbedder):
        cancel = threading.Event()
        cancel.set()
        chunks = _chunks(4)
        with pytest.raises(ProcessingCancelled):
            ChunkEmbedder(embedder, batch_size=2).embed_chunks(chunks, cancel_event=cancel)
        assert embedder.calls == 0
        assert all(c.embedding is None for c in chunks)

    def test_cancel_is_a_processing_error(self):
        assert issubclass(ProcessingCancelled, ProcessingError)

    def test_dimension_mismatch(self):
        with pytest.raises(EmbeddingError, match="dimension"):
            ChunkEmbedder(WrongDimensionEmbedder()).embed_chunks(_chunks(2))

    def test_vector_count_mismatch(self):
        with pytest.raises(EmbeddingError, match="vectors for"):
            ChunkEmbedder(ShortBatchEmbedder()).embed_chunks(_chunks(3))

    def test_invalid_settings(self, embedder: MockEmbedder):
        with pytest.raises(ValueError):
            ChunkEmbedder(embedder, max_workers=0)


# ---------------------------------------------------------------------------
# Ollama provider over a mock transport
# ---------------------------------------------------------------------------


class TestOllamaEmbeddingProvider:
    def _provider(self, handler) -> OllamaEmbeddingProvider:
        provider = OllamaEmbeddingProvider(dimension=3)
        provider._client = httpx.Client(
            base_url="http://ollama.test", transport=httpx.MockTransport(handler),
        )
        return provider

    def test_batch_endpoint(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/api/embed"
            body = json.loads(request.content)
            return httpx.Response(200, json={"embeddings": [[0.1, 0.2, 0.3]] * len(body["input"])})

        provider = self._provider(handler)
        assert provider.embed_texts(["a", "b"]) == [[0.1, 0.2, 0.3], [0.1, 0.2, 0.3]]
        assert provider.embed_query("q") == [0.1, 0.2, 0.3]

    def test_legacy_endpoint_fallback(self):
        seen: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request.url.path)
            if request.url.path == "/api/embed":
                return httpx.Response(404)
            return httpx.Response(200, json={"embedding": [1.0, 0.0, 0.0]})

        provider = self._provider(handler)
        assert provider.embed_texts(["a", "b"]) == [[1.0, 0.0, 0.0], [1.0, 0.0, 0.0]]
        assert seen == ["/api/embed", "/api/embeddings", "/api/embeddings"]

    def test_server_error_raises(self):
        provider = self._provider(lambda request: httpx.Response(500))
        with pytest.raises(httpx.HTTPStatusError):
            provider.embed_texts(["a"])

    def test_empty_input_skips_request(self):
        provider = self._provider(lambda request: pytest.fail("no request expected"))
        assert provider.embed_texts([]) == []


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------


class TestEmbeddingFactory:
    def setup_method(self):
        clear_cache()

    def test_available_providers(self):
        assert available_providers() == ["openai", "ollama"]

    def test_unknown_provider_raises(self):
        with pytest.raises(ValueError, match="Unknown embedding provider"):
            get_embedding_provider("nonexistent")

    def test_factory_caching(self):
        with patch("finrag.embeddings.factory.importlib") as mock_importlib:
            mock_mod = MagicMock()
            mock_mod.OllamaEmbeddingProvider = MockEmbedder
            mock_importlib.import_module.return_value = mock_mod

            p1 = get_embedding_provider("ollama")
            p2 = get_embedding_provider("ollama")
            assert p1 is p2

    def test_factory_kwargs_bypass_cache(self):
        with patch("finrag.embeddings.factory.importlib") as mock_importlib:
            mock_mod = MagicMock()
            mock_mod.OllamaEmbeddingProvider = MockEmbedder
            mock_importlib.import_module.return_value = mock_mod

            p1 = get_embedding_provider("ollama")
            p2 = get_embedding_provider("ollama", dim=32)
            assert p1 is not p2
            assert p2.dimension == 32
