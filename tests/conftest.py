"""Shared fixtures for tests: synthetic documents, mock providers, no network calls."""

from __future__ import annotations

import hashlib
import textwrap
import threading
from pathlib import Path

import numpy as np
import pytest

from finrag.chunking.schemas import Chunk
from finrag.embeddings.base import EmbeddingProvider
from finrag.extraction.schemas import StructuredFinancialRecord
from finrag.llm.base import LLMProvider
from finrag.store.memory_store import InMemoryChunkStore

DIM = 64

# ---------------------------------------------------------------------------
# Mock providers
# ---------------------------------------------------------------------------


class MockEmbedder(EmbeddingProvider):
    """Deterministic hash embeddings; optionally fails on the n-th call."""

    def __init__(self, dim: int = DIM, fail_on_call: int | None = None):
        self._dim = dim
        self.fail_on_call = fail_on_call
        self.calls = 0
        self._lock = threading.Lock()

    def embed_texts(self, texts: list[str]) -> list[list[float]]:
        with self._lock:
            self.calls += 1
            call = self.calls
        if self.fail_on_call is not None and call >= self.fail_on_call:
            raise RuntimeError("embedding service unavailable")
        return [self._hash_embed(t) for t in texts]

    def embed_query(self, query: str) -> list[float]:
        return self._hash_embed(query)

    @property
    def dimension(self) -> int:
        return self._dim

    def _hash_embed(self, text: str) -> list[float]:
        h = hashlib.sha256(text.encode()).digest()
        vec = np.array([h[i % len(h)] / 255.0 for i in range(self._dim)], dtype=np.float64)
        vec /= np.linalg.norm(vec)
        return vec.tolist()


class MockLLM(LLMProvider):
    """Returns scripted responses in order; raises when given an exception."""

    def __init__(self, *responses: str | Exception):
        self.model = "mock-llm"
        self.responses = list(responses) or ["Revenue was $734.2 million [1]."]
        self.prompts: list[str] = []
        self.systems: list[str | None] = []

    def generate(
        self,
        prompt: str,
        system: str | None = None,
        temperature: float | None = None,
    ) -> str:
        self.prompts.append(prompt)
        self.systems.append(system)
        response = self.responses[min(len(self.prompts), len(self.responses)) - 1]
        if isinstance(response, Exception):
            raise response
        return response


def make_chunk(
    content: str,
    document_id: str = "doc-1",
    parent: Chunk | None = None,
    embedding: list[float] | None = None,
    **kwargs,
) -> Chunk:
    """Chunk with an embedding derived from its content."""
    return Chunk(
        document_id=document_id,
        content=content,
        chunk_type=kwargs.pop("chunk_type", "narrative"),
        parent_id=parent.id if parent else None,
        depth=2 if parent else 1,
        embedding=embedding or MockEmbedder().embed_query(content),
        **kwargs,
    )


@pytest.fixture
def embedder() -> MockEmbedder:
    return MockEmbedder()


@pytest.fixture
def store() -> InMemoryChunkStore:
    return InMemoryChunkStore(dimension=DIM)


# ---------------------------------------------------------------------------
# Synthetic document content
# ---------------------------------------------------------------------------


@pytest.fixture
def earnings_text() -> str:
    """Quarterly release with metric lines, a table and narrative."""
    return textwrap.dedent("""\
        Acme Robotics Inc. Quarterly Earnings Report Q3 2024

        Acme Robotics delivered a quarter of continued customer expansion across
        its industrial automation platform. Demand from logistics and automotive
        customers remained healthy and the installed base grew steadily.

        Revenue: $734.2 million
        Net Loss: $194.3 million
        Gross margin improved to 68.5% from 66.1% a year ago.

        | Segment | Q3 2024 | Q3 2023 |
        | Hardware | 412.0 | 380.5 |
        | Software | 322.2 | 260.1 |

        Management expects the next quarter to benefit from new product launches
        and a stronger services attach rate across enterprise accounts.
    """)


@pytest.fixture
def transcript_text() -> str:
    """Three speaker turns without any financial figures."""
    return textwrap.dedent("""\
        Operator: Good afternoon and welcome to the conference call.
        Jane Doe: Thank you. We are pleased with the progress our teams made this quarter.
        Our customers continue to adopt the platform across new regions.
        Operator: We will now open the line for questions.
    """)


@pytest.fixture
def long_text() -> str:
    """Narrative long enough to need several parents and children."""
    paragraph = (
        "The company expanded its distribution network into three new regions "
        "and invested in warehouse automation to shorten delivery times. "
    )
    return "\n\n".join(paragraph * 4 for _ in range(8))


@pytest.fixture
def sample_record() -> StructuredFinancialRecord:
    """Fully populated record, as the LLM would return it (camelCase keys)."""
    return StructuredFinancialRecord.model_validate({
        "companyInfo": {"companyName": "Acme Robotics Inc.", "ticker": "ACME", "currency": "USD"},
        "reportInfo": {
            "reportType": "earnings",
            "fiscalPeriod": "Q3 2024",
            "fiscalYear": 2024,
            "quarter": 3,
        },
        "financialMetrics": {
            "revenue": 734_200_000,
            "netIncome": -194_300_000,
            "eps": -0.59,
            "grossMargin": 68.5,
        },
        "growthMetrics": {"revenueGrowth": 12.4},
        "incomeStatement": {"revenue": 734_200_000, "netIncome": -194_300_000},
        "balanceSheet": {"totalAssets": 5_100_000_000},
        "cashFlowStatement": None,
        "keyHighlights": [
            "Record product revenue",
            "Net revenue retention of 127%",
            "Opened two new data centers",
            "Added 300 enterprise customers",
            "Raised full-year guidance",
        ],
    })


@pytest.fixture
def sample_txt_file(tmp_path: Path, earnings_text: str) -> Path:
    p = tmp_path / "acme_q3.txt"
    p.write_text(earnings_text)
    return p


@pytest.fixture
def sample_pdf_file(tmp_path: Path) -> Path:
    """Create a minimal two-page PDF using fpdf2."""
    from fpdf import FPDF

    pdf = FPDF()
    pdf.set_auto_page_break(auto=True, margin=15)
    pdf.add_page()
    pdf.set_font("Helvetica", size=12)
    pdf.multi_cell(0, 10, text=(
        "Acme Robotics Inc. Quarterly Earnings Report\n\n"
        "Revenue: $734.2 million for the third quarter."
    ))
    pdf.add_page()
    pdf.multi_cell(0, 10, text=(
        "Outlook\n\n"
        "Management expects continued expansion in enterprise accounts."
    ))
    p = tmp_path / "acme_q3.pdf"
    pdf.output(str(p))
    return p


@pytest.fixture
def sample_docx_file(tmp_path: Path) -> Path:
    from docx import Document

    doc = Document()
    doc.add_heading("Acme Robotics Annual Report", level=1)
    doc.add_paragraph("Revenue: $2.9 billion for fiscal 2024.")
    doc.add_paragraph("The company expanded into three new regions.")
    p = tmp_path / "acme_annual.docx"
    doc.save(str(p))
    return p


@pytest.fixture
def sample_xlsx_file(tmp_path: Path) -> Path:
    import pandas as pd

    summary = pd.DataFrame({
        "Quarter": ["Q1", "Q2", "Q3"],
        "Revenue ($M)": [650.1, 690.4, 734.2],
    })
    segments = pd.DataFrame({
        "Segment": ["Hardware", "Software"],
        "Revenue ($M)": [412.0, 322.2],
    })
    p = tmp_path / "acme_model.xlsx"
    with pd.ExcelWriter(str(p), engine="openpyxl") as writer:
        summary.to_excel(writer, sheet_name="Summary", index=False)
        segments.to_excel(writer, sheet_name="Segments", index=False)
    return p
