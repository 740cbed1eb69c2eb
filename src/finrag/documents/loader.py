"""Raw text extraction for uploaded documents (PDF, DOCX, TXT, CSV, XLSX).

Spreadsheets are rendered as pipe-delimited markdown tables so the structure
detector classifies them as ``table`` spans.
"""

from __future__ import annotations

import io
import logging
from pathlib import Path

from finrag.documents.schemas import DocumentMetadata, LoadResult

logger = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS = {".txt", ".pdf", ".docx", ".csv", ".xlsx"}

MAX_TABLE_ROWS = 200


class DocumentLoader:
    """Load documents into a structured ``LoadResult``."""

    def load_file(self, path: str | Path, metadata: DocumentMetadata | None = None) -> LoadResult:
        """Load a document from a filesystem path."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"File not found: {path}")

        ext = path.suffix.lower()
        if ext not in SUPPORTED_EXTENSIONS:
            raise ValueError(
                f"Unsupported format '{ext}'. Supported: {sorted(SUPPORTED_EXTENSIONS)}"
            )

        result = self._dispatch(path.read_bytes(), ext, metadata)
        result.source_path = str(path)
        return result

    def load_bytes(
        self,
        data: bytes,
        filename: str,
        metadata: DocumentMetadata | None = None,
    ) -> LoadResult:
        """Load a document from in-memory bytes."""
        ext = Path(filename).suffix.lower()
        if ext not in SUPPORTED_EXTENSIONS:
            raise ValueError(
                f"Unsupported format '{ext}'. Supported: {sorted(SUPPORTED_EXTENSIONS)}"
            )

        result = self._dispatch(data, ext, metadata)
        result.source_path = filename
        return result

    def extract_text(self, data: bytes, filename: str) -> str:
        """Return only the text of an uploaded file."""
        return self.load_bytes(data, filename).text

    # ------------------------------------------------------------------
    # Private dispatch
    # ------------------------------------------------------------------

    def _dispatch(
        self,
        data: bytes,
        ext: str,
        metadata: DocumentMetadata | None,
    ) -> LoadResult:
        handlers = {
            ".txt": self._load_txt,
            ".pdf": self._load_pdf,
            ".docx": self._load_docx,
            ".csv": self._load_csv,
            ".xlsx": self._load_xlsx,
        }
        result = handlers[ext](data)
        result.format = ext.lstrip(".")
        result.metadata = metadata or DocumentMetadata()
        result.char_count = len(result.text)
        logger.info(
            "Loaded %s document: %d chars, %d warnings",
            result.format, result.char_count, len(result.warnings),
        )
        return result

    # ------------------------------------------------------------------
    # Format-specific loaders
    # ------------------------------------------------------------------

    @staticmethod
    def _decode(data: bytes) -> tuple[str, list[str]]:
        for encoding in ("utf-8", "cp1252", "latin-1"):
            try:
                return data.decode(encoding), []
            except UnicodeDecodeError:
                continue
        return (
            data.decode("utf-8", errors="replace"),
            ["Encoding detection fell back to utf-8 with replacements"],
        )

    @classmethod
    def _load_txt(cls, data: bytes) -> LoadResult:
        text, warnings = cls._decode(data)
        return LoadResult(text=text, page_texts=[text], page_count=1, warnings=warnings)

    @staticmethod
    def _load_pdf(data: bytes) -> LoadResult:
        import pdfplumber

        page_texts: list[str] = []
        try:
            with pdfplumber.open(io.BytesIO(data)) as pdf:
                for page in pdf.pages:
                    page_texts.append(page.extract_text() or "")
        except Exception as exc:
            return LoadResult(text="", warnings=[f"PDF extraction error: {exc}"])

        warnings: list[str] = []
        full_text = "\n\n".join(page_texts)
        if not full_text.strip():
            warnings.append("PDF contains no extractable text (may be scanned/image-only)")

        return LoadResult(
            text=full_text,
            page_texts=page_texts,
            page_count=len(page_texts),
            warnings=warnings,
        )

    @staticmethod
    def _load_docx(data: bytes) -> LoadResult:
        from docx import Document

        try:
            doc = Document(io.BytesIO(data))
        except Exception as exc:
            return LoadResult(text="", warnings=[f"DOCX extraction error: {exc}"])

        paragraphs = [p.text for p in doc.paragraphs if p.text.strip()]
        text = "\n\n".join(paragraphs)
        return LoadResult(text=text, page_texts=[text], page_count=1)

    @classmethod
    def _load_csv(cls, data: bytes) -> LoadResult:
        import pandas as pd

        text, warnings = cls._decode(data)
        try:
            df = pd.read_csv(io.StringIO(text))
        except Exception as exc:
            return LoadResult(text="", warnings=[*warnings, f"CSV extraction error: {exc}"])

        table = df.head(MAX_TABLE_ROWS).to_markdown(index=False) or "[empty table]"
        return LoadResult(text=table, page_texts=[table], page_count=1, warnings=warnings)

    @staticmethod
    def _load_xlsx(data: bytes) -> LoadResult:
        import pandas as pd

        page_texts: list[str] = []
        try:
            xls = pd.ExcelFile(io.BytesIO(data))
            for sheet_name in xls.sheet_names:
                df = pd.read_excel(xls, sheet_name=sheet_name)
                table = df.head(MAX_TABLE_ROWS).to_markdown(index=False)
                header = f"## Sheet: {sheet_name}\n\n"
                page_texts.append(header + (table or "[empty sheet]"))
        except Exception as exc:
            return LoadResult(text="", warnings=[f"Excel extraction error: {exc}"])

        return LoadResult(
            text="\n\n".join(page_texts),
            page_texts=page_texts,
            page_count=len(page_texts),
        )
