"""Coarse (parent) and fine (child) text splitters."""

from __future__ import annotations

from langchain_text_splitters import RecursiveCharacterTextSplitter

# Section headers and earnings-call markers come before generic breaks.
PARENT_SEPARATORS = [
    "\n\n## ",
    "\n\n### ",
    "\n\nOperator:",
    "\n\nQ&A Session",
    "\n\nQuestion:",
    "\n\nAnswer:",
    "\n\n",
    "\n",
    ". ",
    " ",
    "",
]

CHILD_SEPARATORS = ["\n\n", "\n", ". ", " ", ""]

PARENT_CHUNK_SIZE = 1500
PARENT_CHUNK_OVERLAP = 200
CHILD_CHUNK_SIZE = 400
CHILD_CHUNK_OVERLAP = 50


def build_parent_splitter(
    chunk_size: int = PARENT_CHUNK_SIZE,
    chunk_overlap: int = PARENT_CHUNK_OVERLAP,
) -> RecursiveCharacterTextSplitter:
    return RecursiveCharacterTextSplitter(
        chunk_size=chunk_size,
        chunk_overlap=chunk_overlap,
        separators=PARENT_SEPARATORS,
    )


def build_child_splitter(
    chunk_size: int = CHILD_CHUNK_SIZE,
    chunk_overlap: int = CHILD_CHUNK_OVERLAP,
) -> RecursiveCharacterTextSplitter:
    return RecursiveCharacterTextSplitter(
        chunk_size=chunk_size,
        chunk_overlap=chunk_overlap,
        separators=CHILD_SEPARATORS,
    )
