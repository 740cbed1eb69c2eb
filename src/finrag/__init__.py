"""Retrieval-augmented question answering over financial documents."""

__version__ = "0.1.0"
