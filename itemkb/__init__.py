"""
Item Knowledge Base -- root package.

This package turns a spreadsheet item catalog into retrieval-ready chunks:
    ingestion -> extract records, render them as text, split into chunks
    memory    -> embed chunks and store them in FAISS collections
    pipeline  -> wire the stages together for the CLI
"""

__version__ = "0.1.0"
