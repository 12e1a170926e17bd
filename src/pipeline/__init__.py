"""Extraction pipeline entry points."""

from pipeline.deadline import Deadline, ExtractionTimeout
from pipeline.extract import Extraction, extract_symbol
from pipeline.index import index_repository

__all__ = [
    "Deadline",
    "Extraction",
    "ExtractionTimeout",
    "extract_symbol",
    "index_repository",
]
