"""Glimpse ingestion: upload events, keyword extraction, and the pipeline."""

from glimpse.ingest.events import UploadEvent
from glimpse.ingest.keywords import extract_keywords
from glimpse.ingest.pipeline import IngestionPipeline, IngestResult, IngestStatus

__all__ = [
    "IngestResult",
    "IngestStatus",
    "IngestionPipeline",
    "UploadEvent",
    "extract_keywords",
]
