from parte.ingestion.candidates import NoticeCandidate, generate_hash, parse_dates_from_parte_text
from parte.ingestion.service import IngestionService, IngestionSummary, IngestOutcome

__all__ = [
    "IngestionService",
    "IngestionSummary",
    "IngestOutcome",
    "NoticeCandidate",
    "generate_hash",
    "parse_dates_from_parte_text",
]
