from parte.extraction.models import ExtractionMode, ExtractionResult, PhotoDetection, ProviderSpec
from parte.extraction.orchestrator import ExtractionOrchestrator, build_orchestrator

__all__ = [
    "ExtractionMode",
    "ExtractionOrchestrator",
    "ExtractionResult",
    "PhotoDetection",
    "ProviderSpec",
    "build_orchestrator",
]
