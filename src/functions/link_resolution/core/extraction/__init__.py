from .page_extractor import (
    CandidateLink,
    ExtractionError,
    ExtractionResult,
    HttpPageExtractor,
    PageExtractor,
)

__all__ = [
    "CandidateLink",
    "ExtractionError",
    "ExtractionResult",
    "HttpPageExtractor",
    "PageExtractor",
]
