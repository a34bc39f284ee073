"""
Ingestion Package

Turns uploaded exam pages into clean problem text:
1. Recognize (Azure Document Intelligence, async job polling) → raw lines
2. Normalize (OCR artifact cleanup, stacked fractions) → clean text
3. Augment (GPT-4o vision, optional) → single clean problem statement
"""

from .normalizer import normalize_ocr_text
from .augmenter import augment_text
from .recognition import RecognitionJob, RecognitionPoller, RecognitionStatus, content_hash, extract_lines

__all__ = [
    # Step 1: Recognize
    "RecognitionPoller",
    "RecognitionJob",
    "RecognitionStatus",
    "content_hash",
    "extract_lines",

    # Step 2: Normalize
    "normalize_ocr_text",

    # Optional: vision cleanup
    "augment_text",
]
