"""
Augment Router: /api/augment
"""

import logging

from fastapi import APIRouter

from decoding.schemas import AugmentRequest, AugmentResponse
from ingestion.augmenter import augment_text

router = APIRouter(prefix="/api", tags=["augment"])

log = logging.getLogger(__name__)


@router.post("/augment", response_model=AugmentResponse)
async def augment_ocr(request: AugmentRequest):
    """Clean OCR text with the oracle, using the page image when supplied."""
    log.info(f"[AUGMENT] chars={len(request.text)} image={'yes' if request.image_base64 else 'no'}")
    text = await augment_text(request.text, request.image_base64, request.image_mime_type)
    return AugmentResponse(text=text)
