"""
Extract Router: /api/extract

POST /api/extract: base64 document → normalized OCR text (cached 5 min by content hash)
"""

import logging

from fastapi import APIRouter

from decoding.schemas import ExtractRequest, ExtractResponse
from ingestion.recognition import RecognitionPoller

router = APIRouter(prefix="/api", tags=["extract"])

log = logging.getLogger(__name__)


@router.post("/extract", response_model=ExtractResponse, response_model_exclude_none=True)
async def extract_text(request: ExtractRequest):
    """
    Provider failures are surfaced: submit/poll errors carry the provider's
    status, a missing job header is 502 and a stalled job is 504.
    """
    log.info(f"[EXTRACT] mime={request.mime_type} size={len(request.file_base64)}")
    job = await RecognitionPoller().recognize(request.file_base64, request.mime_type)
    return ExtractResponse(text=job.text, pages=job.pages, cached=True if job.cached else None)
