"""
Decode Router: /api/ai-decode

POST /api/ai-decode: problem text and/or page images → exactly `marks` validated MCQ steps
"""

import logging

from fastapi import APIRouter

from decoding.pipeline import decode
from decoding.schemas import DecodeRequest, DecodeResponse

router = APIRouter(prefix="/api", tags=["decode"])

log = logging.getLogger("decoding.pipeline")


@router.post("/ai-decode", response_model=DecodeResponse)
async def decode_problem(request: DecodeRequest):
    """
    **Decode one exam problem into guided MCQ steps.**

    Always returns a structurally valid step array: oracle failures fall back
    to local templates, and the hint engine runs on every step. Only missing
    configuration (500) and an empty request (400) are reported as errors.
    """
    log.info(f"[DECODE] request marks={request.marks} images={len(request.images or [])}")
    return await decode(request)
