"""
Hint Refine Router: /api/ai-refine-hints
"""

import logging

from fastapi import APIRouter

from decoding.hint_refiner import refine_hints
from decoding.schemas import HintRefineRequest, HintRefineResponse

router = APIRouter(prefix="/api", tags=["hints"])

log = logging.getLogger("decoding.pipeline")


@router.post("/ai-refine-hints", response_model=HintRefineResponse)
async def refine_step_hints(request: HintRefineRequest):
    """Rewrite up to 20 hints with discriminative cues; every item comes back with a finalized hint."""
    log.info(f"[HINTS] refine request items={len(request.items)}")
    hints = await refine_hints(request.items, request.header, request.original_text)
    return HintRefineResponse(hints=hints)
