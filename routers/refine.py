"""
Solution Refine Router: /api/ai-refine

Synthesis (4.5 s) and pitfalls (3.5 s) run concurrently; a branch that fails
or times out returns the submitted baseline for its fields, so this route
answers 200 whenever the oracle is configured.
"""

import logging

from fastapi import APIRouter

from decoding.schemas import RefineRequest, RefineResponse
from decoding.synthesis import build_header, synthesize_solution

router = APIRouter(prefix="/api", tags=["refine"])

log = logging.getLogger("decoding.pipeline")


@router.post("/ai-refine", response_model=RefineResponse)
async def refine_solution(request: RefineRequest):
    mcqs = request.mcqs or []
    log.info(f"[REFINE] request mcqs={len(mcqs)} baseline={'yes' if request.solution else 'no'}")
    result = await synthesize_solution(
        baseline=request.solution,
        mcqs=mcqs,
        original_text=request.original_text or "",
        header=build_header(request.subject, request.syllabus, request.level),
    )
    return RefineResponse(
        working_steps=result.working_steps,
        key_points=result.key_points,
        pitfalls=result.pitfalls,
        usage=result.usage,
    )
