"""
Decode Pipeline

One request, start to finish:
  1. recognize attached images (if any) and append their normalized text
  2. resolve the board profile from syllabus/level
  3. oracle step generation, or the local fallback on any absorbed failure
  4. validate steps (dedup, exact count, renumber)
  5. hint engine, then solution synthesis off the same validated steps
  6. merge and report per-stage usage

Only configuration and input errors escape; every other failure degrades.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional

from decoding.board_profiles import AssessmentProfile, resolve_board_profile
from decoding.errors import (
    DecoderError,
    InputError,
    ParseError,
    ProtocolError,
    RecognitionTimeoutError,
    StageTimeoutError,
    UpstreamError,
)
from decoding.fallback_generator import generate_fallback
from decoding.hint_engine import improve_hints
from decoding.schemas import DecodeRequest, DecodeResponse, ImagePayload, MCQStep, Question, SolutionSummary
from decoding.step_generator import MAX_PROBLEM_CHARS
from decoding.synthesis import build_header, sum_usage, synthesize_solution
from decoding.validator import normalize_solution, validate_steps

log = logging.getLogger("decoding.pipeline")


@dataclass
class DecodeContext:
    """Everything downstream stages need about the request, resolved once."""
    question: Question
    profile: AssessmentProfile
    header: str

    @property
    def source_text(self) -> str:
        return self.question.source_text[:MAX_PROBLEM_CHARS]

    @property
    def marks(self) -> int:
        return self.question.marks


async def recognize_images(images: List[ImagePayload], poller=None) -> str:
    """
    OCR each image in order and join the normalized text.

    Raises:
        ConfigurationError: recognition provider not configured
        InputError:         an image payload is not base64
        DecoderError:       the last provider failure, when no image produced text
    """
    from ingestion.recognition import RecognitionPoller

    poller = poller or RecognitionPoller()
    texts = []
    last_error: Optional[DecoderError] = None
    for index, image in enumerate(images, start=1):
        try:
            job = await poller.recognize(image.base64, image.mime_type)
        except (UpstreamError, ProtocolError, RecognitionTimeoutError) as e:
            log.warning(f"[DECODE] image {index} recognition failed: {e.message}")
            last_error = e
            continue
        if job.text:
            texts.append(job.text)
    if not texts and last_error is not None:
        raise last_error
    return "\n".join(texts)


async def build_context(request: DecodeRequest, poller=None) -> DecodeContext:
    text = (request.text or "").strip()
    images = request.images or []
    if not text and not images:
        raise InputError("Missing 'text' or 'images'")

    extracted = text
    if images:
        try:
            ocr_text = await recognize_images(images, poller)
        except (UpstreamError, ProtocolError, RecognitionTimeoutError):
            if not text:
                raise
            log.warning("[DECODE] continuing with submitted text only")
            ocr_text = ""
        extracted = "\n".join(t for t in (text, ocr_text) if t)

    if not extracted:
        raise InputError("No text could be recognized in the submitted images")

    question = Question(
        raw_content=text,
        extracted_text=extracted[:MAX_PROBLEM_CHARS],
        marks=request.marks,
        source_type="photo" if images else "text",
        subject=request.subject,
        syllabus=request.syllabus,
        level=request.level,
    )
    return DecodeContext(
        question=question,
        profile=resolve_board_profile(request.syllabus, request.level),
        header=build_header(request.subject, request.syllabus, request.level),
    )


async def produce_steps(ctx: DecodeContext):
    """Oracle first; any absorbed failure switches to the local fallback."""
    from decoding.step_generator import generate_steps

    try:
        generated = await generate_steps(ctx.source_text, ctx.marks, ctx.profile, ctx.header)
    except (UpstreamError, ParseError, StageTimeoutError) as e:
        log.warning(f"[DECODE] oracle step generation failed ({type(e).__name__}: {e.message})")
        steps, solution = generate_fallback(ctx.source_text, ctx.marks)
        return steps, solution, None
    return generated.steps, normalize_solution(generated.solution), generated.usage


async def decode(request: DecodeRequest, poller=None) -> DecodeResponse:
    """
    Decode one problem into exactly clamp(marks, 1, 8) validated MCQ steps.

    Raises:
        ConfigurationError: oracle (or, with images, recognition) not configured
        InputError:         nothing to decode
    """
    from decoding.gpt_client import ensure_oracle_configured

    ensure_oracle_configured()
    ctx = await build_context(request, poller)
    log.info(f"[DECODE] marks={ctx.marks} board={ctx.profile.key} source={ctx.question.source_type}")

    steps, solution, steps_usage = await produce_steps(ctx)
    steps: List[MCQStep] = validate_steps(steps, ctx.marks)

    steps = improve_hints(steps, context=ctx.source_text)
    synthesis = await synthesize_solution(
        baseline=solution,
        mcqs=steps,
        original_text=ctx.source_text,
        header=ctx.header,
    )

    merged = SolutionSummary(
        final_answer=solution.final_answer,
        unit=solution.unit,
        working_steps=synthesis.working_steps,
        key_formulas=solution.key_formulas,
        key_points=synthesis.key_points,
        pitfalls=synthesis.pitfalls,
    )
    stages = dict(synthesis.usage.get("stages") or {})
    usage = sum_usage({"steps": steps_usage, **stages})
    log.info(f"[DECODE] done steps={len(steps)} tokens={usage['totals']['total_tokens']}")
    return DecodeResponse(mcqs=steps, solution=merged, usage=usage)
