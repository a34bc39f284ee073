"""
MCQ Step Generator

Asks the oracle to decode one exam problem into `marks` guided MCQ steps
plus a worked solution, with guidance from the resolved board profile
(AO balance, command words, conventions).

Output contract (validated on ingress):
  {"mcqs": [ {question, options[4], correctAnswer, hint, explanation, calculationStep?} ],
   "solution": {finalAnswer, unit, workingSteps, keyFormulas, keyPoints, pitfalls}}

Malformed items are dropped here; the validator pads the gap later.
A response with no usable item at all is a ParseError so the caller can
switch to the deterministic fallback.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List

from pydantic import ValidationError

from decoding.board_profiles import (
    AssessmentProfile,
    build_ao_distribution,
    format_command_words,
    format_conventions,
)
from decoding.errors import ParseError
from decoding.schemas import MCQStep, OracleMCQ, OracleSolution, OracleStepResponse

log = logging.getLogger("decoding.pipeline")

STEPS_TIMEOUT_S = 30.0
MAX_PROBLEM_CHARS = 6000

STEP_PROMPT = """\
You are an examiner-tutor who breaks one exam problem into guided multiple-choice steps.

Decode the problem below into EXACTLY {marks} sequential steps. Each step is one MCQ that
moves the student one move closer to the final answer. Later steps may use earlier results.

PROBLEM:
---
{problem_text}
---

CONTEXT:
- Board: {board} ({level})
- {header}
- AO balance for {marks} marks: {ao_distribution}
- Command words:
{command_words}
- Conventions: {conventions}
{notes}
Output ONLY valid JSON (no markdown, no explanation):
{{
  "mcqs": [
    {{
      "step": <int, 1-based>,
      "question": "<one focused sub-question>",
      "options": ["<A>", "<B>", "<C>", "<D>"],
      "correctAnswer": <int 0-3>,
      "hint": "Hint: <one discriminating cue, 11-18 words, never the answer>",
      "explanation": "<why the correct option is right>",
      "calculationStep": {{"formula": "<or empty>", "substitution": "<or empty>", "result": "<or empty>"}}
    }}
  ],
  "solution": {{
    "finalAnswer": "<value or short statement>",
    "unit": "<SI unit or empty>",
    "workingSteps": ["<ordered imperative action>", ...],
    "keyFormulas": ["<relation>", ...],
    "keyPoints": ["<short noun phrase>", ...],
    "pitfalls": ["<named common mistake>", ...]
  }}
}}

RULES:
- Exactly 4 options per step, all plausible, exactly one correct.
- Distractors follow the board style: {distractor_style}.
- Do not repeat a step. Do not ask the same question twice with different wording.
- Hints must not reveal or restate the correct option.
- Quantitative steps carry a calculationStep with the substitution including units.
"""


@dataclass
class GeneratedSteps:
    steps: List[MCQStep]
    solution: OracleSolution
    usage: Dict[str, Any] = field(default_factory=dict)
    dropped: int = 0


def build_step_prompt(problem_text: str, marks: int, profile: AssessmentProfile, header: str = "") -> str:
    notes = f"- Notes: {profile.notes}\n" if profile.notes else ""
    return STEP_PROMPT.format(
        marks=marks,
        problem_text=problem_text[:MAX_PROBLEM_CHARS],
        board=profile.board,
        level=profile.level or "level unspecified",
        header=header or "Subject: unspecified",
        ao_distribution=build_ao_distribution(marks),
        command_words=format_command_words(profile),
        conventions=format_conventions(profile),
        notes=notes,
        distractor_style=profile.conventions.distractor_style or "common misconceptions and unit slips",
    )


def parse_step_response(data: Dict[str, Any]) -> GeneratedSteps:
    """
    Validate the oracle's JSON object. Items are checked one by one.

    Raises:
        ParseError: top-level shape is wrong, or no item survived validation
    """
    try:
        envelope = OracleStepResponse.model_validate(data)
    except ValidationError as e:
        raise ParseError("Oracle response does not match the step contract", details=str(e)[:400]) from e

    steps: List[MCQStep] = []
    dropped = 0
    for i, item in enumerate(envelope.mcqs, start=1):
        try:
            mcq = OracleMCQ.model_validate(item)
        except ValidationError as e:
            dropped += 1
            log.warning(f"[STEPS] dropping malformed item {i}: {e.error_count()} error(s)")
            continue
        calc = mcq.calculation_step
        steps.append(MCQStep(
            id=f"mcq-{i}",
            step=len(steps) + 1,
            question=mcq.question,
            options=mcq.options,
            correct_answer=mcq.correct_answer,
            hint=mcq.hint.strip(),
            explanation=mcq.explanation.strip(),
            calculation_step=None if calc is None or calc.is_empty() else calc,
        ))

    if not steps:
        raise ParseError("Oracle returned no usable steps", details=f"{dropped} item(s) dropped")
    return GeneratedSteps(steps=steps, solution=envelope.solution, dropped=dropped)


async def generate_steps(problem_text: str, marks: int, profile: AssessmentProfile, header: str = "") -> GeneratedSteps:
    """
    Produce raw (unvalidated-count) steps and a solution from the oracle.

    Raises:
        ConfigurationError: oracle not configured
        UpstreamError / StageTimeoutError / ParseError: the caller falls back
    """
    from decoding.gpt_client import call_gpt, parse_json_object

    prompt = build_step_prompt(problem_text, marks, profile, header)
    log.info(f"[STEPS] requesting {marks} step(s) board={profile.key} chars={len(problem_text)}")

    reply = await call_gpt(
        prompt,
        system="You are a precise exam tutor. Output only valid JSON matching the given schema.",
        temperature=0.2,
        max_tokens=2200,
        timeout=STEPS_TIMEOUT_S,
    )
    result = parse_step_response(parse_json_object(reply.content))
    result.usage = reply.usage
    log.info(f"[STEPS] oracle returned {len(result.steps)} usable step(s), dropped={result.dropped}")
    return result
