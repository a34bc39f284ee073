"""
Step Validation & Repair

Brings an oracle (or fallback) step array to the output invariants:
  1. Deduplication: normalized (question, options, correct index) key, first wins;
                      synthetic-* filler is exempt
  2. Count: truncate surplus / append synthetic filler to exactly clamp(marks, 1, 8)
  3. Renumbering: step = index + 1
Also flattens the oracle solution block into a SolutionSummary.

Running validate_steps on an already valid array is a no-op.
"""

import logging
import uuid
from typing import Any, List, Mapping, Union

from decoding.schemas import (
    SYNTHETIC_PREFIX,
    MCQStep,
    OracleSolution,
    SolutionSummary,
    as_text,
    as_text_list,
    clamp_marks,
)

log = logging.getLogger("decoding.pipeline")

# Filler steps cycle through these; they stay structurally valid without the oracle
_FILLER_TEMPLATES = [
    {
        "question": "Step {n}: which concrete action moves the solution forward from here?",
        "options": [
            "State the relevant formula or law",
            "Substitute the given values",
            "Compute the intermediate result",
            "Restate the question without working",
        ],
        "correct_answer": 0,
        "hint": "Hint: state the governing relation first (F = ma, v = u + at), then substitute known values.",
        "explanation": "Naming the governing formula at each step comes before substitution and computation.",
    },
    {
        "question": "Step {n}: which check should be made before accepting the result?",
        "options": [
            "Units and magnitude are consistent with the question",
            "The answer has as many digits as possible",
            "The answer matches the first number in the question",
            "No check is needed once a value is obtained",
        ],
        "correct_answer": 0,
        "hint": "Hint: compare the units and rough size of your value with what the question asks for.",
        "explanation": "A units and order-of-magnitude check catches most substitution slips.",
    },
]


def dedup_key(step: MCQStep) -> str:
    return "|".join([
        str(step.question or "").strip().lower(),
        "||".join(step.options or []),
        str(step.correct_answer),
    ])


def deduplicate_steps(steps: List[MCQStep]) -> List[MCQStep]:
    """Collapse duplicates keeping the first occurrence. Synthetic steps always survive."""
    seen = set()
    unique: List[MCQStep] = []
    for step in steps:
        if step.is_synthetic:
            unique.append(step)
            continue
        key = dedup_key(step)
        if key in seen:
            log.info(f"[VALIDATE] dropping duplicate step id={step.id!r}")
            continue
        seen.add(key)
        unique.append(step)
    return unique


def make_synthetic_step(step_number: int) -> MCQStep:
    template = _FILLER_TEMPLATES[(step_number - 1) % len(_FILLER_TEMPLATES)]
    return MCQStep(
        id=f"{SYNTHETIC_PREFIX}{step_number}-{uuid.uuid4().hex[:8]}",
        step=step_number,
        question=template["question"].format(n=step_number),
        options=list(template["options"]),
        correct_answer=template["correct_answer"],
        hint=template["hint"],
        explanation=template["explanation"],
        calculation_step=None,
    )


def enforce_step_count(steps: List[MCQStep], marks: Any) -> List[MCQStep]:
    """Dedup first (it may shrink the array), then truncate or pad to the target."""
    target = clamp_marks(marks)
    steps = deduplicate_steps(steps)
    if len(steps) > target:
        log.info(f"[VALIDATE] truncating {len(steps)} steps to {target}")
        steps = steps[:target]
    missing = target - len(steps)
    if missing > 0:
        log.warning(f"[VALIDATE] oracle under-delivered: appending {missing} synthetic step(s)")
        base = len(steps)
        steps = steps + [make_synthetic_step(base + i + 1) for i in range(missing)]
    return steps


def renumber_steps(steps: List[MCQStep]) -> List[MCQStep]:
    return [s if s.step == i + 1 else s.model_copy(update={"step": i + 1}) for i, s in enumerate(steps)]


def validate_steps(steps: List[MCQStep], marks: Any) -> List[MCQStep]:
    return renumber_steps(enforce_step_count(list(steps), marks))


# ─── Solution normalization ───────────────────────────────────────────────────

def normalize_final_answer(value: Any) -> str:
    """Structured answers become "key: value, key: value"; anything else is coerced to str."""
    if isinstance(value, Mapping):
        return ", ".join(f"{k}: {v}" for k, v in value.items())
    if value is None:
        return ""
    return str(value).strip()


def normalize_solution(solution: Union[OracleSolution, Mapping, None]) -> SolutionSummary:
    if solution is None:
        return SolutionSummary()
    if isinstance(solution, Mapping):
        solution = OracleSolution.model_validate(solution)
    return SolutionSummary(
        final_answer=normalize_final_answer(solution.final_answer),
        unit=as_text(solution.unit),
        working_steps=as_text_list(solution.working_steps),
        key_formulas=as_text_list(solution.key_formulas),
        key_points=as_text_list(solution.key_points),
        pitfalls=as_text_list(solution.pitfalls),
    )
