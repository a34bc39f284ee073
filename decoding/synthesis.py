"""
Solution Synthesis & Pitfall Generator

Two independent oracle calls enrich a caller-supplied baseline solution:
  - synthesis: ordered working steps + short key points   (4.5 s budget)
  - pitfalls:  named failure modes for the formulas used  (3.5 s budget)

Both run concurrently and settle independently: a failing, slow or
unparsable branch hands back the baseline for its own fields and never
affects the sibling.
"""

import asyncio
import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

from pydantic import ValidationError

from decoding.errors import ParseError, StageTimeoutError, UpstreamError
from decoding.schemas import MCQStep, OraclePitfalls, OracleSynthesis, SolutionSummary

log = logging.getLogger("decoding.pipeline")

SYNTH_TIMEOUT_S = 4.5
PITFALLS_TIMEOUT_S = 3.5

MAX_WORKING_STEPS = 6
MAX_KEY_POINTS = 4
MAX_PITFALLS = 5

_GENERIC_RE = re.compile(
    r"proceed step[- ]by[- ]step|use the correct formula|substitute (the )?numbers|"
    r"read the question carefully|show (all )?your working|check your answer",
    re.IGNORECASE,
)
_STEP_VERBS = {
    "substitute", "compute", "use", "apply", "identify", "recognize", "recognise", "derive",
    "select", "calculate", "find", "determine", "check", "ensure", "convert", "write", "draw",
    "state", "remember", "make",
}

SYNTH_INSTRUCTION = """Return ONLY JSON: { "workingSteps": string[], "keyPoints": string[] }.
Rules:
- workingSteps: 3-6 ordered, imperative, concrete actions. For quantitative: include (1) a governing relation (e.g., F = ma / v = u + at) and (2) one explicit substitution with units.
- keyPoints: 2-4 DISTINCT, SHORT noun-phrases (<= 10 words each). No leading verbs. No overlap with workingSteps. Avoid generic advice. Prefer constants or laws (e.g., 'g = 9.81 m/s² near Earth')."""

PITFALLS_INSTRUCTION = """Return ONLY JSON: { "pitfalls": string[] }.
Rules:
- Generate 3-5 common mistakes SPECIFIC to the formulas/plan used above.
- Each item <= 14 words, starts with a noun phrase (no verbs like 'use/apply/recognize').
- Avoid duplicates and generic advice."""


@dataclass
class SynthesisResult:
    working_steps: List[str]
    key_points: List[str]
    pitfalls: List[str]
    usage: Dict[str, Any] = field(default_factory=dict)


# ─── Filters ───────────────────────────────────────────────────────────────────

def is_generic(text: str) -> bool:
    return bool(_GENERIC_RE.search(text or ""))


def looks_like_step(text: str) -> bool:
    """Verb-led phrasing reads as a procedure, not a named failure mode."""
    first = re.match(r"\s*([A-Za-z]+)", text or "")
    return bool(first) and first.group(1).lower() in _STEP_VERBS


def _distinct(items: Sequence[str]) -> List[str]:
    seen = set()
    out = []
    for item in items:
        key = item.strip().lower()
        if key and key not in seen:
            seen.add(key)
            out.append(item.strip())
    return out


def clean_working_steps(steps: Sequence[str]) -> List[str]:
    return _distinct([s for s in steps if not is_generic(s)])[:MAX_WORKING_STEPS]


def clean_key_points(points: Sequence[str], working_steps: Sequence[str]) -> List[str]:
    taken = {s.strip().lower() for s in working_steps}
    return [p for p in _distinct(points) if p.lower() not in taken and not is_generic(p)][:MAX_KEY_POINTS]


def clean_pitfalls(pitfalls: Sequence[str]) -> List[str]:
    return [p for p in _distinct(pitfalls) if not looks_like_step(p) and not is_generic(p)][:MAX_PITFALLS]


# ─── Context ───────────────────────────────────────────────────────────────────

def build_header(subject: Optional[str], syllabus: Optional[str], level: Optional[str]) -> str:
    parts = [
        f"Subject: {subject.strip()}" if subject and subject.strip() else "",
        f"Syllabus: {syllabus.strip()}" if syllabus and syllabus.strip() else "",
        f"Level: {level.strip()}" if level and level.strip() else "",
    ]
    return " • ".join(p for p in parts if p)


def compact_mcqs(mcqs: Sequence[MCQStep]) -> List[Dict[str, Any]]:
    compact = []
    for m in list(mcqs)[:10]:
        correct = ""
        if m.options:
            index = m.correct_answer if 0 <= m.correct_answer < len(m.options) else 0
            correct = m.options[index][:120]
        calc = m.calculation_step
        compact.append({
            "step": m.step,
            "question": m.question[:400],
            "explanation": m.explanation[:400],
            "correct": correct,
            "formula": (calc.formula if calc else "") or "",
            "substitution": (calc.substitution if calc else "") or "",
            "result": (calc.result if calc else "") or "",
        })
    return compact


def sum_usage(stages: Dict[str, Optional[Dict[str, Any]]]) -> Dict[str, Any]:
    totals = {"prompt_tokens": 0, "completion_tokens": 0, "total_tokens": 0}
    for usage in stages.values():
        if not usage:
            continue
        for key in totals:
            totals[key] += int(usage.get(key) or 0)
    return {"stages": stages, "totals": totals}


# ─── Branches ──────────────────────────────────────────────────────────────────

_ABSORBED = (UpstreamError, ParseError, StageTimeoutError, ValidationError)


async def _run_synthesis(header: str, original: str, context: Dict[str, Any]) -> Tuple[OracleSynthesis, Dict[str, Any]]:
    from decoding.gpt_client import call_gpt, parse_json_object

    content = [
        {"type": "text", "text": f"{header}\n\nOriginal:\n{original[:900]}"},
        {"type": "text", "text": f"Context:\n{json.dumps(context, ensure_ascii=False)[:3500]}"},
        {"type": "text", "text": SYNTH_INSTRUCTION},
    ]
    reply = await call_gpt(content, temperature=0.1, max_tokens=320, timeout=SYNTH_TIMEOUT_S)
    return OracleSynthesis.model_validate(parse_json_object(reply.content)), reply.usage


async def _run_pitfalls(header: str, context: Dict[str, Any]) -> Tuple[OraclePitfalls, Dict[str, Any]]:
    from decoding.gpt_client import call_gpt, parse_json_object

    content = [
        {"type": "text", "text": header},
        {"type": "text", "text": f"Context:\n{json.dumps(context, ensure_ascii=False)[:3500]}"},
        {"type": "text", "text": PITFALLS_INSTRUCTION},
    ]
    reply = await call_gpt(content, temperature=0.2, max_tokens=220, timeout=PITFALLS_TIMEOUT_S)
    return OraclePitfalls.model_validate(parse_json_object(reply.content)), reply.usage


async def synthesize_solution(
    baseline: Optional[SolutionSummary] = None,
    mcqs: Sequence[MCQStep] = (),
    original_text: str = "",
    header: str = "",
) -> SynthesisResult:
    """
    Enrich `baseline` with oracle-written working steps, key points and pitfalls.

    Raises:
        ConfigurationError: the oracle is not configured (checked before any call)
    """
    from decoding.gpt_client import ensure_oracle_configured

    ensure_oracle_configured()
    baseline = baseline or SolutionSummary()
    base_steps = list(baseline.working_steps)
    base_points = list(baseline.key_points)
    base_pitfalls = list(baseline.pitfalls)

    compact = compact_mcqs(mcqs)
    solution_ctx = {
        "workingSteps": base_steps[:8],
        "keyFormulas": list(baseline.key_formulas)[:6],
        "keyPoints": base_points[:6],
        "pitfalls": base_pitfalls[:6],
    }

    synth, pit = await asyncio.gather(
        _run_synthesis(header, original_text or "", {"mcqs": compact, "solution": solution_ctx}),
        _run_pitfalls(header, {"formulas": solution_ctx["keyFormulas"], "steps": solution_ctx["workingSteps"], "mcqs": compact}),
        return_exceptions=True,
    )

    stages: Dict[str, Optional[Dict[str, Any]]] = {"synth": None, "pitfalls": None}

    if isinstance(synth, BaseException):
        if not isinstance(synth, _ABSORBED):
            log.error(f"[REFINE] synthesis branch failed unexpectedly: {synth!r}")
        else:
            log.warning(f"[REFINE] synthesis degraded to baseline: {synth}")
        working_steps, key_points = base_steps, base_points
    else:
        data, stages["synth"] = synth
        working_steps = clean_working_steps(data.working_steps) or base_steps
        key_points = clean_key_points(data.key_points, working_steps)

    if isinstance(pit, BaseException):
        if not isinstance(pit, _ABSORBED):
            log.error(f"[REFINE] pitfalls branch failed unexpectedly: {pit!r}")
        else:
            log.warning(f"[REFINE] pitfalls degraded to baseline: {pit}")
        pitfalls = base_pitfalls
    else:
        data, stages["pitfalls"] = pit
        pitfalls = clean_pitfalls(data.pitfalls)

    return SynthesisResult(
        working_steps=working_steps,
        key_points=key_points,
        pitfalls=pitfalls,
        usage=sum_usage(stages),
    )
