"""
Hint Quality Engine

Guarantees that every hint in one decode is specific, unique, 11-18 words
long, prefixed with "Hint: ", and that at most floor(N/3) hints use contrast
language ("unlike", "vs").

Per step:
  1. classify the cognitive mode of the stem (pure strategy table)
  2. strengthen weak hints: calculation breakdown -> question semantics ->
     option vocabulary -> concept-naming fallback
  3. apply the contrast budget, normalize length and prefix
  4. on collision with an earlier hint, try a mode-specific alternate
     phrasing, then a step-anchored phrasing

No I/O; returns new step objects.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, Optional, Sequence, Set

from decoding.schemas import MCQStep

HINT_PREFIX = "Hint: "
MIN_HINT_WORDS = 11
MAX_HINT_WORDS = 18
MIN_HINT_CHARS = 12

# Generic phrases and their inflections; "reflection" and "entry" stay allowed
BANNED_PATTERNS = (
    r"consider\w*",
    r"think(?:s|ing)? about",
    r"recall\w*",
    r"maybe",
    r"tr(?:y|ies|ied|ying)",
    r"reflect(?:s|ed|ing)?",
)

# Appended in order until the hint reaches MIN_HINT_WORDS
FILLER_CLAUSES = (
    "Check each option against this cue.",
    "Eliminate options that break it.",
)


class HintMode(str, Enum):
    QUANTITATIVE = "quantitative"
    DEFINITION = "definition"
    GRAPH = "graph"
    EXPERIMENT = "experiment"
    PROCESS = "process"
    CONCEPTUAL = "conceptual"


@dataclass(frozen=True)
class HintCandidate:
    text: str
    mode: HintMode
    has_contrast_language: bool
    word_count: int

    @classmethod
    def build(cls, text: str, mode: HintMode) -> "HintCandidate":
        return cls(text=text, mode=mode, has_contrast_language=has_contrast(text), word_count=word_count(text))

    @property
    def key(self) -> str:
        return normalize_key(self.text)


# ─── Patterns ──────────────────────────────────────────────────────────────────

_BANNED_RE = re.compile(r"\b(" + "|".join(BANNED_PATTERNS) + r")\b", re.IGNORECASE)
_CONTRAST_RE = re.compile(r"\b(unlike|vs)\b", re.IGNORECASE)
_CONTRAST_CLAUSE_RE = re.compile(r"[,;]?\s*\b(unlike|vs)\b[\s\S]*$", re.IGNORECASE)
_PREFIX_RE = re.compile(r"^(?:\s*hint\s*:\s*)+", re.IGNORECASE)

_UNIT_RE = re.compile(r"\d\s*(m/s²?|m/s\^?2|ms-?[12]|kg|km|cm|mm|m\b|s\b|n\b|j\b|w\b|v\b|a\b|Ω|ohm|mol|hz|pa|°|%|k\b)", re.IGNORECASE)
_OPERATOR_RE = re.compile(r"[=×÷^√]|\d\s*[-+*/]\s*\d")
_DEFINITION_RE = re.compile(r"\b(what is|what are|define|definition|best describes|meant by|which term)\b", re.IGNORECASE)
_GRAPH_RE = re.compile(r"\b(graph|table|axis|axes|gradient|plot|chart|slope)\b", re.IGNORECASE)
_EXPERIMENT_RE = re.compile(r"\b(variables?|control|apparatus|experiment|investigation|practical|independent|dependent|measured?)\b", re.IGNORECASE)
_PROCESS_RE = re.compile(r"\b(sequence|steps?|stages?|order|next|then|process|cycle|first)\b", re.IGNORECASE)

_CONCEPT_PATTERNS = (
    re.compile(r"what (?:is|are) (?:the |an |a )?([^?]+?)(?: in ([^?]+))?\?", re.IGNORECASE),
    re.compile(r"which (?:of the following )?(?:is|are) (?:the |an |a )?([^?]+?)(?: in ([^?]+))?\?", re.IGNORECASE),
    re.compile(r"define ([^?.]+)", re.IGNORECASE),
    re.compile(r"(?:best )?describes (?:the |an |a )?([^?]+?)\?", re.IGNORECASE),
)

_STOPWORDS = {
    "what", "which", "when", "where", "with", "this", "that", "these", "those", "from", "into",
    "following", "does", "have", "will", "would", "should", "could", "their", "there", "then",
    "than", "about", "after", "before", "given", "find", "calculate", "determine", "using",
    "step", "value", "correct", "answer", "option", "best", "most",
}

# (keywords, relation category) for quantitative stems
_RELATION_CATEGORIES = (
    (("momentum", "collision", "impulse", "collide"), "conservation of momentum"),
    (("energy", "work done", "power", "kinetic", "potential"), "energy conservation"),
    (("force", "mass", "weight", "friction", "tension", "newton"), "Newton's second law"),
    (("velocity", "speed", "acceleration", "distance", "displacement"), "constant-acceleration (suvat)"),
    (("current", "voltage", "resistance", "potential difference"), "Ohm's law"),
    (("concentration", "mole", "moles", "ph", "molar"), "amount-of-substance"),
)


# ─── Small helpers ─────────────────────────────────────────────────────────────

def word_count(text: str) -> int:
    return len((text or "").split())


def normalize_key(text: str) -> str:
    return (text or "").strip().lower()


def has_contrast(text: str) -> bool:
    return bool(_CONTRAST_RE.search(text or ""))


def _strip_prefix(text: str) -> str:
    return _PREFIX_RE.sub("", (text or "").strip()).strip()


def _with_prefix(body: str) -> str:
    return f"{HINT_PREFIX}{body}".strip()


def _ensure_period(text: str) -> str:
    text = text.rstrip(" ,;:-")
    if text and text[-1] not in ".!?)":
        text += "."
    return text


def core_concept(stem: str) -> tuple:
    """(concept, context) pulled from the stem; either may be empty."""
    stem = re.sub(r"\s+", " ", stem or "").strip()
    for pattern in _CONCEPT_PATTERNS:
        m = pattern.search(stem)
        if m:
            concept = (m.group(1) or "").strip(" .,:;")
            context = (m.group(2) or "").strip(" .,:;") if m.lastindex and m.lastindex >= 2 else ""
            if concept:
                return concept, context
    words = [w for w in re.findall(r"[A-Za-z][A-Za-z'-]+", stem) if len(w) > 3 and w.lower() not in _STOPWORDS]
    return " ".join(words[:3]), ""


# ─── Classification ────────────────────────────────────────────────────────────

def classify_mode(question: str, options: Sequence[str] = ()) -> HintMode:
    """Deterministic mode from the stem and its options."""
    stem = question or ""
    opts = " ".join(options or [])
    if any(re.search(r"\d", o or "") for o in options or []) or _UNIT_RE.search(stem) or _OPERATOR_RE.search(f"{stem} {opts}"):
        return HintMode.QUANTITATIVE
    if _DEFINITION_RE.search(stem):
        return HintMode.DEFINITION
    if _GRAPH_RE.search(stem):
        return HintMode.GRAPH
    if _EXPERIMENT_RE.search(stem):
        return HintMode.EXPERIMENT
    if _PROCESS_RE.search(stem):
        return HintMode.PROCESS
    return HintMode.CONCEPTUAL


def is_weak(hint: Optional[str]) -> bool:
    """Missing, shorter than 12 characters, or built on a banned generic phrase."""
    if not hint:
        return True
    h = hint.strip()
    if len(h) < MIN_HINT_CHARS:
        return True
    return bool(_BANNED_RE.search(h))


# ─── Strengthening chain ───────────────────────────────────────────────────────

def hint_from_calculation(step: MCQStep) -> Optional[str]:
    calc = step.calculation_step
    if calc is None:
        return None
    formula = (calc.formula or "").strip()
    substitution = (calc.substitution or "").strip()
    if formula and substitution:
        return f"Use {formula} and substitute: {substitution}."
    if formula:
        return f"Start with {formula}; identify the knowns, then substitute."
    if substitution:
        return f"Substitute the given values: {substitution}."
    return None


def _relation_category(text: str) -> str:
    for keywords, category in _RELATION_CATEGORIES:
        if any(re.search(rf"\b{re.escape(k)}\b", text) for k in keywords):
            return category
    return "governing"


def hint_from_question(step: MCQStep, mode: HintMode, context: str = "") -> Optional[str]:
    text = f"{context} {step.question}".lower()
    if mode == HintMode.QUANTITATIVE:
        category = _relation_category(text)
        return f"Link the given quantities through the {category} relation before computing the asked value."
    if mode == HintMode.DEFINITION:
        concept, ctx = core_concept(step.question)
        if concept and ctx:
            return f"Use the syllabus definition of “{concept}” in “{ctx}” and choose the option that states it."
        if concept:
            return f"Use the syllabus definition of “{concept}” and pick the option that states it."
        return "Use the syllabus definition of the asked term and choose the option that states it."
    if mode == HintMode.GRAPH:
        return "Read the axis labels or table headers for the needed variable, then apply the matching relation."
    if mode == HintMode.EXPERIMENT:
        return "Separate the independent, dependent and control variables in the setup before choosing an option."
    if mode == HintMode.PROCESS:
        return "Place the stages in order; the right option names what must happen at this point."
    if re.search(r"short-term|acute", text):
        return "Focus on immediate physiological or behavioural effects that appear within hours to days."
    if re.search(r"long-term|chronic", text):
        return "Focus on chronic risks that develop over months or years of repeated exposure."
    if re.search(r"\b(effect|risk|symptom|cause|mechanism)\b", text):
        return "Identify the category (short-term vs long-term) and pick one clear, syllabus-valid fact."
    return None


def hint_from_options(step: MCQStep) -> Optional[str]:
    opts = step.options or []
    has_formula = any(re.search(r"formula|law|equation|relation", o, re.IGNORECASE) for o in opts)
    has_sub = any(re.search(r"substitut|plug|insert", o, re.IGNORECASE) for o in opts)
    has_compute = any(re.search(r"comput|calculat|evaluat", o, re.IGNORECASE) for o in opts)
    if has_formula and has_sub:
        return "First choose the governing relation, then substitute the known values into it."
    if has_sub and has_compute:
        return "Substitute the given values before computing the result."
    if has_formula:
        return "Select the relation that directly connects the given quantities to the target."
    return None


def hint_fallback(step: MCQStep) -> str:
    concept, _ = core_concept(step.question)
    if concept:
        return f"Hint: pin down the meaning of “{concept}” and select the statement that matches it."
    return "Hint: focus on the key term in the question and match it to its syllabus meaning."


def strengthen_hint(step: MCQStep, mode: HintMode, context: str = "") -> str:
    return (
        hint_from_calculation(step)
        or hint_from_question(step, mode, context)
        or hint_from_options(step)
        or hint_fallback(step)
    )


def alternate_hint(step: MCQStep, mode: HintMode, context: str = "") -> str:
    """Second phrasing used when the first one collides with an earlier hint."""
    text = f"{context} {step.question}".lower()
    if re.search(r"long-term|chronic", text):
        return "Hint: unlike short-term effects, cite one chronic risk that develops over months or years."
    if re.search(r"short-term|acute", text):
        return "Hint: pick one immediate effect seen within hours to days, not a chronic outcome."
    if mode == HintMode.DEFINITION:
        concept, ctx = core_concept(step.question)
        if concept and ctx:
            return f"Hint: key attribute of “{concept}” in “{ctx}”, a structure or property rather than a function."
        if concept:
            return f"Hint: key attribute of “{concept}”: its structure or property, not its use."
    if mode == HintMode.QUANTITATIVE:
        return "Hint: check the units each option carries against the quantity the question asks for."
    if mode == HintMode.GRAPH:
        return "Hint: decide whether the gradient or the area under the graph gives the asked quantity."
    if mode == HintMode.EXPERIMENT:
        return "Hint: ask which quantity is deliberately changed and which one is measured as a result."
    if mode == HintMode.PROCESS:
        return "Hint: identify what must already be true before this stage can happen."
    return "Hint: use a key attribute or mechanism to eliminate common distractors."


def anchored_hint(step: MCQStep, position: int) -> str:
    """Last-resort phrasing, unique per position; contains no contrast language."""
    concept, _ = core_concept(step.question)
    if concept:
        return f"Hint: in step {position}, match “{concept}” to the option whose wording fits it exactly."
    return f"Hint: in step {position}, eliminate options that contradict the given data, then compare the rest."


# ─── Finalization ──────────────────────────────────────────────────────────────

def strip_contrast(hint: str) -> str:
    """Drop the comparison clause and replace it with an attribute/mechanism cue."""
    remaining = _CONTRAST_CLAUSE_RE.sub("", hint or "").strip()
    body = _strip_prefix(remaining)
    if len(body) > 8:
        return f"{_with_prefix(body.rstrip(' .,;:'))}. Use a key attribute or mechanism to decide."
    return "Hint: look for a key attribute or mechanism to eliminate distractors."


def normalize_length(hint: str) -> str:
    """Prefix exactly once, trim above 18 words, then pad with filler clauses below 11."""
    body = _strip_prefix(hint)
    prefix_words = word_count(HINT_PREFIX)
    words = body.split()
    if len(words) + prefix_words > MAX_HINT_WORDS:
        body = _ensure_period(" ".join(words[: MAX_HINT_WORDS - prefix_words]))
    # trimming can strip trailing punctuation tokens, so padding goes last
    fillers = iter(FILLER_CLAUSES)
    while word_count(body) + prefix_words < MIN_HINT_WORDS:
        clause = next(fillers, FILLER_CLAUSES[-1])
        body = _ensure_period(body)
        body = f"{body} {clause}" if body else clause
    return _with_prefix(body)


def finalize_hint(hint: str, allow_contrast: bool) -> str:
    if has_contrast(hint) and not allow_contrast:
        hint = strip_contrast(hint)
    return normalize_length(hint)


def contrast_budget(total: int) -> int:
    return total // 3


def improve_hints(steps: Iterable[MCQStep], context: str = "") -> List[MCQStep]:
    """
    Run the whole engine over one decode's steps.

    Args:
        steps:   Steps in display order
        context: Original problem text, used for mode-specific cues

    Returns:
        New step objects with finalized hints.
    """
    steps = list(steps)
    budget = contrast_budget(len(steps))
    seen: Set[str] = set()
    improved: List[MCQStep] = []

    for position, step in enumerate(steps, start=1):
        mode = classify_mode(step.question, step.options)
        primary = strengthen_hint(step, mode, context) if is_weak(step.hint) else step.hint.strip()
        candidate = None
        for raw in (primary, alternate_hint(step, mode, context), anchored_hint(step, position)):
            candidate = HintCandidate.build(finalize_hint(raw, allow_contrast=budget > 0), mode)
            if candidate.key not in seen:
                break
        if candidate.has_contrast_language:
            budget -= 1
        seen.add(candidate.key)
        improved.append(step.model_copy(update={"hint": candidate.text}))

    return improved
