"""
Pydantic schemas for the decoding service.

Wire format is camelCase (what the web client sends and expects); Python
attributes stay snake_case through an alias generator.

Layer 1: domain models: Question, MCQStep, SolutionSummary
Layer 2: oracle DTOs: what the step producer must return (validated on ingress)
Layer 3: HTTP contracts: request/response bodies for the routers
"""

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

MIN_STEPS = 1
MAX_STEPS = 8
OPTIONS_PER_STEP = 4
SYNTHETIC_PREFIX = "synthetic-"


def clamp_marks(value: Any) -> int:
    """Clamp a requested step count into 1..8. Unparsable values become 1."""
    try:
        marks = int(value)
    except (TypeError, ValueError):
        marks = MIN_STEPS
    return max(MIN_STEPS, min(MAX_STEPS, marks))


def as_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def as_text_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [s for s in (as_text(v) for v in value) if s]


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ─── Domain models ─────────────────────────────────────────────────────────────

class Question(CamelModel):
    """A submitted problem. `extracted_text` is filled by recognition, or echoes raw text."""
    raw_content: str = ""
    extracted_text: Optional[str] = None
    marks: int = 3
    source_type: Literal["text", "photo", "file"] = "text"
    subject: Optional[str] = None
    syllabus: Optional[str] = None
    level: Optional[str] = None
    file_bytes: Optional[bytes] = Field(default=None, exclude=True)

    @field_validator("marks", mode="before")
    @classmethod
    def _clamp(cls, v):
        return clamp_marks(v)

    @property
    def source_text(self) -> str:
        return (self.extracted_text or self.raw_content or "").strip()


class CalculationStep(CamelModel):
    formula: Optional[str] = None
    substitution: Optional[str] = None
    result: Optional[str] = None

    def is_empty(self) -> bool:
        return not (self.formula or self.substitution or self.result)


class MCQStep(CamelModel):
    id: str = ""
    step: int = 0
    question: str = ""
    options: List[str] = Field(default_factory=list)
    correct_answer: int = 0
    hint: str = ""
    explanation: str = ""
    calculation_step: Optional[CalculationStep] = None

    @model_validator(mode="before")
    @classmethod
    def _accept_index_alias(cls, data):
        if isinstance(data, dict) and "correctAnswerIndex" in data and "correctAnswer" not in data:
            data = dict(data)
            data["correctAnswer"] = data.pop("correctAnswerIndex")
        return data

    @property
    def is_synthetic(self) -> bool:
        return str(self.id or "").startswith(SYNTHETIC_PREFIX)


class SolutionSummary(CamelModel):
    final_answer: str = ""
    unit: str = ""
    working_steps: List[str] = Field(default_factory=list)
    key_formulas: List[str] = Field(default_factory=list)
    key_points: List[str] = Field(default_factory=list)
    pitfalls: List[str] = Field(default_factory=list)


# ─── Oracle DTOs ───────────────────────────────────────────────────────────────

class OracleMCQ(CamelModel):
    """One step as returned by the oracle. Anything off-shape fails validation."""
    question: str = Field(..., min_length=1)
    options: List[str]
    correct_answer: int = Field(..., ge=0, lt=OPTIONS_PER_STEP)
    hint: str = ""
    explanation: str = ""
    step: Optional[int] = None
    calculation_step: Optional[CalculationStep] = None

    @model_validator(mode="before")
    @classmethod
    def _normalize(cls, data):
        if not isinstance(data, dict):
            return data
        data = dict(data)
        if "correctAnswer" not in data:
            for alt in ("correctAnswerIndex", "correct_answer", "answerIndex"):
                if alt in data:
                    data["correctAnswer"] = data.pop(alt)
                    break
        if isinstance(data.get("question"), str):
            data["question"] = data["question"].strip()
        for key in ("hint", "explanation"):
            if data.get(key) is None:
                data[key] = ""
        return data

    @field_validator("options")
    @classmethod
    def _four_options(cls, v: List[str]) -> List[str]:
        opts = [str(o).strip() for o in v]
        if len(opts) != OPTIONS_PER_STEP or not all(opts):
            raise ValueError(f"expected exactly {OPTIONS_PER_STEP} non-empty options, got {len(opts)}")
        return opts


class OracleSolution(CamelModel):
    """Solution block. `final_answer` stays raw here; flattening happens in the validator."""
    final_answer: Any = ""
    unit: Any = ""
    working_steps: Any = None
    key_formulas: Any = None
    key_points: Any = None
    pitfalls: Any = None


class OracleStepResponse(CamelModel):
    """Top-level oracle contract. Items are validated one by one by the step generator."""
    mcqs: List[Any]
    solution: OracleSolution


class OracleSynthesis(CamelModel):
    working_steps: List[str] = Field(default_factory=list)
    key_points: List[str] = Field(default_factory=list)

    @field_validator("working_steps", "key_points", mode="before")
    @classmethod
    def _texts(cls, v):
        return as_text_list(v)


class OraclePitfalls(CamelModel):
    pitfalls: List[str] = Field(default_factory=list)

    @field_validator("pitfalls", mode="before")
    @classmethod
    def _texts(cls, v):
        return as_text_list(v)


class OracleHint(CamelModel):
    id: str = ""
    hint: str = ""

    @field_validator("id", "hint", mode="before")
    @classmethod
    def _text(cls, v):
        return as_text(v)


class OracleHints(CamelModel):
    hints: List[OracleHint]


# ─── HTTP contracts ────────────────────────────────────────────────────────────

class ImagePayload(CamelModel):
    base64: str = Field(..., min_length=1)
    mime_type: str = Field(..., min_length=1)


class DecodeRequest(CamelModel):
    text: Optional[str] = None
    images: Optional[List[ImagePayload]] = None
    marks: int
    subject: Optional[str] = None
    syllabus: Optional[str] = None
    level: Optional[str] = None

    @field_validator("marks", mode="before")
    @classmethod
    def _clamp(cls, v):
        return clamp_marks(v)


class DecodeResponse(CamelModel):
    mcqs: List[MCQStep]
    solution: SolutionSummary
    usage: Dict[str, Any] = Field(default_factory=dict)


class HintItem(CamelModel):
    id: str
    question: str = ""
    options: List[str] = Field(default_factory=list)
    hint: Optional[str] = None


class HintRefineRequest(CamelModel):
    header: Optional[str] = None
    original_text: Optional[str] = None
    items: List[HintItem]


class RefinedHint(CamelModel):
    id: str
    hint: str


class HintRefineResponse(CamelModel):
    hints: List[RefinedHint]


class RefineRequest(CamelModel):
    subject: Optional[str] = None
    syllabus: Optional[str] = None
    level: Optional[str] = None
    original_text: Optional[str] = None
    mcqs: Optional[List[MCQStep]] = None
    solution: Optional[SolutionSummary] = None


class RefineResponse(CamelModel):
    working_steps: List[str]
    key_points: List[str]
    pitfalls: List[str]
    usage: Dict[str, Any] = Field(default_factory=dict)


class ExtractRequest(CamelModel):
    file_base64: str = Field(..., min_length=1)
    mime_type: str = Field(..., min_length=1)


class ExtractResponse(CamelModel):
    text: str
    pages: Optional[int] = None
    cached: Optional[bool] = None


class AugmentRequest(CamelModel):
    text: str = Field(..., min_length=1)
    image_base64: Optional[str] = None
    image_mime_type: Optional[str] = None


class AugmentResponse(CamelModel):
    text: str
