"""
Assessment Profile Resolver

Maps free-text syllabus/level into an exam board profile: assessment
objectives, command words and numeric/unit conventions. The profiles are only
used to calibrate prompts. Resolution is total: unknown input gets GENERIC.
"""

import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional


@dataclass(frozen=True)
class AOMapping:
    AO1: str
    AO2: str
    AO3: Optional[str] = None


@dataclass(frozen=True)
class CommandWords:
    AO1: List[str]
    AO2: List[str]
    AO3: Optional[List[str]] = None


@dataclass(frozen=True)
class Conventions:
    sig_figs: Optional[int] = None
    g_value: Optional[str] = None
    units: Optional[str] = None
    distractor_style: Optional[str] = None


@dataclass(frozen=True)
class AssessmentProfile:
    key: str
    board: str
    ao_mapping: AOMapping
    command_words: CommandWords
    conventions: Conventions = field(default_factory=Conventions)
    level: Optional[str] = None
    notes: str = ""


_A_LEVEL_AOS = AOMapping(
    AO1="Demonstrate knowledge and understanding",
    AO2="Apply knowledge and understanding",
    AO3="Analyse, interpret and evaluate",
)

BOARD_PROFILES: Dict[str, AssessmentProfile] = {
    "AQA_A_LEVEL": AssessmentProfile(
        key="AQA_A_LEVEL",
        board="AQA",
        level="A-level",
        ao_mapping=AOMapping(
            AO1="Demonstrate knowledge and understanding",
            AO2="Apply knowledge and understanding",
            AO3="Analyse, interpret and evaluate scientific information",
        ),
        command_words=CommandWords(
            AO1=["state", "define", "recall", "name", "identify"],
            AO2=["describe", "explain", "calculate", "derive", "determine"],
            AO3=["evaluate", "assess", "discuss", "suggest", "justify"],
        ),
        conventions=Conventions(3, "9.81", "SI preferred", "Common calculation errors, wrong formula applications"),
        notes="Quality of written communication valued; typical calc marks 3-6.",
    ),
    "EDEXCEL_A_LEVEL": AssessmentProfile(
        key="EDEXCEL_A_LEVEL",
        board="Edexcel",
        level="A-level",
        ao_mapping=_A_LEVEL_AOS,
        command_words=CommandWords(
            AO1=["state", "define", "name", "identify"],
            AO2=["explain", "calculate", "show that", "derive", "determine"],
            AO3=["assess", "evaluate", "comment on significance", "discuss"],
        ),
        conventions=Conventions(3, "9.81", "SI", "Multi-step clarity errors, unit mismatches"),
        notes="Strong emphasis on multi-step calculation clarity.",
    ),
    "OCR_A_A_LEVEL": AssessmentProfile(
        key="OCR_A_A_LEVEL",
        board="OCR A",
        level="A-level",
        ao_mapping=_A_LEVEL_AOS,
        command_words=CommandWords(
            AO1=["state", "define", "name"],
            AO2=["suggest", "explain", "calculate", "determine", "state and explain"],
            AO3=["evaluate", "discuss", "assess"],
        ),
        conventions=Conventions(3, "9.81", "SI", "Diagram interpretation errors, reasoning gaps"),
        notes='Frequent "suggest/state and explain" pairs; diagrams commonly credited.',
    ),
    "OCR_B_A_LEVEL": AssessmentProfile(
        key="OCR_B_A_LEVEL",
        board="OCR B (Advancing Physics)",
        level="A-level",
        ao_mapping=AOMapping(
            AO1="Demonstrate knowledge and understanding",
            AO2="Apply knowledge to real contexts",
            AO3="Analyse, interpret and evaluate",
        ),
        command_words=CommandWords(
            AO1=["state", "define", "recall"],
            AO2=["explain in context", "apply", "estimate", "model"],
            AO3=["evaluate", "assess significance", "discuss limitations"],
        ),
        conventions=Conventions(3, "9.81", "SI", "Context mismatches, reasoning chain breaks"),
        notes="Context-led; application-heavy AO2; expects reasoning chains tied to real scenarios.",
    ),
    "CIE_9702": AssessmentProfile(
        key="CIE_9702",
        board="CIE (Cambridge)",
        level="A-level",
        ao_mapping=AOMapping(
            AO1="Knowledge and understanding",
            AO2="Handling, applying and evaluating information",
            AO3="Experimental skills and investigations",
        ),
        command_words=CommandWords(
            AO1=["state", "define", "describe"],
            AO2=["explain", "calculate", "determine", "deduce", "predict"],
            AO3=["suggest", "evaluate", "discuss"],
        ),
        conventions=Conventions(3, "9.81", "SI", "Unit errors, sig fig violations, data interpretation failures"),
        notes="Frequent data/units/sig-fig checks; experimental design questions.",
    ),
    "WJEC_A_LEVEL": AssessmentProfile(
        key="WJEC_A_LEVEL",
        board="WJEC",
        level="A-level",
        ao_mapping=_A_LEVEL_AOS,
        command_words=CommandWords(
            AO1=["state", "define", "name", "identify"],
            AO2=["describe", "explain", "calculate", "show"],
            AO3=["evaluate", "assess", "discuss", "justify"],
        ),
        conventions=Conventions(3, "9.81", "SI", "Similar to AQA; QWC cues"),
        notes="Similar AO split to AQA; explicit quality of written communication cues.",
    ),
    "IB_DP": AssessmentProfile(
        key="IB_DP",
        board="IB DP",
        level="HL/SL",
        ao_mapping=AOMapping(
            AO1="Knowledge and understanding",
            AO2="Application and analysis",
            AO3="Synthesis and evaluation",
        ),
        command_words=CommandWords(
            AO1=["define", "state", "outline", "list"],
            AO2=["explain", "apply", "analyse", "derive", "calculate"],
            AO3=["evaluate", "discuss", "compare and contrast", "to what extent"],
        ),
        conventions=Conventions(3, "9.81", "SI", "Reasoning gaps, missing assumptions, incomplete justifications"),
        notes="Command terms strictly defined; markbands reward reasoning and assumptions.",
    ),
    "GENERIC": AssessmentProfile(
        key="GENERIC",
        board="Generic",
        ao_mapping=AOMapping(
            AO1="Recall and understanding",
            AO2="Application and problem solving",
            AO3="Analysis and evaluation",
        ),
        command_words=CommandWords(
            AO1=["state", "define", "identify"],
            AO2=["explain", "calculate", "determine"],
            AO3=["evaluate", "assess", "discuss"],
        ),
        conventions=Conventions(3, "9.81", "SI", "Common errors, formula misapplication"),
        notes="Fallback when no specific board is provided.",
    ),
}

GENERIC_PROFILE = BOARD_PROFILES["GENERIC"]

# (syllabus keywords, profile key), checked in order
_BOARD_KEYWORDS = [
    (("aqa",), "AQA_A_LEVEL"),
    (("edexcel",), "EDEXCEL_A_LEVEL"),
    (("ocr a",), "OCR_A_A_LEVEL"),
    (("ocr b",), "OCR_B_A_LEVEL"),
    (("cie", "cambridge"), "CIE_9702"),
    (("wjec",), "WJEC_A_LEVEL"),
]

# Syllabus-only partial matches; bare "ocr" lands on OCR A
_PARTIAL_KEYWORDS = [
    (("aqa",), "AQA_A_LEVEL"),
    (("edexcel",), "EDEXCEL_A_LEVEL"),
    (("ocr b",), "OCR_B_A_LEVEL"),
    (("ocr",), "OCR_A_A_LEVEL"),
    (("cie", "cambridge"), "CIE_9702"),
    (("wjec",), "WJEC_A_LEVEL"),
]

_A_LEVEL_RE = re.compile(r"\ba[\s-]?level\b")
_IB_RE = re.compile(r"\bib\b")


def _mentions(text: str, keywords) -> bool:
    return any(re.search(rf"\b{re.escape(k)}\b", text) for k in keywords)


def resolve_board_profile(syllabus: Optional[str] = None, level: Optional[str] = None) -> AssessmentProfile:
    """
    Resolve a board profile from syllabus and level text. Never raises.

    Order: exact (board, A-level) pair, syllabus-only partial match,
    an "IB" signal in either field, then GENERIC.
    """
    syl = str(syllabus or "").strip().lower()
    lev = str(level or "").strip().lower()

    if syl and _A_LEVEL_RE.search(lev):
        for keywords, key in _BOARD_KEYWORDS:
            if _mentions(syl, keywords):
                return BOARD_PROFILES[key]

    if syl:
        for keywords, key in _PARTIAL_KEYWORDS:
            if _mentions(syl, keywords):
                return BOARD_PROFILES[key]

    if _IB_RE.search(syl) or _IB_RE.search(lev):
        return BOARD_PROFILES["IB_DP"]

    return GENERIC_PROFILE


def build_ao_distribution(marks: int) -> str:
    """Band guidance for the recall/application/evaluation split. Prompt text only."""
    if marks <= 2:
        return "Distribute: primarily AO1 recall, with one AO2 if marks >= 2."
    if marks <= 4:
        return "Distribute: at least 1 AO1, 1-2 AO2, 1 AO3 if marks >= 4."
    if marks <= 6:
        return "Distribute: 1-2 AO1, 2-3 AO2, 1-2 AO3. Majority should be AO2 application."
    return (
        "Distribute: 1-2 AO1 (early steps), 3-4 AO2 (mid steps), 2-3 AO3 (later steps). "
        "Ensure progression from recall -> application -> evaluation."
    )


def format_command_words(profile: AssessmentProfile) -> str:
    cw = profile.command_words
    ao3_words = ", ".join(cw.AO3) if cw.AO3 else "evaluate, discuss"
    return "\n".join([
        f"AO1 ({profile.ao_mapping.AO1}): {', '.join(cw.AO1)}",
        f"AO2 ({profile.ao_mapping.AO2}): {', '.join(cw.AO2)}",
        f"AO3 ({profile.ao_mapping.AO3 or 'Analysis & evaluation'}): {ao3_words}",
    ])


def format_conventions(profile: AssessmentProfile) -> str:
    conv = profile.conventions
    parts = []
    if conv.sig_figs:
        parts.append(f"{conv.sig_figs} sig figs")
    if conv.g_value:
        parts.append(f"g = {conv.g_value} m/s²")
    if conv.units:
        parts.append(conv.units)
    if conv.distractor_style:
        parts.append(f"Distractors: {conv.distractor_style}")
    return "; ".join(parts)
