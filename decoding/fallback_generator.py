"""
Local fallback generator.

Used when the oracle is unreachable or returns something unusable. Picks a
problem family from keywords and emits a canned, internally consistent step
sequence and solution, so a decode request always gets a structurally valid
answer. The validator then pads/renumbers as usual.
"""

import logging
from typing import Dict, List, Tuple

from decoding.schemas import CalculationStep, MCQStep, SolutionSummary, clamp_marks

log = logging.getLogger("decoding.pipeline")

_PROJECTILE_WORDS = ("thrown", "projectile", "trajectory", "launched")
_FORCES_WORDS = ("force", "friction", "tension", "incline")
_MOMENTUM_WORDS = ("momentum", "collision", "collide", "impact")


def classify_problem(text: str) -> str:
    """projectile | forces | momentum | kinematics"""
    t = (text or "").lower()
    if any(w in t for w in _PROJECTILE_WORDS):
        return "projectile"
    if any(w in t for w in _FORCES_WORDS):
        return "forces"
    if any(w in t for w in _MOMENTUM_WORDS):
        return "momentum"
    return "kinematics"


# ─── Templates ─────────────────────────────────────────────────────────────────

_TEMPLATES: Dict[str, Dict] = {
    "projectile": {
        "steps": [
            {
                "question": "Given: a ball is thrown horizontally from a 20 m high cliff at 15 m/s. What information do we need to find the time of flight?",
                "options": ["Only the horizontal velocity", "Only the height and gravity", "Both initial velocity and height", "Just the final position"],
                "correct_answer": 1,
                "hint": "Time of flight depends only on vertical motion; horizontal velocity does not change the fall time.",
                "explanation": "Time of flight comes from the vertical motion alone: t = √(2h/g), which needs the height (20 m) and g (9.8 m/s²).",
                "calc": ("t = √(2h/g)", "t = √(2 × 20 / 9.8)", "t = 2.02 s"),
            },
            {
                "question": "Using t = 2.02 s and horizontal velocity vₓ = 15 m/s, what horizontal distance is travelled?",
                "options": ["Range = 30.3 m", "Range = 25.5 m", "Range = 35.0 m", "Range = 20.0 m"],
                "correct_answer": 0,
                "hint": "Horizontal velocity stays constant, so range is horizontal velocity multiplied by flight time.",
                "explanation": "Range = vₓ × t = 15 × 2.02 = 30.3 m",
                "calc": ("Range = vₓ × t", "Range = 15 × 2.02", "Range = 30.3 m"),
            },
            {
                "question": "What is the vertical velocity of the ball when it hits the ground?",
                "options": ["vᵧ = -19.8 m/s", "vᵧ = -15.0 m/s", "vᵧ = -25.2 m/s", "vᵧ = 0 m/s"],
                "correct_answer": 0,
                "hint": "Vertical velocity grows by g each second from zero; the sign marks downward motion.",
                "explanation": "vᵧ = gt = 9.8 × 2.02 = 19.8 m/s downward (negative).",
                "calc": ("vᵧ = gt", "vᵧ = 9.8 × 2.02", "vᵧ = -19.8 m/s"),
            },
        ],
        "solution": {
            "final_answer": "30.3",
            "unit": "meters (horizontal range)",
            "working_steps": [
                "Given: h = 20 m, vₓ = 15 m/s, g = 9.8 m/s²",
                "Find time of flight: t = √(2h/g) = √(2×20/9.8) = 2.02 s",
                "Calculate horizontal range: Range = vₓ × t = 15 × 2.02 = 30.3 m",
                "Final vertical velocity: vᵧ = gt = 9.8 × 2.02 = 19.8 m/s downward",
            ],
            "key_formulas": ["t = √(2h/g)", "Range = vₓ × t", "vᵧ = gt"],
            "key_points": ["Horizontal and vertical motion are independent", "g ≈ 9.8 m/s² acts only vertically"],
            "pitfalls": ["Horizontal velocity included in the fall-time calculation", "Sign of the downward vertical velocity dropped"],
        },
    },
    "forces": {
        "steps": [
            {
                "question": "A 10 kg block slides down a 30° incline with friction coefficient μ = 0.2. What is the component of weight parallel to the incline?",
                "options": ["W∥ = 49.0 N", "W∥ = 84.9 N", "W∥ = 98.0 N", "W∥ = 50.0 N"],
                "correct_answer": 0,
                "hint": "The component of weight along the slope uses the sine of the incline angle.",
                "explanation": "W∥ = mg sin θ = 10 × 9.8 × sin(30°) = 49.0 N",
                "calc": ("W∥ = mg sin θ", "W∥ = 10 × 9.8 × sin(30°)", "W∥ = 49.0 N"),
            },
            {
                "question": "What is the friction force opposing the motion?",
                "options": ["f = 16.97 N", "f = 19.6 N", "f = 20.0 N", "f = 15.0 N"],
                "correct_answer": 0,
                "hint": "Friction equals μ times the normal reaction, and the normal reaction uses cos θ.",
                "explanation": "f = μmg cos θ = 0.2 × 10 × 9.8 × cos(30°) = 16.97 N",
                "calc": ("f = μmg cos θ", "f = 0.2 × 10 × 9.8 × cos(30°)", "f = 16.97 N"),
            },
            {
                "question": "What are the net force down the incline and the resulting acceleration?",
                "options": ["Net F = 32.03 N, a = 3.20 m/s²", "Net F = 30.0 N, a = 3.0 m/s²", "Net F = 35.0 N, a = 3.5 m/s²", "Net F = 29.0 N, a = 2.9 m/s²"],
                "correct_answer": 0,
                "hint": "Subtract friction from the parallel weight component, then divide by mass for acceleration.",
                "explanation": "Net F = 49.0 - 16.97 = 32.03 N; a = F/m = 32.03/10 = 3.20 m/s²",
                "calc": ("F_net = W∥ - f, a = F_net/m", "F_net = 49.0 - 16.97 = 32.03 N, a = 32.03/10", "a = 3.20 m/s²"),
            },
        ],
        "solution": {
            "final_answer": "3.20",
            "unit": "m/s² (acceleration down the incline)",
            "working_steps": [
                "Given: m = 10 kg, θ = 30°, μ = 0.2, g = 9.8 m/s²",
                "Weight parallel to incline: W∥ = mg sin θ = 49.0 N",
                "Normal force: N = mg cos θ = 84.87 N",
                "Friction force: f = μN = 0.2 × 84.87 = 16.97 N",
                "Net force down incline: F_net = W∥ - f = 32.03 N",
                "Acceleration: a = F_net/m = 32.03/10 = 3.20 m/s²",
            ],
            "key_formulas": ["W∥ = mg sin θ", "N = mg cos θ", "f = μN", "F_net = ma"],
            "key_points": ["Normal reaction equals mg cos θ on a plain incline", "Friction opposes the direction of motion"],
            "pitfalls": ["Sine and cosine components swapped", "Friction computed from mg instead of the normal reaction"],
        },
    },
    "momentum": {
        "steps": [
            {
                "question": "A 2.0 kg trolley moving at 3.0 m/s collides with a 1.0 kg trolley at rest and they stick together. What is the total momentum before the collision?",
                "options": ["6.0 kg m/s", "3.0 kg m/s", "9.0 kg m/s", "2.0 kg m/s"],
                "correct_answer": 0,
                "hint": "Total momentum is the sum of mass times velocity for each trolley; the stationary one adds nothing.",
                "explanation": "p = m₁u₁ + m₂u₂ = 2.0 × 3.0 + 1.0 × 0 = 6.0 kg m/s",
                "calc": ("p = m₁u₁ + m₂u₂", "p = 2.0 × 3.0 + 1.0 × 0", "p = 6.0 kg m/s"),
            },
            {
                "question": "What is the common velocity of the trolleys just after the collision?",
                "options": ["v = 2.0 m/s", "v = 3.0 m/s", "v = 6.0 m/s", "v = 1.5 m/s"],
                "correct_answer": 0,
                "hint": "Momentum is conserved, so divide the total momentum by the combined mass.",
                "explanation": "v = p / (m₁ + m₂) = 6.0 / 3.0 = 2.0 m/s",
                "calc": ("v = p / (m₁ + m₂)", "v = 6.0 / (2.0 + 1.0)", "v = 2.0 m/s"),
            },
            {
                "question": "How much kinetic energy is lost in the collision?",
                "options": ["3.0 J", "9.0 J", "6.0 J", "0 J"],
                "correct_answer": 0,
                "hint": "Compare kinetic energy before and after; a sticking collision is inelastic so some is lost.",
                "explanation": "KE before = ½ × 2.0 × 3.0² = 9.0 J; KE after = ½ × 3.0 × 2.0² = 6.0 J; loss = 3.0 J",
                "calc": ("ΔKE = ½m₁u₁² - ½(m₁ + m₂)v²", "ΔKE = 9.0 - 6.0", "ΔKE = 3.0 J"),
            },
        ],
        "solution": {
            "final_answer": "2.0",
            "unit": "m/s (common velocity after collision)",
            "working_steps": [
                "Given: m₁ = 2.0 kg, u₁ = 3.0 m/s, m₂ = 1.0 kg, u₂ = 0",
                "Momentum before: p = 2.0 × 3.0 = 6.0 kg m/s",
                "Conservation: v = p / (m₁ + m₂) = 6.0 / 3.0 = 2.0 m/s",
                "Kinetic energy lost: 9.0 J - 6.0 J = 3.0 J",
            ],
            "key_formulas": ["p = mv", "m₁u₁ + m₂u₂ = (m₁ + m₂)v", "KE = ½mv²"],
            "key_points": ["Momentum is conserved in every collision", "Kinetic energy is conserved only in elastic collisions"],
            "pitfalls": ["Kinetic energy assumed conserved in a sticking collision", "Combined mass forgotten after the collision"],
        },
    },
    "kinematics": {
        "steps": [
            {
                "question": "A car accelerates from rest at 2.5 m/s² for 8 seconds. What information do we have?",
                "options": ["u = 0 m/s, a = 2.5 m/s², t = 8 s", "Only the acceleration", "Only the time", "We need more information"],
                "correct_answer": 0,
                "hint": "'From rest' fixes the initial velocity at zero, alongside the stated acceleration and time.",
                "explanation": "Given: u = 0 m/s (from rest), a = 2.5 m/s², t = 8 s",
                "calc": ("Given values identified", "u = 0, a = 2.5 m/s², t = 8 s", "Ready to calculate"),
            },
            {
                "question": "What is the final velocity after 8 seconds?",
                "options": ["v = 20 m/s", "v = 16 m/s", "v = 25 m/s", "v = 18 m/s"],
                "correct_answer": 0,
                "hint": "Use v = u + at",
                "explanation": "v = u + at = 0 + 2.5 × 8 = 20 m/s",
                "calc": ("v = u + at", "v = 0 + 2.5 × 8", "v = 20 m/s"),
            },
            {
                "question": "What distance is travelled during this acceleration?",
                "options": ["s = 80 m", "s = 64 m", "s = 100 m", "s = 72 m"],
                "correct_answer": 0,
                "hint": "Use s = ut + ½at² or s = (u + v)t/2",
                "explanation": "s = ut + ½at² = 0 + ½ × 2.5 × 64 = 80 m",
                "calc": ("s = ut + ½at²", "s = 0 × 8 + ½ × 2.5 × 64", "s = 80 m"),
            },
        ],
        "solution": {
            "final_answer": "80",
            "unit": "meters (distance traveled)",
            "working_steps": [
                "Given: u = 0 m/s (from rest), a = 2.5 m/s², t = 8 s",
                "Final velocity: v = u + at = 0 + 2.5 × 8 = 20 m/s",
                "Distance traveled: s = ut + ½at² = 0 + ½ × 2.5 × 64 = 80 m",
            ],
            "key_formulas": ["v = u + at", "s = ut + ½at²", "v² = u² + 2as"],
            "key_points": ["'From rest' means u = 0", "Constant acceleration allows the suvat equations"],
            "pitfalls": ["Initial velocity taken as non-zero despite 'from rest'", "½ factor dropped from the at² term"],
        },
    },
}


def _build_steps(kind: str, count: int) -> List[MCQStep]:
    steps = []
    for index, tpl in enumerate(_TEMPLATES[kind]["steps"][:count]):
        formula, substitution, result = tpl["calc"]
        steps.append(MCQStep(
            id=f"mcq-{index}",
            step=index + 1,
            question=tpl["question"],
            options=list(tpl["options"]),
            correct_answer=tpl["correct_answer"],
            hint=tpl["hint"],
            explanation=tpl["explanation"],
            calculation_step=CalculationStep(formula=formula, substitution=substitution, result=result),
        ))
    return steps


def generate_fallback(text: str, marks: int) -> Tuple[List[MCQStep], SolutionSummary]:
    """Return canned steps (at most one per template) and the matching solution."""
    kind = classify_problem(text)
    count = clamp_marks(marks)
    log.warning(f"[DECODE] using local fallback generator kind={kind} marks={count}")
    solution = SolutionSummary(**_TEMPLATES[kind]["solution"])
    return _build_steps(kind, count), solution
