from decoding.schemas import CalculationStep, MCQStep


def make_step(n, question=None, options=None, correct=0, hint="", calc=None, step_id=None):
    return MCQStep(
        id=step_id or f"mcq-{n}",
        step=n,
        question=question or f"Question number {n} about acceleration?",
        options=options or [f"{n} m/s²", f"{n + 1} m/s²", f"{n + 2} m/s²", f"{n + 3} m/s²"],
        correct_answer=correct,
        hint=hint,
        explanation="",
        calculation_step=CalculationStep(**calc) if calc else None,
    )
