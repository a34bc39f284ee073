"""Scripted stand-ins for the chat-completions oracle."""

import json

from decoding.gpt_client import OracleReply

ORACLE_ENV = {
    "AZURE_OPENAI_ENDPOINT": "https://unit-test.openai.azure.com",
    "AZURE_OPENAI_API_KEY": "test-key",
    "AZURE_OPENAI_DEPLOYMENT": "gpt-4o-mini",
}

USAGE = {"prompt_tokens": 10, "completion_tokens": 5, "total_tokens": 15}


def reply(payload, usage=None):
    content = payload if isinstance(payload, str) else json.dumps(payload)
    return OracleReply(content=content, usage=dict(usage or USAGE))


def instruction_of(content) -> str:
    """Last text part of a multi-part prompt, or the prompt itself."""
    if isinstance(content, list):
        return content[-1].get("text", "")
    return content


def oracle_mcq(n, question=None, correct=0, hint=""):
    return {
        "step": n,
        "question": question or f"Step {n}: what is the acceleration after {n} s?",
        "options": [f"{n} m/s²", f"{n + 1} m/s²", f"{n + 2} m/s²", f"{n + 3} m/s²"],
        "correctAnswer": correct,
        "hint": hint,
        "explanation": f"Explanation {n}",
        "calculationStep": {"formula": "a = Δv / t", "substitution": f"a = {n} / 1", "result": f"{n} m/s²"},
    }


def is_step_prompt(content) -> bool:
    return isinstance(content, str) and "guided multiple-choice steps" in content
