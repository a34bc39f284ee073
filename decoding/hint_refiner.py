"""
Hint refine: ask the oracle for discriminative rewrites of a batch of hints,
then run the result through the Hint Quality Engine.

If the oracle fails, the engine works from the submitted hints alone; the
caller always receives one finalized hint per item.
"""

import json
import logging
from typing import Dict, List, Optional

from pydantic import ValidationError

from decoding.errors import ParseError, StageTimeoutError, UpstreamError
from decoding.hint_engine import improve_hints
from decoding.schemas import HintItem, MCQStep, OracleHints, RefinedHint

log = logging.getLogger("decoding.pipeline")

MAX_ITEMS = 20
MAX_HEADER_CHARS = 120
MAX_ORIGINAL_CHARS = 600
MAX_ORACLE_HINT_CHARS = 180
REFINE_TIMEOUT_S = 8.0

REFINE_INSTRUCTION = """Rewrite hints with discriminative cues. Output JSON only: {{ "hints": [{{"id":"<mcq id>", "hint":"<rewritten>"}}, ...] }}.
Rules:
- Start with 'Hint: ' and keep 11-18 words.
- Reference the stem concept (key term) or focus (e.g., time scale) explicitly.
- Use a MIX of cue types across hints: (a) key attribute/mechanism/time scale, (b) elimination rule, (c) limited contrast vs a common distractor.
- Vary verbs: Note/Use/Check/Look for.
- Avoid generic/meta phrasing and do not reveal exact answer text.
Input: {items}"""


async def _oracle_hints(items: List[HintItem], header: str, original: str) -> Dict[str, str]:
    from decoding.gpt_client import call_gpt, parse_json_object

    payload = json.dumps([item.model_dump(by_alias=True) for item in items], ensure_ascii=False)
    content = [
        {"type": "text", "text": header},
        {"type": "text", "text": f"Original text (trimmed):\n{original}"},
        {"type": "text", "text": REFINE_INSTRUCTION.format(items=payload)},
    ]
    reply = await call_gpt(content, temperature=0.2, max_tokens=900, timeout=REFINE_TIMEOUT_S)
    try:
        parsed = OracleHints.model_validate(parse_json_object(reply.content))
    except ValidationError as e:
        raise ParseError("Unexpected hint refine shape", details=str(e)[:200]) from e
    return {h.id: h.hint[:MAX_ORACLE_HINT_CHARS] for h in parsed.hints if h.id and h.hint}


async def refine_hints(
    items: List[HintItem],
    header: Optional[str] = None,
    original_text: Optional[str] = None,
) -> List[RefinedHint]:
    items = list(items)[:MAX_ITEMS]
    if not items:
        return []
    header = str(header or "")[:MAX_HEADER_CHARS]
    original = str(original_text or "")[:MAX_ORIGINAL_CHARS]

    try:
        rewritten = await _oracle_hints(items, header, original)
        log.info(f"[HINTS] oracle rewrote {len(rewritten)}/{len(items)} hints")
    except (UpstreamError, ParseError, StageTimeoutError) as e:
        log.warning(f"[HINTS] oracle refine unavailable, using local engine only: {e}")
        rewritten = {}

    steps = [
        MCQStep(id=item.id, step=i + 1, question=item.question, options=item.options,
                hint=rewritten.get(item.id) or item.hint or "")
        for i, item in enumerate(items)
    ]
    finalized = improve_hints(steps, context=original)
    return [RefinedHint(id=s.id, hint=s.hint) for s in finalized]
