"""
OCR Augmentation with GPT-4o Vision

Rewrites noisy OCR output into one clean problem statement. When the page
image is supplied it is sent alongside the text so numeric labels from the
diagram can be recovered; deployments that reject image input get a
text-only retry.
"""

import logging
from typing import Any, Dict, List, Optional, Union

from decoding.errors import InputError, UpstreamError
from ingestion.normalizer import normalize_ocr_text

log = logging.getLogger(__name__)

AUGMENT_SYSTEM = """You rewrite OCR output of exam problems into a clean, single-block statement suitable for solving.
- Use the diagram/image (if provided) to recover numeric labels (masses, angles, tan values) and relationships.
- Normalize fractions and units: join stacked lines (5/12, 12mg/5), keep symbols (α, μ) where present.
- Remove headings like "Figure 1", stray labels (A, B) unless referenced, and page numbers.
- Output ONLY the final cleaned problem text. No explanations."""

VISION_MAX_TOKENS = 1000
TEXT_MAX_TOKENS = 600


def build_augment_content(
    text: str,
    image_base64: Optional[str] = None,
    image_mime_type: Optional[str] = None,
) -> Union[str, List[Dict[str, Any]]]:
    user_text = f"OCR text:\n{text}"
    if image_base64 and image_mime_type:
        return [
            {"type": "text", "text": user_text},
            {"type": "image_url", "image_url": {"url": f"data:{image_mime_type};base64,{image_base64}"}},
        ]
    return user_text


async def augment_text(
    text: str,
    image_base64: Optional[str] = None,
    image_mime_type: Optional[str] = None,
) -> str:
    """
    Clean OCR text with the oracle, using the image when one is given.

    Raises:
        InputError:         blank text
        ConfigurationError: oracle not configured
        UpstreamError:      provider failure (its status), or an empty answer (502)
    """
    from decoding.gpt_client import call_gpt

    text = (text or "").strip()
    if not text:
        raise InputError("Missing 'text'")
    content = build_augment_content(text, (image_base64 or "").strip(), (image_mime_type or "").strip())
    with_image = isinstance(content, list)

    try:
        reply = await call_gpt(content, system=AUGMENT_SYSTEM, temperature=None,
                               max_tokens=VISION_MAX_TOKENS, json_mode=False)
    except UpstreamError as e:
        if not with_image:
            raise
        log.warning(f"[AUGMENT] vision request rejected ({e.status_code}), retrying text-only")
        reply = await call_gpt(f"OCR text:\n{text}", system=AUGMENT_SYSTEM, temperature=None,
                               max_tokens=TEXT_MAX_TOKENS, json_mode=False)

    cleaned = normalize_ocr_text(reply.content)
    if not cleaned:
        raise UpstreamError("Empty augmentation response", status_code=502)
    log.info(f"[AUGMENT] {len(text)} → {len(cleaned)} chars (image={with_image})")
    return cleaned
