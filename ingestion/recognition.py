"""
Document Recognition (OCR) via Azure Document Intelligence

Async job protocol:
  1. submit the raw bytes to the first analyze endpoint that accepts them
  2. read the job URL from the `operation-location` response header
  3. poll that URL every 0.8 s until succeeded / failed, or 60 s elapse
  4. flatten page lines to text, normalize, cache by content hash (5 min)

Two result schemas are understood: v3 `analyzeResult.pages[].lines[].content`
and legacy v2.1 `analyzeResult.readResults[].lines[].text`.
"""

import asyncio
import base64
import binascii
import hashlib
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

import httpx

from database.recognition_cache import RECOGNITION_TTL_S, CachedRecognition, RecognitionCache, get_recognition_cache
from decoding.config import RecognitionSettings, get_recognition_settings
from decoding.errors import InputError, ProtocolError, RecognitionTimeoutError, UpstreamError
from ingestion.normalizer import normalize_ocr_text

log = logging.getLogger(__name__)

MAX_WAIT_S = 60.0
POLL_INTERVAL_S = 0.8
HTTP_TIMEOUT_S = 30.0

# (name, url template, send the caller's mime type instead of octet-stream)
ANALYZE_CANDIDATES: Tuple[Tuple[str, str, bool], ...] = (
    ("documentintelligence",
     "{endpoint}/documentintelligence/documentModels/prebuilt-read:analyze?api-version=2024-07-31", False),
    ("formrecognizer",
     "{endpoint}/formrecognizer/documentModels/prebuilt-read:analyze?api-version=2023-10-31", False),
    ("formrecognizer-v2.1",
     "{endpoint}/formrecognizer/v2.1/layout/analyze", True),
)


class RecognitionStatus(str, Enum):
    SUBMITTED = "submitted"
    POLLING = "polling"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    TIMED_OUT = "timedOut"


@dataclass
class RecognitionJob:
    content_hash: str
    status: RecognitionStatus = RecognitionStatus.SUBMITTED
    operation_location: Optional[str] = None
    api: Optional[str] = None
    text: str = ""
    pages: Optional[int] = None
    cached: bool = False


def content_hash(mime_type: str, file_base64: str) -> str:
    """Cache key: sha256 over mime type and the base64 payload."""
    return hashlib.sha256(f"{mime_type}:{file_base64}".encode("utf-8")).hexdigest()


def decode_base64(data: str) -> bytes:
    """Accepts bare base64 or a data URL. Raises InputError on garbage."""
    if data.startswith("data:") and "," in data:
        data = data.split(",", 1)[1]
    try:
        return base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError) as e:
        raise InputError("Invalid base64 payload", details=str(e)) from e


def extract_lines(result: Dict[str, Any]) -> Tuple[str, int]:
    """Flatten a succeeded job body into (text, page_count), for either schema."""
    analyze = result.get("analyzeResult")
    if not isinstance(analyze, dict):
        return "", 0

    pages = analyze.get("pages")
    if isinstance(pages, list) and pages:
        return "\n".join(_page_lines(pages, "content")), len(pages)

    read_results = analyze.get("readResults")
    if isinstance(read_results, list):
        return "\n".join(_page_lines(read_results, "text")), len(read_results)
    return "", 0


def _page_lines(pages: List[Any], field: str) -> List[str]:
    """Line text in reading order; malformed pages or lines are skipped."""
    lines: List[str] = []
    for page in pages:
        if not isinstance(page, dict):
            continue
        page_lines = page.get("lines")
        if not isinstance(page_lines, list):
            continue
        for line in page_lines:
            if isinstance(line, dict):
                lines.append(str(line.get(field) or ""))
    return lines


def _job_status(body: Dict[str, Any]) -> str:
    return str(body.get("status") or body.get("operationState") or "").lower()


class RecognitionPoller:
    """
    Runs one recognition job per call. Transport, clock and sleep are
    injectable so tests never touch the network or wait in real time.
    """

    def __init__(
        self,
        settings: Optional[RecognitionSettings] = None,
        cache: Optional[RecognitionCache] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        max_wait_s: float = MAX_WAIT_S,
        interval_s: float = POLL_INTERVAL_S,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.settings = settings or get_recognition_settings()
        self.cache = cache if cache is not None else get_recognition_cache()
        self._transport = transport
        self.max_wait_s = max_wait_s
        self.interval_s = interval_s
        self._clock = clock
        self._sleep = sleep

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=HTTP_TIMEOUT_S, transport=self._transport)

    async def _submit(self, client: httpx.AsyncClient, payload: bytes, mime_type: str, job: RecognitionJob) -> str:
        failures = []
        last_status = 502
        for name, template, send_mime in ANALYZE_CANDIDATES:
            url = template.format(endpoint=self.settings.endpoint)
            headers = {
                "Ocp-Apim-Subscription-Key": self.settings.api_key,
                "Content-Type": mime_type if send_mime else "application/octet-stream",
            }
            try:
                response = await client.post(url, content=payload, headers=headers)
            except httpx.HTTPError as e:
                failures.append({"api": name, "error": str(e)[:200]})
                continue
            if response.is_success:
                location = response.headers.get("operation-location")
                if not location:
                    raise ProtocolError("Missing operation-location header from Azure", details={"api": name})
                job.api = name
                log.info(f"[EXTRACT] submitted via {name}")
                return location
            last_status = response.status_code
            failures.append({"api": name, "status": response.status_code, "body": response.text[:300]})
            log.warning(f"[EXTRACT] {name} rejected submit: HTTP {response.status_code}")

        raise UpstreamError("Azure analyze submit failed", details=failures, status_code=last_status)

    async def _poll(self, client: httpx.AsyncClient, location: str, job: RecognitionJob) -> Dict[str, Any]:
        headers = {"Ocp-Apim-Subscription-Key": self.settings.api_key}
        deadline = self._clock() + self.max_wait_s
        job.status = RecognitionStatus.POLLING
        while self._clock() < deadline:
            try:
                response = await client.get(location, headers=headers)
            except httpx.HTTPError as e:
                raise UpstreamError("Azure poll failed", details=str(e)[:200]) from e
            if not response.is_success:
                raise UpstreamError("Azure poll failed", details=response.text[:300], status_code=response.status_code)
            try:
                body = response.json()
            except ValueError as e:
                raise UpstreamError("Azure poll failed", details=f"unreadable poll body: {response.text[:200]}") from e
            if not isinstance(body, dict):
                raise UpstreamError("Azure poll failed", details="poll body is not an object")
            status = _job_status(body)
            if status == "succeeded":
                job.status = RecognitionStatus.SUCCEEDED
                return body
            if status == "failed":
                job.status = RecognitionStatus.FAILED
                raise UpstreamError("Azure analyze failed", details=body.get("error") or body)
            await self._sleep(self.interval_s)

        job.status = RecognitionStatus.TIMED_OUT
        raise RecognitionTimeoutError("Timed out waiting for Azure analyze result")

    async def recognize(self, file_base64: str, mime_type: str) -> RecognitionJob:
        """
        Recognize one document. Cache hits skip the provider entirely.

        Raises:
            InputError:              payload is not base64
            UpstreamError:           every submit candidate failed, a poll was unreachable, non-2xx or unreadable, or the job failed
            ProtocolError:           accepted submit without an operation-location
            RecognitionTimeoutError: no terminal state within max_wait_s
        """
        key = content_hash(mime_type, file_base64)
        job = RecognitionJob(content_hash=key)

        hit = self.cache.get(key)
        if hit is not None:
            log.info(f"[EXTRACT] cache hit {key[:12]}")
            job.status = RecognitionStatus.SUCCEEDED
            job.text, job.pages, job.cached = hit.text, hit.pages, True
            return job

        payload = decode_base64(file_base64)
        async with self._client() as client:
            location = await self._submit(client, payload, mime_type, job)
            job.operation_location = location
            body = await self._poll(client, location, job)

        raw_text, pages = extract_lines(body)
        job.text = normalize_ocr_text(raw_text)
        job.pages = pages
        self.cache.set(key, CachedRecognition(text=job.text, pages=pages), RECOGNITION_TTL_S)
        log.info(f"[EXTRACT] done pages={pages} chars={len(job.text)}")
        return job
