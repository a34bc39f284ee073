"""
Problem Decoder API: Main Application
FastAPI application that turns exam problems into validated, step-by-step MCQs.
Also exposes OCR extraction, OCR cleanup, hint refinement and solution refinement.
"""

from dotenv import load_dotenv
load_dotenv()

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from decoding.errors import DecoderError
from routers import augment, decode, extract, hints, refine

logging.basicConfig(level=logging.INFO, format="%(asctime)s  %(levelname)s  %(message)s")
log = logging.getLogger("decoding.pipeline")

app = FastAPI(
    title="Problem Decoder API",
    description="Exam problem decoding into guided MCQ steps, with OCR extraction and solution refinement",
    version="1.0.0",
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ─── Error bodies ──────────────────────────────────────────────────────────────
# Every error leaves as {"error": ..., "details"?: ...}

@app.exception_handler(DecoderError)
async def decoder_error_handler(request: Request, exc: DecoderError):
    if exc.status_code >= 500:
        log.error(f"[API] {request.url.path} → {exc.status_code} {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_body())


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if any(e.get("type") == "json_invalid" for e in errors):
        return JSONResponse(status_code=400, content={"error": "Invalid JSON body"})
    details = [
        {"field": ".".join(str(p) for p in e.get("loc", ()) if p != "body"), "message": e.get("msg", "")}
        for e in errors
    ]
    return JSONResponse(status_code=400, content={"error": "Invalid request body", "details": details})


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail}, headers=getattr(exc, "headers", None))


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    log.error(f"[API] unhandled error on {request.url.path}", exc_info=exc)
    return JSONResponse(status_code=500, content={"error": "Server error", "details": str(exc)[:400]})


# ─── Routers ───────────────────────────────────────────────────────────────────

app.include_router(decode.router)      # /api/ai-decode
app.include_router(hints.router)       # /api/ai-refine-hints
app.include_router(refine.router)      # /api/ai-refine
app.include_router(extract.router)     # /api/extract
app.include_router(augment.router)     # /api/augment


@app.get("/")
def root():
    return {
        "name": "Problem Decoder API",
        "version": "1.0.0",
        "endpoints": {
            "docs": "/docs",
            "decode": "/api/ai-decode",
            "refine_hints": "/api/ai-refine-hints",
            "refine": "/api/ai-refine",
            "extract": "/api/extract",
            "augment": "/api/augment",
        },
    }


@app.get("/health")
def health_check():
    return {"status": "healthy", "service": "problem-decoder-api"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8001)
